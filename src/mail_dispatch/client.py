"""
SMTP client for delivering messages.

This module provides the SMTPClient class which opens a connection per
mail, with support for TLS/SSL and authentication. The SMTP protocol
itself is handled by smtplib.
"""

import smtplib
from email.message import Message
from typing import List, Optional

from mail_dispatch.config import SMTPConfiguration
from mail_dispatch.errors import (
    MailConfigurationError,
    MailTransportError,
    describe,
    handle
)
from mail_dispatch.logger import get_logger

MAIL = get_logger()


class SMTPClient:
    """
    SMTP client for sending messages.

    Example:
        >>> client = SMTPClient(default_config())
        >>> client.send_message(msg, 'noreply@example.com', ['user@example.com'])
    """

    def __init__(self, config: SMTPConfiguration):
        """
        Initialize client with a SMTP configuration.

        Args:
            config: SMTP configuration to use

        Raises:
            MailConfigurationError: If no host is configured. This is reported
                as a warning only, a system without mail server is a valid setup.
        """
        self.config = config

        if not config.host:
            message = f"Invalid mail configuration: No mail host configured ({config.describe()})"
            MAIL.warning(message)
            raise handle(message, error_class=MailConfigurationError, log=False)

    def _connect(self) -> smtplib.SMTP:
        """
        Open an authenticated connection.

        Raises:
            MailConfigurationError: If connecting or authenticating fails
        """
        config = self.config
        server = None
        try:
            # Choose SMTP class based on SSL setting
            if config.use_ssl:
                server = smtplib.SMTP_SSL(config.host, config.effective_port, timeout=config.timeout)
            else:
                server = smtplib.SMTP(config.host, config.effective_port, timeout=config.timeout)

            # Enable TLS if configured (and not using SSL)
            if config.use_tls and not config.use_ssl:
                server.starttls()

            # Authenticate if a password is provided
            if config.uses_authentication:
                server.login(config.user or '', config.password)

            return server

        except (smtplib.SMTPException, OSError) as e:
            if server is not None:
                _close_quietly(server)
            raise handle(
                f"Invalid mail configuration: {describe(e)} ({config.describe()})",
                e,
                error_class=MailConfigurationError
            ) from e

    def send_message(
        self,
        msg: Message,
        envelope_from: Optional[str],
        recipients: List[str]
    ):
        """
        Deliver a message.

        Args:
            msg: The message to send
            envelope_from: Envelope sender (MAIL FROM). None uses the Sender/From header
            recipients: Envelope recipients (RCPT TO)

        Raises:
            MailConfigurationError: If the server cannot be reached or rejects the login
            MailTransportError: If the server fails while the message is transmitted
        """
        server = self._connect()
        try:
            server.send_message(msg, from_addr=envelope_from, to_addrs=recipients)
        except smtplib.SMTPException as e:
            raise MailTransportError(f"SMTP error: {describe(e)}") from e
        finally:
            _close_quietly(server)

    def test_connection(self) -> bool:
        """
        Test SMTP connection and authentication.

        Returns:
            bool: True if connection successful, False otherwise
        """
        try:
            server = self._connect()
        except MailConfigurationError:
            return False

        _close_quietly(server)
        return True


def _close_quietly(server: smtplib.SMTP):
    try:
        server.quit()
    except (smtplib.SMTPException, OSError):
        server.close()
