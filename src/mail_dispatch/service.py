"""
High-level mail service.

This module provides the MailService class which ties together the SMTP
configuration, the template renderer, the registered mail logs and the
thread pool delivering mails in the background.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Sequence

from mail_dispatch import addresses
from mail_dispatch.client import SMTPClient
from mail_dispatch.config import SMTPConfiguration, default_config
from mail_dispatch.errors import MailConfigurationError
from mail_dispatch.logger import get_logger
from mail_dispatch.mail_log import MailLog
from mail_dispatch.renderer import MailRenderer
from mail_dispatch.sender import MailSender
from mail_dispatch.task import DeliveryReport, SendMailTask

MAIL = get_logger()

EXECUTOR_NAME = 'mail'


class MailService:
    """
    Send mails using predefined templates.

    Mails are built with :meth:`create_email` and delivered by a thread
    pool, so the caller never waits for the mail server.

    Example:
        >>> service = MailService(logs=[DatabaseMailLog()])
        >>> service.create_email() \\
        ...     .to('user@example.com', 'Jane Doe') \\
        ...     .subject('Hello') \\
        ...     .text_content('Hello World') \\
        ...     .send()
    """

    def __init__(
        self,
        config: Optional[SMTPConfiguration] = None,
        logs: Optional[Sequence[MailLog]] = None,
        renderer: Optional[MailRenderer] = None,
        max_workers: Optional[int] = None,
        mailer: Optional[str] = None,
        default_lang: Optional[str] = None
    ):
        """
        Initialize mail service.

        If parameters are not provided, uses values from settings.py.

        Args:
            config: SMTP configuration used for delivery
            logs: Mail logs notified after every delivery attempt
            renderer: Template renderer
            max_workers: Number of delivery threads
            mailer: Value of the X-Mailer header
            default_lang: Language used when a mail does not set one
        """
        import settings

        self.default_config = default_config()
        self.config = config or self.default_config
        self.logs = list(logs or [])
        self.renderer = renderer or MailRenderer()
        self.mailer = mailer or settings.MAIL_MAILER
        self.default_lang = default_lang or settings.MAIL_DEFAULT_LANG

        self.executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.MAIL_EXECUTOR_WORKERS,
            thread_name_prefix=EXECUTOR_NAME
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.shutdown()

    def create_email(self) -> MailSender:
        """Create a builder for a new mail."""
        return MailSender(self)

    def is_valid_mail_address(self, address: Optional[str], name: Optional[str] = None) -> bool:
        """Determine if the given address (and optional name) is a valid mail address."""
        return addresses.is_valid_mail_address(address, name)

    def fail_for_invalid_email(self, address: Optional[str], name: Optional[str] = None):
        """Raise InvalidAddressError if the given address is not valid."""
        addresses.fail_for_invalid_email(address, name)

    def submit(self, task: SendMailTask) -> 'Future[DeliveryReport]':
        """Schedule a send task on the mail executor."""
        return self.executor.submit(task.run)

    def test_connection(self) -> bool:
        """
        Test SMTP connection and authentication.

        Returns:
            bool: True if connection successful, False otherwise (also when no host is configured)
        """
        try:
            client = SMTPClient(self.config)
        except MailConfigurationError:
            return False
        return client.test_connection()

    def shutdown(self, wait: bool = True):
        """Stop accepting mails; by default wait for pending deliveries."""
        self.executor.shutdown(wait=wait)
