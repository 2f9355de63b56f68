"""
SMTP configuration.

The process-wide configuration is read from settings.py. A custom
SMTPConfiguration can be passed to MailService to deliver through another
server (e.g. per tenant).
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_SMTP_PORT = 25


@dataclass(frozen=True)
class SMTPConfiguration:
    """Connection and sender settings used to deliver a mail."""

    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None
    sender_name: Optional[str] = None
    use_sender_and_envelope_from: bool = True
    use_tls: bool = False
    use_ssl: bool = False
    timeout: int = 60

    @property
    def effective_port(self) -> int:
        """Configured port, or 25 when none is set."""
        return int(self.port) if self.port else DEFAULT_SMTP_PORT

    @property
    def uses_authentication(self) -> bool:
        return bool(self.password)

    def describe(self) -> str:
        """Summary for error messages (never contains the password)."""
        return (
            f"Host: {self.host}, Port: {self.effective_port}, User: {self.user}, "
            f"Password used: {self.uses_authentication}"
        )


def default_config() -> SMTPConfiguration:
    """Build the SMTP configuration from settings."""
    import settings

    return SMTPConfiguration(
        host=settings.MAIL_SMTP_HOST,
        port=settings.MAIL_SMTP_PORT,
        user=settings.MAIL_SMTP_USER,
        password=settings.MAIL_SMTP_PASSWORD,
        sender=settings.MAIL_SMTP_SENDER,
        sender_name=settings.MAIL_SMTP_SENDER_NAME,
        use_sender_and_envelope_from=True,
        use_tls=settings.MAIL_SMTP_USE_TLS,
        use_ssl=settings.MAIL_SMTP_USE_SSL,
        timeout=settings.MAIL_SMTP_TIMEOUT
    )
