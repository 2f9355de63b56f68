"""
Exceptions raised by the mail dispatch package.

A *handled* error has already been reported to the mail logger and carries
a message that can be shown to the user as is. Callers should not log it
again.
"""

from typing import Optional, Type

from mail_dispatch.logger import get_logger

MAIL = get_logger()


class MailError(Exception):
    """Base exception for mail errors."""
    pass


class HandledMailError(MailError):
    """A mail error which has been reported and is safe to show to users."""
    pass


class InvalidAddressError(HandledMailError):
    """Raised for syntactically invalid sender or receiver addresses."""

    def __init__(self, message: str, address: Optional[str] = None):
        super().__init__(message)
        self.address = address


class MailConfigurationError(HandledMailError):
    """Raised when the SMTP configuration is missing or rejected by the server."""
    pass


class MailTransportError(MailError):
    """Raised when the SMTP server fails while a message is transmitted."""
    pass


def describe(error: BaseException) -> str:
    """Render an exception as 'message (ClassName)'."""
    return f"{error} ({type(error).__name__})"


def handle(
    message: str,
    error: Optional[BaseException] = None,
    error_class: Type[HandledMailError] = HandledMailError,
    log: bool = True
) -> HandledMailError:
    """
    Report an error to the mail logger and wrap it into a handled error.

    Args:
        message: User visible message
        error: Underlying exception (logged with traceback)
        error_class: HandledMailError subclass to create
        log: Whether to report the error at all

    Returns:
        HandledMailError: The error to raise (use ``raise handle(...) from e``)

    Example:
        >>> try:
        ...     transport.send(...)
        ... except OSError as e:
        ...     raise handle(f"Cannot send mail: {describe(e)}", e) from e
    """
    if log:
        if error is not None:
            MAIL.error(message, exc_info=error)
        else:
            MAIL.error(message)

    return error_class(message)
