"""
Mail module for sending templated mails via SMTP.

This module provides:
- MailService: Entry point, creates mails and delivers them in the background
- MailSender: Builder for a single mail
- MailRenderer: Jinja2 template rendering for subjects, bodies and attachments
- SMTPClient: SMTP transport
- DatabaseMailLog: Persistent log of all delivery attempts
"""

from mail_dispatch.attachment import Attachment
from mail_dispatch.config import SMTPConfiguration
from mail_dispatch.errors import (
    HandledMailError,
    InvalidAddressError,
    MailConfigurationError,
    MailError,
    MailTransportError
)
from mail_dispatch.service import MailService

__all__ = [
    'Attachment',
    'SMTPConfiguration',
    'MailService',
    'MailError',
    'HandledMailError',
    'InvalidAddressError',
    'MailConfigurationError',
    'MailTransportError'
]
