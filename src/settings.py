"""
Settings of the mail dispatcher.

Values come from the environment; a .env file in the project root is
loaded first (python-dotenv), already exported variables take precedence.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).parent.parent / '.env')


def get_setting(key: str, default=None):
    """
    Read a setting from the environment.

    Args:
        key: Environment variable name
        default: Returned when the variable is not set

    Example:
        >>> MAIL_SMTP_HOST = get_setting('MAIL_SMTP_HOST', '')
    """
    return os.getenv(key, default)


def get_int_setting(key: str, default: int) -> int:
    """Read an integer setting; unset or empty values give the default."""
    value = get_setting(key)
    if not value:
        return default
    return int(value)


def get_bool_setting(key: str, default: bool = False) -> bool:
    """Read a boolean flag ('true', '1', 'yes' are truthy)."""
    value = get_setting(key)
    if value is None:
        return default
    return value.strip().lower() in ('true', '1', 'yes')


# Debug mode
DEBUG = get_bool_setting('DEBUG')

# SMTP settings
MAIL_SMTP_HOST = get_setting('MAIL_SMTP_HOST', '')
MAIL_SMTP_PORT = get_int_setting('MAIL_SMTP_PORT', 25)
MAIL_SMTP_USER = get_setting('MAIL_SMTP_USER', '')
MAIL_SMTP_PASSWORD = get_setting('MAIL_SMTP_PASSWORD', '')
MAIL_SMTP_SENDER = get_setting('MAIL_SMTP_SENDER', '')
MAIL_SMTP_SENDER_NAME = get_setting('MAIL_SMTP_SENDER_NAME', '')
MAIL_SMTP_USE_TLS = get_bool_setting('MAIL_SMTP_USE_TLS')
MAIL_SMTP_USE_SSL = get_bool_setting('MAIL_SMTP_USE_SSL')
MAIL_SMTP_TIMEOUT = get_int_setting('MAIL_SMTP_TIMEOUT', 60)

# Value of the X-Mailer header
MAIL_MAILER = get_setting('MAIL_MAILER', 'mail-dispatch')

# Templates
MAIL_TEMPLATES_DIR = get_setting('MAIL_TEMPLATES_DIR', 'templates/mail')
MAIL_DEFAULT_LANG = get_setting('MAIL_DEFAULT_LANG', 'en')

# Background delivery
MAIL_EXECUTOR_WORKERS = get_int_setting('MAIL_EXECUTOR_WORKERS', 4)

# Mail log database
MAIL_LOG_DB_PATH = get_setting('MAIL_LOG_DB_PATH', 'data/mail_logs.db')
