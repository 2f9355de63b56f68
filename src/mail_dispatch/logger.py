"""Logging utilities for mail dispatch.

Modules obtain their logger through :func:`get_logger`. Handlers, levels and
formats are configured once by the entry point (see ``cli.py``) via
``logging.basicConfig()``.

Example:
    Typical usage in a module::

        from mail_dispatch.logger import get_logger

        MAIL = get_logger()
        MAIL.debug("Sending eMail: %s to: %s", subject, receiver)
"""

import logging

MAIL_LOGGER_NAME = "mail"


def get_logger(name: str = MAIL_LOGGER_NAME) -> logging.Logger:
    """Retrieve the logger with the given name (``mail`` by default)."""
    return logging.getLogger(name)
