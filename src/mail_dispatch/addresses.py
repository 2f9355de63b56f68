"""
Mail address validation helpers.

Syntax checks are delegated to email-validator. Deliverability (DNS/MX)
is never checked here: an address is valid if a SMTP server could accept
it in a RCPT TO command. Quoted local parts, domain literals and
site-local domains (localhost, .local, .test) are accepted; non-ASCII
addresses are not, as the SMTP client does not negotiate SMTPUTF8.
"""

import re
from typing import Optional

import email_validator
from email_validator import EmailNotValidError, validate_email

from mail_dispatch.errors import InvalidAddressError

_WHITESPACE = re.compile(r'\s')
_LINE_BREAK = re.compile(r'[\r\n]')

SITE_LOCAL_DOMAIN_NAMES = ('local', 'localhost', 'test')

# email-validator rejects these special-use names even for syntax-only checks
for _domain in SITE_LOCAL_DOMAIN_NAMES:
    if _domain in email_validator.SPECIAL_USE_DOMAIN_NAMES:
        email_validator.SPECIAL_USE_DOMAIN_NAMES.remove(_domain)


def strip_whitespace(address: Optional[str]) -> Optional[str]:
    """Remove every whitespace character from an address."""
    if not address:
        return address
    return _WHITESPACE.sub('', address)


def format_address(address: Optional[str], name: Optional[str] = None) -> str:
    """Render an address for messages: 'address (name)' or 'address'."""
    if name:
        return f"{address} ({name})"
    return address or ''


def is_valid_mail_address(address: Optional[str], name: Optional[str] = None) -> bool:
    """
    Determine if the given address (and optional display name) is valid.

    Args:
        address: Mail address to check
        name: Optional display name to use along with the address

    Returns:
        bool: True if the address is syntactically valid, False otherwise
    """
    if not address:
        return False

    if name and _LINE_BREAK.search(name):
        return False

    try:
        validate_email(
            address,
            check_deliverability=False,
            globally_deliverable=False,
            allow_quoted_local=True,
            allow_domain_literal=True,
            allow_smtputf8=False
        )
        return True
    except EmailNotValidError:
        return False


def fail_for_invalid_email(address: Optional[str], name: Optional[str] = None):
    """
    Raise an InvalidAddressError if the given address is not valid.

    Args:
        address: Mail address to check
        name: Optional display name to use along with the address

    Raises:
        InvalidAddressError: If the address is invalid
    """
    if not is_valid_mail_address(address, name):
        formatted = format_address(address, name)
        raise InvalidAddressError(f"'{formatted}' is not a valid mail address.", address=formatted)
