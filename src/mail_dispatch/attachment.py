"""
Attachments and their per-part headers.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class Attachment:
    """
    A file added to a mail.

    Attachments are added as "mixed" parts next to the mail body. Some,
    like an iCalendar invitation, must instead be an alternative
    representation of the text and HTML body: set ``alternative`` for those.

    Example:
        >>> invite = Attachment('invite.ics', 'text/calendar', ics_bytes, alternative=True)
        >>> invite.add_header('Content-Class', 'urn:content-classes:calendarmessage')
    """

    name: str
    mime_type: str
    data: bytes
    alternative: bool = False
    headers: Dict[str, Optional[str]] = field(default_factory=dict)
    charset: Optional[str] = None

    def add_header(self, name: str, value: Optional[str]) -> 'Attachment':
        """Set a header of the body part. An empty value removes the header."""
        self.headers[name] = value
        return self
