"""
Immutable snapshot of a mail handed to the background send task.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from mail_dispatch.attachment import Attachment


@dataclass(frozen=True)
class MailRequest:
    """Everything the send task needs, frozen at dispatch time."""

    receiver_email: str
    receiver_name: Optional[str] = None
    sender_email: Optional[str] = None
    sender_name: Optional[str] = None
    subject: Optional[str] = None
    text: Optional[str] = None
    html: Optional[str] = None
    attachments: Tuple[Attachment, ...] = ()
    headers: Tuple[Tuple[str, Optional[str]], ...] = ()
    bounce_token: Optional[str] = None

    @property
    def has_sender(self) -> bool:
        return bool(self.sender_email)

    @property
    def needs_multipart(self) -> bool:
        """An HTML body or any attachment requires a multipart message."""
        return bool(self.html) or any(a is not None for a in self.attachments)
