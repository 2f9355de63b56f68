"""
MIME assembly for outgoing mails.

Layout of a mail with HTML and attachments::

    multipart/mixed
    +-- multipart/alternative
    |   +-- text/plain
    |   +-- text/html
    |   +-- (alternative attachments, e.g. text/calendar)
    +-- attachment 1
    +-- attachment 2

Without "mixed" attachments the multipart/alternative is the root.
"""

from email import encoders
from email.message import Message
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import Iterable, List, Optional, Tuple

from mail_dispatch.attachment import Attachment
from mail_dispatch.config import SMTPConfiguration
from mail_dispatch.request import MailRequest

X_BOUNCETOKEN = 'X-Bouncetoken'
X_MAILER = 'X-Mailer'
MIME_VERSION = 'MIME-Version'
MIME_VERSION_1_0 = '1.0'
DEFAULT_MIME_TYPE = 'application/octet-stream'


def set_header(part: Message, name: str, value: Optional[str]):
    """Replace a header. An empty value removes it."""
    del part[name]
    if value:
        part[name] = value


def create_main_content(text: Optional[str], html: Optional[str]) -> MIMEMultipart:
    """Create the multipart/alternative holding the text and (optional) HTML body."""
    content = MIMEMultipart('alternative')
    content.attach(MIMEText(text or '', 'plain', 'utf-8'))
    if html is not None:
        content.attach(MIMEText(html, 'html', 'utf-8'))
    return content


def create_body_part(attachment: Attachment) -> MIMEBase:
    """
    Create the body part of an attachment.

    The payload is base64 encoded. Parameters given in the MIME type
    (``text/calendar; method=REQUEST``) are kept.
    """
    mime_type, *params = [p.strip() for p in (attachment.mime_type or DEFAULT_MIME_TYPE).split(';')]
    maintype, _, subtype = mime_type.partition('/')
    if not subtype:
        maintype, subtype = DEFAULT_MIME_TYPE.split('/')

    part = MIMEBase(maintype, subtype)
    for param in params:
        key, _, value = param.partition('=')
        if key:
            part.set_param(key.strip(), value.strip().strip('"'))
    if attachment.charset and maintype == 'text':
        part.set_param('charset', attachment.charset)

    part.set_payload(attachment.data)
    encoders.encode_base64(part)
    part.add_header('Content-Disposition', 'attachment', filename=attachment.name)

    for name, value in attachment.headers.items():
        set_header(part, name, value)

    return part


def split_attachments(attachments: Iterable[Optional[Attachment]]) -> Tuple[List[Attachment], List[Attachment]]:
    """Split into (alternative, mixed) attachments, dropping None entries."""
    alternative = []
    mixed = []
    for attachment in attachments:
        if attachment is None:
            continue
        if attachment.alternative:
            alternative.append(attachment)
        else:
            mixed.append(attachment)
    return alternative, mixed


def create_content(
    text: Optional[str],
    html: Optional[str],
    attachments: Iterable[Optional[Attachment]] = ()
) -> MIMEMultipart:
    """
    Assemble the multipart body of a mail.

    Args:
        text: Plain text body
        html: HTML body (omitted when None)
        attachments: Attachments, alternative ones are added to the body alternatives

    Returns:
        MIMEMultipart: multipart/mixed when real attachments exist, multipart/alternative otherwise
    """
    content = create_main_content(text, html)
    alternative, mixed = split_attachments(attachments)

    for attachment in alternative:
        content.attach(create_body_part(attachment))

    if not mixed:
        return content

    root = MIMEMultipart('mixed')
    root.attach(content)
    for attachment in mixed:
        root.attach(create_body_part(attachment))
    return root


def build_message(
    request: MailRequest,
    config: SMTPConfiguration,
    technical_sender: Optional[str],
    technical_sender_name: Optional[str] = None,
    mailer: Optional[str] = None
) -> Tuple[Message, Optional[str]]:
    """
    Build the complete message for a mail request.

    Args:
        request: The mail to send
        config: SMTP configuration (decides on Sender header and envelope sender)
        technical_sender: Address of the technical sender (system address)
        technical_sender_name: Display name of the technical sender
        mailer: Value of the X-Mailer header

    Returns:
        tuple: (message, envelope sender). The envelope sender is None when
        the transport should derive it from the message headers.
    """
    if request.needs_multipart:
        msg = create_content(request.text, request.html, request.attachments)
    else:
        msg = MIMEText(request.text or '', 'plain', 'utf-8')

    msg['Subject'] = request.subject or ''
    msg['To'] = formataddr((request.receiver_name or '', request.receiver_email), charset='utf-8')

    if request.has_sender:
        if config.use_sender_and_envelope_from and technical_sender:
            msg['Sender'] = formataddr((technical_sender_name or '', technical_sender), charset='utf-8')
        msg['From'] = formataddr((request.sender_name or '', request.sender_email), charset='utf-8')
    elif technical_sender:
        msg['From'] = formataddr((technical_sender_name or '', technical_sender), charset='utf-8')

    envelope_from = None
    if config.use_sender_and_envelope_from:
        envelope_from = config.sender or technical_sender or None

    set_header(msg, MIME_VERSION, MIME_VERSION_1_0)
    if request.bounce_token:
        set_header(msg, X_BOUNCETOKEN, request.bounce_token)
    if mailer:
        set_header(msg, X_MAILER, mailer)

    for name, value in request.headers:
        set_header(msg, name, value)

    msg['Date'] = formatdate(localtime=True)
    msg['Message-ID'] = make_msgid(domain=_domain_of(technical_sender or request.sender_email))

    return msg, envelope_from


def _domain_of(address: Optional[str]) -> Optional[str]:
    if address and '@' in address:
        return address.rsplit('@', 1)[1]
    return None
