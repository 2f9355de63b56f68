"""
Builder for outgoing mails.

A MailSender collects sender, receiver, content and attachments of a mail
and hands it over to the background executor of MailService::

    service.create_email() \\
        .to('jane@example.com', 'Jane Doe') \\
        .use_mail_template('welcome', {'user': 'Jane'}) \\
        .set_lang('de') \\
        .send()
"""

import mimetypes
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from mail_dispatch.addresses import format_address, is_valid_mail_address, strip_whitespace
from mail_dispatch.attachment import Attachment
from mail_dispatch.errors import (
    HandledMailError,
    InvalidAddressError,
    describe,
    handle
)
from mail_dispatch.logger import get_logger
from mail_dispatch.request import MailRequest
from mail_dispatch.task import DeliveryReport, SendMailTask
from mail_dispatch.templates import AttachmentTemplate, MailTemplate, to_machine_string

if TYPE_CHECKING:
    from mail_dispatch.service import MailService

MAIL = get_logger()

DEFAULT_ATTACHMENT_TYPE = 'application/octet-stream'


class MailSender:
    """Fluent builder for a single mail. Create via MailService.create_email()."""

    def __init__(self, service: 'MailService'):
        self._service = service

        self.sender_email: Optional[str] = None
        self.sender_name: Optional[str] = None
        self.receiver_email: Optional[str] = None
        self.receiver_name: Optional[str] = None
        self.subject_text: Optional[str] = None
        self.text: Optional[str] = None
        self.html: Optional[str] = None
        self.include_html: bool = True
        self.attachments: List[Optional[Attachment]] = []
        self.headers: Dict[str, Optional[str]] = {}
        self.bounce_token: Optional[str] = None
        self.lang: Optional[str] = None

        self.template_key: Optional[str] = None
        self.context: Dict[str, Any] = {}

    def set_lang(self, *langs: Optional[str]) -> 'MailSender':
        """Use the first filled language. Without any, the language is left unchanged."""
        for lang in langs:
            if lang:
                self.lang = lang
                break
        return self

    def from_email(self, sender_email: Optional[str]) -> 'MailSender':
        self.sender_email = sender_email
        return self

    def from_name(self, sender_name: Optional[str]) -> 'MailSender':
        self.sender_name = sender_name
        return self

    def from_(self, sender_email: Optional[str], sender_name: Optional[str] = None) -> 'MailSender':
        """Set sender address and name. If no sender is given, the technical sender is used."""
        return self.from_email(sender_email).from_name(sender_name)

    def to_email(self, receiver_email: Optional[str]) -> 'MailSender':
        self.receiver_email = receiver_email
        return self

    def to_name(self, receiver_name: Optional[str]) -> 'MailSender':
        self.receiver_name = receiver_name
        return self

    def to(self, receiver_email: Optional[str], receiver_name: Optional[str] = None) -> 'MailSender':
        return self.to_email(receiver_email).to_name(receiver_name)

    def subject(self, subject: Optional[str]) -> 'MailSender':
        self.subject_text = subject
        return self

    def add_header(self, name: str, value: Optional[str]) -> 'MailSender':
        """Add a custom header. An empty value removes the header from the mail."""
        self.headers[name] = value
        return self

    def use_mail_template(self, template_key: str, context: Dict[str, Any]) -> 'MailSender':
        """
        Generate subject, bodies, headers and attachments from a mail template.

        Args:
            template_key: Key of the template in mail_templates.json
            context: Variables available to all templates of the mail
        """
        self.template_key = template_key
        self.context = context
        return self

    def include_html_part(self, include_html_part: bool) -> 'MailSender':
        """Set to False to send the text body only, even if HTML content is present."""
        self.include_html = include_html_part
        return self

    def text_content(self, text: Optional[str]) -> 'MailSender':
        self.text = text
        return self

    def html_content(self, html: Optional[str]) -> 'MailSender':
        self.html = html
        return self

    def add_attachment(self, attachment: Optional[Attachment]) -> 'MailSender':
        self.attachments.append(attachment)
        return self

    def add_attachments(self, *attachments: Optional[Attachment]) -> 'MailSender':
        self.attachments.extend(a for a in attachments if a is not None)
        return self

    def set_bounce_token(self, token: Optional[str]) -> 'MailSender':
        """Token sent as X-Bouncetoken header to match bounces with this mail."""
        self.bounce_token = token
        return self

    def send(self) -> 'Future[DeliveryReport]':
        """
        Validate the mail and schedule it for delivery.

        Returns:
            Future: Resolves to the DeliveryReport of the background task

        Raises:
            HandledMailError: If the mail cannot be generated or an address is invalid
        """
        lang = self.lang or self._service.default_lang
        try:
            self._fill(lang)
            self._sanitize()
            self._check()
            task = SendMailTask(
                self._freeze(),
                self._service.config,
                default_config=self._service.default_config,
                logs=self._service.logs,
                mailer=self._service.mailer
            )
            return self._service.submit(task)
        except HandledMailError:
            raise
        except Exception as e:
            raise handle(self._failure_message(e), e) from e

    def _failure_message(self, error: BaseException) -> str:
        return (
            f"Cannot send mail to '{format_address(self.receiver_email, self.receiver_name)}' "
            f"from '{format_address(self.sender_email, self.sender_name)}' "
            f"with subject '{self.subject_text}': {describe(error)}"
        )

    def _fill(self, lang: Optional[str]):
        if not self.template_key:
            return

        renderer = self._service.renderer
        definition = renderer.get_mail_template(self.template_key)
        if definition is None:
            raise handle(
                f"Unknown mail template: {self.template_key}. "
                f"Cannot send mail from: '{self.sender_email}' to '{self.receiver_email}'"
            )

        # Defaults go into a copy, the caller's dict stays untouched
        self.context = context = dict(self.context)
        context['template'] = self.template_key
        context.setdefault('lang', lang)
        if self.subject_text is not None:
            context.setdefault('subject', self.subject_text)

        self.subject(renderer.render_string(definition.subject_template(lang), context))
        self.text_content(renderer.render_file(definition.localized('text', lang), context))
        self.html_content(None)
        if definition.html:
            self._fill_html(definition, lang)

        self.headers.update(definition.machine_headers())

        for attachment_template in definition.attachments:
            try:
                self.add_attachment(self._render_attachment(attachment_template))
            except Exception as e:
                # The mail is still sent, without this attachment
                handle(
                    f"Cannot generate attachment using template {self.template_key} "
                    f"({attachment_template.template}) when sending a mail from "
                    f"'{self.sender_email}' to '{self.receiver_email}': {describe(e)}",
                    e
                )

    def _fill_html(self, definition: MailTemplate, lang: Optional[str]):
        html_template = definition.localized('html', lang)
        try:
            self.html_content(self._service.renderer.render_file(html_template, self.context))
        except Exception as e:
            # Fall back to a text only mail
            handle(
                f"Cannot generate HTML content using template {self.template_key} ({html_template}) "
                f"when sending a mail from '{self.sender_email}' to '{self.receiver_email}': {describe(e)}",
                e
            )

    def _render_attachment(self, attachment_template: AttachmentTemplate) -> Attachment:
        renderer = self._service.renderer
        data = renderer.render_bytes(attachment_template.template, self.context, attachment_template.encoding)

        if attachment_template.file_name:
            file_name = renderer.render_string(attachment_template.file_name, self.context)
        else:
            file_name = attachment_template.default_file_name()

        mime_type = attachment_template.content_type or mimetypes.guess_type(file_name)[0] or DEFAULT_ATTACHMENT_TYPE

        attachment = Attachment(
            file_name,
            mime_type,
            data,
            alternative=attachment_template.alternative,
            charset=attachment_template.encoding
        )
        for name, value in attachment_template.headers.items():
            attachment.add_header(name, to_machine_string(value))
        return attachment

    def _sanitize(self):
        self.sender_email = strip_whitespace(self.sender_email)
        if self.sender_name:
            self.sender_name = self.sender_name.strip()
        self.receiver_email = strip_whitespace(self.receiver_email)
        if self.receiver_name:
            self.receiver_name = self.receiver_name.strip()
        if not self.include_html:
            self.html = None

    def _check(self):
        if not is_valid_mail_address(self.receiver_email, self.receiver_name):
            address = format_address(self.receiver_email, self.receiver_name)
            MAIL.info("Rejected mail to invalid receiver: %s", address)
            raise InvalidAddressError(f"'{address}' is not a valid receiver address.", address=address)

        if self.sender_email and not is_valid_mail_address(self.sender_email, self.sender_name):
            address = format_address(self.sender_email, self.sender_name)
            MAIL.info("Rejected mail from invalid sender: %s", address)
            raise InvalidAddressError(f"'{address}' is not a valid sender address.", address=address)

    def _freeze(self) -> MailRequest:
        return MailRequest(
            receiver_email=self.receiver_email,
            receiver_name=self.receiver_name,
            sender_email=self.sender_email,
            sender_name=self.sender_name,
            subject=self.subject_text,
            text=self.text,
            html=self.html,
            attachments=tuple(a for a in self.attachments if a is not None),
            headers=tuple(sorted(self.headers.items())),
            bounce_token=self.bounce_token
        )

