"""
Background task delivering a single mail.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from mail_dispatch.client import SMTPClient
from mail_dispatch.config import SMTPConfiguration
from mail_dispatch.errors import HandledMailError, describe, handle
from mail_dispatch.logger import get_logger
from mail_dispatch.mail_log import MailLog
from mail_dispatch.mime import build_message
from mail_dispatch.request import MailRequest

MAIL = get_logger()


@dataclass(frozen=True)
class DeliveryReport:
    """Outcome of a SendMailTask."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class SendMailTask:
    """
    Build and deliver one mail, then notify the mail logs.

    The task never raises: failures are logged and returned as a failed
    DeliveryReport so that a broken mail server cannot crash the caller or
    the executor.
    """

    def __init__(
        self,
        request: MailRequest,
        config: SMTPConfiguration,
        default_config: Optional[SMTPConfiguration] = None,
        logs: Sequence[MailLog] = (),
        mailer: Optional[str] = None,
        client_factory: Callable[[SMTPConfiguration], SMTPClient] = SMTPClient
    ):
        self.request = request
        self.config = config
        self.default_config = default_config or config
        self.logs = list(logs)
        self.mailer = mailer
        self.client_factory = client_factory

    def technical_sender(self) -> tuple[Optional[str], Optional[str]]:
        """The system sender: configured sender, else the default configuration's."""
        if self.config.sender:
            return self.config.sender, self.config.sender_name
        return self.default_config.sender, self.default_config.sender_name

    def run(self) -> DeliveryReport:
        mail = self.request
        success = False
        message_id = None
        error = None
        technical_sender, technical_sender_name = self.technical_sender()

        try:
            MAIL.debug("Sending eMail: %s to: %s", mail.subject, mail.receiver_email)
            client = self.client_factory(self.config)
            msg, envelope_from = build_message(
                mail,
                self.config,
                technical_sender,
                technical_sender_name,
                mailer=self.mailer
            )
            client.send_message(msg, envelope_from, [mail.receiver_email])
            message_id = msg['Message-ID']
            success = True

        except HandledMailError as e:
            error = str(e)

        except Exception as e:
            error = str(handle(
                f"Cannot send mail to {mail.receiver_email} from "
                f"{mail.sender_email or technical_sender} with subject '{mail.subject}': {describe(e)}",
                e
            ))

        finally:
            self._report(success, message_id, technical_sender, technical_sender_name)

        return DeliveryReport(success=success, message_id=message_id, error=error)

    __call__ = run

    def _report(
        self,
        success: bool,
        message_id: Optional[str],
        technical_sender: Optional[str],
        technical_sender_name: Optional[str]
    ):
        mail = self.request
        sender = mail.sender_email or technical_sender
        sender_name = mail.sender_name if mail.sender_email else technical_sender_name

        if not self.logs:
            if success:
                MAIL.debug(
                    "Sent mail from: '%s' to '%s' with subject: '%s'",
                    sender, mail.receiver_email, mail.subject
                )
            else:
                MAIL.warning(
                    "FAILED to send mail from: '%s' to '%s' with subject: '%s'",
                    sender, mail.receiver_email, mail.subject
                )
            return

        for log in self.logs:
            try:
                log.log_sent_mail(
                    success,
                    message_id,
                    sender,
                    sender_name,
                    mail.receiver_email,
                    mail.receiver_name,
                    mail.subject,
                    mail.text,
                    mail.html
                )
            except Exception:
                MAIL.exception("Mail log %r failed", log)
