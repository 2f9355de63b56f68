import json
import smtplib

import pytest

from mail_dispatch.config import SMTPConfiguration
from mail_dispatch.renderer import MailRenderer
from mail_dispatch.service import MailService


MAIL_TEMPLATES = {
    "welcome": {
        "subject": "Welcome {{ user }}",
        "subject_de": "Willkommen {{ user }}",
        "text": "welcome.txt.jinja",
        "text_de": "welcome_de.txt.jinja",
        "html": "welcome.html.jinja",
        "headers": {"X-Campaign": "welcome", "X-Tracking": False}
    },
    "no_subject": {
        "text": "welcome.txt.jinja"
    },
    "context_vars": {
        "text": "context_vars.txt.jinja"
    },
    "broken_html": {
        "subject": "Broken",
        "text": "welcome.txt.jinja",
        "html": "missing.html.jinja"
    },
    "invitation": {
        "subject": "Invitation: {{ event }}",
        "text": "invitation.txt.jinja",
        "html": "invitation.html.jinja",
        "attachments": [
            {
                "id": "invite-ics",
                "template": "invitation.ics.jinja",
                "contentType": "text/calendar; method=REQUEST",
                "alternative": True,
                "headers": {"Content-Class": "urn:content-classes:calendarmessage"}
            },
            {
                "id": "agenda-txt",
                "template": "agenda.txt.jinja",
                "fileName": "agenda-{{ event | lower | replace(' ', '-') }}.txt"
            },
            {
                "id": "minutes-txt",
                "template": "missing.txt.jinja"
            }
        ]
    }
}

TEMPLATE_FILES = {
    "welcome.txt.jinja": "Hello {{ user }} & friends",
    "welcome_de.txt.jinja": "Hallo {{ user }}",
    "welcome.html.jinja": "<h1>Hello {{ user }}</h1>",
    "invitation.txt.jinja": "You are invited to {{ event }}.",
    "invitation.html.jinja": "<p>You are invited to {{ event }}.</p>",
    "invitation.ics.jinja": "BEGIN:VCALENDAR\nSUMMARY:{{ event }}\nEND:VCALENDAR\n",
    "agenda.txt.jinja": "Agenda for {{ event }}",
    "context_vars.txt.jinja": "{{ template }}/{{ lang }}/{{ subject }}",
}


class DummySMTP:
    """Stands in for smtplib.SMTP and records everything sent."""

    fail_send = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.tls = False
        self.login_credentials = None
        self.sent = []
        self.closed = False

    def starttls(self):
        self.tls = True

    def login(self, user, password):
        self.login_credentials = (user, password)

    def send_message(self, msg, from_addr=None, to_addrs=None):
        if self.fail_send is not None:
            raise self.fail_send
        self.sent.append({"msg": msg, "from": from_addr, "to": to_addrs})

    def quit(self):
        self.closed = True

    def close(self):
        self.closed = True


@pytest.fixture
def fake_smtp(monkeypatch):
    """Replace smtplib.SMTP, returns the list of created connections."""
    created = []

    def factory(host, port, timeout=None):
        smtp = DummySMTP(host, port, timeout=timeout)
        created.append(smtp)
        return smtp

    monkeypatch.setattr("mail_dispatch.client.smtplib.SMTP", factory)
    return created


@pytest.fixture
def fake_smtp_ssl(monkeypatch):
    """Replace smtplib.SMTP_SSL, returns the list of created connections."""
    created = []

    def factory(host, port, timeout=None):
        smtp = DummySMTP(host, port, timeout=timeout)
        created.append(smtp)
        return smtp

    monkeypatch.setattr("mail_dispatch.client.smtplib.SMTP_SSL", factory)
    return created


@pytest.fixture
def failing_smtp(monkeypatch):
    """smtplib.SMTP whose send_message is refused by the server."""
    created = []

    def factory(host, port, timeout=None):
        smtp = DummySMTP(host, port, timeout=timeout)
        smtp.fail_send = smtplib.SMTPRecipientsRefused({"jane@example.com": (550, b"Mailbox not found")})
        created.append(smtp)
        return smtp

    monkeypatch.setattr("mail_dispatch.client.smtplib.SMTP", factory)
    return created


class RecordingMailLog:
    """MailLog collecting every reported delivery."""

    def __init__(self):
        self.entries = []

    def log_sent_mail(self, success, message_id, sender, sender_name, receiver, receiver_name, subject, text, html):
        self.entries.append({
            "success": success,
            "message_id": message_id,
            "sender": sender,
            "sender_name": sender_name,
            "receiver": receiver,
            "receiver_name": receiver_name,
            "subject": subject,
            "text": text,
            "html": html,
        })


@pytest.fixture
def smtp_config():
    return SMTPConfiguration(
        host="smtp.example.com",
        port=2525,
        sender="noreply@example.com",
        sender_name="Example System"
    )


@pytest.fixture
def templates_dir(tmp_path):
    directory = tmp_path / "templates"
    directory.mkdir()
    (directory / "mail_templates.json").write_text(json.dumps(MAIL_TEMPLATES))
    for name, content in TEMPLATE_FILES.items():
        (directory / name).write_text(content)
    return directory


@pytest.fixture
def renderer(templates_dir):
    return MailRenderer(str(templates_dir))


@pytest.fixture
def mail_log():
    return RecordingMailLog()


@pytest.fixture
def service(smtp_config, renderer, mail_log):
    mail_service = MailService(
        config=smtp_config,
        logs=[mail_log],
        renderer=renderer,
        max_workers=1,
        mailer="mail-dispatch-test",
        default_lang="en"
    )
    yield mail_service
    mail_service.shutdown()
