import logging

import pytest

from mail_dispatch.attachment import Attachment
from mail_dispatch.errors import HandledMailError, InvalidAddressError


def _sent(fake_smtp):
    assert len(fake_smtp) == 1
    assert len(fake_smtp[0].sent) == 1
    return fake_smtp[0].sent[0]


def _text_of(part):
    return part.get_payload(decode=True).decode("utf-8")


def test_send_plain_mail(service, fake_smtp, mail_log):
    report = service.create_email() \
        .to("jane@example.com", "Jane Doe") \
        .subject("Hello") \
        .text_content("Hello Jane") \
        .send() \
        .result(timeout=5)

    assert report.success
    sent = _sent(fake_smtp)
    assert sent["to"] == ["jane@example.com"]
    assert sent["from"] == "noreply@example.com"
    assert sent["msg"]["Subject"] == "Hello"
    assert sent["msg"]["From"] == "Example System <noreply@example.com>"
    assert sent["msg"]["X-Mailer"] == "mail-dispatch-test"
    assert _text_of(sent["msg"]) == "Hello Jane"
    assert fake_smtp[0].closed

    assert mail_log.entries == [{
        "success": True,
        "message_id": report.message_id,
        "sender": "noreply@example.com",
        "sender_name": "Example System",
        "receiver": "jane@example.com",
        "receiver_name": "Jane Doe",
        "subject": "Hello",
        "text": "Hello Jane",
        "html": None,
    }]


def test_addresses_are_sanitized(service, fake_smtp, mail_log):
    service.create_email() \
        .to(" jane @example.com ", "  Jane  ") \
        .from_("john @example.org", " John ") \
        .text_content("Hi") \
        .send() \
        .result(timeout=5)

    msg = _sent(fake_smtp)["msg"]
    assert msg["To"] == "Jane <jane@example.com>"
    assert msg["From"] == "John <john@example.org>"
    assert msg["Sender"] == "Example System <noreply@example.com>"
    assert mail_log.entries[0]["sender"] == "john@example.org"
    assert mail_log.entries[0]["sender_name"] == "John"


def test_invalid_receiver_is_rejected_before_dispatch(service, fake_smtp, mail_log):
    with pytest.raises(InvalidAddressError, match="not a valid receiver address"):
        service.create_email().to("jane@", "Jane").text_content("Hi").send()

    assert fake_smtp == []
    assert mail_log.entries == []


def test_missing_receiver_is_rejected(service, fake_smtp):
    with pytest.raises(InvalidAddressError):
        service.create_email().text_content("Hi").send()


def test_invalid_sender_is_rejected(service, fake_smtp):
    with pytest.raises(InvalidAddressError, match="not a valid sender address"):
        service.create_email().to("jane@example.com").from_("john@@example.org").send()

    assert fake_smtp == []


def test_html_part_can_be_excluded(service, fake_smtp):
    service.create_email() \
        .to("jane@example.com") \
        .text_content("Hello") \
        .html_content("<p>Hello</p>") \
        .include_html_part(False) \
        .send() \
        .result(timeout=5)

    msg = _sent(fake_smtp)["msg"]
    assert msg.get_content_type() == "text/plain"


def test_attachments_are_nested_in_mixed_part(service, fake_smtp):
    service.create_email() \
        .to("jane@example.com") \
        .text_content("Hello") \
        .html_content("<p>Hello</p>") \
        .add_attachments(Attachment("report.pdf", "application/pdf", b"%PDF"), None) \
        .send() \
        .result(timeout=5)

    msg = _sent(fake_smtp)["msg"]
    assert msg.get_content_type() == "multipart/mixed"
    body, attachment = msg.get_payload()
    assert body.get_content_type() == "multipart/alternative"
    assert attachment.get_filename() == "report.pdf"


def test_headers_and_bounce_token(service, fake_smtp):
    service.create_email() \
        .to("jane@example.com") \
        .text_content("Hello") \
        .add_header("Reply-To", "support@example.com") \
        .add_header("X-Mailer", None) \
        .set_bounce_token("bounce-42") \
        .send() \
        .result(timeout=5)

    msg = _sent(fake_smtp)["msg"]
    assert msg["Reply-To"] == "support@example.com"
    assert msg["X-Mailer"] is None
    assert msg["X-Bouncetoken"] == "bounce-42"


def test_mail_template_in_default_language(service, fake_smtp, mail_log):
    service.create_email() \
        .to("jane@example.com") \
        .use_mail_template("welcome", {"user": "Jane"}) \
        .send() \
        .result(timeout=5)

    msg = _sent(fake_smtp)["msg"]
    assert msg["Subject"] == "Welcome Jane"
    assert msg["X-Campaign"] == "welcome"
    assert msg["X-Tracking"] == "false"
    text, html = msg.get_payload()
    assert _text_of(text) == "Hello Jane & friends"
    assert _text_of(html) == "<h1>Hello Jane</h1>"
    assert mail_log.entries[0]["html"] == "<h1>Hello Jane</h1>"


def test_mail_template_in_requested_language(service, fake_smtp):
    context = {"user": "Jane"}
    service.create_email() \
        .to("jane@example.com") \
        .set_lang(None, "", "de", "fr") \
        .use_mail_template("welcome", context) \
        .send() \
        .result(timeout=5)

    msg = _sent(fake_smtp)["msg"]
    assert msg["Subject"] == "Willkommen Jane"
    assert _text_of(msg.get_payload()[0]) == "Hallo Jane"
    assert context == {"user": "Jane"}


def test_set_lang_without_values_keeps_language(service):
    builder = service.create_email().set_lang("de")
    builder.set_lang(None, "")
    assert builder.lang == "de"


def test_template_without_subject_uses_subject_variable(service, fake_smtp):
    service.create_email() \
        .to("jane@example.com") \
        .subject("Fallback subject") \
        .use_mail_template("no_subject", {"user": "Jane"}) \
        .send() \
        .result(timeout=5)

    assert _sent(fake_smtp)["msg"]["Subject"] == "Fallback subject"


def test_unknown_mail_template_is_handled_error(service, fake_smtp):
    with pytest.raises(HandledMailError, match="Unknown mail template: unknown"):
        service.create_email().to("jane@example.com").use_mail_template("unknown", {}).send()

    assert fake_smtp == []


def test_broken_html_template_falls_back_to_text(service, fake_smtp, caplog):
    caplog.set_level(logging.ERROR, logger="mail")

    service.create_email() \
        .to("jane@example.com") \
        .html_content("<p>stale</p>") \
        .use_mail_template("broken_html", {"user": "Jane"}) \
        .send() \
        .result(timeout=5)

    msg = _sent(fake_smtp)["msg"]
    assert msg.get_content_type() == "text/plain"
    assert "Cannot generate HTML content" in caplog.text


def test_template_attachments(service, fake_smtp, caplog):
    caplog.set_level(logging.ERROR, logger="mail")

    service.create_email() \
        .to("jane@example.com") \
        .use_mail_template("invitation", {"event": "Team Meeting"}) \
        .send() \
        .result(timeout=5)

    msg = _sent(fake_smtp)["msg"]
    assert msg["Subject"] == "Invitation: Team Meeting"
    assert msg.get_content_type() == "multipart/mixed"

    # The failing "minutes" attachment is skipped
    body, agenda = msg.get_payload()
    text, html, invite = body.get_payload()
    assert invite.get_content_type() == "text/calendar"
    assert invite.get_param("method") == "REQUEST"
    assert invite["Content-Class"] == "urn:content-classes:calendarmessage"
    assert invite.get_filename() == "invite.ics"
    assert b"SUMMARY:Team Meeting" in invite.get_payload(decode=True)

    assert agenda.get_filename() == "agenda-team-meeting.txt"
    assert agenda.get_content_type() == "text/plain"
    assert agenda.get_payload(decode=True) == b"Agenda for Team Meeting"

    assert "Cannot generate attachment" in caplog.text


def test_unexpected_failure_becomes_handled_error(service, fake_smtp, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("renderer down")

    monkeypatch.setattr(service.renderer, "get_mail_template", explode)

    with pytest.raises(HandledMailError, match="Cannot send mail to 'jane@example.com'.*renderer down"):
        service.create_email().to("jane@example.com").use_mail_template("welcome", {}).send()


def test_service_validation_helpers(service):
    assert service.is_valid_mail_address("jane@example.com", "Jane")
    assert not service.is_valid_mail_address("jane")

    with pytest.raises(InvalidAddressError):
        service.fail_for_invalid_email("jane")


def test_template_context_defaults(service, fake_smtp):
    context = {"lang": "fr"}
    service.create_email() \
        .to("jane@example.com") \
        .set_lang("de") \
        .subject("Hi") \
        .use_mail_template("context_vars", context) \
        .send() \
        .result(timeout=5)

    # Caller values win over defaults, the caller's dict is not modified
    assert _text_of(_sent(fake_smtp)["msg"]) == "context_vars/fr/Hi"
    assert context == {"lang": "fr"}
