import logging

import aiosmtplib
import pytest

from app.core.errors import MailTransportError
from app.schemas.contactmessageSchema import ContactMessageRequest
from app.services.ContactMailer import ContactMailer, render_html_body, render_text_body
from conftest import VALID_SUBMISSION, make_settings


@pytest.fixture
def submission():
    return ContactMessageRequest(**VALID_SUBMISSION)


@pytest.fixture
def smtp_calls(monkeypatch):
    calls = []

    async def fake_send(message, **kwargs):
        calls.append((message, kwargs))
        return {}, "250 OK queued"

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    return calls


class FakeSMTP:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.logins = []
        FakeSMTP.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def login(self, username, password):
        self.logins.append((username, password))


class UnreachableSMTP(FakeSMTP):
    async def __aenter__(self):
        raise aiosmtplib.SMTPConnectError("Error connecting to mail.helbsacco.co.ke on port 465")


def test_message_headers_use_authenticated_sender(submission):
    message = ContactMailer(make_settings()).build_message(submission)
    assert message["From"] == "HELB SACCO Website <info@helbsacco.co.ke>"
    assert message["Reply-To"] == "jane@example.com"
    assert message["To"] == "memberservices@helbsacco.co.ke"
    assert message["Subject"] == "New Contact Form: Loan query"
    assert message["Message-ID"].endswith("@helbsacco.co.ke>")


def test_message_has_text_and_html_parts(submission):
    message = ContactMailer(make_settings()).build_message(submission)
    text = message.get_body(preferencelist=("plain",)).get_content()
    html = message.get_body(preferencelist=("html",)).get_content()
    assert "From: Jane Doe <jane@example.com>" in text
    assert "Phone: +254712345678" in text
    assert "<strong>Subject:</strong> Loan query" in html
    assert "Hello" in html


def test_missing_phone_renders_as_na():
    submission = ContactMessageRequest(name="Jane", email="jane@example.com", subject="Hi", message="Hello")
    assert "Phone: N/A" in render_text_body(submission)
    assert "<strong>Phone:</strong> N/A" in render_html_body(submission)


def test_html_body_escapes_submitted_values():
    submission = ContactMessageRequest(
        name="<script>alert(1)</script>", email="jane@example.com", subject="Hi", message="a & b"
    )
    html = render_html_body(submission)
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "a &amp; b" in html


def test_multiline_subject_is_folded_into_one_header_line():
    submission = ContactMessageRequest(
        name="Jane", email="jane@example.com", subject="Loan\r\nBcc: x@example.com", message="Hello"
    )
    message = ContactMailer(make_settings()).build_message(submission)
    assert message["Subject"] == "New Contact Form: Loan Bcc: x@example.com"
    assert message["Bcc"] is None


def test_missing_credentials_are_logged_not_raised(caplog):
    with caplog.at_level(logging.ERROR):
        mailer = ContactMailer(make_settings(MAIL_PASS="", MAIL_RECEIVER=""))
    assert mailer.missing == ["MAIL_PASS", "MAIL_RECEIVER"]
    assert "MAIL_PASS, MAIL_RECEIVER must be set" in caplog.text


@pytest.mark.anyio
async def test_send_email_returns_message_id(submission, smtp_calls):
    mailer = ContactMailer(make_settings(MAIL_TIMEOUT=12))
    message_id = await mailer.send_email(submission)

    assert len(smtp_calls) == 1
    message, kwargs = smtp_calls[0]
    assert message_id == message["Message-ID"]
    assert kwargs == {
        "hostname": "mail.helbsacco.co.ke",
        "port": 465,
        "username": "info@helbsacco.co.ke",
        "password": "mailbox-password",
        "use_tls": True,
        "timeout": 12,
    }


@pytest.mark.anyio
async def test_each_send_gets_a_new_message_id(submission, smtp_calls):
    mailer = ContactMailer(make_settings())
    first = await mailer.send_email(submission)
    second = await mailer.send_email(submission)
    assert first != second
    assert len(smtp_calls) == 2


@pytest.mark.anyio
@pytest.mark.parametrize("error", [
    aiosmtplib.SMTPAuthenticationError(535, "Incorrect authentication data"),
    aiosmtplib.SMTPConnectError("Connection refused"),
    ConnectionResetError("reset by peer"),
])
async def test_transport_failures_are_raised_as_mail_transport_error(submission, monkeypatch, error):
    async def failing_send(message, **kwargs):
        raise error

    monkeypatch.setattr(aiosmtplib, "send", failing_send)
    with pytest.raises(MailTransportError) as exc_info:
        await ContactMailer(make_settings()).send_email(submission)
    assert exc_info.value.__cause__ is error


@pytest.mark.anyio
async def test_unconfigured_mailer_fails_without_connecting(submission, smtp_calls):
    mailer = ContactMailer(make_settings(MAIL_USER=""))
    with pytest.raises(MailTransportError, match="missing MAIL_USER"):
        await mailer.send_email(submission)
    assert smtp_calls == []


@pytest.mark.anyio
async def test_verify_connectivity_logs_in(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(aiosmtplib, "SMTP", FakeSMTP)

    assert await ContactMailer(make_settings(MAIL_PORT=587)).verify_connectivity() is True
    smtp = FakeSMTP.instances[0]
    assert smtp.kwargs["port"] == 587
    assert smtp.kwargs["use_tls"] is False
    assert smtp.logins == [("info@helbsacco.co.ke", "mailbox-password")]


@pytest.mark.anyio
async def test_verify_connectivity_failure_is_a_warning(monkeypatch, caplog):
    monkeypatch.setattr(aiosmtplib, "SMTP", UnreachableSMTP)
    with caplog.at_level(logging.WARNING):
        assert await ContactMailer(make_settings()).verify_connectivity() is False
    assert "Mail transporter verification failed" in caplog.text
