import pytest

from newsletter_ai import mailer as mailer_module
from newsletter_ai.config import Settings
from newsletter_ai.mailer import Attachment, SmtpMailer


def _settings(**overrides):
    values = {
        "SMTP_HOST": "smtp.example.com",
        "SMTP_PORT": 2525,
        "SMTP_USERNAME": "apikey",
        "SMTP_PASSWORD": "secret",
        "FROM_EMAIL": "news@example.com",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeSMTP:
    instances = []

    def __init__(self, host, port):
        self.host = host
        self.port = port
        self.calls = []
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username, password))

    def send_message(self, message):
        self.messages.append(message)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(mailer_module.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_build_message_attaches_pdf():
    smtp = SmtpMailer(_settings())

    message = smtp.build_message(
        ["a@example.com", "b@example.com"],
        "Your Newsletter: Java Weekly",
        "<p>Hello</p>",
        [Attachment(filename="Java_Weekly.pdf", content=b"%PDF-1.4 body")],
    )

    assert message["To"] == "a@example.com, b@example.com"
    assert message["From"] == "NewsLetterAI <news@example.com>"
    attachments = list(message.iter_attachments())
    assert len(attachments) == 1
    assert attachments[0].get_filename() == "Java_Weekly.pdf"
    assert attachments[0].get_content_type() == "application/pdf"
    assert attachments[0].get_content() == b"%PDF-1.4 body"


def test_send_uses_tls_and_login(fake_smtp):
    SmtpMailer(_settings()).send(["a@example.com"], "Subject", "<p>Hi</p>")

    server = fake_smtp.instances[0]
    assert (server.host, server.port) == ("smtp.example.com", 2525)
    assert server.calls == ["starttls", ("login", "apikey", "secret")]
    assert server.messages[0]["Subject"] == "Subject"


def test_send_without_credentials_skips_login(fake_smtp):
    SmtpMailer(_settings(SMTP_USERNAME=None, SMTP_USE_TLS=False)).send(
        ["a@example.com"], "Subject", "<p>Hi</p>"
    )
    assert fake_smtp.instances[0].calls == []


def test_send_requires_configuration(fake_smtp):
    smtp = SmtpMailer(_settings(SMTP_HOST=None))

    assert smtp.configured is False
    with pytest.raises(RuntimeError):
        smtp.send(["a@example.com"], "Subject", "<p>Hi</p>")
    assert fake_smtp.instances == []


def test_send_requires_recipients(fake_smtp):
    with pytest.raises(ValueError):
        SmtpMailer(_settings()).send([], "Subject", "<p>Hi</p>")
