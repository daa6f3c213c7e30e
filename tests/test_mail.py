"""Tests for the SMTP mail service, with smtplib.SMTP patched out."""

import asyncio
import smtplib

import pytest

from expense_tracker.services.mail import MailDeliveryError, SmtpMailService
from expense_tracker.services.mail import smtp_service


class FakeSMTP:
    """Collects sent messages instead of talking to a server."""

    sent = []
    refuse = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.tls = False

    def __enter__(self):
        if FakeSMTP.refuse:
            raise ConnectionRefusedError("connection refused")
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        self.tls = True

    def login(self, username, password):
        raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    def send_message(self, message):
        FakeSMTP.sent.append(message)


@pytest.fixture(autouse=True)
def fake_smtp(monkeypatch):
    FakeSMTP.sent = []
    FakeSMTP.refuse = False
    monkeypatch.setattr(smtp_service.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


class TestSmtpMailService:
    """Tests for SmtpMailService."""

    def test_welcome_mail(self):
        """Test the welcome mail's recipient and greeting."""
        user = {"email": "me@example.com", "firstName": "Ada", "lastName": "Lovelace"}
        asyncio.run(SmtpMailService().send_welcome(user))

        assert len(FakeSMTP.sent) == 1
        message = FakeSMTP.sent[0]
        assert message["To"] == "me@example.com"
        assert "Hello Ada Lovelace" in message.get_content()

    def test_admin_is_notified(self, monkeypatch):
        """Test that the admin address gets a copy of each signup."""
        monkeypatch.setenv("MAIL_ADMIN_ADDRESS", "admin@example.com")
        asyncio.run(SmtpMailService().send_welcome({"email": "me@example.com"}))
        assert [m["To"] for m in FakeSMTP.sent] == ["me@example.com", "admin@example.com"]

    def test_reset_mail_lists_links(self):
        """Test that the reset mail carries the link, fallbacks and expiry."""
        asyncio.run(
            SmtpMailService().send_password_reset(
                {"email": "me@example.com"},
                "http://app/resetpassword/tok",
                ["http://localhost:5173/resetpassword/tok"],
            )
        )
        body = FakeSMTP.sent[0].get_content()
        assert "http://app/resetpassword/tok" in body
        assert "http://localhost:5173/resetpassword/tok" in body
        assert "expires in 15 minutes" in body

    def test_unreachable_server(self):
        """Test that a connection failure becomes MailDeliveryError."""
        FakeSMTP.refuse = True
        with pytest.raises(MailDeliveryError):
            asyncio.run(SmtpMailService().send("me@example.com", "Hi", "Hello"))

    def test_rejected_login(self, monkeypatch):
        """Test that an SMTP protocol error becomes MailDeliveryError."""
        monkeypatch.setenv("MAIL_USERNAME", "user")
        monkeypatch.setenv("MAIL_PASSWORD", "wrong")
        with pytest.raises(MailDeliveryError, match="bad credentials"):
            asyncio.run(SmtpMailService().send("me@example.com", "Hi", "Hello"))
