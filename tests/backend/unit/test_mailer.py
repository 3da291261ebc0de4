"""
Unit tests for the mailer and mail content builders.
"""
import pytest
from unittest.mock import AsyncMock, patch

from watchvibe.services.mail_templates import (
    OTP_PURPOSE_FORGOT_PASSWORD,
    OTP_PURPOSE_LOGIN,
    email_verification_content,
    otp_content,
    render,
)
from watchvibe.services.mailer import MailConfig, Mailer


def _config(**overrides):
    fields = {"smtp_host": "smtp.example.com", "smtp_port": 2525, "product_name": "WatchVibe"}
    fields.update(overrides)
    return MailConfig(**fields)


class TestMailContent:
    def test_verification_mail_has_button_with_link(self):
        content = email_verification_content("alice", "http://h/api/v1/users/verify-email/abc")
        html, text = render(content, "WatchVibe", "http://localhost:2000")
        assert "Hi alice," in html
        assert 'href="http://h/api/v1/users/verify-email/abc"' in html
        assert "Verify your email" in html
        assert "http://h/api/v1/users/verify-email/abc" in text

    def test_login_otp(self):
        subject, content = otp_content("alice", "4821", OTP_PURPOSE_LOGIN, 5)
        assert subject == "Login OTP"
        _, text = render(content, "WatchVibe", "http://localhost:2000")
        assert "Your OTP for login is 4821." in text
        assert "valid for 5 minutes" in text

    def test_forgot_password_otp(self):
        subject, _ = otp_content("alice", "4821", OTP_PURPOSE_FORGOT_PASSWORD, 5)
        assert subject == "Forget Password OTP"

    def test_unknown_otp_purpose(self):
        with pytest.raises(ValueError):
            otp_content("alice", "4821", "signup", 5)

    def test_html_escapes_user_supplied_name(self):
        html, _ = render(email_verification_content("<b>x</b>", "http://h/t"), "WatchVibe", "http://h")
        assert "<b>x</b>" not in html


class TestMailer:
    def test_message_headers_and_parts(self):
        mailer = Mailer(_config(from_email="noreply@watchvibe.test"))
        msg = mailer.build_message("bob@example.com", "Hello", email_verification_content("bob", "http://h/t"))
        assert msg["To"] == "bob@example.com"
        assert msg["Subject"] == "Hello"
        assert "noreply@watchvibe.test" in msg["From"]
        assert [part.get_content_type() for part in msg.get_payload()] == ["text/plain", "text/html"]

    @pytest.mark.asyncio
    async def test_send_success(self):
        mailer = Mailer(_config())
        with patch.object(Mailer, "_send", new=AsyncMock()) as send:
            ok = await mailer.send_templated_email("bob@example.com", "Hi", email_verification_content("bob", "http://h/t"))
        assert ok is True
        send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_transport_failure_is_swallowed(self):
        mailer = Mailer(_config())
        with patch.object(Mailer, "_send", new=AsyncMock(side_effect=ConnectionRefusedError("down"))):
            ok = await mailer.send_templated_email("bob@example.com", "Hi", email_verification_content("bob", "http://h/t"))
        assert ok is False

    @pytest.mark.asyncio
    async def test_disabled_without_host(self):
        mailer = Mailer(_config(smtp_host=None))
        with patch.object(Mailer, "_send", new=AsyncMock()) as send:
            ok = await mailer.send_templated_email("bob@example.com", "Hi", email_verification_content("bob", "http://h/t"))
        assert ok is False
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_smtp_session_uses_credentials(self):
        mailer = Mailer(_config(smtp_username="u", smtp_password="p"))
        smtp = AsyncMock()
        with patch("watchvibe.services.mailer.aiosmtplib.SMTP", return_value=smtp) as smtp_cls:
            ok = await mailer.send_templated_email("bob@example.com", "Hi", email_verification_content("bob", "http://h/t"))
        assert ok is True
        assert smtp_cls.call_args.kwargs["hostname"] == "smtp.example.com"
        assert smtp_cls.call_args.kwargs["port"] == 2525
        smtp.connect.assert_awaited_once()
        smtp.login.assert_awaited_once_with("u", "p")
        smtp.send_message.assert_awaited_once()
        smtp.quit.assert_awaited_once()
