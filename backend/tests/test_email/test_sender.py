"""Tests for email sender."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from unittest.mock import AsyncMock, patch

import pytest

from app.email.sender import is_email_configured, send_email, send_password_reset_code, send_support_message


def _configure(mock_settings, **extra):
    mock_settings.smtp_user = "noreply@example.com"
    mock_settings.smtp_password = "app-password"
    mock_settings.smtp_host = "smtp.example.com"
    mock_settings.smtp_port = 587
    mock_settings.mail_from_name = "I Get It Done"
    for key, value in extra.items():
        setattr(mock_settings, key, value)


class TestIsEmailConfigured:
    def test_not_configured_when_empty(self):
        with patch("app.email.sender.settings") as mock_settings:
            mock_settings.smtp_user = ""
            mock_settings.smtp_password = ""
            assert is_email_configured() is False

    def test_configured_when_both_set(self):
        with patch("app.email.sender.settings") as mock_settings:
            _configure(mock_settings)
            assert is_email_configured() is True


class TestSendEmail:
    @pytest.mark.asyncio
    async def test_skips_when_not_configured(self):
        with patch("app.email.sender.settings") as mock_settings, \
             patch("aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            mock_settings.smtp_user = ""
            mock_settings.smtp_password = ""
            assert await send_email("a@x.com", "Hi", "<p>hi</p>") is False
            mock_send.assert_not_called()

    @pytest.mark.asyncio
    async def test_sends_successfully(self):
        with patch("app.email.sender.settings") as mock_settings, \
             patch("aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            _configure(mock_settings)
            assert await send_email("a@x.com", "Hi", "<p>hi</p>", reply_to="b@x.com") is True
            mock_send.assert_called_once()
            msg = mock_send.call_args[0][0]
            assert msg["To"] == "a@x.com"
            assert msg["Reply-To"] == "b@x.com"

    @pytest.mark.asyncio
    async def test_returns_false_on_smtp_error(self):
        with patch("app.email.sender.settings") as mock_settings, \
             patch("aiosmtplib.send", new_callable=AsyncMock, side_effect=Exception("SMTP error")):
            _configure(mock_settings)
            assert await send_email("a@x.com", "Hi", "<p>hi</p>") is False


class TestAccountMails:
    @pytest.mark.asyncio
    async def test_reset_code_subject_and_body(self):
        with patch("app.email.sender.settings") as mock_settings, \
             patch("aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            _configure(mock_settings)
            assert await send_password_reset_code("a@x.com", "123456", 15) is True
            msg = mock_send.call_args[0][0]
            assert "password reset code" in msg["Subject"]
            body = msg.get_payload()[0].get_payload(decode=True).decode("utf-8")
            assert "123456" in body

    @pytest.mark.asyncio
    async def test_support_message_goes_to_inbox(self):
        with patch("app.email.sender.settings") as mock_settings, \
             patch("aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            _configure(mock_settings, support_inbox="help@example.com")
            assert await send_support_message("user@x.com", "Bug", "It broke") is True
            msg = mock_send.call_args[0][0]
            assert msg["To"] == "help@example.com"
            assert msg["Reply-To"] == "user@x.com"
            assert msg["Subject"] == "[Support] Bug"

    @pytest.mark.asyncio
    async def test_support_message_skipped_without_inbox(self):
        with patch("app.email.sender.settings") as mock_settings:
            _configure(mock_settings, support_inbox="")
            assert await send_support_message("user@x.com", "Bug", "It broke") is False
