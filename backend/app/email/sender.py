"""Async transactional email (password reset codes, support messages).

Uses aiosmtplib for non-blocking SMTP with STARTTLS.
Fire-and-forget: errors are logged and reported as False, never raised.
"""

from __future__ import annotations

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from app.config import settings
from app.email.templates.account import render_reset_code_email, render_support_email

logger = logging.getLogger(__name__)


def is_email_configured() -> bool:
    """Check if SMTP credentials are set."""
    return bool(settings.smtp_user and settings.smtp_password)


async def send_email(to: str, subject: str, html_body: str, reply_to: str | None = None) -> bool:
    """Send one HTML email.

    Returns:
        True if the SMTP server accepted the message, False otherwise.
    """
    if not is_email_configured():
        logger.debug("Email not configured, skipping send")
        return False
    if not to:
        logger.debug("No recipient, skipping send")
        return False

    import aiosmtplib

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = formataddr((settings.mail_from_name, settings.smtp_user))
    msg["To"] = to
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.attach(MIMEText(html_body, "html", "utf-8"))

    try:
        await aiosmtplib.send(
            msg,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            start_tls=True,
            username=settings.smtp_user,
            password=settings.smtp_password,
        )
        logger.info("Email '%s' sent to %s", subject, to)
        return True
    except Exception as e:
        logger.warning("Failed to send email '%s' to %s: %s", subject, to, e)
        return False


async def send_password_reset_code(to: str, code: str, ttl_minutes: int) -> bool:
    subject = f"[{settings.mail_from_name}] Your password reset code"
    return await send_email(to, subject, render_reset_code_email(code, ttl_minutes))


async def send_support_message(from_email: str | None, subject: str, message: str) -> bool:
    """Forward a user's support message to the support inbox."""
    inbox = settings.support_inbox.strip()
    if not inbox:
        logger.debug("SUPPORT_INBOX not set, skipping support message")
        return False
    html_body = render_support_email(from_email, subject, message)
    return await send_email(inbox, f"[Support] {subject}", html_body, reply_to=from_email)
