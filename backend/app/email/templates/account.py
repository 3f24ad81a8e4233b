"""HTML templates for account emails.

Inline CSS for email client compatibility. All user-supplied text is
HTML-escaped.
"""

from __future__ import annotations

import html

_WRAPPER = (
    '<div style="font-family:-apple-system,Segoe UI,Helvetica,Arial,sans-serif;'
    'max-width:520px;margin:0 auto;padding:24px;color:#1c1c1e;">{body}</div>'
)


def render_reset_code_email(code: str, ttl_minutes: int) -> str:
    body = (
        '<h2 style="margin:0 0 16px;">Reset your password</h2>'
        "<p>Use this code to choose a new password:</p>"
        '<p style="font-size:32px;font-weight:700;letter-spacing:6px;'
        'background:#f2f2f7;padding:16px;text-align:center;border-radius:12px;">'
        f"{html.escape(code)}</p>"
        f"<p>The code expires in {int(ttl_minutes)} minutes. "
        "If you did not ask for a reset you can ignore this email.</p>"
    )
    return _WRAPPER.format(body=body)


def render_support_email(from_email: str | None, subject: str, message: str) -> str:
    sender = html.escape(from_email) if from_email else "anonymous user"
    paragraphs = "".join(
        f"<p style=\"margin:0 0 8px;\">{html.escape(line)}</p>"
        for line in message.splitlines()
        if line.strip()
    )
    body = (
        f'<h2 style="margin:0 0 8px;">{html.escape(subject)}</h2>'
        f'<p style="color:#8e8e93;margin:0 0 16px;">From: {sender}</p>'
        f"{paragraphs}"
    )
    return _WRAPPER.format(body=body)
