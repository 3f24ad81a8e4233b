"""Signed, user-bound bearer tokens for API authentication."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
import time

from app.config import settings

logger = logging.getLogger(__name__)

_TOKEN_VERSION = "v1"
_dev_secret: str | None = None


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(raw: str) -> bytes:
    padding = "=" * (-len(raw) % 4)
    return base64.urlsafe_b64decode(raw + padding)


def get_signing_secret() -> str:
    """AUTH_SECRET, or a random per-process secret when unset (dev mode)."""
    global _dev_secret
    if settings.auth_secret:
        return settings.auth_secret
    if _dev_secret is None:
        _dev_secret = secrets.token_hex(32)
        logger.warning("AUTH_SECRET not set; using a random per-process secret. Tokens will not survive restarts.")
    return _dev_secret


def issue_session_token(*, user_id: str, secret: str, ttl_seconds: int, now: int | None = None) -> str:
    """Issue a signed token binding `user_id` until now + ttl."""
    issued_at = int(now if now is not None else time.time())
    expires_at = issued_at + max(1, ttl_seconds)
    payload = f"{_TOKEN_VERSION}:{user_id}:{expires_at}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return f"{_b64url_encode(payload)}.{_b64url_encode(signature)}"


def verify_session_token(*, token: str, secret: str, now: int | None = None) -> str | None:
    """Return the user id of a valid, unexpired token, else None."""
    if "." not in token:
        return None

    payload_b64, sig_b64 = token.split(".", 1)
    try:
        payload = _b64url_decode(payload_b64)
        signature = _b64url_decode(sig_b64)
    except Exception:
        return None

    expected_sig = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    if not hmac.compare_digest(signature, expected_sig):
        return None

    try:
        version, user_id, expires_at_raw = payload.decode("utf-8").rsplit(":", 2)
        expires_at = int(expires_at_raw)
    except Exception:
        return None

    if version != _TOKEN_VERSION or not user_id:
        return None

    current = int(now if now is not None else time.time())
    if current > expires_at:
        return None
    return user_id


def token_for_user(user_id: str) -> str:
    """Issue a token with the configured TTL and signing secret."""
    return issue_session_token(
        user_id=user_id,
        secret=get_signing_secret(),
        ttl_seconds=settings.session_token_ttl_hours * 3600,
    )
