"""User account model.

A user is created either by email/password registration or by the
device-only bootstrap (email stays NULL until the user registers).
"""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlmodel import Field as SQLField
from sqlmodel import SQLModel

from app.clock import utcnow


class User(SQLModel, table=True):
    """An account that owns tasks, contacts, team links and stats."""

    __tablename__ = "users"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str | None = SQLField(default=None, unique=True, index=True, max_length=255)
    password_hash: str | None = None
    display_name: str | None = SQLField(default=None, max_length=255)
    device_id: str | None = SQLField(default=None, index=True, max_length=255)
    # Push notifications (token registered by the mobile client)
    push_token: str | None = SQLField(default=None, max_length=255)
    notifications_enabled: bool = False
    # Password reset: hashed 6-digit code, single use
    reset_code_hash: str | None = None
    reset_code_expires_at: datetime | None = None
    created_at: datetime = SQLField(default_factory=utcnow)

    def public_name(self) -> str:
        """Display name, else e-mail local part, else empty string."""
        if self.display_name and self.display_name.strip():
            return self.display_name.strip()
        if self.email:
            return self.email.split("@", 1)[0]
        return ""
