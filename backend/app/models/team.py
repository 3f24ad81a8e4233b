"""Delegation targets: local Contacts, linked TeamMembers and TeamInvites."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import uuid4

from sqlmodel import Field as SQLField
from sqlmodel import SQLModel

from app.clock import utcnow

InviteStatus = Literal["pending", "accepted", "declined"]

DEFAULT_CONTACT_COLOR = "#007AFF"

# Avatar palette for linked teammates
TEAM_COLORS: tuple[str, ...] = (
    "#007AFF",
    "#34C759",
    "#FF9500",
    "#AF52DE",
    "#FF3B30",
    "#5AC8FA",
    "#FF2D55",
    "#FFCC00",
)


class Contact(SQLModel, table=True):
    """A delegation target managed locally by its owner; not an account."""

    __tablename__ = "contacts"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = SQLField(foreign_key="users.id", index=True)
    name: str = SQLField(max_length=255)
    role: str | None = SQLField(default=None, max_length=255)
    color: str = DEFAULT_CONTACT_COLOR
    created_at: datetime = SQLField(default_factory=utcnow)


class TeamMember(SQLModel, table=True):
    """One direction of a confirmed two-way link between accounts.

    Every link is stored as a mirrored pair: (A → B) and (B → A).
    """

    __tablename__ = "team_members"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = SQLField(foreign_key="users.id", index=True)
    teammate_id: str = SQLField(foreign_key="users.id", index=True)
    nickname: str = SQLField(default="Teammate", max_length=255)
    color: str = DEFAULT_CONTACT_COLOR
    created_at: datetime = SQLField(default_factory=utcnow)


class TeamInvite(SQLModel, table=True):
    """Single-use, time-boxed invitation code."""

    __tablename__ = "team_invites"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    invite_code: str = SQLField(unique=True, index=True, max_length=20)
    inviter_id: str = SQLField(foreign_key="users.id", index=True)
    invitee_email: str | None = SQLField(default=None, max_length=255)
    status: str = "pending"  # "pending" | "accepted" | "declined"
    created_at: datetime = SQLField(default_factory=utcnow)
    expires_at: datetime
