"""Task, Subtask, DelegationNote and FocusSession models.

Delegation columns come in two families:
- assigned_contact_id: local Contact delegation (no account link)
- delegated_to_user_id / delegation_status / delegated_at /
  last_delegation_update: linked TeamMember delegation

delegation_status is non-NULL iff delegated_to_user_id is non-NULL.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import uuid4

from sqlmodel import Field as SQLField
from sqlmodel import SQLModel

from app.clock import utcnow

Lane = Literal["now", "soon", "later", "park"]
DelegationStatus = Literal["assigned", "in_progress", "waiting", "needs_review", "done"]
NoteType = Literal["status_update", "comment"]
ReminderType = Literal["soft", "strong", "persistent", "none"]

LANES: tuple[str, ...] = ("now", "soon", "later", "park")
DELEGATION_STATUSES: tuple[str, ...] = ("assigned", "in_progress", "waiting", "needs_review", "done")
DEFAULT_LANE = "now"
REMINDER_TYPES: tuple[str, ...] = ("soft", "strong", "persistent", "none")
DEFAULT_REMINDER_TYPE = "soft"
MAX_TITLE_LENGTH = 500


class Task(SQLModel, table=True):
    """A task owned by exactly one user and living in one lane."""

    __tablename__ = "tasks"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = SQLField(foreign_key="users.id", index=True)
    title: str = SQLField(max_length=MAX_TITLE_LENGTH)
    notes: str | None = None
    lane: str = DEFAULT_LANE  # "now" | "soon" | "later" | "park"
    due_date: datetime | None = None
    reminder_type: str = DEFAULT_REMINDER_TYPE  # "soft" | "strong" | "persistent" | "none"
    focus_time_minutes: int = 0
    created_at: datetime = SQLField(default_factory=utcnow, index=True)
    completed_at: datetime | None = None  # NULL = open

    # Contact delegation (weak reference, no status tracking)
    assigned_contact_id: str | None = None

    # TeamMember delegation (weak reference, no ownership transfer)
    delegated_to_user_id: str | None = SQLField(default=None, index=True)
    delegation_status: str | None = None
    delegated_at: datetime | None = None
    last_delegation_update: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class Subtask(SQLModel, table=True):
    """A checklist item belonging to one task."""

    __tablename__ = "subtasks"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    task_id: str = SQLField(foreign_key="tasks.id", index=True)
    title: str = SQLField(max_length=MAX_TITLE_LENGTH)
    completed: bool = False
    created_at: datetime = SQLField(default_factory=utcnow)


class DelegationNote(SQLModel, table=True):
    """Append-only log entry on a task. Never updated after insert."""

    __tablename__ = "delegation_notes"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    task_id: str = SQLField(foreign_key="tasks.id", index=True)
    author_id: str | None = None  # Weak reference; survives author deletion
    type: str = "status_update"  # "status_update" | "comment"
    text: str | None = None
    created_at: datetime = SQLField(default_factory=utcnow)


class FocusSession(SQLModel, table=True):
    """A logged block of focused work; feeds weekly focus minutes."""

    __tablename__ = "focus_sessions"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = SQLField(foreign_key="users.id", index=True)
    task_id: str | None = None  # Weak reference; kept when the task is deleted
    minutes: int
    created_at: datetime = SQLField(default_factory=utcnow, index=True)
