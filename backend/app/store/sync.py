"""Offline sync — import client-created rows, first insert wins.

Rows whose id already exists are skipped untouched (whoever owns them), and
children are only imported together with a newly inserted parent. Client
stats are never accepted: UserStats changes only through completions on the
server. User-delegation columns are not importable either; delegation goes
through the delegation workflow.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel, Field
from sqlmodel import Session

from app.clock import ensure_utc, utcnow
from app.engines.lanes import validate_lane
from app.errors import ValidationError
from app.models.task import DEFAULT_LANE, DEFAULT_REMINDER_TYPE, DelegationNote, Subtask, Task
from app.models.team import DEFAULT_CONTACT_COLOR, Contact
from app.store.tasks import clean_title, validate_reminder_type

logger = logging.getLogger(__name__)


class SyncSubtask(BaseModel):
    id: str = Field(min_length=1, max_length=255)
    title: str
    completed: bool = False


class SyncNote(BaseModel):
    id: str = Field(min_length=1, max_length=255)
    type: str = Field(default="comment", pattern=r"^(status_update|comment)$")
    text: str | None = None
    created_at: datetime | None = None


class SyncTask(BaseModel):
    id: str = Field(min_length=1, max_length=255)
    title: str
    notes: str | None = None
    lane: str = DEFAULT_LANE
    due_date: datetime | None = None
    reminder_type: str = DEFAULT_REMINDER_TYPE
    focus_time_minutes: int = Field(default=0, ge=0)
    created_at: datetime | None = None
    completed_at: datetime | None = None
    subtasks: list[SyncSubtask] = Field(default_factory=list)
    delegation_notes: list[SyncNote] = Field(default_factory=list)


class SyncContact(BaseModel):
    id: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    role: str | None = None
    color: str | None = None
    created_at: datetime | None = None


class SyncResult(BaseModel):
    tasks_inserted: int = 0
    tasks_skipped: int = 0
    contacts_inserted: int = 0
    contacts_skipped: int = 0


class SyncService:
    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def import_client_state(
        self,
        user_id: str,
        tasks: list[SyncTask],
        contacts: list[SyncContact],
        now: datetime | None = None,
    ) -> SyncResult:
        """Insert unseen tasks (with children) and contacts in one transaction."""
        now = ensure_utc(now) or utcnow()
        result = SyncResult()

        # Validate the whole batch first so a bad row rejects nothing partially
        for t in tasks:
            clean_title(t.title)
            validate_lane(t.lane)
            validate_reminder_type(t.reminder_type)
            for st in t.subtasks:
                clean_title(st.title, "Subtask title")
        for c in contacts:
            if not c.name.strip():
                raise ValidationError("Contact name is required.")

        try:
            for t in tasks:
                if self.db.get(Task, t.id) is not None:
                    result.tasks_skipped += 1
                    continue
                self.db.add(Task(
                    id=t.id,
                    user_id=user_id,
                    title=clean_title(t.title),
                    notes=t.notes or None,
                    lane=t.lane,
                    due_date=ensure_utc(t.due_date),
                    reminder_type=t.reminder_type,
                    focus_time_minutes=t.focus_time_minutes,
                    created_at=ensure_utc(t.created_at) or now,
                    completed_at=ensure_utc(t.completed_at),
                ))
                self.db.flush()
                for st in t.subtasks:
                    if self.db.get(Subtask, st.id) is None:
                        self.db.add(Subtask(id=st.id, task_id=t.id, title=clean_title(st.title), completed=st.completed))
                for n in t.delegation_notes:
                    if self.db.get(DelegationNote, n.id) is None:
                        self.db.add(DelegationNote(
                            id=n.id,
                            task_id=t.id,
                            author_id=user_id,
                            type=n.type,
                            text=n.text or None,
                            created_at=ensure_utc(n.created_at) or now,
                        ))
                result.tasks_inserted += 1

            for c in contacts:
                if self.db.get(Contact, c.id) is not None:
                    result.contacts_skipped += 1
                    continue
                self.db.add(Contact(
                    id=c.id,
                    user_id=user_id,
                    name=c.name.strip(),
                    role=c.role or None,
                    color=c.color or DEFAULT_CONTACT_COLOR,
                    created_at=ensure_utc(c.created_at) or now,
                ))
                result.contacts_inserted += 1

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Sync for %s: %d task(s) inserted, %d skipped; %d contact(s) inserted",
            user_id, result.tasks_inserted, result.tasks_skipped, result.contacts_inserted,
        )
        return result
