"""Delegation workflow — hand tasks to contacts or linked teammates.

Status labels on a user-delegated task:

    assigned → in_progress → waiting → needs_review → done

The arrow order is advisory. The delegatee may set any label at any time
(including leaving "done"); only the caller identity is enforced. The owner
can revoke a delegation, which clears all delegation columns together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlmodel import Session, col, select

from app.clock import ensure_utc, utcnow
from app.delegation.team import TeamService, clear_user_delegation
from app.errors import AuthorizationError, StateError, ValidationError
from app.models.task import DELEGATION_STATUSES, DelegationNote, Subtask, Task
from app.models.user import User
from app.store.contacts import ContactStore
from app.store.tasks import TaskStore

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 2000


def validate_status(status: str) -> str:
    if status not in DELEGATION_STATUSES:
        raise ValidationError(
            f"Invalid delegation status '{status}'. Must be one of: {', '.join(DELEGATION_STATUSES)}."
        )
    return status


def _clean_note(text: str | None) -> str | None:
    if text is None or not text.strip():
        return None
    text = text.strip()
    if len(text) > MAX_NOTE_LENGTH:
        raise ValidationError(f"Note must be at most {MAX_NOTE_LENGTH} characters.")
    return text


@dataclass
class DelegatedTask:
    """A task seen from the delegatee's side."""

    task: Task
    owner_name: str
    subtasks: list[Subtask] = field(default_factory=list)
    notes: list[DelegationNote] = field(default_factory=list)


class DelegationWorkflow:
    """Delegation operations, each authorized before any mutation.

    Usage:
        flow = DelegationWorkflow(session)
        flow.delegate_task_to_user(task.id, owner.id, teammate.id, now=now)
        flow.update_delegation_status(task.id, teammate.id, "in_progress", note="On it")
    """

    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        self.tasks = TaskStore(db_session)
        self.contacts = ContactStore(db_session)
        self.team = TeamService(db_session)

    def delegate_task(self, task_id: str, owner_id: str, contact_id: str) -> Task:
        """Assign a task to one of the owner's local contacts.

        Contact delegation has no status and does not set
        delegated_to_user_id; any user delegation is dropped.
        """
        task = self.tasks.get_owned_task(task_id, owner_id)
        contact = self.contacts.get_owned_contact(contact_id, owner_id)
        task.assigned_contact_id = contact.id
        clear_user_delegation(task)
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def delegate_task_to_user(
        self,
        task_id: str,
        owner_id: str,
        teammate_user_id: str,
        now: datetime | None = None,
    ) -> Task:
        """Delegate to a linked teammate; status starts at "assigned"."""
        now = ensure_utc(now) or utcnow()
        task = self.tasks.get_owned_task(task_id, owner_id)
        if task.completed_at is not None:
            raise StateError("Completed tasks cannot be delegated.")
        if self.team.get_link(owner_id, teammate_user_id) is None:
            raise StateError("You can only delegate to members of your team. Send them an invite first.")

        task.delegated_to_user_id = teammate_user_id
        task.delegation_status = "assigned"
        task.delegated_at = now
        task.last_delegation_update = now
        task.assigned_contact_id = None
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        logger.info("Task %s delegated by %s to %s", task.id, owner_id, teammate_user_id)
        return task

    def clear_delegation(self, task_id: str, owner_id: str) -> Task:
        """Owner revokes any delegation on the task."""
        task = self.tasks.get_owned_task(task_id, owner_id)
        task.assigned_contact_id = None
        clear_user_delegation(task)
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def update_delegation_status(
        self,
        task_id: str,
        caller_user_id: str,
        new_status: str,
        note: str | None = None,
        now: datetime | None = None,
    ) -> Task:
        """Delegatee reports progress; only the current delegatee may call this."""
        now = ensure_utc(now) or utcnow()
        task = self.db.get(Task, task_id)
        if task is None or task.delegated_to_user_id is None or task.delegated_to_user_id != caller_user_id:
            logger.warning("Delegation status update on %s denied for %s", task_id, caller_user_id)
            raise AuthorizationError()
        status = validate_status(new_status)
        text = _clean_note(note)

        task.delegation_status = status
        task.last_delegation_update = now
        self.db.add(task)
        if text is not None:
            self.db.add(
                DelegationNote(
                    task_id=task.id,
                    author_id=caller_user_id,
                    type="status_update",
                    text=text,
                    created_at=now,
                )
            )
        self.db.commit()
        self.db.refresh(task)
        return task

    def add_delegation_note(
        self,
        task_id: str,
        caller_user_id: str,
        text: str,
        now: datetime | None = None,
    ) -> DelegationNote:
        """Owner or delegatee appends a free-text comment."""
        now = ensure_utc(now) or utcnow()
        task = self.db.get(Task, task_id)
        if task is None or caller_user_id not in (task.user_id, task.delegated_to_user_id):
            raise AuthorizationError()
        body = _clean_note(text)
        if body is None:
            raise ValidationError("Note text is required.")
        note = DelegationNote(task_id=task.id, author_id=caller_user_id, type="comment", text=body, created_at=now)
        self.db.add(note)
        self.db.commit()
        self.db.refresh(note)
        return note

    def delegated_to_me(self, user_id: str) -> list[DelegatedTask]:
        """Open tasks currently delegated to the user, oldest delegation first."""
        stmt = (
            select(Task)
            .where(Task.delegated_to_user_id == user_id)
            .where(col(Task.completed_at).is_(None))
            .order_by(Task.delegated_at)
        )
        tasks = list(self.db.exec(stmt).all())
        ids = [t.id for t in tasks]
        subtasks = self.tasks.subtasks_by_task(ids)
        notes = self.tasks.notes_by_task(ids)

        owner_ids = {t.user_id for t in tasks}
        owners = {u.id: u for u in self.db.exec(select(User).where(col(User.id).in_(owner_ids))).all()} if owner_ids else {}

        result = []
        for t in tasks:
            owner = owners.get(t.user_id)
            result.append(
                DelegatedTask(
                    task=t,
                    owner_name=owner.public_name() if owner else "",
                    subtasks=subtasks.get(t.id, []),
                    notes=notes.get(t.id, []),
                )
            )
        return result
