"""TaskStore — persistence for tasks, subtasks, delegation notes and focus sessions.

Every mutating method validates input and checks ownership before it touches
a row, then commits once. Completion goes through `_complete()` which awards
gamification points only on an observed open → completed transition, in the
same transaction as the task update.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlmodel import Session, col, select

from app.clock import ensure_utc, today_utc, utcnow
from app.engines.gamification import GamificationEngine
from app.engines.lanes import default_due_date, validate_lane
from app.errors import AuthorizationError, ValidationError
from app.models.stats import UserStats
from app.models.task import (
    DEFAULT_LANE,
    DEFAULT_REMINDER_TYPE,
    MAX_TITLE_LENGTH,
    REMINDER_TYPES,
    DelegationNote,
    FocusSession,
    Subtask,
    Task,
)

logger = logging.getLogger(__name__)

# Fields the owner may change through update_task()
_OWNER_FIELDS = frozenset({"title", "notes", "lane", "due_date", "reminder_type", "completed"})


def clean_title(title: Any, field: str = "Title") -> str:
    """Strip and validate a task/subtask title."""
    if not isinstance(title, str) or not title.strip():
        raise ValidationError(f"{field} is required.")
    title = title.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"{field} must be at most {MAX_TITLE_LENGTH} characters.")
    return title


def validate_reminder_type(reminder_type: str) -> str:
    if reminder_type not in REMINDER_TYPES:
        raise ValidationError(
            f"Invalid reminder type '{reminder_type}'. Must be one of: {', '.join(REMINDER_TYPES)}."
        )
    return reminder_type


def extracted_titles(candidates: Iterable[Any]) -> list[str]:
    """Keep only candidates carrying a non-empty string title.

    Accepts the task-extraction output shape: a list of {"title": ...}
    objects (plain strings are tolerated too).
    """
    titles: list[str] = []
    for item in candidates:
        raw = item.get("title") if isinstance(item, dict) else item
        if isinstance(raw, str) and raw.strip():
            titles.append(raw.strip()[:MAX_TITLE_LENGTH])
    return titles


class CompletionResult:
    """Outcome of a completion request."""

    def __init__(self, task: Task, stats: UserStats | None) -> None:
        self.task = task
        self.stats = stats

    @property
    def awarded(self) -> bool:
        return self.stats is not None


class TaskStore:
    """CRUD for a user's tasks and their children.

    Usage:
        store = TaskStore(session)
        task = store.create_task(user_id, "Call the plumber", lane="soon")
        store.move_task(task.id, user_id, "now")
        result = store.complete_task(task.id, user_id, now=utcnow())
    """

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    # === Tasks ===

    def create_task(
        self,
        owner_id: str,
        title: str,
        notes: str | None = None,
        lane: str | None = None,
        due_date: datetime | None = None,
        now: datetime | None = None,
        task_id: str | None = None,
        reminder_type: str | None = None,
    ) -> Task:
        """Create an open task.

        Lane defaults to "now", reminder type to "soft". Without an explicit
        due date the task gets its lane's default one (see default_due_date).
        """
        lane = validate_lane(lane or DEFAULT_LANE)
        created_at = ensure_utc(now) or utcnow()
        task = Task(
            user_id=owner_id,
            title=clean_title(title),
            notes=notes or None,
            lane=lane,
            due_date=ensure_utc(due_date) or default_due_date(lane, created_at),
            reminder_type=validate_reminder_type(reminder_type or DEFAULT_REMINDER_TYPE),
            created_at=created_at,
        )
        if task_id:
            task.id = task_id
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def create_tasks_from_titles(
        self,
        owner_id: str,
        candidates: Iterable[Any],
        lane: str | None = None,
        now: datetime | None = None,
    ) -> list[Task]:
        """Bulk-create tasks from extracted candidates; empty titles are dropped."""
        lane = validate_lane(lane or DEFAULT_LANE)
        created_at = ensure_utc(now) or utcnow()
        due_date = default_due_date(lane, created_at)
        tasks = [
            Task(user_id=owner_id, title=title, lane=lane, due_date=due_date, created_at=created_at)
            for title in extracted_titles(candidates)
        ]
        for task in tasks:
            self.db.add(task)
        self.db.commit()
        for task in tasks:
            self.db.refresh(task)
        return tasks

    def list_tasks(self, owner_id: str, include_completed: bool = True) -> list[Task]:
        """All tasks owned by the user, creation order."""
        stmt = select(Task).where(Task.user_id == owner_id)
        if not include_completed:
            stmt = stmt.where(col(Task.completed_at).is_(None))
        return list(self.db.exec(stmt.order_by(Task.created_at)).all())

    def completed_tasks(self, owner_id: str) -> list[Task]:
        stmt = (
            select(Task)
            .where(Task.user_id == owner_id)
            .where(col(Task.completed_at).is_not(None))
            .order_by(col(Task.completed_at).desc())
        )
        return list(self.db.exec(stmt).all())

    def get_owned_task(self, task_id: str, owner_id: str) -> Task:
        """Fetch a task the caller owns.

        Missing and foreign tasks raise the same AuthorizationError.
        """
        task = self.db.get(Task, task_id)
        if task is None or task.user_id != owner_id:
            raise AuthorizationError()
        return task

    def update_task(
        self,
        task_id: str,
        owner_id: str,
        changes: dict[str, Any],
        now: datetime | None = None,
    ) -> CompletionResult:
        """Apply owner edits (title, notes, lane, due_date, reminder_type, completed).

        `completed=True` on an open task completes it and awards points;
        on an already-completed task it is a no-op. `completed=False`
        reopens without touching stats: points already earned are kept, and
        completing the reopened task awards again, like any other open task.
        Editing the lane leaves due_date alone.
        """
        unknown = set(changes) - _OWNER_FIELDS
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}.")

        task = self.get_owned_task(task_id, owner_id)

        # Validate everything before mutating anything
        updates: dict[str, Any] = {}
        if "title" in changes:
            updates["title"] = clean_title(changes["title"])
        if "lane" in changes:
            updates["lane"] = validate_lane(changes["lane"])
        if "notes" in changes:
            updates["notes"] = changes["notes"] or None
        if "due_date" in changes:
            updates["due_date"] = ensure_utc(changes["due_date"])
        if "reminder_type" in changes:
            updates["reminder_type"] = validate_reminder_type(changes["reminder_type"] or DEFAULT_REMINDER_TYPE)
        completed = changes.get("completed")

        for key, value in updates.items():
            setattr(task, key, value)

        stats = None
        if completed is True:
            stats = self._complete(task, now)
        elif completed is False:
            # Earned points stay; the next completion is a fresh open -> completed transition
            task.completed_at = None

        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        if stats is not None:
            self.db.refresh(stats)
        return CompletionResult(task, stats)

    def move_task(self, task_id: str, owner_id: str, new_lane: str) -> Task:
        """Reassign the lane. created_at is left alone on purpose."""
        lane = validate_lane(new_lane)
        task = self.get_owned_task(task_id, owner_id)
        task.lane = lane
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def complete_task(self, task_id: str, owner_id: str, now: datetime | None = None) -> CompletionResult:
        """Mark a task completed; idempotent for already-completed tasks."""
        task = self.get_owned_task(task_id, owner_id)
        stats = self._complete(task, now)
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        if stats is not None:
            self.db.refresh(stats)
        return CompletionResult(task, stats)

    def _complete(self, task: Task, now: datetime | None) -> UserStats | None:
        was_completed = task.completed_at is not None
        if was_completed:
            return None
        at = ensure_utc(now) or utcnow()
        task.completed_at = at
        stats = GamificationEngine(self.db).record_task_completion(task.user_id, today_utc(at))
        logger.info("Task %s completed by %s", task.id, task.user_id)
        return stats

    def delete_task(self, task_id: str, owner_id: str) -> None:
        """Delete a task with its subtasks and notes."""
        task = self.get_owned_task(task_id, owner_id)
        try:
            for note in self.db.exec(select(DelegationNote).where(DelegationNote.task_id == task.id)).all():
                self.db.delete(note)
            for subtask in self.db.exec(select(Subtask).where(Subtask.task_id == task.id)).all():
                self.db.delete(subtask)
            self.db.flush()  # children first: foreign keys are enforced
            self.db.delete(task)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # === Children ===

    def subtasks_by_task(self, task_ids: list[str]) -> dict[str, list[Subtask]]:
        grouped: dict[str, list[Subtask]] = defaultdict(list)
        if not task_ids:
            return grouped
        stmt = select(Subtask).where(col(Subtask.task_id).in_(task_ids)).order_by(Subtask.created_at)
        for st in self.db.exec(stmt).all():
            grouped[st.task_id].append(st)
        return grouped

    def notes_by_task(self, task_ids: list[str]) -> dict[str, list[DelegationNote]]:
        grouped: dict[str, list[DelegationNote]] = defaultdict(list)
        if not task_ids:
            return grouped
        stmt = (
            select(DelegationNote)
            .where(col(DelegationNote.task_id).in_(task_ids))
            .order_by(DelegationNote.created_at)
        )
        for note in self.db.exec(stmt).all():
            grouped[note.task_id].append(note)
        return grouped

    def add_subtask(self, task_id: str, owner_id: str, title: str) -> Subtask:
        task = self.get_owned_task(task_id, owner_id)
        subtask = Subtask(task_id=task.id, title=clean_title(title, "Subtask title"))
        self.db.add(subtask)
        self.db.commit()
        self.db.refresh(subtask)
        return subtask

    def _owned_subtask(self, subtask_id: str, owner_id: str) -> Subtask:
        subtask = self.db.get(Subtask, subtask_id)
        if subtask is None:
            raise AuthorizationError()
        self.get_owned_task(subtask.task_id, owner_id)
        return subtask

    def update_subtask(
        self,
        subtask_id: str,
        owner_id: str,
        title: str | None = None,
        completed: bool | None = None,
    ) -> Subtask:
        subtask = self._owned_subtask(subtask_id, owner_id)
        new_title = clean_title(title, "Subtask title") if title is not None else None
        if new_title is not None:
            subtask.title = new_title
        if completed is not None:
            subtask.completed = completed
        self.db.add(subtask)
        self.db.commit()
        self.db.refresh(subtask)
        return subtask

    def delete_subtask(self, subtask_id: str, owner_id: str) -> None:
        subtask = self._owned_subtask(subtask_id, owner_id)
        self.db.delete(subtask)
        self.db.commit()

    # === Focus sessions ===

    def log_focus_session(
        self,
        user_id: str,
        minutes: int,
        task_id: str | None = None,
        now: datetime | None = None,
    ) -> FocusSession:
        """Record focused minutes, optionally against one of the user's tasks."""
        if minutes <= 0:
            raise ValidationError("Focus minutes must be positive.")
        task = self.get_owned_task(task_id, user_id) if task_id else None

        session_row = FocusSession(
            user_id=user_id,
            task_id=task.id if task else None,
            minutes=minutes,
            created_at=ensure_utc(now) or utcnow(),
        )
        self.db.add(session_row)
        if task is not None:
            task.focus_time_minutes += minutes
            self.db.add(task)
        self.db.commit()
        self.db.refresh(session_row)
        return session_row

    def focus_sessions_since(self, user_id: str, since: datetime) -> list[FocusSession]:
        stmt = (
            select(FocusSession)
            .where(FocusSession.user_id == user_id)
            .where(FocusSession.created_at >= ensure_utc(since))
        )
        return list(self.db.exec(stmt).all())
