"""Lane & staleness policy — pure classification of tasks.

Nothing here touches the database or the wall clock: callers pass the task
rows and the current instant. Staleness is never persisted.

Staleness clocks run from `created_at`, not from the last lane move, so
parking a task to delay it keeps the "how long have I been avoiding this"
signal intact.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, time, timedelta

from app.clock import ensure_utc
from app.config import get_lane_due_days, get_stale_thresholds
from app.errors import ValidationError
from app.models.task import LANES, Task


def validate_lane(lane: str) -> str:
    """Return `lane` if it is one of now/soon/later/park, else raise."""
    if lane not in LANES:
        raise ValidationError(f"Invalid lane '{lane}'. Must be one of: {', '.join(LANES)}.")
    return lane


def default_due_date(lane: str, now: datetime, due_days: dict[str, int] | None = None) -> datetime:
    """Due date a new task gets when none is given.

    "now" tasks are due at the end of the current UTC day; other lanes are due
    a configured number of days after creation (soon 3, later 7, park 30).
    """
    validate_lane(lane)
    now = ensure_utc(now)
    days = (due_days if due_days is not None else get_lane_due_days()).get(lane, 0)
    if days <= 0:
        return datetime.combine(now.date(), time.max, tzinfo=now.tzinfo)
    return now + timedelta(days=days)


def _creation_order(task: Task) -> datetime:
    return ensure_utc(task.created_at)


def open_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Tasks that are not completed, oldest first."""
    return sorted((t for t in tasks if t.completed_at is None), key=_creation_order)


def tasks_by_lane(tasks: Iterable[Task], lane: str) -> list[Task]:
    """Open tasks in `lane`, in creation order."""
    validate_lane(lane)
    return [t for t in open_tasks(tasks) if t.lane == lane]


def lane_counts(tasks: Iterable[Task]) -> dict[str, int]:
    """Number of open tasks per lane (every lane present, possibly 0)."""
    counts = {lane: 0 for lane in LANES}
    for t in tasks:
        if t.completed_at is None and t.lane in counts:
            counts[t.lane] += 1
    return counts


def task_age(task: Task, now: datetime) -> timedelta:
    return ensure_utc(now) - ensure_utc(task.created_at)


def days_in_lane(task: Task, now: datetime) -> int:
    """Whole days since creation (the staleness clock)."""
    return max(task_age(task, now).days, 0)


def is_stale(task: Task, now: datetime, thresholds: dict[str, int] | None = None) -> bool:
    """True if an open soon/park task has been around past its threshold.

    Soon: >= 7 days since creation. Park: >= 14 days. Other lanes never
    go stale.
    """
    if task.completed_at is not None:
        return False
    limits = thresholds if thresholds is not None else get_stale_thresholds()
    limit_days = limits.get(task.lane)
    if limit_days is None:
        return False
    return task_age(task, now) >= timedelta(days=limit_days)


def stale_tasks(
    tasks: Iterable[Task],
    now: datetime,
    thresholds: dict[str, int] | None = None,
) -> dict[str, list[Task]]:
    """Stale open tasks grouped by lane (every lane present)."""
    grouped: dict[str, list[Task]] = {lane: [] for lane in LANES}
    for t in open_tasks(tasks):
        if is_stale(t, now, thresholds):
            grouped[t.lane].append(t)
    return grouped
