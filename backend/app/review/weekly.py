"""Weekly review — read-only rollup for the review screen.

Combines lane membership and staleness (engines.lanes) with the
gamification snapshot (engines.gamification). Produces no state; moving a
stale task during review goes through TaskStore.move_task like any other
move.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlmodel import Session

from app.clock import ensure_utc
from app.config import settings
from app.engines.gamification import GamificationEngine, WeeklyStats, weekly_stats
from app.engines.lanes import lane_counts, stale_tasks, tasks_by_lane
from app.models.stats import UserStats
from app.models.task import LANES, Task
from app.store.tasks import TaskStore


@dataclass
class WeeklyReview:
    generated_at: datetime
    open_by_lane: dict[str, list[Task]]
    counts: dict[str, int]
    stale_by_lane: dict[str, list[Task]]
    completed_this_week: list[Task]
    week: WeeklyStats
    stats: UserStats
    park_overloaded: bool
    stale_total: int = field(init=False)

    def __post_init__(self) -> None:
        self.stale_total = sum(len(v) for v in self.stale_by_lane.values())


class WeeklyReviewAggregator:
    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        self.tasks = TaskStore(db_session)

    def build(self, user_id: str, now: datetime) -> WeeklyReview:
        now = ensure_utc(now)
        since = now - timedelta(days=settings.review_window_days)

        all_tasks = self.tasks.list_tasks(user_id)
        completed = [t for t in all_tasks if t.completed_at is not None]
        this_week = sorted(
            (t for t in completed if since <= ensure_utc(t.completed_at) <= now),
            key=lambda t: ensure_utc(t.completed_at),
            reverse=True,
        )
        sessions = self.tasks.focus_sessions_since(user_id, since)

        # Read-only: no get_or_create here, a missing row reads as zeros
        stats = GamificationEngine(self.db).find_stats(user_id) or UserStats(user_id=user_id)
        counts = lane_counts(all_tasks)

        return WeeklyReview(
            generated_at=now,
            open_by_lane={lane: tasks_by_lane(all_tasks, lane) for lane in LANES},
            counts=counts,
            stale_by_lane=stale_tasks(all_tasks, now),
            completed_this_week=this_week,
            week=weekly_stats(completed, sessions, now),
            stats=stats,
            park_overloaded=counts["park"] > settings.park_overload_threshold,
        )
