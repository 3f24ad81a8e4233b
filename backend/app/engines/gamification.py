"""Gamification engine — streaks, points, levels and achievements.

Pure functions compute the next stats from the previous ones; the
GamificationEngine applies them to the UserStats row. The only trigger is a
task going from open to completed; re-completing a completed task never
reaches this module.

Level table (cumulative points, never demoted while points do not decrease):

    starter       0
    focused     100
    productive  500
    unstoppable 1500
    legendary   5000
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from pydantic import BaseModel
from sqlmodel import Session, select

from app.clock import ensure_utc
from app.config import settings
from app.models.stats import UserStats
from app.models.task import FocusSession, Task

logger = logging.getLogger(__name__)

LEVEL_THRESHOLDS: dict[str, int] = {
    "starter": 0,
    "focused": 100,
    "productive": 500,
    "unstoppable": 1500,
    "legendary": 5000,
}

LEVEL_ORDER: list[str] = ["starter", "focused", "productive", "unstoppable", "legendary"]


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str


ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement("first_task", "First Step", "Complete your first task"),
    Achievement("streak_3", "On a Roll", "Maintain a 3-day streak"),
    Achievement("streak_7", "Week Warrior", "Maintain a 7-day streak"),
    Achievement("streak_30", "Month Master", "Maintain a 30-day streak"),
    Achievement("tasks_10", "Getting Things Done", "Complete 10 tasks"),
    Achievement("tasks_50", "Productivity Pro", "Complete 50 tasks"),
    Achievement("tasks_100", "Century Club", "Complete 100 tasks"),
    Achievement("level_focused", "Focused Achiever", "Reach Focused level"),
    Achievement("level_productive", "Productivity Master", "Reach Productive level"),
    Achievement("level_unstoppable", "Unstoppable Force", "Reach Unstoppable level"),
)


# === Pure computations ===


def advance_streak(
    current_streak: int,
    longest_streak: int,
    last_active_date: date | None,
    today: date,
) -> tuple[int, int]:
    """Streak after one completion on `today`.

    Same day → unchanged. Yesterday → +1. Anything else (gap of 2+ days,
    no prior activity) → 1. Longest is max(longest, current) afterwards.

    Returns:
        (current_streak, longest_streak)
    """
    if last_active_date == today:
        new_streak = current_streak
    elif last_active_date is not None and last_active_date == today - timedelta(days=1):
        new_streak = current_streak + 1
    else:
        new_streak = 1
    return new_streak, max(longest_streak, new_streak)


def level_for_points(points: int) -> str:
    """Highest level whose threshold `points` has reached."""
    level = LEVEL_ORDER[0]
    for name in LEVEL_ORDER:
        if points >= LEVEL_THRESHOLDS[name]:
            level = name
    return level


def level_progress(points: int) -> float:
    """Percent (0–100) of the way from the current level to the next."""
    level = level_for_points(points)
    idx = LEVEL_ORDER.index(level)
    if idx == len(LEVEL_ORDER) - 1:
        return 100.0
    floor = LEVEL_THRESHOLDS[level]
    ceiling = LEVEL_THRESHOLDS[LEVEL_ORDER[idx + 1]]
    pct = (points - floor) / (ceiling - floor) * 100
    return round(min(max(pct, 0.0), 100.0), 1)


def points_to_next_level(points: int) -> int:
    level = level_for_points(points)
    idx = LEVEL_ORDER.index(level)
    if idx == len(LEVEL_ORDER) - 1:
        return 0
    return max(LEVEL_THRESHOLDS[LEVEL_ORDER[idx + 1]] - points, 0)


def unlocked_achievements(stats: UserStats) -> list[Achievement]:
    """Achievements implied by a stats snapshot. Derived, never stored."""
    level_idx = LEVEL_ORDER.index(level_for_points(stats.points))
    earned = {
        "first_task": stats.total_tasks_completed >= 1,
        "tasks_10": stats.total_tasks_completed >= 10,
        "tasks_50": stats.total_tasks_completed >= 50,
        "tasks_100": stats.total_tasks_completed >= 100,
        "streak_3": stats.longest_streak >= 3,
        "streak_7": stats.longest_streak >= 7,
        "streak_30": stats.longest_streak >= 30,
        "level_focused": level_idx >= LEVEL_ORDER.index("focused"),
        "level_productive": level_idx >= LEVEL_ORDER.index("productive"),
        "level_unstoppable": level_idx >= LEVEL_ORDER.index("unstoppable"),
    }
    return [a for a in ACHIEVEMENTS if earned[a.id]]


def apply_completion(stats: UserStats, today: date, points: int | None = None) -> UserStats:
    """Mutate `stats` for one task completion on `today` and return it.

    Points and level are updated together so a tier crossing is visible
    in the same write that changed the points.
    """
    award = settings.points_per_completion if points is None else points
    stats.current_streak, stats.longest_streak = advance_streak(
        stats.current_streak, stats.longest_streak, stats.last_active_date, today,
    )
    stats.points += award
    stats.level = level_for_points(stats.points)
    stats.total_tasks_completed += 1
    stats.last_active_date = today
    return stats


class WeeklyStats(BaseModel):
    tasks_completed: int
    focus_minutes: int
    days_active: int


def weekly_stats(
    completed_tasks: Iterable[Task],
    focus_sessions: Iterable[FocusSession],
    now: datetime,
    window_days: int | None = None,
) -> WeeklyStats:
    """Roll up the trailing window (default 7 days) ending at `now`.

    Recomputed on every read from completion and session timestamps.
    """
    days = window_days if window_days is not None else settings.review_window_days
    now = ensure_utc(now)
    since = now - timedelta(days=days)

    active_days: set[date] = set()
    tasks_done = 0
    for t in completed_tasks:
        done_at = ensure_utc(t.completed_at)
        if done_at is not None and since <= done_at <= now:
            tasks_done += 1
            active_days.add(done_at.date())

    minutes = 0
    for s in focus_sessions:
        at = ensure_utc(s.created_at)
        if since <= at <= now:
            minutes += s.minutes

    return WeeklyStats(tasks_completed=tasks_done, focus_minutes=minutes, days_active=len(active_days))


# === Persistence ===


class GamificationEngine:
    """Applies completion events to the user's UserStats row.

    Usage:
        engine = GamificationEngine(session)
        stats = engine.record_task_completion(user_id, today=date(2025, 3, 4))
        session.commit()

    The engine never commits; the caller owns the transaction so the task
    update and the stats update land together.
    """

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def find_stats(self, user_id: str) -> UserStats | None:
        return self.db.exec(select(UserStats).where(UserStats.user_id == user_id)).first()

    def get_or_create_stats(self, user_id: str) -> UserStats:
        stats = self.find_stats(user_id)
        if stats is None:
            stats = UserStats(user_id=user_id)
            self.db.add(stats)
            self.db.flush()
        return stats

    def record_task_completion(self, user_id: str, today: date) -> UserStats:
        """Award one completion to `user_id` on calendar day `today`."""
        stats = self.get_or_create_stats(user_id)
        previous_level = stats.level
        apply_completion(stats, today)
        self.db.add(stats)

        if stats.level != previous_level:
            logger.info("User %s reached level %s (%d points)", user_id, stats.level, stats.points)
        logger.debug(
            "Completion recorded for %s: streak=%d points=%d",
            user_id, stats.current_streak, stats.points,
        )
        return stats
