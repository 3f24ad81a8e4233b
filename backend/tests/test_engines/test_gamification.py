"""Tests for streaks, points, levels and achievements."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, timedelta, timezone

from app.engines.gamification import (
    GamificationEngine,
    advance_streak,
    apply_completion,
    level_for_points,
    level_progress,
    points_to_next_level,
    unlocked_achievements,
    weekly_stats,
)
from app.models.stats import UserStats
from app.models.task import FocusSession, Task

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestAdvanceStreak:
    def test_first_completion_starts_streak(self):
        assert advance_streak(0, 0, None, date(2025, 3, 10)) == (1, 1)

    def test_same_day_keeps_streak(self):
        assert advance_streak(4, 6, date(2025, 3, 10), date(2025, 3, 10)) == (4, 6)

    def test_consecutive_day_increments(self):
        assert advance_streak(4, 4, date(2025, 3, 9), date(2025, 3, 10)) == (5, 5)

    def test_gap_resets_but_keeps_longest(self):
        assert advance_streak(9, 9, date(2025, 3, 7), date(2025, 3, 10)) == (1, 9)

    def test_longest_tracks_maximum(self):
        assert advance_streak(2, 10, date(2025, 3, 9), date(2025, 3, 10)) == (3, 10)


class TestLevels:
    def test_thresholds(self):
        assert level_for_points(0) == "starter"
        assert level_for_points(99) == "starter"
        assert level_for_points(100) == "focused"
        assert level_for_points(500) == "productive"
        assert level_for_points(1500) == "unstoppable"
        assert level_for_points(5000) == "legendary"
        assert level_for_points(999999) == "legendary"

    def test_progress_and_remaining(self):
        assert level_progress(50) == 50.0
        assert points_to_next_level(50) == 50
        assert level_progress(300) == 50.0
        assert points_to_next_level(5000) == 0
        assert level_progress(6000) == 100.0


class TestApplyCompletion:
    def test_awards_flat_points_and_levels_up(self):
        stats = UserStats(user_id="u1", points=95, total_tasks_completed=9)
        apply_completion(stats, date(2025, 3, 10))
        assert stats.points == 105
        assert stats.level == "focused"
        assert stats.total_tasks_completed == 10
        assert stats.last_active_date == date(2025, 3, 10)
        assert stats.current_streak == 1

    def test_three_consecutive_days(self):
        stats = UserStats(user_id="u1")
        for offset in range(3):
            apply_completion(stats, date(2025, 3, 8) + timedelta(days=offset))
        assert stats.current_streak == 3
        assert stats.longest_streak == 3
        assert stats.points == 30


class TestAchievements:
    def test_fresh_stats_unlock_nothing(self):
        assert unlocked_achievements(UserStats(user_id="u1")) == []

    def test_unlocks_from_snapshot(self):
        stats = UserStats(user_id="u1", points=120, total_tasks_completed=12, current_streak=1, longest_streak=7)
        ids = {a.id for a in unlocked_achievements(stats)}
        assert ids == {"first_task", "tasks_10", "streak_3", "streak_7", "level_focused"}


class TestWeeklyStats:
    def test_counts_only_trailing_window(self):
        recent = Task(user_id="u1", title="a", completed_at=NOW - timedelta(days=1))
        same_day = Task(user_id="u1", title="b", completed_at=NOW - timedelta(days=1, hours=1))
        old = Task(user_id="u1", title="c", completed_at=NOW - timedelta(days=9))
        sessions = [
            FocusSession(user_id="u1", minutes=25, created_at=NOW - timedelta(days=2)),
            FocusSession(user_id="u1", minutes=50, created_at=NOW - timedelta(days=10)),
        ]
        week = weekly_stats([recent, same_day, old], sessions, NOW)
        assert week.tasks_completed == 2
        assert week.days_active == 1
        assert week.focus_minutes == 25


class TestGamificationEngine:
    def test_records_completion_on_existing_row(self, session, make_user):
        user = make_user()
        engine = GamificationEngine(session)
        stats = engine.record_task_completion(user.id, date(2025, 3, 10))
        session.commit()
        assert stats.points == 10
        assert engine.find_stats(user.id).points == 10

    def test_get_or_create_is_single_row(self, session, make_user):
        user = make_user()
        engine = GamificationEngine(session)
        first = engine.get_or_create_stats(user.id)
        second = engine.get_or_create_stats(user.id)
        assert first.id == second.id
