"""Tests for the lane & staleness policy."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone

import pytest

from app.engines.lanes import (
    days_in_lane,
    default_due_date,
    is_stale,
    lane_counts,
    open_tasks,
    stale_tasks,
    tasks_by_lane,
    validate_lane,
)
from app.errors import ValidationError
from app.models.task import Task

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _task(lane="now", age_days=0.0, completed=False, title="t") -> Task:
    return Task(
        user_id="u1",
        title=title,
        lane=lane,
        created_at=NOW - timedelta(days=age_days),
        completed_at=NOW if completed else None,
    )


class TestValidateLane:
    def test_accepts_all_lanes(self):
        for lane in ("now", "soon", "later", "park"):
            assert validate_lane(lane) == lane

    def test_rejects_unknown_lane(self):
        with pytest.raises(ValidationError, match="Invalid lane"):
            validate_lane("someday")


class TestLaneMembership:
    def test_tasks_by_lane_excludes_completed_and_orders_by_creation(self):
        newer = _task("soon", age_days=1, title="newer")
        older = _task("soon", age_days=3, title="older")
        done = _task("soon", age_days=5, completed=True, title="done")
        other = _task("now", age_days=2)
        assert [t.title for t in tasks_by_lane([newer, done, other, older], "soon")] == ["older", "newer"]

    def test_open_tasks_skips_completed(self):
        assert len(open_tasks([_task(), _task(completed=True)])) == 1

    def test_lane_counts_has_every_lane(self):
        counts = lane_counts([_task("park"), _task("park"), _task("now", completed=True)])
        assert counts == {"now": 0, "soon": 0, "later": 0, "park": 2}

    def test_days_in_lane_counts_from_creation(self):
        assert days_in_lane(_task(age_days=3.5), NOW) == 3


class TestStaleness:
    def test_soon_stale_at_exactly_seven_days(self):
        assert is_stale(_task("soon", age_days=7), NOW) is True

    def test_soon_not_stale_just_before_seven_days(self):
        task = _task("soon")
        task.created_at = NOW - timedelta(days=7) + timedelta(seconds=1)
        assert is_stale(task, NOW) is False

    def test_park_threshold_is_fourteen_days(self):
        assert is_stale(_task("park", age_days=13), NOW) is False
        assert is_stale(_task("park", age_days=14), NOW) is True

    def test_now_and_later_never_stale(self):
        assert is_stale(_task("now", age_days=400), NOW) is False
        assert is_stale(_task("later", age_days=400), NOW) is False

    def test_completed_task_never_stale(self):
        assert is_stale(_task("park", age_days=30, completed=True), NOW) is False

    def test_naive_created_at_is_treated_as_utc(self):
        task = _task("soon")
        task.created_at = (NOW - timedelta(days=8)).replace(tzinfo=None)
        assert is_stale(task, NOW) is True

    def test_custom_thresholds(self):
        assert is_stale(_task("soon", age_days=2), NOW, thresholds={"soon": 1}) is True

    def test_stale_tasks_groups_every_lane(self):
        grouped = stale_tasks(
            [_task("soon", age_days=10), _task("park", age_days=20), _task("park", age_days=1)],
            NOW,
        )
        assert set(grouped) == {"now", "soon", "later", "park"}
        assert len(grouped["soon"]) == 1
        assert len(grouped["park"]) == 1
        assert grouped["now"] == []


class TestDefaultDueDate:
    def test_now_is_end_of_day(self):
        due = default_due_date("now", NOW)
        assert due.date() == NOW.date()
        assert due > NOW
        assert due - NOW < timedelta(hours=12)

    def test_other_lanes_offset_from_creation(self):
        assert default_due_date("soon", NOW) == NOW + timedelta(days=3)
        assert default_due_date("later", NOW) == NOW + timedelta(days=7)
        assert default_due_date("park", NOW) == NOW + timedelta(days=30)

    def test_custom_timings(self):
        timings = {"now": 0, "soon": 7, "later": 14, "park": 90}
        assert default_due_date("soon", NOW, timings) == NOW + timedelta(days=7)
        assert default_due_date("later", NOW, timings) == NOW + timedelta(days=14)

    def test_naive_now_treated_as_utc(self):
        naive = NOW.replace(tzinfo=None)
        assert default_due_date("soon", naive) == NOW + timedelta(days=3)

    def test_rejects_unknown_lane(self):
        with pytest.raises(ValidationError):
            default_due_date("someday", NOW)
