"""UTC helpers shared by models, engines and routes.

SQLite drops tzinfo on round trip, so every comparison goes through
ensure_utc().
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def today_utc(now: datetime | None = None) -> date:
    """Calendar date of `now` (default: wall clock) in UTC."""
    return ensure_utc(now or utcnow()).date()
