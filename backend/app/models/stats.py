"""Per-user gamification stats. Mutated only by task completion events."""

from __future__ import annotations

from datetime import date
from uuid import uuid4

from sqlmodel import Field as SQLField
from sqlmodel import SQLModel


class UserStats(SQLModel, table=True):
    """Streak, points and level snapshot for one user."""

    __tablename__ = "user_stats"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = SQLField(foreign_key="users.id", unique=True, index=True)
    points: int = 0
    total_tasks_completed: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    level: str = "starter"
    last_active_date: date | None = None
