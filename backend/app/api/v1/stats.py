"""Gamification stats endpoint.

GET /api/v1/stats — streak, points, level, progress and unlocked achievements
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.db.database import get_session
from app.engines.gamification import (
    GamificationEngine,
    level_progress,
    points_to_next_level,
    unlocked_achievements,
)
from app.middleware.auth import current_user_id
from app.models.stats import UserStats

router = APIRouter(prefix="/api/v1", tags=["stats"])


class AchievementResponse(BaseModel):
    id: str
    title: str
    description: str


class StatsResponse(BaseModel):
    points: int
    total_tasks_completed: int
    current_streak: int
    longest_streak: int
    level: str
    last_active_date: date | None = None
    level_progress: float
    points_to_next_level: int
    achievements: list[AchievementResponse] = Field(default_factory=list)


def stats_to_response(stats: UserStats) -> StatsResponse:
    return StatsResponse(
        points=stats.points,
        total_tasks_completed=stats.total_tasks_completed,
        current_streak=stats.current_streak,
        longest_streak=stats.longest_streak,
        level=stats.level,
        last_active_date=stats.last_active_date,
        level_progress=level_progress(stats.points),
        points_to_next_level=points_to_next_level(stats.points),
        achievements=[
            AchievementResponse(id=a.id, title=a.title, description=a.description)
            for a in unlocked_achievements(stats)
        ],
    )


@router.get("/stats", response_model=StatsResponse)
def get_stats(user_id: str = Depends(current_user_id), session: Session = Depends(get_session)) -> StatsResponse:
    stats = GamificationEngine(session).find_stats(user_id) or UserStats(user_id=user_id)
    return stats_to_response(stats)
