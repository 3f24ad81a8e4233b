"""Weekly review endpoint.

GET /api/v1/review/weekly — open tasks per lane, stale tasks, this week's
completions and the gamification snapshot. Read-only.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.api.v1.stats import StatsResponse, stats_to_response
from app.api.v1.tasks import TaskResponse, task_to_response
from app.clock import utcnow
from app.db.database import get_session
from app.engines.gamification import WeeklyStats
from app.middleware.auth import current_user_id
from app.review.weekly import WeeklyReviewAggregator

router = APIRouter(prefix="/api/v1/review", tags=["review"])


class WeeklyReviewResponse(BaseModel):
    generated_at: datetime
    lanes: dict[str, list[TaskResponse]] = Field(default_factory=dict)
    counts: dict[str, int] = Field(default_factory=dict)
    stale: dict[str, list[TaskResponse]] = Field(default_factory=dict)
    stale_total: int = 0
    park_overloaded: bool = False
    completed_this_week: list[TaskResponse] = Field(default_factory=list)
    week: WeeklyStats
    stats: StatsResponse


@router.get("/weekly", response_model=WeeklyReviewResponse)
def weekly_review(
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> WeeklyReviewResponse:
    review = WeeklyReviewAggregator(session).build(user_id, utcnow())
    return WeeklyReviewResponse(
        generated_at=review.generated_at,
        lanes={lane: [task_to_response(t) for t in tasks] for lane, tasks in review.open_by_lane.items()},
        counts=review.counts,
        stale={lane: [task_to_response(t) for t in tasks] for lane, tasks in review.stale_by_lane.items()},
        stale_total=review.stale_total,
        park_overloaded=review.park_overloaded,
        completed_this_week=[task_to_response(t) for t in review.completed_this_week],
        week=review.week,
        stats=stats_to_response(review.stats),
    )
