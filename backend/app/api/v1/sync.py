"""Offline sync endpoint.

POST /api/v1/sync — import locally created tasks (with subtasks and notes)
and contacts. Rows whose id already exists are skipped; client stats in the
payload are ignored, the server's UserStats is authoritative.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.api.v1.stats import StatsResponse, stats_to_response
from app.db.database import get_session
from app.engines.gamification import GamificationEngine
from app.middleware.auth import current_user_id
from app.models.stats import UserStats
from app.store.sync import SyncContact, SyncService, SyncTask

router = APIRouter(prefix="/api/v1", tags=["sync"])


class SyncRequest(BaseModel):
    tasks: list[SyncTask] = Field(default_factory=list, max_length=1000)
    contacts: list[SyncContact] = Field(default_factory=list, max_length=500)
    stats: dict[str, Any] | None = None  # accepted for client compatibility, never applied


class SyncResponse(BaseModel):
    tasks_inserted: int
    tasks_skipped: int
    contacts_inserted: int
    contacts_skipped: int
    stats: StatsResponse


@router.post("/sync", response_model=SyncResponse)
def sync(
    req: SyncRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> SyncResponse:
    result = SyncService(session).import_client_state(user_id, req.tasks, req.contacts)
    stats = GamificationEngine(session).find_stats(user_id) or UserStats(user_id=user_id)
    return SyncResponse(**result.model_dump(), stats=stats_to_response(stats))
