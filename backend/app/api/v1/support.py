"""Support contact endpoint.

POST /api/v1/support/contact — forward a message to the support inbox.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.db.database import get_session
from app.email.sender import send_support_message
from app.middleware.auth import current_user_id
from app.models.user import User

router = APIRouter(prefix="/api/v1/support", tags=["support"])


class SupportRequest(BaseModel):
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)


class SupportResponse(BaseModel):
    delivered: bool


@router.post("/contact", response_model=SupportResponse)
async def contact_support(
    req: SupportRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> SupportResponse:
    """Delivery is best effort; `delivered` is False when mail is not configured."""
    user = session.get(User, user_id)
    delivered = await send_support_message(user.email if user else None, req.subject.strip(), req.message)
    return SupportResponse(delivered=delivered)
