"""Team endpoints — linked teammates and invites.

GET    /api/v1/team                         — caller's teammates
DELETE /api/v1/team/{member_id}             — unlink (both directions)
POST   /api/v1/team/invites                 — issue an invite code
GET    /api/v1/team/invites/sent
GET    /api/v1/team/invites/received        — pending invites addressed to the caller's email
POST   /api/v1/team/invites/accept          — redeem a code
POST   /api/v1/team/invites/{id}/decline
POST   /api/v1/team/invites/{id}/regenerate — new code, fresh expiry
POST   /api/v1/team/invites/{id}/resend     — current code if still usable, else regenerate
DELETE /api/v1/team/invites/{id}            — cancel a sent invite
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session, col, select

from app.clock import utcnow
from app.db.database import get_session
from app.delegation.invites import InviteService, is_expired
from app.delegation.team import TeamService
from app.middleware.auth import current_user_id
from app.models.team import TeamInvite, TeamMember
from app.models.user import User

router = APIRouter(prefix="/api/v1/team", tags=["team"])


# === Request / Response Models ===


class CreateInviteRequest(BaseModel):
    invitee_email: str | None = Field(default=None, max_length=255)


class AcceptInviteRequest(BaseModel):
    code: str = Field(max_length=32)


class TeamMemberResponse(BaseModel):
    id: str
    teammate_id: str
    nickname: str
    color: str
    email: str | None = None
    created_at: datetime


class InviteResponse(BaseModel):
    id: str
    invite_code: str
    inviter_id: str
    inviter_name: str = ""
    invitee_email: str | None = None
    status: str
    expired: bool
    created_at: datetime
    expires_at: datetime


class RemoveMemberResponse(BaseModel):
    removed: str
    delegations_cleared: int


def _users_by_id(session: Session, ids: set[str]) -> dict[str, User]:
    if not ids:
        return {}
    return {u.id: u for u in session.exec(select(User).where(col(User.id).in_(ids))).all()}


def _member_to_response(row: TeamMember, mate: User | None) -> TeamMemberResponse:
    return TeamMemberResponse(
        id=row.id,
        teammate_id=row.teammate_id,
        nickname=row.nickname,
        color=row.color,
        email=mate.email if mate else None,
        created_at=row.created_at,
    )


def _invite_to_response(invite: TeamInvite, inviter: User | None = None) -> InviteResponse:
    return InviteResponse(
        id=invite.id,
        invite_code=invite.invite_code,
        inviter_id=invite.inviter_id,
        inviter_name=inviter.public_name() if inviter else "",
        invitee_email=invite.invitee_email,
        status=invite.status,
        expired=is_expired(invite, utcnow()),
        created_at=invite.created_at,
        expires_at=invite.expires_at,
    )


# === Team ===


@router.get("", response_model=list[TeamMemberResponse])
def list_team(user_id: str = Depends(current_user_id), session: Session = Depends(get_session)) -> list[TeamMemberResponse]:
    rows = TeamService(session).list_team(user_id)
    mates = _users_by_id(session, {r.teammate_id for r in rows})
    return [_member_to_response(r, mates.get(r.teammate_id)) for r in rows]


@router.delete("/{member_id}", response_model=RemoveMemberResponse)
def remove_team_member(
    member_id: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> RemoveMemberResponse:
    cleared = TeamService(session).remove_team_member(member_id, user_id)
    return RemoveMemberResponse(removed=member_id, delegations_cleared=cleared)


# === Invites ===


@router.post("/invites", response_model=InviteResponse, status_code=201)
def create_invite(
    req: CreateInviteRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> InviteResponse:
    invite = InviteService(session).create_invite(user_id, req.invitee_email)
    return _invite_to_response(invite, session.get(User, user_id))


@router.get("/invites/sent", response_model=list[InviteResponse])
def list_sent_invites(user_id: str = Depends(current_user_id), session: Session = Depends(get_session)) -> list[InviteResponse]:
    me = session.get(User, user_id)
    return [_invite_to_response(i, me) for i in InviteService(session).list_sent_invites(user_id)]


@router.get("/invites/received", response_model=list[InviteResponse])
def list_received_invites(
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> list[InviteResponse]:
    invites = InviteService(session).list_received_invites(user_id)
    inviters = _users_by_id(session, {i.inviter_id for i in invites})
    return [_invite_to_response(i, inviters.get(i.inviter_id)) for i in invites]


@router.post("/invites/accept", response_model=InviteResponse)
def accept_invite(
    req: AcceptInviteRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> InviteResponse:
    invite = InviteService(session).accept_invite(req.code, user_id)
    return _invite_to_response(invite, session.get(User, invite.inviter_id))


@router.post("/invites/{invite_id}/decline", response_model=InviteResponse)
def decline_invite(
    invite_id: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> InviteResponse:
    invite = InviteService(session).decline_invite(invite_id, user_id)
    return _invite_to_response(invite, session.get(User, invite.inviter_id))


@router.post("/invites/{invite_id}/regenerate", response_model=InviteResponse)
def regenerate_invite(
    invite_id: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> InviteResponse:
    invite = InviteService(session).regenerate_invite(invite_id, user_id)
    return _invite_to_response(invite, session.get(User, user_id))


@router.post("/invites/{invite_id}/resend", response_model=InviteResponse)
def resend_invite(
    invite_id: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> InviteResponse:
    invite = InviteService(session).resend_invite(invite_id, user_id)
    return _invite_to_response(invite, session.get(User, user_id))


@router.delete("/invites/{invite_id}", status_code=204)
def cancel_invite(
    invite_id: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> None:
    InviteService(session).cancel_sent_invite(invite_id, user_id)
