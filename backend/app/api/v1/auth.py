"""Account endpoints.

Public (no bearer token):
POST /api/v1/auth/register        — email + password account (upgrades a device account)
POST /api/v1/auth/login           — email + password → session token
POST /api/v1/auth/device          — device-only bootstrap → session token
POST /api/v1/auth/forgot-password — e-mail a 6-digit reset code
POST /api/v1/auth/reset-password  — redeem the code, set a new password

Authenticated:
POST   /api/v1/auth/change-password
GET    /api/v1/auth/me
PUT    /api/v1/auth/me             — display name
PUT    /api/v1/auth/push-token     — register push token, toggle notifications
DELETE /api/v1/auth/account        — delete the account and everything it owns
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.accounts.service import AccountService
from app.config import settings
from app.db.database import get_session
from app.email.sender import send_password_reset_code
from app.middleware.auth import current_user_id
from app.models.user import User
from app.security.session_token import token_for_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


# === Request / Response Models ===


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(max_length=255)
    display_name: str | None = Field(default=None, max_length=255)
    device_id: str | None = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(max_length=255)


class DeviceRequest(BaseModel):
    device_id: str | None = Field(default=None, max_length=255)


class ForgotPasswordRequest(BaseModel):
    email: str = Field(max_length=255)


class ResetPasswordRequest(BaseModel):
    email: str = Field(max_length=255)
    code: str = Field(max_length=16)
    new_password: str = Field(max_length=255)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(max_length=255)
    new_password: str = Field(max_length=255)


class UpdateProfileRequest(BaseModel):
    display_name: str | None = Field(default=None, max_length=255)


class PushTokenRequest(BaseModel):
    """Only fields present in the body are applied; `push_token: null` clears it."""

    push_token: str | None = Field(default=None, max_length=255)
    notifications_enabled: bool | None = None


class UserResponse(BaseModel):
    id: str
    email: str | None = None
    display_name: str | None = None
    device_id: str | None = None
    push_token: str | None = None
    notifications_enabled: bool = False
    created_at: datetime


class SessionResponse(BaseModel):
    token: str
    expires_in_seconds: int
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        device_id=user.device_id,
        push_token=user.push_token,
        notifications_enabled=user.notifications_enabled,
        created_at=user.created_at,
    )


def _session_for(user: User) -> SessionResponse:
    return SessionResponse(
        token=token_for_user(user.id),
        expires_in_seconds=settings.session_token_ttl_hours * 3600,
        user=_to_response(user),
    )


# === Public ===


@router.post("/register", response_model=SessionResponse, status_code=201)
def register(req: RegisterRequest, session: Session = Depends(get_session)) -> SessionResponse:
    user = AccountService(session).register(req.email, req.password, req.display_name, req.device_id)
    return _session_for(user)


@router.post("/login", response_model=SessionResponse)
def login(req: LoginRequest, session: Session = Depends(get_session)) -> SessionResponse:
    user = AccountService(session).login(req.email, req.password)
    return _session_for(user)


@router.post("/device", response_model=SessionResponse)
def init_device(req: DeviceRequest, session: Session = Depends(get_session)) -> SessionResponse:
    user = AccountService(session).init_device(req.device_id)
    return _session_for(user)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(req: ForgotPasswordRequest, session: Session = Depends(get_session)) -> MessageResponse:
    """Always answers the same way so account existence is not revealed."""
    started = AccountService(session).start_password_reset(req.email)
    if started is not None:
        user, code = started
        sent = await send_password_reset_code(user.email, code, settings.password_reset_code_ttl_minutes)
        if not sent:
            logger.warning("Reset code for %s could not be e-mailed", user.id)
    return MessageResponse(message="If an account exists for this email, a reset code has been sent.")


@router.post("/reset-password", response_model=SessionResponse)
def reset_password(req: ResetPasswordRequest, session: Session = Depends(get_session)) -> SessionResponse:
    user = AccountService(session).reset_password(req.email, req.code, req.new_password)
    return _session_for(user)


# === Authenticated ===


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    req: ChangePasswordRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> MessageResponse:
    AccountService(session).change_password(user_id, req.current_password, req.new_password)
    return MessageResponse(message="Password updated.")


@router.get("/me", response_model=UserResponse)
def get_me(user_id: str = Depends(current_user_id), session: Session = Depends(get_session)) -> UserResponse:
    return _to_response(AccountService(session).get_user(user_id))


@router.put("/me", response_model=UserResponse)
def update_me(
    req: UpdateProfileRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> UserResponse:
    return _to_response(AccountService(session).update_profile(user_id, req.display_name))


@router.delete("/account", status_code=204)
def delete_account(user_id: str = Depends(current_user_id), session: Session = Depends(get_session)) -> None:
    AccountService(session).delete_account(user_id)


@router.put("/push-token", response_model=UserResponse)
def update_push_token(
    req: PushTokenRequest,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(get_session),
) -> UserResponse:
    fields = req.model_dump(exclude_unset=True)
    user = AccountService(session).update_push_settings(
        user_id,
        push_token=fields.get("push_token"),
        notifications_enabled=fields.get("notifications_enabled"),
        clear_token="push_token" in fields and fields["push_token"] is None,
    )
    return _to_response(user)
