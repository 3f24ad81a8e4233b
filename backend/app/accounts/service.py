"""AccountService — registration, login, password reset, account deletion.

Every new account gets its UserStats row at creation time. Deleting an
account runs the whole cascade in one transaction:

    notes → subtasks → focus sessions → tasks → contacts
          → team memberships → sent invites → stats → user

Tasks owned by other users that were delegated to the deleted account are
un-delegated in the same transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlmodel import Session, col, select

from app.clock import ensure_utc, utcnow
from app.config import settings
from app.delegation.invites import InviteService
from app.delegation.team import TeamService, clear_user_delegation
from app.errors import AuthenticationError, AuthorizationError, StateError, ValidationError
from app.models.stats import UserStats
from app.models.task import DelegationNote, FocusSession, Subtask, Task
from app.models.team import Contact
from app.models.user import User
from app.security.passwords import generate_reset_code, hash_password, verify_password

logger = logging.getLogger(__name__)

_INVALID_LOGIN = "Invalid email or password."
_INVALID_RESET = "Invalid or expired reset code."


def normalize_email(email: str | None) -> str:
    if not email or not email.strip():
        raise ValidationError("Email is required.")
    email = email.strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError("Email is not a valid address.")
    return email


def validate_password(password: str | None) -> str:
    if not password:
        raise ValidationError("Password is required.")
    if len(password) < settings.password_min_length:
        raise ValidationError(f"Password must be at least {settings.password_min_length} characters.")
    return password


class AccountService:
    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise AuthenticationError("Account not found.")
        return user

    def find_by_email(self, email: str) -> User | None:
        return self.db.exec(select(User).where(User.email == email)).first()

    def _new_user(self, **fields) -> User:
        user = User(**fields)
        self.db.add(user)
        self.db.flush()
        self.db.add(UserStats(user_id=user.id))
        return user

    def register(
        self,
        email: str,
        password: str,
        display_name: str | None = None,
        device_id: str | None = None,
    ) -> User:
        """Create an email account.

        If `device_id` names an existing device-only account, that account
        is upgraded in place so its tasks and stats carry over.
        """
        email = normalize_email(email)
        validate_password(password)
        if self.find_by_email(email) is not None:
            raise ValidationError("An account with this email already exists.")

        device_user = None
        if device_id:
            device_user = self.db.exec(
                select(User).where(User.device_id == device_id).where(col(User.email).is_(None))
            ).first()

        if device_user is not None:
            user = device_user
            user.email = email
            user.password_hash = hash_password(password)
            user.display_name = display_name or user.display_name
            self.db.add(user)
        else:
            user = self._new_user(
                email=email,
                password_hash=hash_password(password),
                display_name=display_name or None,
                device_id=device_id or None,
            )
        self.db.commit()
        self.db.refresh(user)
        logger.info("Account registered: %s", user.id)
        return user

    def login(self, email: str, password: str) -> User:
        if not email or not password:
            raise ValidationError("Email and password are required.")
        user = self.find_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", email.strip().lower())
            raise AuthenticationError(_INVALID_LOGIN)
        return user

    def init_device(self, device_id: str | None) -> User:
        """Find or create a device-only account.

        Only accounts without an email are reachable by device id. Once a
        device account has been registered, the device id no longer grants
        a session and the caller must log in.
        """
        if device_id:
            existing = self.db.exec(
                select(User).where(User.device_id == device_id).where(col(User.email).is_(None))
            ).first()
            if existing is not None:
                return existing
            linked = self.db.exec(
                select(User).where(User.device_id == device_id).where(col(User.email).is_not(None))
            ).first()
            if linked is not None:
                logger.warning("Device bootstrap refused for registered account %s", linked.id)
                raise AuthenticationError("This device is linked to an account. Please log in.")
        user = self._new_user(device_id=device_id or None)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_push_settings(
        self,
        user_id: str,
        push_token: str | None = None,
        notifications_enabled: bool | None = None,
        clear_token: bool = False,
    ) -> User:
        """Register the device push token and/or toggle notifications.

        Arguments left as None are not changed; `clear_token` drops a stored
        token (sign-out on the device).
        """
        user = self.get_user(user_id)
        if clear_token:
            user.push_token = None
        elif push_token is not None:
            token = push_token.strip()
            if not token:
                raise ValidationError("Push token must not be empty.")
            user.push_token = token
        if notifications_enabled is not None:
            user.notifications_enabled = notifications_enabled
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Push settings updated for %s (enabled=%s)", user.id, user.notifications_enabled)
        return user

    def update_profile(self, user_id: str, display_name: str | None) -> User:
        user = self.get_user(user_id)
        user.display_name = display_name.strip() if display_name and display_name.strip() else None
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        user = self.get_user(user_id)
        if not user.password_hash:
            raise StateError("This account has no password yet. Register with an email first.")
        if not verify_password(current_password or "", user.password_hash):
            raise AuthorizationError("Current password is incorrect.")
        validate_password(new_password)
        user.password_hash = hash_password(new_password)
        self.db.add(user)
        self.db.commit()

    # === Password reset ===

    def start_password_reset(self, email: str, now: datetime | None = None) -> tuple[User, str] | None:
        """Store a hashed one-time code for the account, if it exists.

        Returns:
            (user, plain code) for the caller to e-mail, or None when no
            account matches. Callers answer identically in both cases.
        """
        now = ensure_utc(now) or utcnow()
        user = self.find_by_email(normalize_email(email))
        if user is None:
            return None
        code = generate_reset_code()
        user.reset_code_hash = hash_password(code)
        user.reset_code_expires_at = now + timedelta(minutes=settings.password_reset_code_ttl_minutes)
        self.db.add(user)
        self.db.commit()
        return user, code

    def reset_password(self, email: str, code: str, new_password: str, now: datetime | None = None) -> User:
        now = ensure_utc(now) or utcnow()
        if not code or not code.strip():
            raise ValidationError("Reset code is required.")
        validate_password(new_password)
        user = self.find_by_email(normalize_email(email))
        if (
            user is None
            or not user.reset_code_hash
            or user.reset_code_expires_at is None
            or ensure_utc(user.reset_code_expires_at) < now
            or not verify_password(code.strip(), user.reset_code_hash)
        ):
            raise ValidationError(_INVALID_RESET)
        user.password_hash = hash_password(new_password)
        user.reset_code_hash = None
        user.reset_code_expires_at = None
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Password reset for %s", user.id)
        return user

    # === Deletion ===

    def delete_account(self, user_id: str) -> None:
        """Remove the account and everything it owns, all or nothing."""
        user = self.get_user(user_id)
        db = self.db
        try:
            task_ids = list(db.exec(select(Task.id).where(Task.user_id == user.id)).all())
            if task_ids:
                for note in db.exec(select(DelegationNote).where(col(DelegationNote.task_id).in_(task_ids))).all():
                    db.delete(note)
                for subtask in db.exec(select(Subtask).where(col(Subtask.task_id).in_(task_ids))).all():
                    db.delete(subtask)
            for focus in db.exec(select(FocusSession).where(FocusSession.user_id == user.id)).all():
                db.delete(focus)
            db.flush()

            for task in db.exec(select(Task).where(Task.user_id == user.id)).all():
                db.delete(task)
            for task in db.exec(select(Task).where(Task.delegated_to_user_id == user.id)).all():
                clear_user_delegation(task)
                db.add(task)
            for contact in db.exec(select(Contact).where(Contact.user_id == user.id)).all():
                db.delete(contact)
            TeamService(db).delete_all_for_user(user.id)
            InviteService(db).delete_sent_by(user.id)
            for stats in db.exec(select(UserStats).where(UserStats.user_id == user.id)).all():
                db.delete(stats)
            db.flush()

            db.delete(user)
            db.commit()
        except Exception:
            db.rollback()
            logger.error("Account deletion rolled back for %s", user_id, exc_info=True)
            raise
        logger.info("Account %s deleted", user_id)
