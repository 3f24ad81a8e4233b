"""Team invite lifecycle.

    create ──► pending ──accept──► accepted   (terminal, creates the team link)
                  │
                  ├──decline──► declined      (terminal, row kept for audit)
                  ├──cancel───► (row deleted)
                  └──regenerate─► pending     (same row, new code, new expiry)

Received invites are soft-closed (decline), sent invites are hard-deleted
(cancel).
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta

from sqlmodel import Session, col, select

from app.clock import ensure_utc, utcnow
from app.config import settings
from app.delegation.invite_codes import generate_unique_code, normalize_invite_code
from app.delegation.team import TeamService
from app.errors import AuthorizationError, NotFoundError, StateError, ValidationError
from app.models.team import TeamInvite
from app.models.user import User

logger = logging.getLogger(__name__)


def is_expired(invite: TeamInvite, now: datetime) -> bool:
    return ensure_utc(invite.expires_at) < ensure_utc(now)


class InviteService:
    """Issues, accepts and closes team invites.

    Usage:
        invites = InviteService(session)
        invite = invites.create_invite(alice.id, "bob@example.com", now=now)
        invites.accept_invite(invite.invite_code, bob.id, now=now)
    """

    def __init__(self, db_session: Session, rng: random.Random | None = None) -> None:
        self.db = db_session
        self.team = TeamService(db_session, rng=rng)

    # === Code generation ===

    def _code_exists(self, code: str) -> bool:
        stmt = select(TeamInvite).where(TeamInvite.invite_code == code)
        return self.db.exec(stmt).first() is not None

    def _new_code(self) -> str:
        return generate_unique_code(
            self._code_exists,
            length=settings.invite_code_length,
            max_attempts=settings.invite_code_max_attempts,
        )

    def _expiry(self, now: datetime) -> datetime:
        return ensure_utc(now) + timedelta(days=settings.invite_ttl_days)

    # === Inviter side ===

    def create_invite(
        self,
        inviter_id: str,
        invitee_email: str | None = None,
        now: datetime | None = None,
    ) -> TeamInvite:
        """Issue a pending invite valid for 7 days."""
        now = ensure_utc(now) or utcnow()
        email = invitee_email.strip().lower() if invitee_email and invitee_email.strip() else None
        if email is not None and "@" not in email:
            raise ValidationError("Invitee email is not a valid address.")

        invite = TeamInvite(
            invite_code=self._new_code(),
            inviter_id=inviter_id,
            invitee_email=email,
            status="pending",
            created_at=now,
            expires_at=self._expiry(now),
        )
        self.db.add(invite)
        self.db.commit()
        self.db.refresh(invite)
        logger.info("Invite %s created by %s", invite.id, inviter_id)
        return invite

    def _sent_invite(self, invite_id: str, caller_id: str) -> TeamInvite:
        invite = self.db.get(TeamInvite, invite_id)
        if invite is None or invite.inviter_id != caller_id:
            raise AuthorizationError()
        return invite

    def list_sent_invites(self, inviter_id: str) -> list[TeamInvite]:
        stmt = (
            select(TeamInvite)
            .where(TeamInvite.inviter_id == inviter_id)
            .order_by(col(TeamInvite.created_at).desc())
        )
        return list(self.db.exec(stmt).all())

    def regenerate_invite(self, invite_id: str, caller_id: str, now: datetime | None = None) -> TeamInvite:
        """New code, status back to pending, fresh expiry; same row."""
        now = ensure_utc(now) or utcnow()
        invite = self._sent_invite(invite_id, caller_id)
        invite.invite_code = self._new_code()
        invite.status = "pending"
        invite.expires_at = self._expiry(now)
        self.db.add(invite)
        self.db.commit()
        self.db.refresh(invite)
        logger.info("Invite %s regenerated", invite.id)
        return invite

    def resend_invite(self, invite_id: str, caller_id: str, now: datetime | None = None) -> TeamInvite:
        """Return a usable invite: unchanged if still pending, else regenerated."""
        now = ensure_utc(now) or utcnow()
        invite = self._sent_invite(invite_id, caller_id)
        if invite.status == "pending" and not is_expired(invite, now):
            return invite
        return self.regenerate_invite(invite_id, caller_id, now=now)

    def cancel_sent_invite(self, invite_id: str, caller_id: str) -> None:
        """Hard-delete an invite the caller sent."""
        invite = self._sent_invite(invite_id, caller_id)
        self.db.delete(invite)
        self.db.commit()
        logger.info("Invite %s cancelled by %s", invite_id, caller_id)

    # === Invitee side ===

    def list_received_invites(self, user_id: str, now: datetime | None = None) -> list[TeamInvite]:
        """Pending, unexpired invites addressed to the user's e-mail."""
        now = ensure_utc(now) or utcnow()
        user = self.db.get(User, user_id)
        if user is None or not user.email:
            return []
        stmt = (
            select(TeamInvite)
            .where(TeamInvite.invitee_email == user.email.lower())
            .where(TeamInvite.status == "pending")
            .order_by(col(TeamInvite.created_at).desc())
        )
        return [i for i in self.db.exec(stmt).all() if not is_expired(i, now)]

    def decline_invite(self, invite_id: str, caller_id: str) -> TeamInvite:
        """Soft-close an invite addressed to the caller."""
        invite = self.db.get(TeamInvite, invite_id)
        caller = self.db.get(User, caller_id)
        if (
            invite is None
            or caller is None
            or not caller.email
            or invite.invitee_email != caller.email.lower()
        ):
            raise AuthorizationError()
        if invite.status != "pending":
            raise StateError(f"This invite was already {invite.status}.")
        invite.status = "declined"
        self.db.add(invite)
        self.db.commit()
        self.db.refresh(invite)
        return invite

    def accept_invite(self, code: str, accepting_user_id: str, now: datetime | None = None) -> TeamInvite:
        """Redeem an invite code and link the two accounts.

        Rejects unknown codes, expired invites (whatever their status),
        invites no longer pending, and self-acceptance. If the two users are
        already linked the invite is still marked accepted but no rows are
        added.
        """
        now = ensure_utc(now) or utcnow()
        if not code or not code.strip():
            raise ValidationError("Invite code is required.")

        stmt = select(TeamInvite).where(TeamInvite.invite_code == normalize_invite_code(code))
        invite = self.db.exec(stmt).first()
        if invite is None:
            raise NotFoundError("Invalid invite code.")
        if is_expired(invite, now):
            raise StateError("This invite has expired. Ask your teammate for a new code.")
        if invite.status != "pending":
            raise StateError("This invite has already been used.")
        if invite.inviter_id == accepting_user_id:
            raise StateError("You cannot accept your own invite.")

        inviter = self.db.get(User, invite.inviter_id)
        invitee = self.db.get(User, accepting_user_id)
        if inviter is None or invitee is None:
            raise NotFoundError("Invalid invite code.")

        try:
            if self.team.are_linked(inviter.id, invitee.id):
                logger.info("Invite %s accepted; %s and %s already linked", invite.id, inviter.id, invitee.id)
            else:
                self.team.link_users(inviter, invitee)
                logger.info("Invite %s accepted; linked %s <-> %s", invite.id, inviter.id, invitee.id)
            invite.status = "accepted"
            self.db.add(invite)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(invite)
        return invite

    def delete_sent_by(self, inviter_id: str) -> None:
        """Drop every invite the user sent (account deletion)."""
        for invite in self.db.exec(select(TeamInvite).where(TeamInvite.inviter_id == inviter_id)).all():
            self.db.delete(invite)
