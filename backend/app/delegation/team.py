"""Team links between accounts.

A link is stored as two mirrored TeamMember rows, one per direction. Rows
are only created by invite acceptance (see invites.py) and are always
removed in pairs.
"""

from __future__ import annotations

import logging
import random

from sqlmodel import Session, and_, col, or_, select

from app.errors import AuthorizationError
from app.models.task import Task
from app.models.team import TEAM_COLORS, TeamMember
from app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_NICKNAME = "Teammate"


def nickname_for(user: User | None) -> str:
    """Display name, else e-mail local part, else "Teammate"."""
    if user is None:
        return DEFAULT_NICKNAME
    return user.public_name() or DEFAULT_NICKNAME


class TeamService:
    def __init__(self, db_session: Session, rng: random.Random | None = None) -> None:
        self.db = db_session
        self.rng = rng or random.Random()

    def list_team(self, user_id: str) -> list[TeamMember]:
        stmt = select(TeamMember).where(TeamMember.user_id == user_id).order_by(TeamMember.created_at)
        return list(self.db.exec(stmt).all())

    def get_link(self, user_id: str, teammate_id: str) -> TeamMember | None:
        """The (user → teammate) row, if any."""
        stmt = (
            select(TeamMember)
            .where(TeamMember.user_id == user_id)
            .where(TeamMember.teammate_id == teammate_id)
        )
        return self.db.exec(stmt).first()

    def _pair_rows(self, a: str, b: str) -> list[TeamMember]:
        stmt = select(TeamMember).where(
            or_(
                and_(TeamMember.user_id == a, TeamMember.teammate_id == b),
                and_(TeamMember.user_id == b, TeamMember.teammate_id == a),
            )
        )
        return list(self.db.exec(stmt).all())

    def are_linked(self, a: str, b: str) -> bool:
        """True if both directions of the link exist."""
        rows = self._pair_rows(a, b)
        directions = {(r.user_id, r.teammate_id) for r in rows}
        return (a, b) in directions and (b, a) in directions

    def link_users(self, a: User, b: User) -> list[TeamMember]:
        """Add the mirrored pair of rows (not committed).

        Each side gets its own color (the two always differ) and sees the
        other under a nickname derived from the other's profile.
        """
        color_a, color_b = self.rng.sample(TEAM_COLORS, 2)
        existing = {(r.user_id, r.teammate_id) for r in self._pair_rows(a.id, b.id)}
        rows = []
        for owner, mate, color in ((a, b, color_a), (b, a, color_b)):
            if (owner.id, mate.id) in existing:
                continue  # repair a half-missing pair without duplicating
            row = TeamMember(user_id=owner.id, teammate_id=mate.id, nickname=nickname_for(mate), color=color)
            self.db.add(row)
            rows.append(row)
        return rows

    def remove_team_member(self, member_id: str, caller_id: str) -> int:
        """Remove both directions of a link the caller is part of.

        Tasks delegated between the two users lose their user-delegation
        fields in the same transaction, so no task keeps pointing at a
        former teammate.

        Returns:
            Number of tasks whose delegation was cleared.
        """
        row = self.db.get(TeamMember, member_id)
        if row is None or row.user_id != caller_id:
            raise AuthorizationError()

        a, b = row.user_id, row.teammate_id
        try:
            for pair_row in self._pair_rows(a, b):
                self.db.delete(pair_row)
            cleared = self._clear_delegations_between(a, b)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Team link %s <-> %s removed; %d delegated task(s) cleared", a, b, cleared)
        return cleared

    def _clear_delegations_between(self, a: str, b: str) -> int:
        stmt = select(Task).where(
            or_(
                and_(Task.user_id == a, Task.delegated_to_user_id == b),
                and_(Task.user_id == b, Task.delegated_to_user_id == a),
            )
        )
        tasks = self.db.exec(stmt).all()
        for task in tasks:
            clear_user_delegation(task)
            self.db.add(task)
        return len(tasks)

    def delete_all_for_user(self, user_id: str) -> None:
        """Drop every row in which the user appears (account deletion)."""
        stmt = select(TeamMember).where(
            or_(col(TeamMember.user_id) == user_id, col(TeamMember.teammate_id) == user_id)
        )
        for row in self.db.exec(stmt).all():
            self.db.delete(row)


def clear_user_delegation(task: Task) -> None:
    """Reset the TeamMember delegation columns together (keeps the invariant)."""
    task.delegated_to_user_id = None
    task.delegation_status = None
    task.delegated_at = None
    task.last_delegation_update = None
