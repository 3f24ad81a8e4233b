"""Tests for invite codes and the invite lifecycle."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite://")

import random
from datetime import timedelta

import pytest
from sqlmodel import select

from app.clock import ensure_utc
from app.delegation.invite_codes import INVITE_ALPHABET, generate_invite_code, generate_unique_code
from app.delegation.invites import InviteService, is_expired
from app.delegation.team import TeamService
from app.errors import (
    AuthorizationError,
    InviteCodeExhaustedError,
    NotFoundError,
    StateError,
    ValidationError,
)
from app.models.team import TeamInvite, TeamMember


class TestInviteCodes:
    def test_code_shape(self):
        code = generate_invite_code()
        assert len(code) == 8
        assert all(ch in INVITE_ALPHABET for ch in code)

    def test_alphabet_excludes_ambiguous_characters(self):
        assert len(INVITE_ALPHABET) == 31
        for ch in "01ILO":
            assert ch not in INVITE_ALPHABET

    def test_retries_on_collision(self):
        codes = iter(["TAKEN111", "FREE2222"])
        code = generate_unique_code(lambda c: c == "TAKEN111", generator=lambda n: next(codes))
        assert code == "FREE2222"

    def test_exhaustion_after_max_attempts(self):
        calls = []

        def gen(n):
            calls.append(n)
            return "SAMECODE"

        with pytest.raises(InviteCodeExhaustedError) as exc:
            generate_unique_code(lambda c: True, max_attempts=5, generator=gen)
        assert len(calls) == 5
        assert exc.value.attempts == 5
        assert exc.value.status_code == 503


class TestCreateAndManage:
    def test_create_pending_with_seven_day_expiry(self, session, make_user, now):
        alice = make_user()
        invite = InviteService(session).create_invite(alice.id, "Bob@Example.com", now=now)
        assert invite.status == "pending"
        assert invite.invitee_email == "bob@example.com"
        assert ensure_utc(invite.expires_at) == now + timedelta(days=7)

    def test_regenerate_keeps_row_and_resets(self, session, make_user, now):
        alice = make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        old_code = invite.invite_code
        later = now + timedelta(days=10)
        regenerated = service.regenerate_invite(invite.id, alice.id, now=later)
        assert regenerated.id == invite.id
        assert regenerated.invite_code != old_code
        assert regenerated.status == "pending"
        assert ensure_utc(regenerated.expires_at) == later + timedelta(days=7)

    def test_resend_returns_usable_invite_unchanged(self, session, make_user, now):
        alice = make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        code = invite.invite_code
        assert service.resend_invite(invite.id, alice.id, now=now + timedelta(days=1)).invite_code == code

    def test_resend_regenerates_expired_invite(self, session, make_user, now):
        alice = make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        code = invite.invite_code
        resent = service.resend_invite(invite.id, alice.id, now=now + timedelta(days=8))
        assert resent.invite_code != code

    def test_cancel_only_by_inviter(self, session, make_user, now):
        alice, bob = make_user(), make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        with pytest.raises(AuthorizationError):
            service.cancel_sent_invite(invite.id, bob.id)
        service.cancel_sent_invite(invite.id, alice.id)
        assert session.get(TeamInvite, invite.id) is None


class TestAccept:
    def test_accept_links_both_directions(self, session, make_user, now):
        alice = make_user(display_name="Alice")
        bob = make_user(email="bob@example.com")
        service = InviteService(session, rng=random.Random(7))
        invite = service.create_invite(alice.id, "bob@example.com", now=now)

        accepted = service.accept_invite(invite.invite_code.lower(), bob.id, now=now + timedelta(days=1))
        assert accepted.status == "accepted"

        rows = session.exec(select(TeamMember)).all()
        assert {(r.user_id, r.teammate_id) for r in rows} == {(alice.id, bob.id), (bob.id, alice.id)}
        by_owner = {r.user_id: r for r in rows}
        assert by_owner[bob.id].nickname == "Alice"
        assert by_owner[alice.id].nickname == "bob"
        assert by_owner[alice.id].color != by_owner[bob.id].color

    def test_expired_invite_rejected(self, session, make_user, now):
        alice, bob = make_user(), make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        with pytest.raises(StateError, match="expired"):
            service.accept_invite(invite.invite_code, bob.id, now=now + timedelta(days=8))
        assert session.exec(select(TeamMember)).all() == []

    def test_unknown_code_is_not_found(self, session, make_user, now):
        bob = make_user()
        with pytest.raises(NotFoundError):
            InviteService(session).accept_invite("ZZZZZZZZ", bob.id, now=now)

    def test_empty_code_is_validation_error(self, session, make_user, now):
        bob = make_user()
        with pytest.raises(ValidationError):
            InviteService(session).accept_invite("  ", bob.id, now=now)

    def test_cannot_accept_own_invite(self, session, make_user, now):
        alice = make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        with pytest.raises(StateError, match="own invite"):
            service.accept_invite(invite.invite_code, alice.id, now=now)

    def test_used_invite_cannot_be_reused(self, session, make_user, now):
        alice, bob, carol = make_user(), make_user(), make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        service.accept_invite(invite.invite_code, bob.id, now=now)
        with pytest.raises(StateError, match="already been used"):
            service.accept_invite(invite.invite_code, carol.id, now=now)

    def test_already_linked_marks_accepted_without_duplicates(self, session, make_user, now):
        alice, bob = make_user(), make_user()
        service = InviteService(session)
        first = service.create_invite(alice.id, now=now)
        service.accept_invite(first.invite_code, bob.id, now=now)
        second = service.create_invite(alice.id, now=now)
        accepted = service.accept_invite(second.invite_code, bob.id, now=now)
        assert accepted.status == "accepted"
        assert len(session.exec(select(TeamMember)).all()) == 2
        assert TeamService(session).are_linked(alice.id, bob.id)


class TestExpiry:
    def test_boundary_is_inclusive_of_expires_at(self, session, make_user, now):
        alice, bob = make_user(), make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        expires_at = ensure_utc(invite.expires_at)
        assert expires_at == now + timedelta(days=7)

        assert is_expired(invite, expires_at) is False
        assert is_expired(invite, expires_at + timedelta(microseconds=1)) is True
        assert service.accept_invite(invite.invite_code, bob.id, now=expires_at).status == "accepted"

    def test_one_microsecond_late_is_rejected(self, session, make_user, now):
        alice, bob = make_user(), make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        late = ensure_utc(invite.expires_at) + timedelta(microseconds=1)
        with pytest.raises(StateError, match="expired"):
            service.accept_invite(invite.invite_code, bob.id, now=late)

    def test_expired_reported_even_after_accept(self, session, make_user, now):
        alice, bob, carol = make_user(), make_user(), make_user()
        service = InviteService(session)
        invite = service.create_invite(alice.id, now=now)
        service.accept_invite(invite.invite_code, bob.id, now=now)

        later = now + timedelta(days=8)
        assert is_expired(invite, later) is True
        with pytest.raises(StateError, match="expired"):
            service.accept_invite(invite.invite_code, carol.id, now=later)

    def test_expired_reported_even_after_decline(self, session, make_user, now):
        alice = make_user()
        bob = make_user(email="bob@example.com")
        service = InviteService(session)
        invite = service.create_invite(alice.id, "bob@example.com", now=now)
        service.decline_invite(invite.id, bob.id)

        later = now + timedelta(days=30)
        with pytest.raises(StateError, match="expired"):
            service.accept_invite(invite.invite_code, bob.id, now=later)
        session.refresh(invite)
        assert invite.status == "declined"
        assert session.exec(select(TeamMember)).all() == []


class TestReceivedAndDecline:
    def test_received_lists_pending_unexpired_for_email(self, session, make_user, now):
        alice = make_user()
        bob = make_user(email="bob@example.com")
        service = InviteService(session)
        live = service.create_invite(alice.id, "bob@example.com", now=now)
        service.create_invite(alice.id, "bob@example.com", now=now - timedelta(days=10))
        service.create_invite(alice.id, "carol@example.com", now=now)
        received = service.list_received_invites(bob.id, now=now)
        assert [i.id for i in received] == [live.id]

    def test_decline_requires_matching_email(self, session, make_user, now):
        alice = make_user()
        bob = make_user(email="bob@example.com")
        carol = make_user(email="carol@example.com")
        service = InviteService(session)
        invite = service.create_invite(alice.id, "bob@example.com", now=now)
        with pytest.raises(AuthorizationError):
            service.decline_invite(invite.id, carol.id)
        assert service.decline_invite(invite.id, bob.id).status == "declined"
        with pytest.raises(StateError):
            service.accept_invite(invite.invite_code, bob.id, now=now)
