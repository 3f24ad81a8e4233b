"""Tests for ContactStore and offline sync import."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import timedelta

import pytest
from sqlmodel import select

from app.engines.gamification import GamificationEngine
from app.errors import AuthorizationError, ValidationError
from app.models.task import DelegationNote, Subtask, Task
from app.models.team import Contact
from app.store.contacts import ContactStore
from app.store.sync import SyncContact, SyncService, SyncSubtask, SyncTask
from app.store.tasks import TaskStore


class TestContactStore:
    def test_create_with_default_color(self, session, make_user):
        user = make_user()
        contact = ContactStore(session).create_contact(user.id, " Sam ", role="Plumber")
        assert contact.name == "Sam"
        assert contact.color == "#007AFF"

    def test_rejects_blank_name(self, session, make_user):
        user = make_user()
        with pytest.raises(ValidationError):
            ContactStore(session).create_contact(user.id, "  ")

    def test_delete_unassigns_tasks(self, session, make_user):
        user = make_user()
        contacts = ContactStore(session)
        contact = contacts.create_contact(user.id, "Sam")
        task = TaskStore(session).create_task(user.id, "fix sink")
        task.assigned_contact_id = contact.id
        session.add(task)
        session.commit()

        assert contacts.delete_contact(contact.id, user.id) == 1
        session.refresh(task)
        assert task.assigned_contact_id is None
        assert session.get(Contact, contact.id) is None

    def test_foreign_contact_denied(self, session, make_user):
        alice, bob = make_user(), make_user()
        contact = ContactStore(session).create_contact(alice.id, "Sam")
        with pytest.raises(AuthorizationError):
            ContactStore(session).delete_contact(contact.id, bob.id)


class TestSync:
    def test_inserts_new_rows_with_children(self, session, make_user, now):
        user = make_user()
        result = SyncService(session).import_client_state(
            user.id,
            [SyncTask(id="t-1", title="offline task", lane="later", subtasks=[SyncSubtask(id="s-1", title="step")])],
            [SyncContact(id="c-1", name="Sam")],
            now=now,
        )
        assert result.tasks_inserted == 1
        assert result.contacts_inserted == 1
        task = session.get(Task, "t-1")
        assert task.user_id == user.id
        assert task.lane == "later"
        assert session.get(Subtask, "s-1").task_id == "t-1"

    def test_first_insert_wins(self, session, make_user, now):
        user = make_user()
        TaskStore(session).create_task(user.id, "server version", task_id="t-1")
        result = SyncService(session).import_client_state(
            user.id,
            [SyncTask(id="t-1", title="client version", subtasks=[SyncSubtask(id="s-9", title="ignored")])],
            [],
            now=now,
        )
        assert result.tasks_skipped == 1
        assert session.get(Task, "t-1").title == "server version"
        assert session.get(Subtask, "s-9") is None

    def test_existing_id_owned_by_someone_else_is_untouched(self, session, make_user, now):
        alice, bob = make_user(), make_user()
        TaskStore(session).create_task(alice.id, "alice's", task_id="shared-id")
        SyncService(session).import_client_state(bob.id, [SyncTask(id="shared-id", title="bob's")], [], now=now)
        task = session.get(Task, "shared-id")
        assert task.user_id == alice.id
        assert task.title == "alice's"

    def test_completed_tasks_do_not_award_points(self, session, make_user, now):
        user = make_user()
        SyncService(session).import_client_state(
            user.id,
            [SyncTask(id="t-2", title="done offline", completed_at=now - timedelta(hours=2))],
            [],
            now=now,
        )
        assert session.get(Task, "t-2").completed_at is not None
        assert GamificationEngine(session).find_stats(user.id).points == 0

    def test_invalid_row_rejects_whole_batch(self, session, make_user, now):
        user = make_user()
        with pytest.raises(ValidationError):
            SyncService(session).import_client_state(
                user.id,
                [SyncTask(id="ok", title="fine"), SyncTask(id="bad", title="x", lane="nowhere")],
                [],
                now=now,
            )
        assert session.exec(select(Task)).all() == []
        assert session.exec(select(DelegationNote)).all() == []

    def test_reminder_type_carried_over(self, session, make_user, now):
        user = make_user()
        SyncService(session).import_client_state(
            user.id,
            [SyncTask(id="r-1", title="loud", reminder_type="persistent"), SyncTask(id="r-2", title="quiet")],
            [],
            now=now,
        )
        assert session.get(Task, "r-1").reminder_type == "persistent"
        assert session.get(Task, "r-2").reminder_type == "soft"

    def test_unknown_reminder_type_rejects_batch(self, session, make_user, now):
        user = make_user()
        with pytest.raises(ValidationError, match="reminder type"):
            SyncService(session).import_client_state(
                user.id,
                [SyncTask(id="r-3", title="x", reminder_type="loud")],
                [],
                now=now,
            )
        assert session.get(Task, "r-3") is None
