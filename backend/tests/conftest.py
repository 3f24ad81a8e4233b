"""Shared test fixtures for the Lanes backend tests."""

import os
import sys

import pytest

# Ensure backend is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT_GLOBAL_RPM", "100000")
os.environ.setdefault("RATE_LIMIT_AUTH_RPM", "100000")

from datetime import datetime, timezone

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.db.database import get_session
from app.models.stats import UserStats
from app.models.task import DelegationNote, FocusSession, Subtask, Task  # noqa: F401
from app.models.team import Contact, TeamInvite, TeamMember  # noqa: F401
from app.models.user import User
from app.security.session_token import token_for_user

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test (foreign keys enforced)."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_user(session):
    """Factory: insert a user (with its UserStats row) without password hashing."""
    counter = {"n": 0}

    def _make(email: str | None = None, display_name: str | None = None) -> User:
        counter["n"] += 1
        user = User(
            email=email if email is not None else f"user{counter['n']}@example.com",
            display_name=display_name,
        )
        session.add(user)
        session.flush()
        session.add(UserStats(user_id=user.id))
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def client(engine):
    """TestClient on the full app (middleware included), bound to the test database."""
    from fastapi.testclient import TestClient

    from app.main import app

    def _session_override():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for_user(user_id)}"}


@pytest.fixture
def headers_for():
    """Bearer headers for a user id."""
    return auth_headers
