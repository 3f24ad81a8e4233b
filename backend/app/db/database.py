"""Database setup — SQLite with WAL mode via SQLModel/SQLAlchemy.

Design decisions:
- SQLModel: one class per table doubles as the Pydantic schema
- SQLite WAL mode: concurrent reads while a request writes
- foreign_keys=ON: owning relations (task → user, subtask → task, ...) are
  enforced; weak references (delegatee, note author) are plain columns
- Alembic for migrations: autogenerate from SQLModel table definitions

Any other SQLAlchemy URL (e.g. Postgres) works unchanged; the PRAGMAs are only
issued on SQLite connections.
"""

from __future__ import annotations

import os
import sqlite3

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from app.config import settings


def get_database_url() -> str:
    """Get database URL, ensuring the data directory exists."""
    url = settings.database_url
    if url.startswith("sqlite:///"):
        db_path = url.replace("sqlite:///", "")
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
    return url


@event.listens_for(Engine, "connect")
def set_sqlite_pragmas(dbapi_connection, connection_record):
    """Enable WAL mode and foreign-key enforcement for SQLite connections."""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.execute("PRAGMA busy_timeout=5000")    # 5s wait on lock
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}  # Required for SQLite + threadpool handlers
    return {}


engine = create_engine(
    get_database_url(),
    echo=False,
    connect_args=_connect_args(settings.database_url),
)


def create_db_and_tables():
    """Create all tables defined by SQLModel metadata."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for FastAPI endpoints."""
    with Session(engine) as session:
        yield session
