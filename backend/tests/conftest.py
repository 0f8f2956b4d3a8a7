"""Pytest fixtures — file-backed SQLite database, fresh schema per test."""
import os
import time

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.database import Base, get_db
from app.main import app

# Import all models so they register with Base.metadata
from app.models.user import User                     # noqa: F401
from app.models.event import Event                   # noqa: F401
from app.models.member import EventMember            # noqa: F401
from app.models.event_mutation import EventMutation  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"

HOUR_MS = 3_600_000
DAY_MS = 24 * HOUR_MS


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency, and FK enforcement for cascades
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session bound to the per-test engine."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def now_ms() -> int:
    return int(time.time() * 1000)


def future_window(days_ahead: int = 1, length_days: int = 7) -> dict:
    """A time window that opens ``days_ahead`` days from now."""
    start = now_ms() + days_ahead * DAY_MS
    return {"start": start, "end": start + length_days * DAY_MS}


# ---------------------------------------------------------------------------
# Helper: create a user via the API, returns the JSON response dict
# ---------------------------------------------------------------------------
def create_test_user(client: TestClient, name: str = "Test User") -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={"display_name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_event(client: TestClient, actor_id: str, **fields) -> dict:
    """Helper — POST /api/events as ``actor_id`` and return response JSON.

    Defaults to a flexible one-hour event negotiating inside a future window.
    """
    payload = {
        "name": "Test Event",
        "duration": HOUR_MS,
        "scheduling_method": "flexible",
        "time_window": future_window(),
    }
    payload.update(fields)
    resp = client.post(f"/api/events/?actor_user_id={actor_id}", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()
