"""Shared fixtures: a throwaway SQLite database per test and an app bound to it."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from ticketing.config import Settings
from ticketing.database import create_engine, create_session_factory, create_tables
from ticketing.event_lock import LocalEventLocks
from ticketing.main import create_app
from ticketing.stores.event_store import EventStore


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a file-backed SQLite database and in-process locks."""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        LOCK_BACKEND="local",
        LOCK_TIMEOUT_SECONDS=10,
    )


@pytest.fixture
async def engine(settings):
    engine = create_engine(settings)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def locks() -> LocalEventLocks:
    return LocalEventLocks(timeout_seconds=10)


@pytest.fixture
def future_date():
    """Build a whole-second UTC timestamp ``days`` from now."""

    def _future_date(days: int = 30) -> datetime:
        return (datetime.now(timezone.utc) + timedelta(days=days)).replace(microsecond=0)

    return _future_date


@pytest.fixture
def make_event(session, future_date):
    """Create and commit an event directly through the store."""

    async def _make_event(capacity: int = 10, name: str = "Test Event", days: int = 30):
        event = await EventStore(session).create(
            name=name,
            date=future_date(days),
            capacity=capacity,
        )
        await session.commit()
        return event

    return _make_event


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def create_event(client: TestClient, future_date):
    """Create an event through the API and return its JSON."""

    def _create_event(capacity: int = 10, name: str = "API Test Event", days: int = 30) -> dict:
        response = client.post(
            "/api/v1/events",
            json={
                "name": name,
                "description": "An event created by the test suite",
                "date": future_date(days).isoformat(),
                "capacity": capacity,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create_event
