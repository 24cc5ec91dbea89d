"""Shared fixtures: in-memory database, fake notification scheduler, API client."""

import os

# Settings are read at import time; pin them before habitbell is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOCAL_TIMEZONE", "UTC")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "true")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import habitbell.models  # noqa: E402,F401  (registers tables on Base.metadata)
from habitbell.core.database import Base, get_db  # noqa: E402
from habitbell.core.notification_runtime import NotificationRuntime, get_notifications  # noqa: E402
from habitbell.main import app  # noqa: E402
from tests.helpers import FakeScheduler  # noqa: E402


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def runtime(fake_scheduler: FakeScheduler) -> NotificationRuntime:
    return NotificationRuntime(fake_scheduler)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory, runtime):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifications] = lambda: runtime

    # no context manager: startup (table creation, dispatcher loop) stays off
    yield TestClient(app)

    app.dependency_overrides.clear()
