from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from property_holds.core.config import get_settings
from property_holds.models.property import Property, PropertyStatus
from property_holds.models.user import User, UserRole
from property_holds.services import db as db_module
from property_holds.services.db import build_engine, build_sessionmaker, init_db
from property_holds.services.events import HoldEvent
from property_holds.services.lifecycle import HoldLifecycleManager
from property_holds.services.policy import HoldConfig

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[HoldEvent] = []

    def publish(self, event: HoldEvent) -> None:
        self.events.append(event)


def seed_directory(session: Session) -> None:
    session.add_all(
        [
            User(id="c1", full_name="Nguyen Van An", role=UserRole.CTV),
            User(id="c2", full_name="Tran Thi Binh", role=UserRole.CTV),
            User(id="admin", full_name="Le Quang Admin", role=UserRole.ADMIN),
            Property(id="p1", title="Sunrise Tower A-1205", status=PropertyStatus.AVAILABLE),
            Property(id="p2", title="Sunrise Tower B-0807", status=PropertyStatus.AVAILABLE),
            Property(id="p-sold", title="Riverside Villa 03", status=PropertyStatus.SOLD),
            Property(id="p-draft", title="Green Park C-0101", status=PropertyStatus.DRAFT),
        ]
    )
    session.commit()


def _reset_caches() -> None:
    get_settings.cache_clear()
    db_module.get_engine.cache_clear()
    db_module.get_sessionmaker.cache_clear()


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'holds.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("HOLD_SWEEP_INTERVAL_SECONDS", "0")
    monkeypatch.setenv("PRIMARY_TIMEZONE", "UTC")
    monkeypatch.delenv("API_TOKEN", raising=False)
    _reset_caches()
    yield url
    if db_module.get_engine.cache_info().currsize:
        db_module.get_engine().dispose()
    _reset_caches()


@pytest.fixture
def engine(database_url):
    engine = build_engine(database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    seed_directory(session)
    yield session
    session.close()


@pytest.fixture
def config() -> HoldConfig:
    return HoldConfig(duration_hours=24, max_extends=2, extend_before_hours=1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def make_manager(session, config, clock, publisher):
    def _make(target: Session | None = None, **overrides) -> HoldLifecycleManager:
        options = {"config": config, "clock": clock, "publisher": publisher}
        options.update(overrides)
        return HoldLifecycleManager(session=target or session, **options)

    return _make


@pytest.fixture
def manager(make_manager) -> HoldLifecycleManager:
    return make_manager()


def hours(value: float) -> timedelta:
    return timedelta(hours=value)


@pytest.fixture
def app_client(database_url):
    from fastapi.testclient import TestClient

    from property_holds.main import app
    from property_holds.services.db import db_session

    with TestClient(app) as client:
        with db_session() as db:
            seed_directory(db)
        yield client


def as_user(user_id: str) -> dict[str, str]:
    return {"x-user-id": user_id}
