"""Pytest configuration and fixtures."""

import os
import tempfile
from datetime import datetime, time
from typing import Generator

os.environ.setdefault("SIGNAGE_DATABASE_URL", "sqlite://")
os.environ.setdefault("SIGNAGE_STORAGE_DIR", tempfile.mkdtemp(prefix="luminasign-test-"))
os.environ.setdefault("SIGNAGE_SCREEN_STATUS_SWEEP_SEC", "3600")
os.environ["SIGNAGE_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from luminasign.db import Base, get_db
from luminasign.main import app
from luminasign.models.media import Media
from luminasign.models.playlist import Playlist, PlaylistItem
from luminasign.models.schedule import Schedule
from luminasign.models.screen import Screen

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# 2024-06-03 is a Monday (weekday 1, Sunday = 0).
MONDAY_NOON = datetime(2024, 6, 3, 12, 0)


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin the schedule wall clock used by the resolution endpoints."""
    def _freeze(value: datetime = MONDAY_NOON) -> datetime:
        monkeypatch.setattr("luminasign.api.screen.schedule_now", lambda: value)
        monkeypatch.setattr("luminasign.api.player.schedule_now", lambda: value)
        monkeypatch.setattr("luminasign.api.schedule.schedule_now", lambda: value)
        return value

    return _freeze


@pytest.fixture
def test_media(db_session: Session) -> list[Media]:
    rows = [
        Media(name="Welcome", type="image", url="https://cdn.example.com/welcome.png", duration_sec=8, size=10),
        Media(name="Promo Video", type="video", url="https://cdn.example.com/promo.mp4", duration_sec=20, size=10),
    ]
    for row in rows:
        db_session.add(row)
    db_session.commit()
    for row in rows:
        db_session.refresh(row)
    return rows


@pytest.fixture
def test_playlists(db_session: Session, test_media: list[Media]) -> list[Playlist]:
    default_loop = Playlist(name="Default Loop", user_id="user1")
    lunch = Playlist(name="Lunch", user_id="user1")
    db_session.add(default_loop)
    db_session.add(lunch)
    db_session.flush()
    db_session.add(PlaylistItem(playlist_id=default_loop.id, media_id=test_media[0].id, order=1, duration_sec=8))
    db_session.add(PlaylistItem(playlist_id=default_loop.id, media_id=test_media[1].id, order=2, duration_sec=20))
    db_session.add(PlaylistItem(playlist_id=lunch.id, media_id=test_media[1].id, order=1, duration_sec=15))
    db_session.commit()
    db_session.refresh(default_loop)
    db_session.refresh(lunch)
    return [default_loop, lunch]


@pytest.fixture
def test_screen(db_session: Session, test_playlists: list[Playlist]) -> Screen:
    screen = Screen(
        name="Lobby TV",
        pairing_code="654321",
        status="online",
        current_playlist_id=test_playlists[0].id,
        last_heartbeat=datetime.utcnow(),
        user_id="user1",
    )
    db_session.add(screen)
    db_session.commit()
    db_session.refresh(screen)
    return screen


@pytest.fixture
def lunch_schedule(db_session: Session, test_screen: Screen, test_playlists: list[Playlist]) -> Schedule:
    schedule = Schedule(
        screen_id=test_screen.id,
        playlist_id=test_playlists[1].id,
        start_time=time(11, 30),
        end_time=time(14, 0),
        days="1,2,3,4,5",
    )
    db_session.add(schedule)
    db_session.commit()
    db_session.refresh(schedule)
    return schedule
