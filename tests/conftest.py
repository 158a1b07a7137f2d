import os

# Point settings at a throwaway database before livecount is imported
os.environ["LIVECOUNT_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LIVECOUNT_APP_DEBUG"] = "false"

from datetime import datetime, timedelta, UTC

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from livecount.api.dependencies import (
    get_clock,
    get_room_token_signer,
    get_stream_data_cache,
    get_viewer_count_cache,
)
from livecount.api.main import app
from livecount.core.constants import StreamStatus
from livecount.database.session import create_db_engine, create_all_tables, get_db
from livecount.models import UserProfile, CreatorProfile, Stream, Vod
from livecount.services.cache import TTLCache
from livecount.services.signer import RoomTokenSigner

TEST_SECRET = "test-secret-test-secret-test-secret-0123"


class FakeClock:
    """Controllable aware-UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeTimer:
    """Controllable monotonic seconds source for TTL caches."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite:///:memory:", echo=False)
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def creator(db):
    user = UserProfile(username="ada", display_name="Ada Live", wallet_address="0xada0000000000000000000000000000000000001")
    db.add(user)
    db.add(CreatorProfile(
        wallet_address=user.wallet_address,
        display_name="Ada Live",
        profile_picture_url="https://cdn.example.com/ada.png",
    ))
    db.commit()
    return user


@pytest.fixture
def live_stream(db, creator):
    stream = Stream(
        user_id=creator.id,
        title="Friday build night",
        thumbnail="https://cdn.example.com/thumb.png",
        status=StreamStatus.LIVE.value,
        viewer_count=0,
    )
    db.add(stream)
    db.commit()
    return stream


@pytest.fixture
def offline_stream(db, creator):
    stream = Stream(user_id=creator.id, title="Off air", status=StreamStatus.OFFLINE.value)
    db.add(stream)
    db.commit()
    return stream


@pytest.fixture
def vod(db, creator, offline_stream):
    vod = Vod(
        user_id=creator.id,
        original_stream_id=offline_stream.id,
        title="Off air (recording)",
        total_views=0,
    )
    db.add(vod)
    db.commit()
    return vod


@pytest.fixture
def signer():
    return RoomTokenSigner(
        api_key="test-key",
        api_secret=TEST_SECRET,
        url="wss://rooms.example.com",
        ttl_seconds=600,
    )


@pytest.fixture
def client(db, clock, timer, signer):
    viewer_count_cache = TTLCache(2.0, clock=timer)
    stream_data_cache = TTLCache(3.0, max_entries=100, clock=timer)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_viewer_count_cache] = lambda: viewer_count_cache
    app.dependency_overrides[get_stream_data_cache] = lambda: stream_data_cache
    app.dependency_overrides[get_room_token_signer] = lambda: signer

    yield TestClient(app)

    app.dependency_overrides.clear()
