import pytest

from livecount.core.exceptions import ValidationError, NotFoundError
from livecount.models import VodViewerHeartbeat
from livecount.services.watch_sessions import WatchSessionService


@pytest.fixture
def sessions(db, clock):
    return WatchSessionService(db, clock=clock)


def test_start_vod_session(db, sessions, vod):
    session = sessions.start_session("user-1", vod_id=vod.id)
    db.commit()

    assert session.session_type == "vod"
    assert session.is_active is True
    assert session.duration_seconds == 0
    assert session.ended_at is None


def test_start_stream_session(sessions, live_stream):
    assert sessions.start_session("user-1", stream_id=live_stream.id).session_type == "stream"


@pytest.mark.parametrize("user_id,vod_id,stream_id", [
    (None, "v", None),
    ("user-1", None, None),
    ("user-1", "v", "s"),
])
def test_start_session_validation(sessions, user_id, vod_id, stream_id):
    with pytest.raises(ValidationError):
        sessions.start_session(user_id, vod_id=vod_id, stream_id=stream_id)


def test_start_session_unknown_vod(sessions):
    with pytest.raises(NotFoundError):
        sessions.start_session("user-1", vod_id="missing")


def test_heartbeat_tracks_whole_seconds(db, sessions, vod, clock):
    session = sessions.start_session("user-1", vod_id=vod.id)
    db.commit()

    clock.advance(10.7)
    assert sessions.heartbeat(session.id).duration_seconds == 10

    clock.advance(10)
    db.commit()
    assert sessions.heartbeat(session.id).duration_seconds == 20


def test_end_session_is_idempotent(db, sessions, vod, clock):
    session = sessions.start_session("user-1", vod_id=vod.id)
    clock.advance(42)
    ended = sessions.end_session(session.id)
    db.commit()

    assert ended.is_active is False
    assert ended.duration_seconds == 42

    clock.advance(100)
    again = sessions.end_session(session.id)
    assert again.duration_seconds == 42
    assert sessions.heartbeat(session.id).duration_seconds == 42


def test_unknown_session(sessions):
    with pytest.raises(NotFoundError):
        sessions.heartbeat("missing")


def test_vod_view_stats(db, sessions, vod, clock):
    vod.total_views = 19
    first = sessions.start_session("user-1", vod_id=vod.id)
    second = sessions.start_session("user-2", vod_id=vod.id)
    sessions.start_session("user-3", vod_id=vod.id)
    clock.advance(30)
    sessions.end_session(first.id)
    clock.advance(15)
    sessions.end_session(second.id)
    db.add(VodViewerHeartbeat(vod_id=vod.id, ip_address="203.0.113.1", now=clock()))
    db.add(VodViewerHeartbeat(vod_id=vod.id, ip_address="203.0.113.2", now=clock.advance(-60)))
    clock.advance(60)
    db.commit()

    stats = sessions.vod_view_stats(vod.id)

    # Only ended sessions count towards watch time
    assert stats == {"totalViews": 19, "totalWatchTime": 30 + 45, "currentViewerCount": 1}


def test_vod_view_stats_unknown_vod(sessions):
    assert sessions.vod_view_stats("missing") == {
        "totalViews": 0,
        "totalWatchTime": 0,
        "currentViewerCount": 0,
    }
