"""Watch-session routes and VOD view statistics."""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from livecount.api.dependencies import (
    commit_session,
    get_json_body,
    get_watch_session_service,
    parse_body,
)
from livecount.api.schemas import WatchSessionIn
from livecount.database.session import get_db
from livecount.services.watch_sessions import WatchSessionService

router = APIRouter(tags=["watch-sessions"])


@router.post("/watch-sessions", status_code=201)
def start_watch_session(
    payload: Dict[str, Any] = Depends(get_json_body),
    service: WatchSessionService = Depends(get_watch_session_service),
    db: Session = Depends(get_db),
):
    """Open a watch session for a user on a VOD or a live stream.

    Body: `{"userId": "...", "vodId": "..."}` or `{"userId": "...", "streamId": "..."}`.
    """
    body = parse_body(WatchSessionIn, payload)
    session = service.start_session(body.userId, vod_id=body.vodId, stream_id=body.streamId)
    commit_session(db, "Failed to start watch session")
    return session.to_dict()


@router.post("/watch-sessions/{session_id}/heartbeat")
def watch_session_heartbeat(
    session_id: str,
    service: WatchSessionService = Depends(get_watch_session_service),
    db: Session = Depends(get_db),
):
    session = service.heartbeat(session_id)
    commit_session(db, "Failed to update watch session")
    return session.to_dict()


@router.post("/watch-sessions/{session_id}/end")
def end_watch_session(
    session_id: str,
    service: WatchSessionService = Depends(get_watch_session_service),
    db: Session = Depends(get_db),
):
    session = service.end_session(session_id)
    commit_session(db, "Failed to end watch session")
    return session.to_dict()


@router.get("/vods/{vod_id}/view-stats")
def vod_view_stats(
    vod_id: str,
    service: WatchSessionService = Depends(get_watch_session_service),
):
    """Total views, total watch time and current viewers of a VOD."""
    return service.vod_view_stats(vod_id)
