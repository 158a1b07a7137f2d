"""
FastAPI dependencies.

Route handlers receive ready-made services. Tests override get_db and
get_clock through app.dependency_overrides.
"""

import json
from datetime import datetime
from typing import Any, Callable, Dict, Type, TypeVar

from fastapi import Depends, Request
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from livecount.core.clock import utc_now
from livecount.core.exceptions import ValidationError, StorageError
from livecount.database.session import get_db
from livecount.services.cache import TTLCache
from livecount.services.heartbeats import HeartbeatService, client_ip
from livecount.services.viewer_counts import (
    CachedViewerCountService,
    StreamDataService,
    get_viewer_count_cache,
    get_stream_data_cache,
)
from livecount.services.watch_sessions import WatchSessionService
from livecount.services.signer import RoomTokenSigner, get_signer

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_client_ip(request: Request) -> str:
    return client_ip(request.headers)


async def get_json_body(request: Request) -> Dict[str, Any]:
    """
    Parse a JSON object body, rejecting empty and malformed input.

    Raises:
        ValidationError: "Empty request body" / "Invalid JSON in request body"
    """
    raw = await request.body()
    if not raw or not raw.strip():
        raise ValidationError("Empty request body")
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError("Invalid JSON in request body", details=str(e)) from e
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON in request body", details="Expected a JSON object")
    return data


def parse_body(model: Type[ModelT], payload: Dict[str, Any]) -> ModelT:
    """Validate a parsed JSON body against a request schema."""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError("Invalid request body", details=str(e)) from e


def get_heartbeat_service(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> HeartbeatService:
    return HeartbeatService(db, clock=clock)


def get_cached_viewer_count_service(
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_viewer_count_cache),
) -> CachedViewerCountService:
    return CachedViewerCountService(db, cache)


def get_stream_data_service(
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_stream_data_cache),
) -> StreamDataService:
    return StreamDataService(db, cache)


def get_watch_session_service(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> WatchSessionService:
    return WatchSessionService(db, clock=clock)


def get_room_token_signer() -> RoomTokenSigner:
    return get_signer()


def commit_session(db: Session, message: str) -> None:
    """
    Commit the request's session.

    Raises:
        StorageError: With `message`, if the commit fails
    """
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(message, details=str(e)) from e
