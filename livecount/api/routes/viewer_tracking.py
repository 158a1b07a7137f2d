"""Heartbeat ingestion and live viewer count routes.

- `POST /viewer-tracking`: one heartbeat for a stream, VOD or promoted stream
- `GET /viewer-tracking`: current viewer count for the same content
- `POST /batched-viewer-tracking`: many stream heartbeats from one client

Any other method on `/viewer-tracking` answers 405.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from livecount.api.dependencies import (
    commit_session,
    get_client_ip,
    get_heartbeat_service,
    get_json_body,
    parse_body,
)
from livecount.api.schemas import BatchIn, BatchOut, HeartbeatIn, ViewerCountOut
from livecount.database.session import get_db
from livecount.services.heartbeats import ContentRef, HeartbeatService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/viewer-tracking")
def record_heartbeat(
    payload: Dict[str, Any] = Depends(get_json_body),
    ip_address: str = Depends(get_client_ip),
    service: HeartbeatService = Depends(get_heartbeat_service),
    db: Session = Depends(get_db),
):
    """Record a viewer heartbeat.

    Body: `{streamId?, vodId?, promotedStreamId?, userUuid?}`. The first id
    present in that order selects the content; `userUuid` only matters for
    promoted streams, where it earns watch-time points.

    Returns:
        dict: `{"success": true, "message": "Heartbeat recorded"}`.

    Raises:
        ValidationError: 400 on an empty body, bad JSON, or no content id.
        StorageError: 500 if the heartbeat cannot be stored.
    """
    body = parse_body(HeartbeatIn, payload)
    ref = ContentRef.from_ids(body.streamId, body.vodId, body.promotedStreamId)

    service.record_heartbeat(ref, ip_address, user_id=body.userUuid)
    commit_session(db, f"Failed to record {ref.content_type.label} heartbeat")

    return {"success": True, "message": "Heartbeat recorded"}


@router.get("/viewer-tracking", response_model=ViewerCountOut)
def get_viewer_count(
    streamId: Optional[str] = Query(None),
    vodId: Optional[str] = Query(None),
    promotedStreamId: Optional[str] = Query(None),
    service: HeartbeatService = Depends(get_heartbeat_service),
    db: Session = Depends(get_db),
):
    """Current viewer count.

    Stream counts include the baseline while the stream is live, and the
    displayed value is written back to the stream row.

    Returns:
        dict: `{"viewerCount": n}`.
    """
    ref = ContentRef.from_ids(streamId, vodId, promotedStreamId)
    count = service.viewer_count(ref)
    commit_session(db, "Failed to get viewer count")
    return {"viewerCount": count}


@router.post("/batched-viewer-tracking", response_model=BatchOut, response_model_exclude_none=True)
def record_batch(
    payload: Dict[str, Any] = Depends(get_json_body),
    ip_address: str = Depends(get_client_ip),
    service: HeartbeatService = Depends(get_heartbeat_service),
    db: Session = Depends(get_db),
):
    """Record a batch of stream heartbeats.

    Body: `{"batch": [{"streamId": "...", "timestamp": 1700000000000}, ...]}`.
    Events are grouped per stream, so N events for one stream cost one write.

    Returns:
        dict: `{"success": true, "processed", "successful", "failed", "results"}`.
    """
    body = parse_body(BatchIn, payload)
    result = service.record_batch(body.batch, ip_address)
    commit_session(db, "Failed to process batch")
    return result.to_dict()
