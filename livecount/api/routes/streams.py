"""Stream page read routes and viewer room tokens.

These are the cheap, cached endpoints a stream page polls while it is open.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from livecount.api.dependencies import (
    get_cached_viewer_count_service,
    get_json_body,
    get_room_token_signer,
    get_stream_data_service,
    parse_body,
)
from livecount.api.schemas import StreamIdIn, ViewerCountOut, ViewerTokenIn
from livecount.services.signer import RoomTokenSigner
from livecount.services.viewer_counts import CachedViewerCountService, StreamDataService

router = APIRouter()


@router.post("/cached-viewer-count", response_model=ViewerCountOut)
def cached_viewer_count(
    payload: Dict[str, Any] = Depends(get_json_body),
    service: CachedViewerCountService = Depends(get_cached_viewer_count_service),
):
    """Stored viewer count of a stream (baseline included), cached for 2s.

    Returns:
        dict: `{"viewerCount": n}`.
    """
    body = parse_body(StreamIdIn, payload)
    return {"viewerCount": service.get(body.streamId)}


@router.post("/optimized-stream-data")
def optimized_stream_data(
    payload: Dict[str, Any] = Depends(get_json_body),
    service: StreamDataService = Depends(get_stream_data_service),
):
    """Stream, owner profile and creator avatar in one payload, cached for 3s."""
    body = parse_body(StreamIdIn, payload)
    return service.get(body.streamId)


@router.post("/viewer-token")
def viewer_token(
    payload: Dict[str, Any] = Depends(get_json_body),
    signer: RoomTokenSigner = Depends(get_room_token_signer),
):
    """Issue a subscribe-only room token.

    Returns:
        dict: `{"token", "url", "identity", "name"}`.
    """
    body = parse_body(ViewerTokenIn, payload)
    return signer.viewer_token(body.roomName, body.participantName)
