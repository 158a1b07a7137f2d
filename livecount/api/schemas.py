"""
Request bodies.

Field names follow the JSON the web client already sends (camelCase).
Ids are optional at this layer so that a missing id produces the service's
400 message instead of a generic validation error.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class HeartbeatIn(BaseModel):
    streamId: Optional[str] = None
    vodId: Optional[str] = None
    promotedStreamId: Optional[str] = None
    userUuid: Optional[str] = None


class BatchIn(BaseModel):
    # Validated by the service so the error message matches the other routes
    batch: Any = None


class StreamIdIn(BaseModel):
    streamId: Optional[str] = None


class ViewerTokenIn(BaseModel):
    roomName: Optional[str] = None
    participantName: Optional[str] = None


class WatchSessionIn(BaseModel):
    userId: Optional[str] = None
    vodId: Optional[str] = None
    streamId: Optional[str] = None


class ViewerCountOut(BaseModel):
    viewerCount: int = Field(ge=0)


class BatchItemOut(BaseModel):
    streamId: Optional[str] = None
    success: bool
    events: Optional[int] = None
    error: Optional[str] = None


class BatchOut(BaseModel):
    success: bool
    processed: int
    successful: int
    failed: int
    results: List[BatchItemOut]
