"""
Services Package
================

Business logic layer for livecount.

Services take a SQLAlchemy session and leave commits to the caller.

Available services:
- HeartbeatService: heartbeat ingestion and active viewer counting
- BaselineService: baseline-adjusted stream counts and VOD totals
- CachedViewerCountService / StreamDataService: cached stream page reads
- WatchSessionService: watch sessions and VOD view stats
- RoomTokenSigner: viewer room tokens
"""

from livecount.services.baseline import BaselineService, stream_baseline, add_baseline
from livecount.services.cache import TTLCache
from livecount.services.heartbeats import HeartbeatService, ContentRef, BatchResult, client_ip
from livecount.services.viewer_counts import (
    CachedViewerCountService,
    StreamDataService,
    get_viewer_count_cache,
    get_stream_data_cache,
)
from livecount.services.watch_sessions import WatchSessionService
from livecount.services.signer import RoomTokenSigner, get_signer

__all__ = [
    "BaselineService",
    "stream_baseline",
    "add_baseline",
    "TTLCache",
    "HeartbeatService",
    "ContentRef",
    "BatchResult",
    "client_ip",
    "CachedViewerCountService",
    "StreamDataService",
    "get_viewer_count_cache",
    "get_stream_data_cache",
    "WatchSessionService",
    "RoomTokenSigner",
    "get_signer",
]
