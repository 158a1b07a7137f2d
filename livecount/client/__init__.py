"""
Client Package
==============

Viewer-side pieces: the HTTP client, heartbeat trackers and count display
state.
"""

from livecount.client.http import LivecountClient, ClientError
from livecount.client.trackers import (
    HeartbeatTracker,
    BatchedHeartbeatTracker,
    IntervalRunner,
    stream_heartbeat_tracker,
    vod_heartbeat_tracker,
    promoted_heartbeat_tracker,
)
from livecount.client.counters import OptimisticViewerCounter, ViewerCountPoller

__all__ = [
    "LivecountClient",
    "ClientError",
    "HeartbeatTracker",
    "BatchedHeartbeatTracker",
    "IntervalRunner",
    "stream_heartbeat_tracker",
    "vod_heartbeat_tracker",
    "promoted_heartbeat_tracker",
    "OptimisticViewerCounter",
    "ViewerCountPoller",
]
