"""
Application-wide constants.

Centralize magic strings and protocol values here.
"""

from enum import Enum


# ========================================
# Content Types
# ========================================

class ContentType(str, Enum):
    """
    Kinds of content a viewer can send heartbeats for.

    Each content type has its own heartbeat table.

    Usage:
        ContentType.STREAM == "stream"  # True
    """

    STREAM = "stream"
    """A live stream (counts include the baseline while live)."""

    VOD = "vod"
    """A recorded stream played back on demand."""

    PROMOTED_STREAM = "promoted_stream"
    """A paid placement; heartbeats also earn viewer points."""

    @property
    def label(self) -> str:
        """Human-readable name used in log lines and error messages."""
        return {
            ContentType.STREAM: "stream",
            ContentType.VOD: "VOD",
            ContentType.PROMOTED_STREAM: "promoted stream",
        }[self]


# ========================================
# Stream Status
# ========================================

class StreamStatus(str, Enum):
    """Lifecycle states of a stream row."""

    LIVE = "live"
    OFFLINE = "offline"
    ENDED = "ended"


# ========================================
# Watch Sessions
# ========================================

class SessionType(str, Enum):
    """What a watch session is attached to."""

    VOD = "vod"
    STREAM = "stream"


# ========================================
# Viewer Points
# ========================================

ACTION_TYPE_WATCH_TIME = "watch_time"

# ========================================
# HTTP
# ========================================

UNKNOWN_CLIENT_IP = "unknown"

CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

# Heartbeat intervals (seconds) used by viewer clients
STREAM_HEARTBEAT_INTERVAL = 12.0
OPTIMISTIC_HEARTBEAT_INTERVAL = 5.0
VOD_HEARTBEAT_INTERVAL = 10.0
PROMOTED_HEARTBEAT_INTERVAL = 15.0
BATCH_TRACK_INTERVAL = 4.0
BATCH_FLUSH_DELAY = 1.0
VIEWER_COUNT_POLL_INTERVAL = 2.5
