"""
Baseline viewer counts.

Live streams display their active viewers plus a per-stream baseline. The
baseline is derived from the stream id alone, so every server process and
every client computes the same number for the same stream:

    h = 0
    for each UTF-16 code unit c of the id:
        h = int32(h * 31 + c)
    baseline = low + abs(h) % (high - low + 1)      # 15..25 by default

VOD total views start from the baseline of the stream they were recorded from.
"""

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from livecount.config import settings
from livecount.core.exceptions import NotFoundError
from livecount.models.stream import Stream, Vod
from livecount.models.heartbeat import VodViewerHeartbeat

logger = logging.getLogger(__name__)


def _to_int32(value: int) -> int:
    """Wrap an integer to a signed 32-bit value."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _string_hash(text: str) -> int:
    """31-multiplier rolling hash over UTF-16 code units, kept in int32 range."""
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h = _to_int32((h << 5) - h + code_unit)
    return h


@lru_cache(maxsize=4096)
def stream_baseline(stream_id: str, low: Optional[int] = None, high: Optional[int] = None) -> int:
    """
    Deterministic baseline viewer count for a stream.

    Args:
        stream_id: Stream identifier
        low: Smallest baseline (default settings.baseline_min)
        high: Largest baseline, inclusive (default settings.baseline_max)

    Returns:
        Integer in [low, high]; the same id always gives the same value

    Example:
        stream_baseline("stream-1")  # e.g. 19, every time
    """
    low = settings.baseline_min if low is None else low
    high = settings.baseline_max if high is None else high
    if high < low:
        raise ValueError(f"Invalid baseline range: {low}..{high}")

    seed = abs(_string_hash(stream_id))
    return low + seed % (high - low + 1)


def add_baseline(actual_count: int, stream_id: str, is_live: bool = True) -> int:
    """Actual count plus the stream baseline, or the actual count when not live."""
    if not is_live:
        return actual_count
    return actual_count + stream_baseline(stream_id)


class BaselineService:
    """
    Stores baseline-adjusted counts on streams and VODs.

    Example:
        service = BaselineService(db)
        shown = service.update_stream_viewer_count(stream.id, actual_count=3)
    """

    def __init__(self, db: Session):
        self.db = db

    def update_stream_viewer_count(self, stream_id: str, actual_count: int) -> int:
        """
        Persist the displayed count for a stream.

        Args:
            stream_id: Stream identifier
            actual_count: Active viewers from heartbeats

        Returns:
            actual_count + baseline while the stream is live, actual_count otherwise

        Raises:
            NotFoundError: If the stream does not exist
        """
        stream = self.db.get(Stream, stream_id)
        if stream is None:
            raise NotFoundError("Stream not found", details=stream_id)

        displayed = add_baseline(actual_count, stream_id, is_live=stream.is_live())
        stream.viewer_count = displayed
        self.db.flush()

        logger.debug(
            "Stream %s: %d actual viewers, %d with baseline",
            stream_id, actual_count, displayed
        )
        return displayed

    def calculate_vod_total_views(self, vod_id: str) -> int:
        """
        Recompute and persist total views for a VOD.

        total_views = baseline of the original stream (0 if none)
                      + distinct IPs that ever sent a heartbeat for the VOD

        Raises:
            NotFoundError: If the VOD does not exist
        """
        vod = self.db.get(Vod, vod_id)
        if vod is None:
            raise NotFoundError("VOD not found", details=vod_id)

        distinct_viewers = (
            self.db.query(func.count(func.distinct(VodViewerHeartbeat.ip_address)))
            .filter(VodViewerHeartbeat.vod_id == vod_id)
            .scalar()
        ) or 0

        baseline = stream_baseline(vod.original_stream_id) if vod.original_stream_id else 0
        vod.total_views = baseline + distinct_viewers
        self.db.flush()
        return vod.total_views
