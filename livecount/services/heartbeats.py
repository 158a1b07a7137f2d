"""
Heartbeat ingestion and active viewer counting.

Viewers' clients POST a heartbeat every few seconds. Each heartbeat upserts
one row per (content, IP address); a viewer is active while its row was seen
inside the heartbeat window. Counting is approximate by nature: viewers
behind the same IP collapse into one, and a viewer who leaves keeps counting
until the window expires.

Stream counts are passed through the baseline before they are shown.
Promoted-stream heartbeats from signed-in viewers also earn viewer points.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from livecount.config import settings
from livecount.core.clock import utc_now
from livecount.core.constants import (
    ContentType,
    ACTION_TYPE_WATCH_TIME,
    CLIENT_IP_HEADERS,
    UNKNOWN_CLIENT_IP,
)
from livecount.core.exceptions import LivecountError, ValidationError, StorageError
from livecount.core.logging import mask_sensitive
from livecount.models.heartbeat import heartbeat_model_for, PromotedStreamViewerHeartbeat
from livecount.models.points import PromotedStreamViewerPoints
from livecount.services.baseline import BaselineService

logger = logging.getLogger(__name__)


# ========================================
# Request Helpers
# ========================================

@dataclass(frozen=True)
class ContentRef:
    """Which piece of content a heartbeat or count request is about."""

    content_type: ContentType
    content_id: str

    @classmethod
    def from_ids(
        cls,
        stream_id: Optional[str] = None,
        vod_id: Optional[str] = None,
        promoted_stream_id: Optional[str] = None,
    ) -> "ContentRef":
        """
        Pick the content a request refers to.

        Precedence is stream, then VOD, then promoted stream.

        Raises:
            ValidationError: If no id is given
        """
        if stream_id:
            return cls(ContentType.STREAM, stream_id)
        if vod_id:
            return cls(ContentType.VOD, vod_id)
        if promoted_stream_id:
            return cls(ContentType.PROMOTED_STREAM, promoted_stream_id)
        raise ValidationError("Stream ID, VOD ID, or Promoted Stream ID is required")

    def __str__(self) -> str:
        return f"{self.content_type.label} {self.content_id}"


def client_ip(headers: Mapping[str, str]) -> str:
    """
    Best-effort client IP from proxy headers.

    Order: first hop of x-forwarded-for, x-real-ip, cf-connecting-ip.

    Returns:
        The IP, or "unknown" if no header is present
    """
    lowered = {k.lower(): v for k, v in headers.items()}
    for header in CLIENT_IP_HEADERS:
        value = lowered.get(header)
        if not value:
            continue
        if header == "x-forwarded-for":
            value = value.split(",")[0]
        value = value.strip()
        if value:
            return value
    return UNKNOWN_CLIENT_IP


@dataclass
class BatchResult:
    """Outcome of a batched heartbeat request."""

    processed: int
    results: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.get("success"))

    @property
    def failed(self) -> int:
        return len(self.results) - self.successful

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "results": list(self.results),
        }


# ========================================
# Service
# ========================================

class HeartbeatService:
    """
    Records heartbeats and counts active viewers.

    Example:
        service = HeartbeatService(db)
        ref = ContentRef.from_ids(stream_id=stream.id)
        service.record_heartbeat(ref, "203.0.113.7")
        db.commit()
        service.viewer_count(ref)  # active viewers + baseline
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utc_now,
        window_seconds: Optional[int] = None,
    ):
        """
        Args:
            db: Database session (caller commits)
            clock: Returns the current aware UTC time
            window_seconds: Presence window (default settings.heartbeat_window_seconds)
        """
        self.db = db
        self.clock = clock
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.heartbeat_window_seconds
        )

        if self.window_seconds <= 0:
            raise ValueError(f"Heartbeat window must be positive, got {self.window_seconds}")

    # ----------------------------------------
    # Ingestion
    # ----------------------------------------

    def record_heartbeat(self, ref: ContentRef, ip_address: str, user_id: Optional[str] = None):
        """
        Upsert the heartbeat row for (content, IP).

        Args:
            ref: Content the viewer is watching
            ip_address: Client IP
            user_id: Signed-in viewer (promoted streams only)

        Returns:
            The heartbeat row

        Raises:
            StorageError: If the row cannot be written
        """
        now = self.clock()
        model, id_column = heartbeat_model_for(ref.content_type)

        try:
            # Savepoint so a failure here leaves earlier work in the transaction intact
            with self.db.begin_nested():
                row = (
                    self.db.query(model)
                    .filter(getattr(model, id_column) == ref.content_id)
                    .filter(model.ip_address == ip_address)
                    .first()
                )
                if row is None:
                    row = model(now=now, ip_address=ip_address, **{id_column: ref.content_id})
                    self.db.add(row)
                else:
                    row.touch(now)

                if isinstance(row, PromotedStreamViewerHeartbeat) and user_id:
                    row.user_id = user_id
        except SQLAlchemyError as e:
            logger.error("Error upserting %s heartbeat: %s", ref.content_type.label, e)
            raise StorageError(
                f"Failed to record {ref.content_type.label} heartbeat", details=str(e)
            ) from e

        if ref.content_type is ContentType.PROMOTED_STREAM and user_id:
            self._award_watch_points(ref.content_id, user_id, ip_address)
        elif ref.content_type is ContentType.VOD:
            self._refresh_vod_total_views(ref.content_id)

        logger.info(
            "Recorded heartbeat for %s from IP %s", ref, mask_sensitive(ip_address)
        )
        return row

    def _award_watch_points(self, promoted_stream_id: str, user_id: str, ip_address: str) -> None:
        """Credit watch-time points; failures never fail the heartbeat."""
        try:
            with self.db.begin_nested():
                self.db.add(PromotedStreamViewerPoints(
                    promoted_stream_id=promoted_stream_id,
                    user_id=user_id,
                    ip_address=ip_address,
                    points_earned=settings.promoted_points_per_heartbeat,
                    action_type=ACTION_TYPE_WATCH_TIME,
                    watch_time_seconds=settings.promoted_watch_seconds_per_heartbeat,
                ))
        except SQLAlchemyError as e:
            logger.error("Error awarding points to user %s: %s", user_id, e)
            return

        logger.info(
            "Awarded %s points to user %s for promoted stream %s",
            settings.promoted_points_per_heartbeat, user_id, promoted_stream_id
        )

    def _refresh_vod_total_views(self, vod_id: str) -> None:
        """Recount total views for the VOD; failures never fail the heartbeat."""
        try:
            with self.db.begin_nested():
                total = BaselineService(self.db).calculate_vod_total_views(vod_id)
        except (SQLAlchemyError, LivecountError) as e:
            logger.error("Error updating total views for VOD %s: %s", vod_id, e)
            return

        logger.debug("VOD %s total views now %d", vod_id, total)

    def record_batch(self, batch: Any, ip_address: str) -> BatchResult:
        """
        Record a batch of stream heartbeats from one client.

        Items are grouped by streamId; each group costs one upsert no matter
        how many events it holds. A failing group is reported and does not
        stop the others.

        Args:
            batch: List of {"streamId": str, "timestamp": number}
            ip_address: Client IP

        Returns:
            BatchResult with per-stream outcomes

        Raises:
            ValidationError: If batch is not a non-empty list
        """
        if not isinstance(batch, list) or not batch:
            raise ValidationError("Batch array is required")

        logger.info("Processing batch of %d viewer tracking events", len(batch))

        groups: "OrderedDict[Optional[str], int]" = OrderedDict()
        for item in batch:
            stream_id = item.get("streamId") if isinstance(item, dict) else None
            if not isinstance(stream_id, str) or not stream_id:
                stream_id = None
            groups[stream_id] = groups.get(stream_id, 0) + 1

        result = BatchResult(processed=len(batch))
        for stream_id, events in groups.items():
            if not stream_id:
                result.results.append(
                    {"streamId": stream_id, "success": False, "error": "Stream ID is required"}
                )
                continue
            try:
                self.record_heartbeat(ContentRef(ContentType.STREAM, stream_id), ip_address)
            except StorageError as e:
                logger.error("Error recording heartbeat for stream %s: %s", stream_id, e.details)
                result.results.append(
                    {"streamId": stream_id, "success": False, "error": e.details or e.message}
                )
                continue
            result.results.append({"streamId": stream_id, "success": True, "events": events})

        logger.info(
            "Batch processing complete: %d successful, %d failed",
            result.successful, result.failed
        )
        return result

    # ----------------------------------------
    # Counting
    # ----------------------------------------

    def active_since(self) -> datetime:
        """Oldest last_seen_at that still counts as present."""
        return self.clock() - timedelta(seconds=self.window_seconds)

    def count_active_viewers(self, ref: ContentRef) -> int:
        """
        Number of IPs seen for the content inside the window.

        Raises:
            StorageError: If the query fails
        """
        model, id_column = heartbeat_model_for(ref.content_type)
        try:
            return (
                self.db.query(model)
                .filter(getattr(model, id_column) == ref.content_id)
                .filter(model.last_seen_at >= self.active_since())
                .count()
            )
        except SQLAlchemyError as e:
            logger.error("Error counting viewers for %s: %s", ref, e)
            raise StorageError("Failed to count viewers", details=str(e)) from e

    def viewer_count(self, ref: ContentRef) -> int:
        """
        Count to display for the content.

        Streams get the baseline applied and stored on the stream row; if
        that fails the actual count is returned. VODs and promoted streams
        return the actual count.
        """
        actual = self.count_active_viewers(ref)
        logger.info("%s has %d active viewers", ref, actual)

        if ref.content_type is not ContentType.STREAM:
            return actual

        try:
            with self.db.begin_nested():
                displayed = BaselineService(self.db).update_stream_viewer_count(
                    ref.content_id, actual
                )
        except Exception as e:
            logger.error("Error updating stream with consistent baseline: %s", e)
            return actual

        return displayed
