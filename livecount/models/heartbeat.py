"""
Heartbeat models for viewer presence.

Each (content, IP address) pair owns one row. Every heartbeat moves
last_seen_at forward; a viewer counts as active while last_seen_at is inside
the heartbeat window (20 seconds by default).

There is one table per content type, matching the managed database:
- viewer_heartbeats (live streams)
- vod_viewer_heartbeats (VOD playback)
- promoted_stream_viewer_heartbeats (promoted placements, also carries user_id)
"""

from datetime import datetime
from typing import Optional, Dict, Type

from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from livecount.models.base import Base, BaseModel, new_uuid
from livecount.core.clock import utc_now
from livecount.core.constants import ContentType


class HeartbeatMixin:
    """Columns and behaviour shared by all heartbeat tables."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    ip_address: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Client IP the heartbeat came from"
    )

    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="First heartbeat from this IP for this content"
    )

    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Most recent heartbeat"
    )

    total_heartbeats: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Heartbeats received from this IP"
    )

    # ========================================
    # Business Logic Methods
    # ========================================

    def touch(self, now: datetime) -> None:
        """Register another heartbeat at `now`."""
        self.last_seen_at = now
        self.total_heartbeats = (self.total_heartbeats or 0) + 1

    def __init__(self, **kwargs):
        """Initialize heartbeat timestamps to now unless given."""
        now = kwargs.pop("now", None) or utc_now()
        kwargs.setdefault("first_seen_at", now)
        kwargs.setdefault("last_seen_at", now)
        kwargs.setdefault("total_heartbeats", 1)
        super().__init__(**kwargs)

        if not self.ip_address:
            raise ValueError("ip_address is required")


class ViewerHeartbeat(HeartbeatMixin, BaseModel, Base):
    """Presence of one IP on a live stream."""

    __tablename__ = "viewer_heartbeats"

    stream_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("streams.id"),
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint("stream_id", "ip_address", name="uq_viewer_heartbeats_stream_ip"),
        Index("ix_viewer_heartbeats_stream_seen", "stream_id", "last_seen_at"),
    )

    def __repr__(self) -> str:
        return f"<ViewerHeartbeat(stream='{self.stream_id}', ip='{self.ip_address}')>"


class VodViewerHeartbeat(HeartbeatMixin, BaseModel, Base):
    """Presence of one IP on a VOD."""

    __tablename__ = "vod_viewer_heartbeats"

    vod_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("vods.id"),
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint("vod_id", "ip_address", name="uq_vod_viewer_heartbeats_vod_ip"),
        Index("ix_vod_viewer_heartbeats_vod_seen", "vod_id", "last_seen_at"),
    )

    def __repr__(self) -> str:
        return f"<VodViewerHeartbeat(vod='{self.vod_id}', ip='{self.ip_address}')>"


class PromotedStreamViewerHeartbeat(HeartbeatMixin, BaseModel, Base):
    """Presence of one IP on a promoted stream placement."""

    __tablename__ = "promoted_stream_viewer_heartbeats"

    # Promoted streams live in a separate placement table, no FK here
    promoted_stream_id: Mapped[str] = mapped_column(String(36), nullable=False)

    user_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="Signed-in viewer, if any"
    )

    __table_args__ = (
        UniqueConstraint(
            "promoted_stream_id", "ip_address",
            name="uq_promoted_heartbeats_promoted_ip"
        ),
        Index("ix_promoted_heartbeats_promoted_seen", "promoted_stream_id", "last_seen_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PromotedStreamViewerHeartbeat(promoted='{self.promoted_stream_id}', "
            f"ip='{self.ip_address}')>"
        )


# ========================================
# Helper Functions
# ========================================

HEARTBEAT_MODELS: Dict[ContentType, Type[HeartbeatMixin]] = {
    ContentType.STREAM: ViewerHeartbeat,
    ContentType.VOD: VodViewerHeartbeat,
    ContentType.PROMOTED_STREAM: PromotedStreamViewerHeartbeat,
}

HEARTBEAT_ID_COLUMNS: Dict[ContentType, str] = {
    ContentType.STREAM: "stream_id",
    ContentType.VOD: "vod_id",
    ContentType.PROMOTED_STREAM: "promoted_stream_id",
}


def heartbeat_model_for(content_type: ContentType):
    """
    Resolve the heartbeat table for a content type.

    Returns:
        (model class, name of the content id column)
    """
    return HEARTBEAT_MODELS[content_type], HEARTBEAT_ID_COLUMNS[content_type]
