"""
Stream and VOD models.

A Stream is a live broadcast; its viewer_count column holds the last
displayed count (active viewers plus the per-stream baseline while live).
A Vod is the recording of a stream, with an accumulated total_views.
"""

from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, Text, Integer, Float, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from livecount.models.base import Base, BaseModel, new_uuid
from livecount.core.constants import StreamStatus


class Stream(BaseModel, Base):
    """
    Live stream.

    Attributes:
        id: UUID primary key
        user_id: Owning user profile
        title: Stream title
        status: "live", "offline" or "ended"
        viewer_count: Last displayed viewer count (baseline included while live)
        tags: JSON list of tags
        started_at / ended_at: Broadcast window

    Example:
        stream = Stream(user_id=user.id, title="Friday build", status="live")
        db.add(stream)
    """

    __tablename__ = "streams"

    # ========================================
    # Primary Key & Ownership
    # ========================================

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user_profiles.id"),
        nullable=False,
        index=True
    )

    # ========================================
    # Presentation
    # ========================================

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    thumbnail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    language: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    playback_id: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    token_contract_address: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # ========================================
    # Live State
    # ========================================

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=StreamStatus.OFFLINE.value,
        index=True
    )

    viewer_count: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        default=0,
        comment="Displayed viewer count, baseline included while live"
    )

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    owner: Mapped["UserProfile"] = relationship(back_populates="streams")

    __table_args__ = (
        Index("ix_streams_status_viewers", "status", "viewer_count"),
    )

    def is_live(self) -> bool:
        return self.status == StreamStatus.LIVE.value

    def __repr__(self) -> str:
        return (
            f"<Stream(id='{self.id}', "
            f"status='{self.status}', "
            f"viewers={self.viewer_count})>"
        )


class Vod(BaseModel, Base):
    """
    Recorded stream available on demand.

    Attributes:
        id: UUID primary key
        user_id: Owning user profile
        original_stream_id: Stream the recording came from (may be None for uploads)
        total_views: Baseline of the original stream plus distinct viewers
        duration: Length in seconds
    """

    __tablename__ = "vods"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user_profiles.id"),
        nullable=False,
        index=True
    )

    original_stream_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("streams.id"),
        nullable=True,
        index=True
    )

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    total_views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Vod(id='{self.id}', total_views={self.total_views})>"
