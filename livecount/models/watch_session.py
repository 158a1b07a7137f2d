"""
Watch session model.

A watch session measures how long a signed-in user watched a VOD or stream.
The client heartbeats every 10 seconds; duration_seconds is always the whole
number of seconds between started_at and the latest heartbeat.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from livecount.models.base import Base, BaseModel, new_uuid


class UserWatchSession(BaseModel, Base):
    """
    Attributes:
        id: UUID primary key
        user_id: Viewer
        vod_id / stream_id: What is being watched (exactly one is set)
        session_type: "vod" or "stream"
        started_at: Session start
        last_heartbeat_at: Most recent client heartbeat
        ended_at: Set once the session is closed
        duration_seconds: Whole seconds watched
        is_active: False once ended
    """

    __tablename__ = "user_watch_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    vod_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("vods.id"),
        nullable=True
    )

    stream_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("streams.id"),
        nullable=True
    )

    session_type: Mapped[str] = mapped_column(String(20), nullable=False)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_heartbeat_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_watch_sessions_vod_ended", "vod_id", "ended_at"),
    )

    def is_ended(self) -> bool:
        return self.ended_at is not None

    def __repr__(self) -> str:
        return (
            f"<UserWatchSession(id='{self.id}', "
            f"type='{self.session_type}', "
            f"duration={self.duration_seconds}s, "
            f"active={self.is_active})>"
        )
