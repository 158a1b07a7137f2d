"""
Viewer points earned by watching promoted streams.

One row is written per promoted-stream heartbeat from a signed-in viewer.
Rows are append-only; balances are computed by summing points_earned.
"""

from typing import Optional

from sqlalchemy import String, Float, Integer, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from livecount.models.base import Base, BaseModel, new_uuid
from livecount.core.constants import ACTION_TYPE_WATCH_TIME


class PromotedStreamViewerPoints(BaseModel, Base):
    """
    Points ledger entry.

    Attributes:
        id: UUID primary key
        promoted_stream_id: Placement that was watched
        user_id: Viewer who earned the points
        ip_address: Client IP of the heartbeat
        points_earned: Points for this entry (0.25 per heartbeat by default)
        action_type: Why points were awarded ("watch_time")
        watch_time_seconds: Seconds of watching credited
    """

    __tablename__ = "promoted_stream_viewer_points"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    promoted_stream_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)

    points_earned: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    action_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ACTION_TYPE_WATCH_TIME
    )

    watch_time_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_points_user_promoted", "user_id", "promoted_stream_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PromotedStreamViewerPoints(user='{self.user_id}', "
            f"points={self.points_earned})>"
        )


def get_user_points(db, user_id: str, promoted_stream_id: Optional[str] = None) -> float:
    """
    Total points a user has earned.

    Args:
        db: Database session
        user_id: Viewer id
        promoted_stream_id: Restrict to one placement (optional)

    Returns:
        Sum of points_earned (0.0 if none)
    """
    query = db.query(func.coalesce(func.sum(PromotedStreamViewerPoints.points_earned), 0.0))
    query = query.filter(PromotedStreamViewerPoints.user_id == user_id)
    if promoted_stream_id is not None:
        query = query.filter(PromotedStreamViewerPoints.promoted_stream_id == promoted_stream_id)
    return float(query.scalar())
