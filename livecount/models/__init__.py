"""
Database models package.

Contains all SQLAlchemy ORM models.
"""

from livecount.models.base import Base, BaseModel, create_all_tables, drop_all_tables
from livecount.models.profile import UserProfile, CreatorProfile
from livecount.models.stream import Stream, Vod
from livecount.models.heartbeat import (
    ViewerHeartbeat,
    VodViewerHeartbeat,
    PromotedStreamViewerHeartbeat,
    heartbeat_model_for,
)
from livecount.models.points import PromotedStreamViewerPoints
from livecount.models.watch_session import UserWatchSession

__all__ = [
    "Base",
    "BaseModel",
    "UserProfile",
    "CreatorProfile",
    "Stream",
    "Vod",
    "ViewerHeartbeat",
    "VodViewerHeartbeat",
    "PromotedStreamViewerHeartbeat",
    "PromotedStreamViewerPoints",
    "UserWatchSession",
    "heartbeat_model_for",
    "create_all_tables",
    "drop_all_tables",
]
