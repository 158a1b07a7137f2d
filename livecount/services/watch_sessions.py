"""
Watch session tracking and VOD view statistics.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from livecount.config import settings
from livecount.core.clock import utc_now, as_utc
from livecount.core.constants import SessionType
from livecount.core.exceptions import ValidationError, NotFoundError
from livecount.models.stream import Stream, Vod
from livecount.models.heartbeat import VodViewerHeartbeat
from livecount.models.watch_session import UserWatchSession

logger = logging.getLogger(__name__)


class WatchSessionService:
    """
    Starts, heartbeats and ends watch sessions.

    Example:
        sessions = WatchSessionService(db)
        session = sessions.start_session(user_id, vod_id=vod.id)
        ...
        sessions.end_session(session.id)
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def start_session(
        self,
        user_id: Optional[str],
        vod_id: Optional[str] = None,
        stream_id: Optional[str] = None,
    ) -> UserWatchSession:
        """
        Open a session for a user on a VOD or a stream.

        Raises:
            ValidationError: If user_id is missing, or not exactly one of
                vod_id / stream_id is given
        """
        if not user_id:
            raise ValidationError("User ID is required")
        if bool(vod_id) == bool(stream_id):
            raise ValidationError("Exactly one of VOD ID or Stream ID is required")
        if vod_id and self.db.get(Vod, vod_id) is None:
            raise NotFoundError("VOD not found", details=vod_id)
        if stream_id and self.db.get(Stream, stream_id) is None:
            raise NotFoundError("Stream not found", details=stream_id)

        now = self.clock()
        session = UserWatchSession(
            user_id=user_id,
            vod_id=vod_id,
            stream_id=stream_id,
            session_type=(SessionType.VOD if vod_id else SessionType.STREAM).value,
            started_at=now,
            last_heartbeat_at=now,
            duration_seconds=0,
            is_active=True,
        )
        self.db.add(session)
        self.db.flush()

        logger.info("Started %s watch session %s", session.session_type, session.id)
        return session

    def get_session(self, session_id: str) -> UserWatchSession:
        session = self.db.get(UserWatchSession, session_id)
        if session is None:
            raise NotFoundError("Watch session not found", details=session_id)
        return session

    def _elapsed_seconds(self, session: UserWatchSession, now: datetime) -> int:
        return max(0, int((now - as_utc(session.started_at)).total_seconds()))

    def heartbeat(self, session_id: str) -> UserWatchSession:
        """Advance last_heartbeat_at and duration_seconds of an open session."""
        session = self.get_session(session_id)
        if session.is_ended():
            return session

        now = self.clock()
        session.last_heartbeat_at = now
        session.duration_seconds = self._elapsed_seconds(session, now)
        self.db.flush()
        return session

    def end_session(self, session_id: str) -> UserWatchSession:
        """Close a session. Ending an ended session changes nothing."""
        session = self.get_session(session_id)
        if session.is_ended():
            return session

        now = self.clock()
        session.ended_at = now
        session.last_heartbeat_at = now
        session.duration_seconds = self._elapsed_seconds(session, now)
        session.is_active = False
        self.db.flush()

        logger.info(
            "Ended watch session %s after %ss", session.id, session.duration_seconds
        )
        return session

    def vod_view_stats(self, vod_id: str) -> Dict[str, Any]:
        """
        Totals for a VOD page.

        Returns:
            {"totalViews", "totalWatchTime", "currentViewerCount"}; all zero
            if the VOD does not exist
        """
        vod = self.db.get(Vod, vod_id)
        if vod is None:
            logger.error("Error fetching VOD data: %s not found", vod_id)
            return {"totalViews": 0, "totalWatchTime": 0, "currentViewerCount": 0}

        cutoff = self.clock() - timedelta(seconds=settings.heartbeat_window_seconds)
        current_viewers = (
            self.db.query(VodViewerHeartbeat)
            .filter(VodViewerHeartbeat.vod_id == vod_id)
            .filter(VodViewerHeartbeat.last_seen_at >= cutoff)
            .count()
        )

        total_watch_time = (
            self.db.query(func.coalesce(func.sum(UserWatchSession.duration_seconds), 0))
            .filter(UserWatchSession.vod_id == vod_id)
            .filter(UserWatchSession.ended_at.is_not(None))
            .scalar()
        )

        return {
            "totalViews": vod.total_views or 0,
            "totalWatchTime": int(total_watch_time or 0),
            "currentViewerCount": current_viewers,
        }
