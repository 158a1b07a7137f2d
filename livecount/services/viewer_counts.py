"""
Cached read paths for stream pages.

- CachedViewerCountService: the stored (baseline-included) viewer count of a
  stream, cached for 2 seconds.
- StreamDataService: everything a stream page needs in one payload (stream,
  owner profile, creator avatar), cached for 3 seconds.

Both caches are process-wide singletons.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from livecount.config import settings
from livecount.core.exceptions import ValidationError, StorageError
from livecount.models.stream import Stream
from livecount.models.profile import get_creator_profile
from livecount.services.cache import TTLCache

logger = logging.getLogger(__name__)


# ========================================
# Process-wide caches
# ========================================

_viewer_count_cache: Optional[TTLCache] = None
_stream_data_cache: Optional[TTLCache] = None


def get_viewer_count_cache() -> TTLCache:
    """Get or create the viewer count cache."""
    global _viewer_count_cache
    if _viewer_count_cache is None:
        _viewer_count_cache = TTLCache(settings.viewer_count_cache_ttl_seconds)
    return _viewer_count_cache


def get_stream_data_cache() -> TTLCache:
    """Get or create the stream data cache."""
    global _stream_data_cache
    if _stream_data_cache is None:
        _stream_data_cache = TTLCache(
            settings.stream_data_cache_ttl_seconds,
            max_entries=settings.stream_data_cache_max_entries,
        )
    return _stream_data_cache


# ========================================
# Services
# ========================================

class CachedViewerCountService:
    """Stored stream viewer counts behind a short TTL cache."""

    def __init__(self, db: Session, cache: Optional[TTLCache] = None):
        self.db = db
        self.cache = cache if cache is not None else get_viewer_count_cache()

    def get(self, stream_id: Optional[str]) -> int:
        """
        Viewer count stored on the stream row.

        The stored value already includes the baseline; None reads as 0.

        Raises:
            ValidationError: If stream_id is missing
            StorageError: If the stream cannot be read
        """
        if not stream_id:
            raise ValidationError("Stream ID is required")

        return self.cache.get_or_load(stream_id, lambda: self._load(stream_id))

    def _load(self, stream_id: str) -> int:
        stream = self.db.get(Stream, stream_id)
        if stream is None:
            logger.error("Error getting stream viewer count: stream %s not found", stream_id)
            raise StorageError("Failed to get stream viewer count")
        return stream.viewer_count or 0


class StreamDataService:
    """
    Single-call stream page payload.

    Example output:
    {
        "id": "...",
        "title": "Friday build",
        "status": "live",
        "viewer_count": 21,
        "thumbnail": "https://...",
        "thumbnail_url": "https://...",
        "started_at": "2026-10-18T08:00:00",
        "user_profiles": {
            "id": "...", "username": "ada", "display_name": "Ada",
            "wallet_address": "...", "avatar_url": "https://..."
        },
        ...
    }
    """

    FIELDS = (
        "id",
        "title",
        "description",
        "thumbnail",
        "status",
        "viewer_count",
        "category",
        "language",
        "tags",
        "playback_id",
        "created_at",
        "updated_at",
        "token_contract_address",
    )

    def __init__(self, db: Session, cache: Optional[TTLCache] = None):
        self.db = db
        self.cache = cache if cache is not None else get_stream_data_cache()

    def get(self, stream_id: Optional[str]) -> Dict[str, Any]:
        """
        Stream payload, cached per stream.

        Raises:
            ValidationError: If stream_id is missing
            StorageError: If the stream or its owner cannot be read
        """
        if not stream_id:
            raise ValidationError("Stream ID is required")

        cached = self.cache.get(stream_id)
        if cached is not None:
            logger.debug("Returning cached data for stream %s", stream_id)
            return cached

        logger.debug("Fetching fresh data for stream %s", stream_id)
        data = self._load(stream_id)
        self.cache.set(stream_id, data)
        return data

    def _load(self, stream_id: str) -> Dict[str, Any]:
        stream = self.db.get(Stream, stream_id)
        if stream is None or stream.owner is None:
            logger.error("Error fetching stream data for %s", stream_id)
            raise StorageError("Failed to fetch stream data")

        row = stream.to_dict()
        data = {name: row.get(name) for name in self.FIELDS}

        owner = stream.owner
        creator = get_creator_profile(self.db, owner.wallet_address)

        data["thumbnail_url"] = data["thumbnail"]
        data["started_at"] = data["created_at"]
        data["user_profiles"] = {
            "id": owner.id,
            "username": owner.username,
            "display_name": owner.display_name,
            "wallet_address": owner.wallet_address,
            "avatar_url": creator.profile_picture_url if creator else None,
        }
        return data
