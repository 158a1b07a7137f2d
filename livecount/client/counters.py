"""
Viewer count display state.

OptimisticViewerCounter shows the viewer's own join immediately and never
lets the displayed count fall between polls. ViewerCountPoller keeps a short
local cache in front of whatever fetches the count.
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from livecount.core.constants import VIEWER_COUNT_POLL_INTERVAL
from livecount.services.baseline import add_baseline

logger = logging.getLogger(__name__)


class OptimisticViewerCounter:
    """
    Example:
        counter = OptimisticViewerCounter("a1b2")
        counter.join()          # viewer_count == 1, is_optimistic
        counter.apply_poll(3)   # viewer_count == 3 + baseline
    """

    def __init__(self, stream_id: str, is_live: bool = True):
        self.stream_id = stream_id
        self.is_live = is_live
        self.confirmed = 0
        self.optimistic = 0
        self.joined = False

    def join(self) -> None:
        """Count the local viewer once, before the server has seen them."""
        if self.joined:
            return
        self.optimistic += 1
        self.joined = True

    def apply_poll(self, count: int, includes_baseline: bool = False) -> int:
        """
        Take a polled count; returns the new displayed count.

        Server counts from the viewer-tracking and cached-viewer-count
        endpoints already carry the baseline; pass includes_baseline=True
        for those. Raw heartbeat counts get the baseline added here.
        """
        if includes_baseline:
            self.confirmed = count
        else:
            self.confirmed = add_baseline(count, self.stream_id, self.is_live)
        self.optimistic = max(self.optimistic, self.confirmed)
        return self.viewer_count

    @property
    def viewer_count(self) -> int:
        return max(self.confirmed, self.optimistic)

    @property
    def is_optimistic(self) -> bool:
        return self.optimistic > self.confirmed

    def reset(self) -> None:
        self.confirmed = 0
        self.optimistic = 0
        self.joined = False


class ViewerCountPoller:
    """
    Cached viewer count lookups.

    `fetch(stream_id)` returns the displayed count as served, e.g.
    LivecountClient.cached_viewer_count, so it is passed to the counter
    as already including the baseline. Errors keep the last known value.
    """

    def __init__(
        self,
        fetch: Callable[[str], int],
        ttl: float = 2.0,
        interval: float = VIEWER_COUNT_POLL_INTERVAL,
        counter: Optional[OptimisticViewerCounter] = None,
    ):
        self.fetch = fetch
        self.ttl = ttl
        self.interval = interval
        self.counter = counter
        self._cache: Dict[str, Tuple[int, float]] = {}

    def poll(self, stream_id: str, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now

        cached = self._cache.get(stream_id)
        if cached is not None and now - cached[1] < self.ttl:
            return cached[0]

        try:
            count = int(self.fetch(stream_id) or 0)
        except Exception as e:
            logger.warning("Failed to fetch viewer count for %s: %s", stream_id, e)
            return cached[0] if cached is not None else 0

        self._cache[stream_id] = (count, now)
        if self.counter is not None and self.counter.stream_id == stream_id:
            self.counter.apply_poll(count, includes_baseline=True)
        return count

    def clear(self) -> None:
        self._cache.clear()
