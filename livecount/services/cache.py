"""
In-process TTL cache.

A flat time-to-live map: an entry is served while it is younger than the TTL
and reloaded after. There is no LRU or size-based eviction. When max_entries
is set and exceeded, entries older than twice the TTL are swept.

One cache instance lives per process, so each API worker keeps its own copy.
"""

import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """
    Thread-safe flat-TTL cache.

    Example:
        cache = TTLCache(ttl_seconds=2.0)
        count = cache.get_or_load(stream_id, lambda: load_count(stream_id))
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttl_seconds: How long an entry is served
            max_entries: Size above which stale entries are swept (None disables)
            clock: Monotonic seconds source
        """
        if ttl_seconds <= 0:
            raise ValueError(f"TTL must be positive, got {ttl_seconds}")
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.clock = clock
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        """Cached value if still fresh, else None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self.clock() - stored_at < self.ttl_seconds:
                return value
            return None

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value stamped with the current time."""
        with self._lock:
            now = self.clock()
            self._entries[key] = (value, now)
            if self.max_entries is not None and len(self._entries) > self.max_entries:
                self._sweep(now)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """
        Serve from cache or call loader and cache its result.

        Loader exceptions propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _sweep(self, now: float) -> None:
        cutoff = now - self.ttl_seconds * 2
        stale = [k for k, (_, stored_at) in self._entries.items() if stored_at < cutoff]
        for key in stale:
            del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
