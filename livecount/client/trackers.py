"""
Viewer-side heartbeat trackers.

Trackers are plain state machines: callers drive them with tick(now), either
from their own loop or through IntervalRunner. `now` is seconds since the
epoch and defaults to time.time().

Example:
    client = LivecountClient("http://localhost:8000")
    tracker = stream_heartbeat_tracker(client, "a1b2")
    tracker.start()
    runner = IntervalRunner(tracker.tick, interval=1.0)
    runner.start()
    ...
    runner.stop()
    tracker.stop()
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from livecount.core.constants import (
    STREAM_HEARTBEAT_INTERVAL,
    OPTIMISTIC_HEARTBEAT_INTERVAL,
    VOD_HEARTBEAT_INTERVAL,
    PROMOTED_HEARTBEAT_INTERVAL,
    BATCH_TRACK_INTERVAL,
    BATCH_FLUSH_DELAY,
)

logger = logging.getLogger(__name__)


# ========================================
# Single heartbeats
# ========================================

class HeartbeatTracker:
    """
    Sends a heartbeat on start and then every `interval` seconds.

    A failed heartbeat is logged and skipped; the next tick tries again.
    """

    def __init__(self, send: Callable[[], Any], interval: float):
        if interval <= 0:
            raise ValueError(f"Heartbeat interval must be positive, got {interval}")

        self.send = send
        self.interval = interval
        self.next_at: Optional[float] = None
        self.sent = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self.next_at is not None

    def start(self, now: Optional[float] = None) -> None:
        now = time.time() if now is None else now
        self._send()
        self.next_at = now + self.interval

    def tick(self, now: Optional[float] = None) -> bool:
        """Send if a heartbeat is due. Returns True when one was attempted."""
        if not self.running:
            return False

        now = time.time() if now is None else now
        if now < self.next_at:
            return False

        self._send()
        self.next_at = now + self.interval
        return True

    def stop(self) -> None:
        self.next_at = None

    def _send(self) -> None:
        try:
            self.send()
            self.sent += 1
        except Exception as e:
            self.failures += 1
            logger.warning("Heartbeat failed: %s", e)


def stream_heartbeat_tracker(client, stream_id: str, optimistic: bool = False) -> HeartbeatTracker:
    interval = OPTIMISTIC_HEARTBEAT_INTERVAL if optimistic else STREAM_HEARTBEAT_INTERVAL
    return HeartbeatTracker(lambda: client.send_heartbeat(stream_id=stream_id), interval)


def vod_heartbeat_tracker(client, vod_id: str) -> HeartbeatTracker:
    return HeartbeatTracker(lambda: client.send_heartbeat(vod_id=vod_id), VOD_HEARTBEAT_INTERVAL)


def promoted_heartbeat_tracker(client, promoted_stream_id: str, user_uuid: Optional[str] = None) -> HeartbeatTracker:
    return HeartbeatTracker(
        lambda: client.send_heartbeat(promoted_stream_id=promoted_stream_id, user_uuid=user_uuid),
        PROMOTED_HEARTBEAT_INTERVAL,
    )


# ========================================
# Batched heartbeats
# ========================================

class BatchedHeartbeatTracker:
    """
    Buffers stream heartbeats and sends them in batches.

    Every tracked event (re)arms a debounced flush `flush_delay` seconds out.
    While a stream is active, tick() adds an event every `interval` seconds.
    A failed flush puts its items back at the front of the buffer.
    """

    def __init__(
        self,
        flush_fn: Callable[[List[Dict[str, Any]]], Any],
        flush_delay: float = BATCH_FLUSH_DELAY,
        interval: float = BATCH_TRACK_INTERVAL,
    ):
        self.flush_fn = flush_fn
        self.flush_delay = flush_delay
        self.interval = interval

        self.buffer: List[Dict[str, Any]] = []
        self.stream_id: Optional[str] = None
        self.flush_at: Optional[float] = None
        self.next_track_at: Optional[float] = None

    def start(self, stream_id: str, now: Optional[float] = None) -> None:
        """Track a stream: one event now, then one every interval."""
        now = time.time() if now is None else now
        self.stream_id = stream_id
        self.track(stream_id, now)
        self.next_track_at = now + self.interval

    def track(self, stream_id: str, now: Optional[float] = None) -> None:
        now = time.time() if now is None else now
        self.buffer.append({"streamId": stream_id, "timestamp": int(now * 1000)})
        self.flush_at = now + self.flush_delay

    def tick(self, now: Optional[float] = None) -> None:
        now = time.time() if now is None else now

        if self.stream_id and self.next_track_at is not None and now >= self.next_track_at:
            self.track(self.stream_id, now)
            self.next_track_at = now + self.interval

        if self.flush_at is not None and now >= self.flush_at:
            self.flush()

    def flush(self) -> bool:
        """Send the whole buffer. Returns False if nothing was sent."""
        self.flush_at = None
        if not self.buffer:
            return False

        batch = list(self.buffer)
        self.buffer.clear()

        try:
            self.flush_fn(batch)
        except Exception as e:
            logger.error("Failed to send batched viewer tracking: %s", e)
            self.buffer[:0] = batch
            return False

        return True

    def stop(self) -> bool:
        """Stop tracking and flush what is left."""
        self.stream_id = None
        self.next_track_at = None
        return self.flush()


# ========================================
# Driver
# ========================================

class IntervalRunner:
    """Calls `fn` every `interval` seconds on a daemon thread until stopped."""

    def __init__(self, fn: Callable[[], Any], interval: float):
        self.fn = fn
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="livecount-interval", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.fn()
            except Exception:
                logger.exception("Interval callback failed")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
