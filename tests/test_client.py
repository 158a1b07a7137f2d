import threading

import pytest
import requests

from livecount.client import (
    BatchedHeartbeatTracker,
    ClientError,
    HeartbeatTracker,
    IntervalRunner,
    LivecountClient,
    OptimisticViewerCounter,
    ViewerCountPoller,
    promoted_heartbeat_tracker,
    stream_heartbeat_tracker,
    vod_heartbeat_tracker,
)
from livecount.services.baseline import stream_baseline


class FakeResponse:

    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {}

    @property
    def ok(self):
        return self.status_code < 400

    @property
    def text(self):
        return str(self._body)

    def json(self):
        if isinstance(self._body, str):
            raise ValueError("not json")
        return self._body


class FakeSession:
    """Records requests and replays queued responses."""

    def __init__(self, *responses):
        self.headers = {}
        self.calls = []
        self.responses = list(responses)

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        response = self.responses.pop(0) if self.responses else FakeResponse()
        if isinstance(response, Exception):
            raise response
        return response


class TestLivecountClient:

    def test_send_heartbeat(self):
        session = FakeSession(FakeResponse(200, {"success": True}))
        client = LivecountClient("http://api.local/", api_key="anon", session=session)

        client.send_heartbeat(promoted_stream_id="p1", user_uuid="u1")

        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["url"] == "http://api.local/functions/v1/viewer-tracking"
        assert call["json"] == {"promotedStreamId": "p1", "userUuid": "u1"}
        assert call["timeout"] == 5.0
        assert session.headers["apikey"] == "anon"
        assert session.headers["Authorization"] == "Bearer anon"

    def test_viewer_count(self):
        session = FakeSession(FakeResponse(200, {"viewerCount": 21}))
        client = LivecountClient("http://api.local", session=session)

        assert client.viewer_count(stream_id="s1") == 21
        assert session.calls[0]["params"] == {"streamId": "s1"}
        assert "apikey" not in session.headers

    def test_send_batch_and_cached_count(self):
        session = FakeSession(FakeResponse(200, {"success": True}), FakeResponse(200, {"viewerCount": 3}))
        client = LivecountClient("http://api.local", session=session)

        client.send_batch([{"streamId": "s1", "timestamp": 1}])
        assert client.cached_viewer_count("s1") == 3
        assert session.calls[0]["json"] == {"batch": [{"streamId": "s1", "timestamp": 1}]}
        assert session.calls[1]["url"].endswith("/functions/v1/cached-viewer-count")

    def test_http_error(self):
        session = FakeSession(FakeResponse(400, {"error": "Stream ID is required"}))
        client = LivecountClient("http://api.local", session=session)

        with pytest.raises(ClientError) as exc:
            client.cached_viewer_count("")
        assert exc.value.status == 400
        assert exc.value.body == {"error": "Stream ID is required"}

    def test_transport_error(self):
        session = FakeSession(requests.exceptions.ConnectionError("refused"))
        client = LivecountClient("http://api.local", session=session)

        with pytest.raises(ClientError) as exc:
            client.send_heartbeat(stream_id="s1")
        assert exc.value.status is None


class TestHeartbeatTracker:

    def test_sends_on_start_and_every_interval(self):
        sent = []
        tracker = HeartbeatTracker(lambda: sent.append(1), interval=12)

        tracker.start(now=0)
        assert len(sent) == 1
        assert tracker.tick(now=11) is False
        assert tracker.tick(now=12) is True
        assert tracker.tick(now=20) is False
        assert tracker.tick(now=24) is True
        assert len(sent) == 3

    def test_errors_are_swallowed(self):
        def send():
            raise ClientError(500, {"error": "boom"})

        tracker = HeartbeatTracker(send, interval=5)
        tracker.start(now=0)
        tracker.tick(now=5)

        assert tracker.failures == 2
        assert tracker.running

    def test_stop(self):
        sent = []
        tracker = HeartbeatTracker(lambda: sent.append(1), interval=5)
        tracker.start(now=0)
        tracker.stop()

        assert tracker.tick(now=100) is False
        assert len(sent) == 1

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            HeartbeatTracker(lambda: None, interval=0)

    def test_factories_use_content_intervals(self):
        session = FakeSession()
        client = LivecountClient("http://api.local", session=session)

        assert stream_heartbeat_tracker(client, "s1").interval == 12
        assert stream_heartbeat_tracker(client, "s1", optimistic=True).interval == 5
        assert vod_heartbeat_tracker(client, "v1").interval == 10

        promoted = promoted_heartbeat_tracker(client, "p1", "u1")
        assert promoted.interval == 15
        promoted.start(now=0)
        assert session.calls[0]["json"] == {"promotedStreamId": "p1", "userUuid": "u1"}


class TestBatchedHeartbeatTracker:

    def test_debounced_flush(self):
        flushed = []
        tracker = BatchedHeartbeatTracker(flushed.append)

        tracker.track("s1", now=0)
        tracker.tick(now=0.5)
        tracker.track("s1", now=0.8)
        tracker.tick(now=1.5)
        assert flushed == []

        tracker.tick(now=1.8)
        assert flushed == [[{"streamId": "s1", "timestamp": 0}, {"streamId": "s1", "timestamp": 800}]]
        assert tracker.buffer == []

    def test_tracks_every_interval_while_started(self):
        flushed = []
        tracker = BatchedHeartbeatTracker(flushed.append, flush_delay=1.0, interval=4.0)

        tracker.start("s1", now=0)
        tracker.tick(now=1)
        tracker.tick(now=4)
        tracker.tick(now=5)

        assert [len(batch) for batch in flushed] == [1, 1]
        assert flushed[1][0]["timestamp"] == 4000

    def test_failed_flush_requeues_at_front(self):
        attempts = []

        def flush_fn(batch):
            attempts.append(list(batch))
            if len(attempts) == 1:
                raise ClientError(500, "down")

        tracker = BatchedHeartbeatTracker(flush_fn)
        tracker.track("s1", now=0)
        tracker.track("s2", now=0.1)

        assert tracker.flush() is False
        assert [item["streamId"] for item in tracker.buffer] == ["s1", "s2"]

        tracker.track("s3", now=2)
        assert tracker.flush() is True
        assert [item["streamId"] for item in attempts[1]] == ["s1", "s2", "s3"]

    def test_flush_empty_buffer(self):
        tracker = BatchedHeartbeatTracker(lambda batch: pytest.fail("should not send"))
        assert tracker.flush() is False

    def test_stop_flushes_remaining(self):
        flushed = []
        tracker = BatchedHeartbeatTracker(flushed.append)
        tracker.start("s1", now=0)

        assert tracker.stop() is True
        assert len(flushed) == 1
        tracker.tick(now=100)
        assert len(flushed) == 1


class TestOptimisticViewerCounter:

    def test_join_counts_once(self):
        counter = OptimisticViewerCounter("ab")
        counter.join()
        counter.join()

        assert counter.viewer_count == 1
        assert counter.is_optimistic

    def test_poll_applies_baseline(self):
        counter = OptimisticViewerCounter("ab")
        counter.join()

        assert counter.apply_poll(2) == 2 + stream_baseline("ab")
        assert not counter.is_optimistic

    def test_never_decreases_between_polls(self):
        counter = OptimisticViewerCounter("ab")
        counter.apply_poll(5)
        high = counter.viewer_count

        counter.apply_poll(1)
        assert counter.viewer_count == high
        assert counter.is_optimistic

    def test_poll_with_baseline_included(self):
        counter = OptimisticViewerCounter("ab")
        counter.join()

        assert counter.apply_poll(30, includes_baseline=True) == 30
        assert not counter.is_optimistic

    def test_not_live_has_no_baseline(self):
        counter = OptimisticViewerCounter("ab", is_live=False)
        assert counter.apply_poll(2) == 2

    def test_reset(self):
        counter = OptimisticViewerCounter("ab")
        counter.join()
        counter.apply_poll(3)
        counter.reset()

        assert counter.viewer_count == 0
        counter.join()
        assert counter.viewer_count == 1


class TestViewerCountPoller:

    def test_caches_within_ttl(self):
        calls = []

        def fetch(stream_id):
            calls.append(stream_id)
            return 4

        poller = ViewerCountPoller(fetch, ttl=2.0)
        assert poller.poll("s1", now=0) == 4
        assert poller.poll("s1", now=1.5) == 4
        assert poller.poll("s1", now=2.5) == 4
        assert calls == ["s1", "s1"]

    def test_fetch_error_keeps_last_value(self):
        results = [7, RuntimeError("offline")]

        def fetch(stream_id):
            result = results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        poller = ViewerCountPoller(fetch, ttl=2.0)
        assert poller.poll("s1", now=0) == 7
        assert poller.poll("s1", now=5) == 7

    def test_feeds_counter_served_count_as_is(self):
        counter = OptimisticViewerCounter("ab")
        poller = ViewerCountPoller(lambda stream_id: 1 + stream_baseline("ab"), counter=counter)

        poller.poll("ab", now=0)
        assert counter.viewer_count == 1 + stream_baseline("ab")

    def test_client_count_is_not_baselined_twice(self):
        served = 1 + stream_baseline("ab")
        session = FakeSession(FakeResponse(200, {"viewerCount": served}))
        client = LivecountClient("http://api.local", session=session)
        counter = OptimisticViewerCounter("ab")
        counter.join()
        poller = ViewerCountPoller(lambda stream_id: client.viewer_count(stream_id=stream_id), counter=counter)

        assert poller.poll("ab", now=0) == served
        assert counter.viewer_count == served
        assert not counter.is_optimistic


def test_interval_runner_calls_until_stopped():
    ticked = threading.Event()
    runner = IntervalRunner(ticked.set, interval=0.01)

    runner.start()
    assert ticked.wait(2.0)
    runner.stop(timeout=2.0)

    ticked.clear()
    assert not ticked.wait(0.05)
