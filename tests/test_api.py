import pytest

from livecount.models import ViewerHeartbeat, Stream
from livecount.services.baseline import stream_baseline

TRACKING = "/functions/v1/viewer-tracking"
IP = {"x-forwarded-for": "203.0.113.7"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "livecount"}


class TestViewerTracking:

    def test_record_heartbeat(self, client, db, live_stream):
        response = client.post(TRACKING, json={"streamId": live_stream.id}, headers=IP)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Heartbeat recorded"}
        row = db.query(ViewerHeartbeat).one()
        assert row.ip_address == "203.0.113.7"

    def test_empty_body(self, client):
        response = client.post(TRACKING, content=b"", headers={"content-type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "Empty request body"}

    def test_invalid_json(self, client):
        response = client.post(TRACKING, content=b"{not json", headers={"content-type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON in request body"

    def test_missing_ids(self, client):
        response = client.post(TRACKING, json={"userUuid": "u1"})

        assert response.status_code == 400
        assert response.json()["error"] == "Stream ID, VOD ID, or Promoted Stream ID is required"

    def test_storage_failure(self, client):
        response = client.post(TRACKING, json={"streamId": "missing"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to record stream heartbeat"
        assert "details" in body

    def test_get_count_includes_baseline(self, client, live_stream, clock):
        client.post(TRACKING, json={"streamId": live_stream.id}, headers={"x-real-ip": "198.51.100.1"})
        client.post(TRACKING, json={"streamId": live_stream.id}, headers={"x-real-ip": "198.51.100.2"})

        response = client.get(TRACKING, params={"streamId": live_stream.id})

        assert response.status_code == 200
        assert response.json() == {"viewerCount": 2 + stream_baseline(live_stream.id)}

        clock.advance(21)
        assert client.get(TRACKING, params={"streamId": live_stream.id}).json() == {
            "viewerCount": stream_baseline(live_stream.id)
        }

    def test_get_count_for_vod(self, client, vod):
        client.post(TRACKING, json={"vodId": vod.id}, headers=IP)

        assert client.get(TRACKING, params={"vodId": vod.id}).json() == {"viewerCount": 1}

    def test_get_without_id(self, client):
        assert client.get(TRACKING).status_code == 400

    @pytest.mark.parametrize("method", ["put", "delete", "patch"])
    def test_other_methods_not_allowed(self, client, method):
        response = getattr(client, method)(TRACKING)

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}

    def test_cors_preflight(self, client):
        response = client.options(
            TRACKING,
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "apikey, content-type",
            },
        )

        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers


class TestBatchedViewerTracking:

    def test_batch(self, client, db, live_stream):
        batch = [{"streamId": live_stream.id, "timestamp": i} for i in range(3)]
        response = client.post("/functions/v1/batched-viewer-tracking", json={"batch": batch}, headers=IP)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "processed": 3,
            "successful": 1,
            "failed": 0,
            "results": [{"streamId": live_stream.id, "success": True, "events": 3}],
        }
        assert db.query(ViewerHeartbeat).count() == 1

    def test_partial_failure(self, client, live_stream):
        batch = [{"streamId": live_stream.id}, {"timestamp": 1}]
        body = client.post("/functions/v1/batched-viewer-tracking", json={"batch": batch}).json()

        assert body["successful"] == 1
        assert body["failed"] == 1
        assert body["results"][1] == {"success": False, "error": "Stream ID is required"}

    def test_unhashable_stream_id(self, client, db, live_stream):
        batch = [{"streamId": live_stream.id}, {"streamId": ["x"]}, {"streamId": {}}]
        response = client.post("/functions/v1/batched-viewer-tracking", json={"batch": batch}, headers=IP)

        assert response.status_code == 200
        body = response.json()
        assert body["successful"] == 1
        assert body["failed"] == 1
        assert body["results"][1] == {"success": False, "error": "Stream ID is required"}
        assert db.query(ViewerHeartbeat).count() == 1

    def test_batch_required(self, client):
        response = client.post("/functions/v1/batched-viewer-tracking", json={"batch": []})

        assert response.status_code == 400
        assert response.json() == {"error": "Batch array is required"}


class TestStreamRoutes:

    def test_cached_viewer_count(self, client, db, live_stream, timer):
        live_stream.viewer_count = 22
        db.commit()

        assert client.post("/functions/v1/cached-viewer-count", json={"streamId": live_stream.id}).json() == {
            "viewerCount": 22
        }

        db.get(Stream, live_stream.id).viewer_count = 40
        db.commit()
        assert client.post("/functions/v1/cached-viewer-count", json={"streamId": live_stream.id}).json() == {
            "viewerCount": 22
        }

        timer.advance(2.5)
        assert client.post("/functions/v1/cached-viewer-count", json={"streamId": live_stream.id}).json() == {
            "viewerCount": 40
        }

    def test_cached_viewer_count_requires_stream(self, client):
        response = client.post("/functions/v1/cached-viewer-count", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Stream ID is required"}

    def test_optimized_stream_data(self, client, live_stream, creator):
        response = client.post("/functions/v1/optimized-stream-data", json={"streamId": live_stream.id})

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == live_stream.id
        assert data["user_profiles"]["avatar_url"] == "https://cdn.example.com/ada.png"

    def test_optimized_stream_data_unknown(self, client):
        response = client.post("/functions/v1/optimized-stream-data", json={"streamId": "missing"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch stream data"

    def test_viewer_token(self, client, signer):
        response = client.post("/functions/v1/viewer-token", json={"roomName": "room-42", "participantName": "Ada"})

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Ada"
        assert signer.verify(body["token"])["video"]["room"] == "room-42"

    def test_viewer_token_requires_room(self, client):
        response = client.post("/functions/v1/viewer-token", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Room name is required"}

    def test_wrong_field_type(self, client):
        response = client.post("/functions/v1/viewer-token", json={"roomName": ["a"]})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"


class TestWatchSessions:

    def test_session_lifecycle(self, client, vod, clock):
        response = client.post("/watch-sessions", json={"userId": "user-1", "vodId": vod.id})
        assert response.status_code == 201
        session_id = response.json()["id"]

        clock.advance(10)
        assert client.post(f"/watch-sessions/{session_id}/heartbeat").json()["duration_seconds"] == 10

        clock.advance(5)
        ended = client.post(f"/watch-sessions/{session_id}/end").json()
        assert ended["duration_seconds"] == 15
        assert ended["is_active"] is False

        stats = client.get(f"/vods/{vod.id}/view-stats").json()
        assert stats["totalWatchTime"] == 15

    def test_vod_heartbeats_count_towards_total_views(self, client, vod):
        for ip in ("203.0.113.7", "203.0.113.8", "203.0.113.9"):
            response = client.post(TRACKING, json={"vodId": vod.id}, headers={"x-forwarded-for": ip})
            assert response.status_code == 200

        stats = client.get(f"/vods/{vod.id}/view-stats").json()
        assert stats["totalViews"] == stream_baseline(vod.original_stream_id) + 3
        assert stats["currentViewerCount"] == 3

    def test_unknown_session(self, client):
        response = client.post("/watch-sessions/missing/end")

        assert response.status_code == 404
        assert response.json()["error"] == "Watch session not found"

    def test_start_requires_user(self, client, vod):
        response = client.post("/watch-sessions", json={"vodId": vod.id})

        assert response.status_code == 400
        assert response.json() == {"error": "User ID is required"}
