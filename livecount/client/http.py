"""
HTTP client for the livecount API.

Used by the viewer-side trackers and by scripts that want viewer counts.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """A request failed, either in transport (status None) or with an HTTP error."""

    def __init__(self, status: Optional[int], body: Any):
        self.status = status
        self.body = body
        super().__init__(f"livecount request failed ({status}): {body}")


class LivecountClient:
    """
    Thin requests wrapper around the livecount routes.

    Example:
        client = LivecountClient("http://localhost:8000", api_key="anon-key")
        client.send_heartbeat(stream_id="a1b2")
        client.viewer_count(stream_id="a1b2")  # 21
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self.session.headers.update({
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            })

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise ClientError(None, str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = response.text

        if not response.ok:
            raise ClientError(response.status_code, body)
        return body

    @staticmethod
    def _content_ids(
        stream_id: Optional[str],
        vod_id: Optional[str],
        promoted_stream_id: Optional[str],
    ) -> Dict[str, str]:
        ids = {
            "streamId": stream_id,
            "vodId": vod_id,
            "promotedStreamId": promoted_stream_id,
        }
        return {k: v for k, v in ids.items() if v}

    def send_heartbeat(
        self,
        stream_id: Optional[str] = None,
        vod_id: Optional[str] = None,
        promoted_stream_id: Optional[str] = None,
        user_uuid: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = self._content_ids(stream_id, vod_id, promoted_stream_id)
        if user_uuid:
            payload["userUuid"] = user_uuid
        return self._request("POST", "/functions/v1/viewer-tracking", json=payload)

    def send_batch(self, batch: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._request("POST", "/functions/v1/batched-viewer-tracking", json={"batch": batch})

    def viewer_count(
        self,
        stream_id: Optional[str] = None,
        vod_id: Optional[str] = None,
        promoted_stream_id: Optional[str] = None,
    ) -> int:
        params = self._content_ids(stream_id, vod_id, promoted_stream_id)
        body = self._request("GET", "/functions/v1/viewer-tracking", params=params)
        return int(body.get("viewerCount", 0))

    def cached_viewer_count(self, stream_id: str) -> int:
        body = self._request("POST", "/functions/v1/cached-viewer-count", json={"streamId": stream_id})
        return int(body.get("viewerCount", 0))
