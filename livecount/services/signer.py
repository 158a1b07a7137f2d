"""
Viewer room token signing.

Viewers join a live room on the media server with a short-lived JWT. The
token grants subscribe-only access: a viewer can watch any track in the room
but can never publish, update metadata or administer ingress, and is hidden
from the participant list.

Tokens use HMAC-SHA256 with the room server's API secret; the API key is the
issuer claim.
"""

import logging
import secrets
import string
import time
from typing import Any, Callable, Dict, Optional

import jwt

from livecount.config import settings
from livecount.core.exceptions import ValidationError, ConfigurationError

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase

VIEWER_GRANTS = {
    "roomJoin": True,
    "canSubscribe": True,
    "canPublish": False,
    "canPublishData": False,
    "canUpdateOwnMetadata": False,
    "ingressAdmin": False,
    "hidden": True,
    "recorder": False,
    "canSubscribeToAny": True,
}


class RoomTokenSigner:
    """
    Signs and verifies viewer room tokens.

    Example:
        signer = get_signer()
        payload = signer.viewer_token("stream-room-42", "Ada")
        # {"token": "eyJ...", "url": "wss://...", "identity": "viewer-...", "name": "Ada"}
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        url: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        algorithm: str = "HS256",
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            api_key: Issuer claim (defaults to settings.room_token_api_key)
            api_secret: HMAC secret (defaults to settings.room_token_api_secret)
            url: Room server URL handed back to clients
            ttl_seconds: Token lifetime
            algorithm: JWT algorithm
            clock: Seconds since the epoch

        Raises:
            ConfigurationError: If key, secret or URL is empty
            ValueError: If the secret is shorter than 32 characters
        """
        self.api_key = settings.room_token_api_key if api_key is None else api_key
        self.api_secret = settings.room_token_api_secret if api_secret is None else api_secret
        self.url = settings.room_token_url if url is None else url
        self.ttl_seconds = settings.room_token_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.algorithm = algorithm
        self.clock = clock

        if not self.api_key or not self.api_secret or not self.url:
            raise ConfigurationError("Room token configuration missing")

        if len(self.api_secret) < 32:
            raise ValueError(
                f"Room token secret is too short ({len(self.api_secret)} chars). "
                f"Use at least 32 characters."
            )

    def _new_identity(self, now_ms: int) -> str:
        suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
        return f"viewer-{now_ms}-{suffix}"

    def viewer_token(self, room_name: Optional[str], participant_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Issue a subscribe-only token for a room.

        Args:
            room_name: Room to join
            participant_name: Display name (defaults to "Viewer <timestamp>")

        Returns:
            {"token", "url", "identity", "name"}

        Raises:
            ValidationError: If room_name is empty
        """
        if not room_name:
            raise ValidationError("Room name is required")

        now = self.clock()
        now_ms = int(now * 1000)
        identity = self._new_identity(now_ms)
        display_name = participant_name or f"Viewer {now_ms}"

        claims = {
            "iss": self.api_key,
            "sub": identity,
            "name": display_name,
            "nbf": int(now),
            "exp": int(now) + self.ttl_seconds,
            "video": {"room": room_name, **VIEWER_GRANTS},
        }
        token = jwt.encode(claims, self.api_secret, algorithm=self.algorithm)

        logger.info("Generated viewer token for room %s, viewer %s", room_name, identity)
        return {
            "token": token,
            "url": self.url,
            "identity": identity,
            "name": display_name,
        }

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify a token and return its claims.

        Raises:
            jwt.InvalidSignatureError: If the signature does not match
            jwt.ExpiredSignatureError: If the token has expired
            jwt.DecodeError: If the token is malformed
        """
        return jwt.decode(
            token,
            self.api_secret,
            algorithms=[self.algorithm],
            issuer=self.api_key,
        )

    def is_valid(self, token: str) -> bool:
        """Boolean form of verify()."""
        try:
            self.verify(token)
            return True
        except jwt.PyJWTError:
            return False


# ========================================
# Singleton Instance
# ========================================

_signer: Optional[RoomTokenSigner] = None


def get_signer() -> RoomTokenSigner:
    """Get the singleton signer built from settings."""
    global _signer

    if _signer is None:
        _signer = RoomTokenSigner()

    return _signer
