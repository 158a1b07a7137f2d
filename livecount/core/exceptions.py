"""
Exception hierarchy.

Services raise these; the API layer turns them into JSON error bodies of the
form {"error": message, "details": ...} with the matching status code.
"""

from typing import Any, Dict, Optional


class LivecountError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(LivecountError):
    """Request is missing required fields or is malformed."""

    status_code = 400


class NotFoundError(LivecountError):
    """Referenced stream, VOD or session does not exist."""

    status_code = 404


class ConfigurationError(LivecountError):
    """Required configuration (credentials, URLs) is missing."""

    status_code = 500


class StorageError(LivecountError):
    """A database read or write failed."""

    status_code = 500
