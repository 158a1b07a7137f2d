"""Time helpers shared by services."""

from datetime import datetime, UTC


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.

    SQLite hands back naive datetimes even for timezone-aware columns; every
    timestamp we store is UTC, so it is safe to re-attach it.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
