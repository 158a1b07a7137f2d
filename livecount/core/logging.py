"""Logging setup and masking of sensitive values."""

import logging
from typing import Optional

from livecount.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once for the process."""
    logging.basicConfig(level=level or settings.log_level, format=LOG_FORMAT)

    # SQLAlchemy echo is controlled by app_debug; keep its logger quieter otherwise
    if not settings.app_debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def mask_sensitive(value: Optional[str]) -> str:
    """
    Shorten an IP address, wallet address or token for log output.

    Example:
        mask_sensitive("203.0.113.42")  # "203....3.42"
        mask_sensitive("short")         # "***"
    """
    if not value:
        return "***"
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}...{value[-4:]}"
