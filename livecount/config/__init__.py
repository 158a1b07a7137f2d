"""
Configuration package.

Exports the singleton settings instance for easy importing.

Usage:
    from livecount.config import settings

    print(settings.heartbeat_window_seconds)
"""

from livecount.config.settings import settings, get_settings, print_settings

__all__ = [
    "settings",
    "get_settings",
    "print_settings",
]
