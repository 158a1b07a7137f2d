"""
Configuration Settings
======================

Centralized configuration using Pydantic V2 Settings.
"""

from typing import List

from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_env: str = Field(default="development")
    app_debug: bool = Field(default=True)
    log_level: str = Field(default="INFO")
    database_url: str = Field(default="sqlite:///./data/livecount.db")
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Viewer counting
    heartbeat_window_seconds: int = Field(default=20, gt=0)
    viewer_count_cache_ttl_seconds: float = Field(default=2.0, gt=0.0)
    stream_data_cache_ttl_seconds: float = Field(default=3.0, gt=0.0)
    stream_data_cache_max_entries: int = Field(default=100, ge=1)
    baseline_min: int = Field(default=15, ge=0)
    baseline_max: int = Field(default=25, ge=0)

    # Promoted stream rewards
    promoted_points_per_heartbeat: float = Field(default=0.25, ge=0.0)
    promoted_watch_seconds_per_heartbeat: int = Field(default=15, ge=0)

    # Viewer room tokens
    room_token_api_key: str = Field(default="devkey")
    room_token_api_secret: str = Field(default="change-me-change-me-change-me-change-me")
    room_token_url: str = Field(default="wss://localhost:7880")
    room_token_ttl_seconds: int = Field(default=3600, gt=0)

    @field_validator("baseline_max")
    @classmethod
    def validate_baseline_range(cls, v: int, info: ValidationInfo) -> int:
        """Ensure the baseline range is not inverted."""
        low = info.data.get("baseline_min")
        if low is not None and v < low:
            raise ValueError(f"baseline_max ({v}) must be >= baseline_min ({low})")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = SettingsConfigDict(
        env_prefix="LIVECOUNT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def print_settings() -> None:
    """Print the active settings with secrets masked."""
    from livecount.core.logging import mask_sensitive

    for name, value in settings.model_dump().items():
        if "secret" in name:
            value = mask_sensitive(str(value))
        print(f"  {name}: {value}")
