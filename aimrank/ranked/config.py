"""Configuration for the ranked progress engine.

Only operational knobs live here. The scoring constants in
``aimrank.ranked.calculator`` are part of the external contract and are
deliberately not configurable.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class RankedSettings(BaseSettings):
    """Settings for ranked progress updates."""

    model_config = {"env_prefix": "RANKED_", "case_sensitive": False}

    categories: list[str] = Field(
        default=["Flicking", "Tracking", "Target Switching"],
        description="Competitive categories that may hold a progress row",
    )

    # Concurrency
    serialize_updates: bool = Field(
        default=True,
        description="Queue updates for the same category behind a per-category lock",
    )
    lock_timeout_seconds: float | None = Field(
        default=None,
        ge=0,
        description="Give up waiting for a category lock after this many seconds (None waits forever)",
    )
    max_conflict_retries: int = Field(
        default=5,
        ge=0,
        description="Re-run an update this many times when the compare-and-swap write loses a race",
    )
    conflict_retry_base_delay: float = Field(
        default=0.01,
        ge=0,
        description="Initial backoff between conflict retries, in seconds",
    )
    conflict_retry_max_delay: float = Field(
        default=0.5,
        ge=0,
        description="Upper bound for the conflict retry backoff, in seconds",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="json", description="json or console")


@lru_cache
def get_settings() -> RankedSettings:
    """Get cached ranked settings."""
    return RankedSettings()
