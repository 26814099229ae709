"""Centralized settings for the autoscaler.

Uses pydantic-settings to load from environment variables (prefixed
AUTOSCALER_) with defaults matching the store's published limits.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Autoscaler settings loaded from environment variables."""

    # --- Decrement safeguard ---
    decrements_per_day: int = 4

    # --- Cycle runner ---
    dry_run: bool = False
    max_workers: int = 1
    policy_path: str = ""  # JSON scaling policy; empty uses built-in defaults
    slow_cycle_ms: float = 5000.0

    # --- Consumed capacity metrics ---
    consumed_period_seconds: int = 60
    consumed_statistic: str = "Sum"  # Sum or Average
    consumed_aggregation: str = "max"  # max or mean

    model_config = {
        "env_prefix": "AUTOSCALER_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
