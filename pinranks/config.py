"""Engine configuration.

Defaults mirror production; every field can be overridden through a
``PINRANKS_*`` environment variable via ``EngineConfig.from_env``.
"""

import os
from pathlib import Path

from pydantic import BaseModel

SEVEN_DAYS_SECONDS = 7 * 24 * 60 * 60


class EngineConfig(BaseModel):
    """Configuration for the matchup engine."""
    # Reference data
    entities_url: str = "https://pinranks.app/machines.json"
    groups_url: str = "https://pinranks.app/groups.json"
    fetch_timeout_seconds: float = 30.0
    fetch_max_concurrent: int = 4

    # Retry policy for outbound fetches
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_multiplier: float = 2.0
    retry_max_delay: float = 30.0

    # Cache
    cache_dir: Path | None = None  # None = memory tier only
    cache_max_age_seconds: float = SEVEN_DAYS_SECONDS

    # Ratings
    k_factor: int = 32
    transaction_attempts: int = 5

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from ``PINRANKS_*`` environment variables."""
        overrides: dict[str, str] = {}
        for name in cls.model_fields:
            value = os.environ.get(f"PINRANKS_{name.upper()}")
            if value is not None and value != "":
                overrides[name] = value
        return cls(**overrides)
