"""
Configuration model for the encounter engine.
"""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("encounter-engine")

ENV_PREFIX = "ENCOUNTER_"


class EngineSettings(BaseModel):
    """Tunable settings for encounter generation and its collaborators.

    Defaults: 550 search attempts, a 15% tolerance band and a minimum
    themed pool of 30 creatures.
    """

    # Search
    max_attempts: int = Field(
        default=550,
        ge=1,
        le=100000,
        description="Attempt cap for a normal generation request"
    )
    reroll_attempts: int = Field(
        default=250,
        ge=1,
        le=100000,
        description="Attempt cap used when rerolling the last request"
    )
    tolerance: float = Field(
        default=0.15,
        gt=0.0,
        lt=1.0,
        description="Accepted relative deviation of adjusted XP from target XP"
    )
    count_weights: list[float] | None = Field(
        default=None,
        description="Optional weights for monster counts 1-4; None draws uniformly"
    )

    # Pools
    theme_min_pool: int = Field(
        default=30,
        ge=1,
        description="Minimum themed pool size before falling back to the full catalog"
    )

    # Collaborators
    request_cap: int = Field(
        default=10,
        ge=1,
        description="Maximum number of catalog pages fetched from the remote source"
    )
    storage_dir: Path = Field(
        default=Path("encounter_data"),
        description="Directory holding the saved encounter library and exports"
    )
    cache_dir: Path | None = Field(
        default=None,
        description="Directory for the catalog cache (defaults to storage_dir/catalog_cache)"
    )

    @field_validator("count_weights")
    @classmethod
    def validate_count_weights(cls, v: list[float] | None) -> list[float] | None:
        """Weights must cover counts 1-4 and be non-negative with a positive sum."""
        if v is None:
            return v
        if len(v) != 4:
            raise ValueError("count_weights must contain exactly 4 weights (counts 1-4)")
        if any(w < 0 for w in v) or sum(v) <= 0:
            raise ValueError("count_weights must be non-negative with a positive sum")
        return v

    @property
    def catalog_cache_dir(self) -> Path:
        return self.cache_dir or self.storage_dir / "catalog_cache"

    @property
    def library_path(self) -> Path:
        return self.storage_dir / "encounter_library.json"

    @property
    def export_dir(self) -> Path:
        return self.storage_dir / "exports"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "EngineSettings":
        """Build settings from ENCOUNTER_* environment variables.

        Unset variables keep their defaults. COUNT_WEIGHTS is a comma
        separated list, e.g. ``ENCOUNTER_COUNT_WEIGHTS=1,3,3,2``.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        for field_name in ("max_attempts", "reroll_attempts", "tolerance", "theme_min_pool",
                           "request_cap", "storage_dir", "cache_dir"):
            raw = env.get(f"{ENV_PREFIX}{field_name.upper()}")
            if raw:
                values[field_name] = raw

        raw_weights = env.get(f"{ENV_PREFIX}COUNT_WEIGHTS")
        if raw_weights:
            values["count_weights"] = [float(part) for part in raw_weights.split(",") if part.strip()]

        settings = cls(**values)
        logger.debug(f"Loaded settings: {settings.model_dump(mode='json')}")
        return settings
