"""
navcache/config/settings.py
Engine configuration.

Pydantic models for every tunable of the engine and the simulator, loadable
from defaults, a JSON file or ``NAVCACHE_*`` environment variables
(``NAVCACHE_<SECTION>_<FIELD>``, e.g. ``NAVCACHE_CACHE_CAPACITY=64``).

Degenerate but valid values are accepted and mean "feature disabled":
``cache.capacity == 0`` disables caching, ``pattern.confidence_threshold >= 1``
disables prediction.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from navcache.exceptions import ConfigurationError

ENV_PREFIX = "NAVCACHE"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

RequestPatternName = Literal["sequential", "hotspot", "random", "markov"]

EvictionPolicyName = Literal["LRU", "LFU", "FIFO"]


class PatternConfig(BaseModel):
    """Pattern table settings."""

    model_config = ConfigDict(extra="forbid")

    confidence_threshold: float = Field(default=0.1, ge=0.0)
    max_predictions: int = Field(default=5, ge=0)
    learning_enabled: bool = True


class CacheConfig(BaseModel):
    """Cache store settings."""

    model_config = ConfigDict(extra="forbid")

    capacity: int = Field(default=100, ge=0)
    sweep_interval: float = Field(default=60.0, ge=0.0)
    eviction_policy: EvictionPolicyName = "LRU"


class PrefetchConfig(BaseModel):
    """Orchestrator settings for speculative pre-caching."""

    model_config = ConfigDict(extra="forbid")

    enable_prediction: bool = True
    prediction_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    precache_ttl: float = Field(default=30.0, gt=0.0)
    content_ttl: float = 3600.0  # <= 0 means served content never expires
    nominal_processing_cost: float = Field(default=0.1, ge=0.0)
    cache_hit_cost: float = Field(default=0.001, ge=0.0)

    @model_validator(mode="after")
    def _precache_ttl_is_short(self) -> "PrefetchConfig":
        if self.content_ttl > 0 and self.precache_ttl > self.content_ttl:
            raise ValueError("precache_ttl must not exceed content_ttl")
        return self

    @property
    def time_saved_per_hit(self) -> float:
        return max(0.0, self.nominal_processing_cost - self.cache_hit_cost)


class SimulationConfig(BaseModel):
    """Simulated clients and server."""

    model_config = ConfigDict(extra="forbid")

    num_clients: int = Field(default=3, ge=1)
    num_requests: int = Field(default=200, ge=0)
    request_interval: float = Field(default=1.0, gt=0.0)
    request_pattern: RequestPatternName = "markov"
    num_pages: int = Field(default=50, ge=2)
    processing_time: float = Field(default=0.1, ge=0.0)
    decay_every: int = Field(default=0, ge=0)  # requests between decays, 0 = never
    decay_factor: float = Field(default=0.9, gt=0.0, lt=1.0)
    client_cache_size: int = Field(default=0, ge=0)  # per-client page cache, 0 = off
    seed: Optional[int] = 42


class EngineConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(extra="forbid")

    log_level: str = "INFO"
    pattern: PatternConfig = Field(default_factory=PatternConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    prefetch: PrefetchConfig = Field(default_factory=PrefetchConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @classmethod
    def load(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """
        Validate raw configuration data.

        Raises:
            ConfigurationError: If any value is invalid
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigurationError(first.get("msg", str(e)), field_name=field_name) from e

    @classmethod
    def from_file(cls, path: str | Path) -> "EngineConfig":
        """Load configuration from a JSON file."""
        config_path = Path(path)
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(f"cannot read {config_path}: {e}") from e
        except ValueError as e:
            raise ConfigurationError(f"{config_path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_path} must contain a JSON object")
        return cls.load(data)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        base: Optional["EngineConfig"] = None,
    ) -> "EngineConfig":
        """
        Overlay ``NAVCACHE_*`` environment variables on ``base`` (or defaults).

        Args:
            environ: Mapping to read instead of ``os.environ``
            base: Configuration to start from
        """
        env = os.environ if environ is None else environ
        data = (base or cls()).model_dump()

        level = env.get(f"{ENV_PREFIX}_LOG_LEVEL")
        if level:
            data["log_level"] = level

        for section, model in (
            ("pattern", PatternConfig),
            ("cache", CacheConfig),
            ("prefetch", PrefetchConfig),
            ("simulation", SimulationConfig),
        ):
            for field_name in model.model_fields:
                key = f"{ENV_PREFIX}_{section.upper()}_{field_name.upper()}"
                if key in env:
                    data[section][field_name] = env[key]

        return cls.load(data)
