"""Configuration models."""

from navcache.config.settings import (
    CacheConfig,
    EngineConfig,
    PatternConfig,
    PrefetchConfig,
    SimulationConfig,
)

__all__ = [
    "EngineConfig",
    "PatternConfig",
    "CacheConfig",
    "PrefetchConfig",
    "SimulationConfig",
]
