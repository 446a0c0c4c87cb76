"""Bounded page cache."""

from navcache.core.cache.entry import CacheEntry
from navcache.core.cache.store import CacheStats, CacheStore, EvictionPolicy

__all__ = ["CacheEntry", "CacheStore", "CacheStats", "EvictionPolicy"]
