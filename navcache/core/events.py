"""
Core Types and Event Kinds
==========================

Shared value types for the caching engine: page identifiers, page content,
and the closed sets of timer, cache and request-cycle events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

PageId = int

# Sentinel for "session start" (no previous page) and "no prediction"
NO_PAGE: PageId = -1


def is_valid_page(page: Any) -> bool:
    """Page ids are non-negative integers (bools are rejected)."""
    return isinstance(page, int) and not isinstance(page, bool) and page >= 0


# ============================================================
# ENUMERATIONS
# ============================================================

class TimerEventKind(str, Enum):
    """What a scheduled timer callback is for."""
    CLEANUP_TICK = "CLEANUP_TICK"          # Periodic sweep of expired entries
    ENTRY_EXPIRY = "ENTRY_EXPIRY"          # Expiry of one cache entry
    DELAYED_RESPONSE = "DELAYED_RESPONSE"  # Simulated processing delay elapsed
    CLIENT_REQUEST = "CLIENT_REQUEST"      # Simulated client think time elapsed


class CacheEventKind(str, Enum):
    """Bookkeeping events emitted by the cache store."""
    HIT = "HIT"
    MISS = "MISS"
    INSERT = "INSERT"
    REPLACE = "REPLACE"
    REFRESH = "REFRESH"
    EVICT = "EVICT"
    EXPIRE = "EXPIRE"
    EXPIRED_ON_READ = "EXPIRED_ON_READ"
    INVALIDATE = "INVALIDATE"


class RequestPhase(str, Enum):
    """States of a single page-serving cycle."""
    REQUEST_RECEIVED = "REQUEST_RECEIVED"
    CACHE_PROBED = "CACHE_PROBED"
    HIT = "HIT"
    MISS = "MISS"
    CONTENT_GENERATED = "CONTENT_GENERATED"
    CACHE_POPULATED = "CACHE_POPULATED"
    RESPONSE_SENT = "RESPONSE_SENT"
    PATTERN_UPDATED = "PATTERN_UPDATED"
    PRECACHE_EVALUATED = "PRECACHE_EVALUATED"
    DONE = "DONE"


# ============================================================
# CONTENT
# ============================================================

@dataclass(frozen=True)
class PageContent:
    """Opaque page payload; ``size`` is always the payload length."""

    payload: Union[str, bytes]
    size: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "size", len(self.payload))

    @classmethod
    def coerce(cls, value: Union["PageContent", str, bytes]) -> "PageContent":
        """Wrap raw provider output in a PageContent."""
        if isinstance(value, PageContent):
            return value
        return cls(payload=value)


@dataclass(frozen=True)
class CacheEvent:
    """A single cache bookkeeping event."""

    kind: CacheEventKind
    key: Any
    at: float
