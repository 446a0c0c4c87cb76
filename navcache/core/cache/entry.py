"""
Cache entry record.

One stored page plus its TTL and access bookkeeping. Entries are owned by a
CacheStore; nothing else should mutate them.
"""

from dataclasses import dataclass, field
from typing import Hashable, Optional

from navcache.core.events import PageContent
from navcache.core.protocols import TimerHandle


@dataclass
class CacheEntry:
    """A cached page with TTL and eviction bookkeeping."""

    key: Hashable
    content: PageContent
    created_at: float
    ttl: float  # <= 0 means never expires
    last_access: float
    access_count: int = 0
    dirty: bool = False

    # Store internals
    generation: int = 0
    inserted_seq: int = field(default=0, repr=False)
    heap_token: int = field(default=0, repr=False)
    expiry_handle: Optional[TimerHandle] = field(default=None, repr=False)

    @property
    def size(self) -> int:
        return self.content.size

    @property
    def expires_at(self) -> float | None:
        if self.ttl <= 0:
            return None
        return self.created_at + self.ttl

    def is_expired(self, now: float) -> bool:
        """Check if entry has expired at ``now``."""
        expires_at = self.expires_at
        return expires_at is not None and now >= expires_at

    def touch(self, now: float) -> None:
        """Update access count and last access time."""
        self.access_count += 1
        self.last_access = now

    def replace(self, content: PageContent, ttl: float, now: float) -> None:
        """Overwrite with new content; the entry becomes dirty."""
        self.content = content
        self.ttl = ttl
        self.created_at = now
        self.last_access = now
        self.dirty = True
        self.generation += 1

    def refresh(self, content: PageContent, now: float, ttl: float | None = None) -> None:
        """Refresh content in place; fresh content is not dirty."""
        self.content = content
        self.created_at = now
        if ttl is not None and ttl >= 0:
            self.ttl = ttl
        self.dirty = False
        self.generation += 1
