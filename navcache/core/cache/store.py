"""
Cache Store - Bounded Page Cache with TTL Expiry and Policy Eviction
====================================================================

Bounded key -> entry store.

Expiry happens three ways:
- Proactively, through a per-entry timer scheduled on the TimerService
- Periodically, through a sweep timer (backstop for lost timers)
- Lazily, when a lookup finds a stale entry

Capacity pressure is resolved by sweeping expired entries first and then
evicting one entry chosen by the eviction policy (LRU by default, or LFU or
FIFO), so inserts never fail. A capacity of zero disables the cache entirely.
"""

import functools
import heapq
import itertools
import logging
import threading
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from navcache.core.cache.entry import CacheEntry
from navcache.core.events import CacheEvent, CacheEventKind, PageContent, TimerEventKind
from navcache.core.protocols import MetricsSink, TimerService

logger = logging.getLogger(__name__)

# Timer firing this close to the expiry instant counts as expired
EXPIRY_EPSILON = 1e-9


class EvictionPolicy(str, Enum):
    """Which entry gives way when the store is full."""

    LRU = "LRU"  # smallest last_access
    LFU = "LFU"  # smallest access_count, then LRU order
    FIFO = "FIFO"  # oldest insertion; replacing a key keeps its place


@dataclass
class CacheStats:
    """Statistics for cache store activity."""

    hits: int = 0
    misses: int = 0
    insertions: int = 0
    replacements: int = 0
    refreshes: int = 0
    evictions: int = 0
    expirations: int = 0
    expired_on_read: int = 0
    invalidations: int = 0
    sweeps: int = 0


class CacheStore:
    """
    Bounded cache with TTL expiry and policy-driven eviction.

    Under LRU the victim is the entry with the smallest ``last_access``; ties
    go to the earliest ``created_at``, then to insertion order. LFU ranks by
    ``access_count`` first and falls back to the LRU order. FIFO evicts in
    insertion order regardless of access. Victims are found through a lazily
    invalidated heap.

    All public methods and timer callbacks run under ``lock`` (an RLock by
    default). Pass a shared lock to make the store part of a larger critical
    section.
    """

    def __init__(
        self,
        capacity: int,
        timer_service: TimerService,
        sweep_interval: float = 60.0,
        metrics: Optional[MetricsSink] = None,
        lock: Optional[Any] = None,
        on_event: Optional[Callable[[CacheEvent], None]] = None,
        eviction_policy: Union[EvictionPolicy, str] = EvictionPolicy.LRU,
    ):
        """
        Initialize the Cache Store.

        Args:
            capacity: Maximum number of entries (0 disables the cache)
            timer_service: Clock and scheduler for expiry timers
            sweep_interval: Seconds between periodic sweeps (<= 0 disables)
            metrics: Optional metrics sink
            lock: Lock guarding the store (defaults to a private RLock)
            on_event: Optional listener receiving every CacheEvent
            eviction_policy: LRU, LFU or FIFO
        """
        self._capacity = max(0, int(capacity))
        self._timers = timer_service
        self.sweep_interval = float(sweep_interval)
        self._metrics = metrics
        self._lock = lock if lock is not None else threading.RLock()
        self._on_event = on_event
        self.eviction_policy = EvictionPolicy(eviction_policy)

        self._entries: dict[Hashable, CacheEntry] = {}
        self._victim_heap: list[tuple[tuple, int, Hashable]] = []
        self._heap_seq = itertools.count(1)
        self._insert_seq = itertools.count(1)
        self._sweep_handle = None
        self._closed = False

        self.stats = CacheStats()

        logger.info(
            f"CacheStore initialized: capacity={self._capacity}, "
            f"sweep_interval={self.sweep_interval}, "
            f"eviction_policy={self.eviction_policy.value}"
        )

    # ─── Introspection ──────────────────────────────────────────

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def enabled(self) -> bool:
        return self._capacity > 0

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def keys(self) -> list[Hashable]:
        with self._lock:
            return list(self._entries)

    def peek(self, key: Hashable) -> Optional[CacheEntry]:
        """Return the entry for ``key`` without touching stats or expiry."""
        return self._entries.get(key)

    # ─── Lifecycle ──────────────────────────────────────────────

    def start(self) -> None:
        """Arm the periodic sweep timer."""
        with self._lock:
            self._closed = False
            if self.sweep_interval > 0 and self._sweep_handle is None:
                self._schedule_sweep()

    def close(self) -> None:
        """Cancel the sweep timer and every pending expiry timer."""
        with self._lock:
            self._closed = True
            self._timers.cancel(self._sweep_handle)
            self._sweep_handle = None
            for entry in self._entries.values():
                self._timers.cancel(entry.expiry_handle)
                entry.expiry_handle = None
        logger.info("CacheStore closed")

    def clear(self) -> None:
        """Drop every entry (not counted as evictions)."""
        with self._lock:
            for entry in self._entries.values():
                self._timers.cancel(entry.expiry_handle)
            self._entries.clear()
            self._victim_heap.clear()
            self._gauge_size()
        logger.info("CacheStore cleared")

    # ─── Core Operations ────────────────────────────────────────

    def lookup(self, key: Hashable, now: float, touch: bool = True) -> Optional[PageContent]:
        """
        Look up ``key`` at time ``now``.

        Args:
            key: Cache key
            now: Current time
            touch: When False (speculative pre-cache checks) expiry is still
                enforced, but hit/miss stats and eviction rank are left alone

        Returns:
            The content on a hit, None on a miss
        """
        with self._lock:
            entry = self._entries.get(key)

            if entry is not None and entry.is_expired(now):
                self._remove(key, CacheEventKind.EXPIRED_ON_READ, now)
                self.stats.expired_on_read += 1
                logger.debug(f"Cache entry expired on read: {key!r}")
                entry = None

            if entry is None:
                if touch:
                    self.stats.misses += 1
                    self._emit(CacheEventKind.MISS, key, now)
                return None

            if touch:
                entry.touch(now)
                self._push_victim(entry)
                self.stats.hits += 1
                self._emit(CacheEventKind.HIT, key, now)
            return entry.content

    def insert(
        self,
        key: Hashable,
        content: Union[PageContent, str, bytes],
        ttl: float,
        now: float,
    ) -> bool:
        """
        Insert or replace ``key``.

        Never fails for lack of room: expired entries are swept and then one
        entry is evicted according to the eviction policy.

        Returns:
            False only when the cache is disabled
        """
        content = PageContent.coerce(content)

        with self._lock:
            if not self.enabled:
                logger.debug(f"Cache disabled, dropping insert of {key!r}")
                return False

            existing = self._entries.get(key)
            if existing is not None:
                self._timers.cancel(existing.expiry_handle)
                existing.expiry_handle = None
                existing.replace(content, ttl, now)
                self._schedule_expiry(existing, now)
                self._push_victim(existing)
                self.stats.replacements += 1
                self._emit(CacheEventKind.REPLACE, key, now)
                return True

            if len(self._entries) >= self._capacity:
                swept = self.sweep_expired(now)
                if swept:
                    logger.debug(f"Swept {swept} expired entries to make room for {key!r}")
            while len(self._entries) >= self._capacity:
                self._evict_one(now)

            entry = CacheEntry(
                key=key,
                content=content,
                created_at=now,
                ttl=ttl,
                last_access=now,
                inserted_seq=next(self._insert_seq),
            )
            self._entries[key] = entry
            self._schedule_expiry(entry, now)
            self._push_victim(entry)
            self.stats.insertions += 1
            self._emit(CacheEventKind.INSERT, key, now)
            self._gauge_size()
            return True

    def refresh(
        self,
        key: Hashable,
        content: Union[PageContent, str, bytes],
        now: float,
        ttl: float | None = None,
    ) -> bool:
        """Refresh a present entry in place and clear its dirty flag."""
        content = PageContent.coerce(content)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            self._timers.cancel(entry.expiry_handle)
            entry.expiry_handle = None
            entry.refresh(content, now, ttl)
            self._schedule_expiry(entry, now)
            self._push_victim(entry)
            self.stats.refreshes += 1
            self._emit(CacheEventKind.REFRESH, key, now)
            return True

    def sweep_expired(self, now: float) -> int:
        """
        Remove every entry whose TTL has elapsed at ``now``.

        Returns:
            Number of entries removed
        """
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                self._remove(key, CacheEventKind.EXPIRE, now)
            self.stats.expirations += len(expired)
            return len(expired)

    def evict_lru(self) -> Optional[Hashable]:
        """
        Remove the entry the eviction policy ranks first (least recently
        accessed under the default LRU policy).

        Returns:
            The evicted key, or None if the store is empty
        """
        with self._lock:
            if not self._entries:
                return None
            return self._evict_one(self._timers.now())

    def invalidate(self, key: Hashable) -> bool:
        """Explicitly remove ``key``; returns whether it was present."""
        with self._lock:
            if key not in self._entries:
                return False
            self._remove(key, CacheEventKind.INVALIDATE, self._timers.now())
            self.stats.invalidations += 1
            return True

    # ─── Internals ──────────────────────────────────────────────

    def _evict_one(self, now: float) -> Hashable:
        victim = self._pop_victim()
        self._remove(victim, CacheEventKind.EVICT, now)
        self.stats.evictions += 1
        logger.debug(f"Evicted {self.eviction_policy.value} entry {victim!r}")
        return victim

    def _remove(self, key: Hashable, kind: CacheEventKind, now: float) -> CacheEntry:
        entry = self._entries.pop(key)
        self._timers.cancel(entry.expiry_handle)
        entry.expiry_handle = None
        self._emit(kind, key, now)
        self._gauge_size()
        return entry

    def _rank(self, entry: CacheEntry) -> tuple:
        """Eviction rank; the smallest rank is evicted first."""
        if self.eviction_policy is EvictionPolicy.FIFO:
            return (entry.inserted_seq,)
        if self.eviction_policy is EvictionPolicy.LFU:
            return (entry.access_count, entry.last_access, entry.created_at)
        return (entry.last_access, entry.created_at)

    def _push_victim(self, entry: CacheEntry) -> None:
        # The token breaks rank ties by push order and marks older pushes stale
        entry.heap_token = next(self._heap_seq)
        heapq.heappush(self._victim_heap, (self._rank(entry), entry.heap_token, entry.key))
        if len(self._victim_heap) > 2 * len(self._entries) + 64:
            self._rebuild_victim_heap()

    def _rebuild_victim_heap(self) -> None:
        self._victim_heap = [
            (self._rank(entry), entry.heap_token, key) for key, entry in self._entries.items()
        ]
        heapq.heapify(self._victim_heap)

    def _pop_victim(self) -> Hashable:
        while self._victim_heap:
            _, token, key = heapq.heappop(self._victim_heap)
            entry = self._entries.get(key)
            if entry is not None and entry.heap_token == token:
                return key
        # Heap lost track of an entry; fall back to a full scan
        return min(
            self._entries.values(),
            key=lambda entry: (self._rank(entry), entry.heap_token),
        ).key

    def _schedule_expiry(self, entry: CacheEntry, now: float) -> None:
        if entry.ttl <= 0 or self._closed:
            return
        delay = (now + entry.ttl) - self._timers.now()
        entry.expiry_handle = self._timers.schedule(
            delay,
            functools.partial(self._on_entry_expiry, entry.key, entry.generation),
            TimerEventKind.ENTRY_EXPIRY,
        )

    def _on_entry_expiry(self, key: Hashable, generation: int) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.generation != generation:
                return
            entry.expiry_handle = None
            now = self._timers.now()
            remaining = entry.created_at + entry.ttl - now
            if remaining > EXPIRY_EPSILON:
                # Timer clock ran ahead of the caller's clock
                entry.expiry_handle = self._timers.schedule(
                    remaining,
                    functools.partial(self._on_entry_expiry, key, generation),
                    TimerEventKind.ENTRY_EXPIRY,
                )
                return
            self._remove(key, CacheEventKind.EXPIRE, now)
            self.stats.expirations += 1
            logger.debug(f"Cache entry expired by timer: {key!r}")

    def _schedule_sweep(self) -> None:
        self._sweep_handle = self._timers.schedule(
            self.sweep_interval,
            self._on_sweep_tick,
            TimerEventKind.CLEANUP_TICK,
        )

    def _on_sweep_tick(self) -> None:
        with self._lock:
            self._sweep_handle = None
            if self._closed:
                return
            removed = self.sweep_expired(self._timers.now())
            self.stats.sweeps += 1
            if removed:
                logger.debug(f"Periodic sweep removed {removed} entries")
            self._schedule_sweep()

    def _emit(self, kind: CacheEventKind, key: Hashable, now: float) -> None:
        if self._metrics is not None:
            metric = _EVENT_METRICS.get(kind)
            if metric is not None:
                self._metrics.increment(metric)
        if self._on_event is not None:
            self._on_event(CacheEvent(kind=kind, key=key, at=now))

    def _gauge_size(self) -> None:
        if self._metrics is not None:
            self._metrics.gauge("cache_size", len(self._entries))

    # ─── Stats ──────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Get cache store statistics."""
        lookups = self.stats.hits + self.stats.misses
        return {
            "size": len(self._entries),
            "capacity": self._capacity,
            "eviction_policy": self.eviction_policy.value,
            "hits": self.stats.hits,
            "misses": self.stats.misses,
            "hit_rate": self.stats.hits / lookups if lookups else 0.0,
            "insertions": self.stats.insertions,
            "replacements": self.stats.replacements,
            "refreshes": self.stats.refreshes,
            "evictions": self.stats.evictions,
            "expirations": self.stats.expirations,
            "expired_on_read": self.stats.expired_on_read,
            "invalidations": self.stats.invalidations,
            "sweeps": self.stats.sweeps,
            "stored_bytes": sum(entry.size for entry in self._entries.values()),
        }


# Hits and misses are reported by the orchestrator, not here
_EVENT_METRICS = {
    CacheEventKind.INSERT: "cache_insertions",
    CacheEventKind.EVICT: "cache_evictions",
    CacheEventKind.EXPIRE: "cache_expirations",
    CacheEventKind.EXPIRED_ON_READ: "cache_expired_on_read",
}
