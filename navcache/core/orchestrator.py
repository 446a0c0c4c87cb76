"""
Predictive Orchestrator - Learning Glued to Caching
====================================================

On every served page the orchestrator:
1. Records the navigation in the PatternTable
2. Looks up strongly predicted successors of the page just served
3. Speculatively generates and caches those successors with a short TTL

Lookups go through the orchestrator so hits, misses and the estimated time
saved are reported in one place.

The PatternTable and CacheStore are guarded together by a single RLock
shared with the store, which makes check-then-insert during pre-caching and
invalidate-then-recompute inside the table safe under threads.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from navcache.config import PrefetchConfig
from navcache.core.cache import CacheStore
from navcache.core.events import (
    NO_PAGE,
    PageContent,
    PageId,
    RequestPhase,
    is_valid_page,
)
from navcache.core.patterns import PatternTable
from navcache.core.protocols import ContentProvider, MetricsSink

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════


@dataclass
class LookupOutcome:
    """Result of probing the cache for a request."""

    key: PageId
    hit: bool
    content: Optional[PageContent] = None
    time_saved: float = 0.0

    @property
    def must_generate(self) -> bool:
        """Caller has to fall through to full content generation."""
        return not self.hit


@dataclass
class ServeResult:
    """Outcome of one full page-serving cycle."""

    client_id: Any
    page: PageId
    content: PageContent
    cache_hit: bool
    precached: list[PageId] = field(default_factory=list)
    phases: list[RequestPhase] = field(default_factory=list)


@dataclass
class OrchestratorStats:
    """Statistics for orchestrator activity."""

    pages_served: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    predictions_made: int = 0
    precache_skipped: int = 0
    provider_failures: int = 0
    time_saved: float = 0.0


# ═══════════════════════════════════════════════════════════════
# PREDICTIVE ORCHESTRATOR
# ═══════════════════════════════════════════════════════════════


class PredictiveOrchestrator:
    """
    Predictive caching engine.

    Features:
    - Transition learning on every served page
    - Speculative pre-caching above a strict prediction threshold
    - Hit/miss and time-saved accounting
    - Full request cycle (``serve``) following the request state machine
    """

    def __init__(
        self,
        pattern_table: PatternTable,
        cache_store: CacheStore,
        content_provider: ContentProvider,
        config: Optional[PrefetchConfig] = None,
        metrics: Optional[MetricsSink] = None,
        lock: Optional[Any] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            pattern_table: Transition learner
            cache_store: Page cache; should have been built with the same ``lock``
            content_provider: Page content synthesis
            config: Pre-caching settings
            metrics: Optional metrics sink
            lock: Lock guarding table + store (defaults to a new RLock)
        """
        self.patterns = pattern_table
        self.cache = cache_store
        self.content_provider = content_provider
        self.config = config or PrefetchConfig()
        self._metrics = metrics
        self._lock = lock if lock is not None else threading.RLock()

        self.stats = OrchestratorStats()

        logger.info(
            f"PredictiveOrchestrator initialized: "
            f"enable_prediction={self.config.enable_prediction}, "
            f"prediction_threshold={self.config.prediction_threshold}, "
            f"precache_ttl={self.config.precache_ttl}, "
            f"content_ttl={self.config.content_ttl}"
        )

    @property
    def lock(self) -> Any:
        return self._lock

    # ─── Inbound Events ─────────────────────────────────────────

    def on_page_served(
        self,
        client_id: Any,
        from_page: PageId,
        to_page: PageId,
        now: float,
    ) -> list[PageId]:
        """
        Learn from a completed request and pre-cache likely next pages.

        Args:
            client_id: Requesting client (logging only)
            from_page: Previous page of the client, or NO_PAGE at session start
            to_page: Page just served
            now: Current time

        Returns:
            Pages pre-cached as a consequence
        """
        with self._lock:
            self.stats.pages_served += 1
            if from_page != NO_PAGE and is_valid_page(from_page):
                self.patterns.score_prediction(from_page, to_page)
                self.patterns.record_transition(from_page, to_page)
            return self.trigger_precache(to_page, now)

    def trigger_precache(self, current_page: PageId, now: float) -> list[PageId]:
        """
        Speculatively cache strongly predicted successors of ``current_page``.

        A successor qualifies when its transition probability is strictly
        above ``prediction_threshold`` and it is absent from (or stale in)
        the cache.

        Returns:
            Pages inserted into the cache
        """
        if not self.config.enable_prediction or not self.cache.enabled:
            return []

        precached: list[PageId] = []
        with self._lock:
            for candidate in self.patterns.get_reachable_pages(current_page):
                probability = self.patterns.get_transition_probability(current_page, candidate)
                if probability <= self.config.prediction_threshold:
                    continue

                if self.cache.lookup(candidate, now, touch=False) is not None:
                    self.stats.precache_skipped += 1
                    continue

                try:
                    content = self.content_provider.generate(candidate)
                except Exception as e:
                    self.stats.provider_failures += 1
                    logger.warning(f"Pre-cache generation failed for page {candidate}: {e}")
                    continue

                self.cache.insert(candidate, content, self.config.precache_ttl, now)
                precached.append(candidate)
                self.stats.predictions_made += 1
                self._increment("predictions_made")
                logger.debug(
                    f"Pre-cached page {candidate} after {current_page} "
                    f"(p={probability:.3f})"
                )

        return precached

    def on_lookup_request(self, key: PageId, now: float) -> LookupOutcome:
        """
        Check the cache for ``key``.

        On a miss the caller generates the content and hands it to
        ``populate``.
        """
        with self._lock:
            content = self.cache.lookup(key, now)
            if content is not None:
                saved = self.config.time_saved_per_hit
                self.stats.cache_hits += 1
                self.stats.time_saved += saved
                self._increment("cache_hits")
                self._increment("time_saved", saved)
                outcome = LookupOutcome(key=key, hit=True, content=content, time_saved=saved)
            else:
                self.stats.cache_misses += 1
                self._increment("cache_misses")
                outcome = LookupOutcome(key=key, hit=False)

            if self._metrics is not None:
                self._metrics.gauge("hit_rate", self.get_hit_rate())
            return outcome

    def populate(self, key: PageId, content: Any, now: float) -> bool:
        """Store freshly generated content with the normal (long) TTL."""
        with self._lock:
            return self.cache.insert(key, content, self.config.content_ttl, now)

    # ─── Full Request Cycle ─────────────────────────────────────

    def serve(
        self,
        client_id: Any,
        from_page: PageId,
        page: PageId,
        now: float,
    ) -> ServeResult:
        """
        Run one request through the whole cycle.

        REQUEST_RECEIVED -> CACHE_PROBED -> (HIT | MISS -> CONTENT_GENERATED
        -> CACHE_POPULATED) -> RESPONSE_SENT -> PATTERN_UPDATED
        -> PRECACHE_EVALUATED -> DONE

        Raises:
            Whatever the content provider raises on a miss
        """
        phases = [RequestPhase.REQUEST_RECEIVED]
        with self._lock:
            outcome = self.on_lookup_request(page, now)
            phases.append(RequestPhase.CACHE_PROBED)

            if outcome.hit:
                phases.append(RequestPhase.HIT)
                content = outcome.content
            else:
                phases.append(RequestPhase.MISS)
                content = PageContent.coerce(self.content_provider.generate(page))
                phases.append(RequestPhase.CONTENT_GENERATED)
                self.populate(page, content, now)
                phases.append(RequestPhase.CACHE_POPULATED)
            phases.append(RequestPhase.RESPONSE_SENT)

            precached = self.on_page_served(client_id, from_page, page, now)
            phases.append(RequestPhase.PATTERN_UPDATED)
            phases.append(RequestPhase.PRECACHE_EVALUATED)
        phases.append(RequestPhase.DONE)

        logger.debug(
            f"Served page {page} (hit={outcome.hit}, precached={precached})",
            extra={"client_id": client_id, "page": page},
        )
        return ServeResult(
            client_id=client_id,
            page=page,
            content=content,
            cache_hit=outcome.hit,
            precached=precached,
            phases=phases,
        )

    # ─── Maintenance ────────────────────────────────────────────

    def apply_decay(self, factor: float) -> None:
        with self._lock:
            self.patterns.decay(factor)

    def compact_patterns(self, min_count: int = 1) -> int:
        with self._lock:
            return self.patterns.compact(min_count)

    def close(self) -> None:
        """Stop the cache's timers."""
        with self._lock:
            self.cache.close()

    # ─── Stats ──────────────────────────────────────────────────

    def get_hit_rate(self) -> float:
        lookups = self.stats.cache_hits + self.stats.cache_misses
        if lookups == 0:
            return 0.0
        return self.stats.cache_hits / lookups

    def get_stats(self) -> dict[str, Any]:
        """Get engine statistics."""
        with self._lock:
            return {
                "pages_served": self.stats.pages_served,
                "cache_hits": self.stats.cache_hits,
                "cache_misses": self.stats.cache_misses,
                "hit_rate": self.get_hit_rate(),
                "predictions_made": self.stats.predictions_made,
                "precache_skipped": self.stats.precache_skipped,
                "provider_failures": self.stats.provider_failures,
                "time_saved": self.stats.time_saved,
                "cache": self.cache.get_stats(),
                "patterns": self.patterns.get_stats(),
            }

    def _increment(self, name: str, value: float = 1.0) -> None:
        if self._metrics is not None:
            self._metrics.increment(name, value)
