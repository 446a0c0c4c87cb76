"""Wiring of PatternTable + CacheStore + PredictiveOrchestrator from configuration."""

import logging
import threading
from typing import Optional

from navcache.config import EngineConfig
from navcache.core.cache import CacheStore
from navcache.core.orchestrator import PredictiveOrchestrator
from navcache.core.patterns import PatternTable
from navcache.core.protocols import ContentProvider, MetricsSink, TimerService

logger = logging.getLogger(__name__)


def build_engine(
    config: EngineConfig,
    content_provider: ContentProvider,
    timer_service: TimerService,
    metrics: Optional[MetricsSink] = None,
    start: bool = True,
) -> PredictiveOrchestrator:
    """
    Build a ready-to-use engine.

    The cache store and orchestrator share one RLock so the pair forms a
    single critical section.

    Args:
        config: Engine configuration
        content_provider: Page content synthesis
        timer_service: Clock and scheduler
        metrics: Optional metrics sink
        start: Arm the cache's periodic sweep immediately
    """
    lock = threading.RLock()

    patterns = PatternTable(
        confidence_threshold=config.pattern.confidence_threshold,
        max_predictions=config.pattern.max_predictions,
        learning_enabled=config.pattern.learning_enabled,
    )
    cache = CacheStore(
        capacity=config.cache.capacity,
        timer_service=timer_service,
        sweep_interval=config.cache.sweep_interval,
        metrics=metrics,
        lock=lock,
        eviction_policy=config.cache.eviction_policy,
    )
    orchestrator = PredictiveOrchestrator(
        pattern_table=patterns,
        cache_store=cache,
        content_provider=content_provider,
        config=config.prefetch,
        metrics=metrics,
        lock=lock,
    )

    if start:
        cache.start()

    logger.info("Engine built")
    return orchestrator
