"""
Pytest Configuration and Shared Fixtures
=========================================

Provides reusable fixtures for all test modules: a virtual clock, metric
sinks, and pre-wired pattern tables, cache stores and orchestrators.
"""

import logging
import threading
from collections.abc import Generator
from unittest.mock import Mock

import pytest

from navcache.config import PrefetchConfig
from navcache.core import (
    CacheStore,
    InMemoryMetricsSink,
    ManualTimerService,
    PageContent,
    PatternTable,
    PredictiveOrchestrator,
)

# ============================================================
# CLOCK & METRICS
# ============================================================

@pytest.fixture
def timers() -> ManualTimerService:
    """Virtual clock starting at t=0."""
    return ManualTimerService()


@pytest.fixture
def metrics() -> InMemoryMetricsSink:
    """In-memory metrics sink."""
    return InMemoryMetricsSink()


# ============================================================
# CORE COMPONENTS
# ============================================================

@pytest.fixture
def pattern_table() -> PatternTable:
    """PatternTable with the default thresholds."""
    return PatternTable()


@pytest.fixture
def cache_store(timers, metrics) -> CacheStore:
    """Small cache store; periodic sweep not started."""
    return CacheStore(capacity=3, timer_service=timers, sweep_interval=10.0, metrics=metrics)


@pytest.fixture
def content_provider() -> Mock:
    """Mock ContentProvider producing '<p>{page}</p>'."""
    provider = Mock()
    provider.generate.side_effect = lambda page: PageContent(f"<p>{page}</p>")
    return provider


@pytest.fixture
def orchestrator(timers, metrics, content_provider) -> PredictiveOrchestrator:
    """Orchestrator over a 10-entry cache sharing one lock."""
    lock = threading.RLock()
    cache = CacheStore(capacity=10, timer_service=timers, metrics=metrics, lock=lock)
    return PredictiveOrchestrator(
        pattern_table=PatternTable(confidence_threshold=0.1),
        cache_store=cache,
        content_provider=content_provider,
        config=PrefetchConfig(),
        metrics=metrics,
        lock=lock,
    )


# ============================================================
# LOGGING
# ============================================================

@pytest.fixture
def restore_root_logger() -> Generator[None, None, None]:
    """Undo handler/level changes made by setup_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
