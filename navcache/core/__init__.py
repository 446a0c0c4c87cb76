"""Predictive caching core: pattern learning, bounded cache, orchestration."""

from navcache.core.cache import CacheEntry, CacheStats, CacheStore, EvictionPolicy
from navcache.core.engine import build_engine
from navcache.core.events import (
    NO_PAGE,
    CacheEvent,
    CacheEventKind,
    PageContent,
    PageId,
    RequestPhase,
    TimerEventKind,
    is_valid_page,
)
from navcache.core.metrics import InMemoryMetricsSink, PrometheusMetricsSink
from navcache.core.orchestrator import (
    LookupOutcome,
    OrchestratorStats,
    PredictiveOrchestrator,
    ServeResult,
)
from navcache.core.patterns import PatternStats, PatternTable
from navcache.core.protocols import ContentProvider, MetricsSink, TimerHandle, TimerService
from navcache.core.timers import ManualTimerService, ThreadingTimerService

__all__ = [
    "PageId", "NO_PAGE", "PageContent", "is_valid_page",
    "TimerEventKind", "CacheEventKind", "CacheEvent", "RequestPhase",
    "TimerHandle", "TimerService", "ContentProvider", "MetricsSink",
    "ManualTimerService", "ThreadingTimerService",
    "PatternTable", "PatternStats",
    "CacheStore", "CacheEntry", "CacheStats", "EvictionPolicy",
    "PredictiveOrchestrator", "LookupOutcome", "ServeResult", "OrchestratorStats",
    "InMemoryMetricsSink", "PrometheusMetricsSink",
    "build_engine",
]
