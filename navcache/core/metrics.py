"""
Metrics Sinks for the caching engine.

Counters and gauges emitted by the cache store and orchestrator:
hits, misses, evictions, expirations, predictions made, hit rate and
estimated time saved. The engine never depends on a sink being present.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge

METRIC_DESCRIPTIONS: dict[str, str] = {
    "cache_hits": "Lookups answered from the cache",
    "cache_misses": "Lookups that fell through to content generation",
    "cache_insertions": "New entries stored in the cache",
    "cache_evictions": "Entries evicted as least recently used",
    "cache_expirations": "Entries removed by their expiry timer or a sweep",
    "cache_expired_on_read": "Stale entries removed by a lookup",
    "cache_size": "Entries currently stored",
    "predictions_made": "Pages speculatively pre-cached",
    "hit_rate": "Fraction of lookups answered from the cache",
    "time_saved": "Estimated processing seconds saved by cache hits",
}


class InMemoryMetricsSink:
    """Thread-safe in-memory sink; useful for tests and simulation reports."""

    def __init__(self) -> None:
        self._counters: dict[str, float] = defaultdict(float)
        self._gauges: dict[str, float] = {}
        self._lock = threading.Lock()

    def increment(self, name: str, value: float = 1.0) -> None:
        with self._lock:
            self._counters[name] += value

    def gauge(self, name: str, value: float) -> None:
        with self._lock:
            self._gauges[name] = float(value)

    def counter(self, name: str) -> float:
        with self._lock:
            return self._counters.get(name, 0.0)

    def gauge_value(self, name: str) -> Optional[float]:
        with self._lock:
            return self._gauges.get(name)

    def snapshot(self) -> dict[str, float]:
        """Counters and gauges merged into one dict."""
        with self._lock:
            return {**self._counters, **self._gauges}


class PrometheusMetricsSink:
    """
    Sink exporting through prometheus_client.

    Metrics are created on first use and registered on ``registry``
    (a private CollectorRegistry by default, so several sinks can coexist).
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None, prefix: str = "navcache"):
        self.registry = registry if registry is not None else CollectorRegistry()
        self.prefix = prefix
        self._counters: dict[str, Counter] = {}
        self._gauges: dict[str, Gauge] = {}
        self._lock = threading.Lock()

    def _metric_name(self, name: str) -> str:
        return f"{self.prefix}_{name}"

    def increment(self, name: str, value: float = 1.0) -> None:
        with self._lock:
            counter = self._counters.get(name)
            if counter is None:
                counter = Counter(
                    self._metric_name(name),
                    METRIC_DESCRIPTIONS.get(name, name),
                    registry=self.registry,
                )
                self._counters[name] = counter
        counter.inc(value)

    def gauge(self, name: str, value: float) -> None:
        with self._lock:
            gauge = self._gauges.get(name)
            if gauge is None:
                gauge = Gauge(
                    self._metric_name(name),
                    METRIC_DESCRIPTIONS.get(name, name),
                    registry=self.registry,
                )
                self._gauges[name] = gauge
        gauge.set(value)

    def sample(self, name: str) -> Optional[float]:
        """Current value of a counter (``_total`` sample) or gauge."""
        metric_name = self._metric_name(name)
        value = self.registry.get_sample_value(f"{metric_name}_total")
        if value is None:
            value = self.registry.get_sample_value(metric_name)
        return value
