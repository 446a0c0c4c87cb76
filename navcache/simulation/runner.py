"""
Simulation Runner
=================

Drives simulated clients against a simulated server on a virtual clock and
summarizes how well the predictive cache performed.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

import numpy as np

from navcache.config import EngineConfig
from navcache.core.engine import build_engine
from navcache.core.protocols import MetricsSink
from navcache.core.timers import ManualTimerService
from navcache.simulation.client import SimulatedClient
from navcache.simulation.content import HtmlContentProvider
from navcache.simulation.server import SimulatedServer
from navcache.simulation.workload import (
    RequestPattern,
    WorkloadGenerator,
    build_navigation_graph,
)

logger = logging.getLogger(__name__)


@dataclass
class SimulationReport:
    """Summary of one simulation run."""

    page_views: int
    requests_sent: int
    responses_received: int
    responses_generated: int
    client_cache_hits: int
    client_cache_misses: int
    cache_hits: int
    cache_misses: int
    hit_rate: float
    mean_latency: float
    p95_latency: float
    mean_processing_delay: float
    predictions_made: int
    time_saved: float
    prediction_accuracy: float
    pattern_count: int
    cache_size: int
    cache_utilization: float
    unique_pages_accessed: int
    max_access_frequency: int
    avg_access_frequency: float
    pages_generated: int
    simulated_time: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def run_simulation(config: EngineConfig, metrics: Optional[MetricsSink] = None) -> SimulationReport:
    """
    Run a full simulation described by ``config``.

    Returns:
        SimulationReport with hit rate, latency and learning statistics
    """
    sim = config.simulation
    rng = np.random.default_rng(sim.seed)
    timers = ManualTimerService()
    provider = HtmlContentProvider()
    orchestrator = build_engine(config, provider, timers, metrics=metrics)

    pattern = RequestPattern(sim.request_pattern)
    navigation = build_navigation_graph(sim.num_pages, rng) if pattern is RequestPattern.MARKOV else None

    server = SimulatedServer(
        orchestrator,
        timers,
        rng,
        processing_time=sim.processing_time,
        decay_every=sim.decay_every,
        decay_factor=sim.decay_factor,
    )
    clients = [
        SimulatedClient(
            client_id=client_id,
            server=server,
            timer_service=timers,
            workload=WorkloadGenerator(pattern, rng, navigation),
            rng=rng,
            num_requests=sim.num_requests,
            request_interval=sim.request_interval,
            cache_size=sim.client_cache_size,
        )
        for client_id in range(sim.num_clients)
    ]

    logger.info(
        f"Simulation started: clients={sim.num_clients}, requests={sim.num_requests}, "
        f"pattern={pattern.value}"
    )
    for client in clients:
        client.start()

    # The periodic sweep re-arms forever, so stop once every client is done
    while not all(client.finished for client in clients):
        if timers.run(max_events=1) == 0:
            break
    orchestrator.close()

    latencies = [latency for client in clients for latency in client.latencies]
    stats = orchestrator.get_stats()
    cache_stats = stats["cache"]
    frequencies = np.array(list(server.access_frequency.values()), dtype=float)
    processing_delay = server.mean_processing_delay()
    report = SimulationReport(
        page_views=sum(client.page_views for client in clients),
        requests_sent=sum(client.requests_sent for client in clients),
        responses_received=sum(client.responses_received for client in clients),
        responses_generated=server.responses_generated,
        client_cache_hits=sum(client.local_hits for client in clients),
        client_cache_misses=sum(client.local_misses for client in clients),
        cache_hits=stats["cache_hits"],
        cache_misses=stats["cache_misses"],
        hit_rate=stats["hit_rate"],
        mean_latency=float(np.mean(latencies)) if latencies else 0.0,
        p95_latency=float(np.percentile(latencies, 95)) if latencies else 0.0,
        mean_processing_delay=processing_delay if processing_delay is not None else 0.0,
        predictions_made=stats["predictions_made"],
        time_saved=stats["time_saved"],
        prediction_accuracy=stats["patterns"]["prediction_accuracy"],
        pattern_count=stats["patterns"]["pattern_count"],
        cache_size=cache_stats["size"],
        cache_utilization=(
            cache_stats["size"] / cache_stats["capacity"] if cache_stats["capacity"] else 0.0
        ),
        unique_pages_accessed=len(server.access_frequency),
        max_access_frequency=int(frequencies.max()) if frequencies.size else 0,
        avg_access_frequency=float(frequencies.mean()) if frequencies.size else 0.0,
        pages_generated=provider.generated,
        simulated_time=timers.now(),
    )

    logger.info(
        f"Simulation finished: hit_rate={report.hit_rate:.3f}, "
        f"predictions_made={report.predictions_made}, "
        f"mean_latency={report.mean_latency:.4f}"
    )
    return report
