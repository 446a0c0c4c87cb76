"""Discrete-event simulation of clients browsing a predictively cached server."""

from navcache.simulation.client import SimulatedClient
from navcache.simulation.content import HtmlContentProvider
from navcache.simulation.messages import PageRequest, PageResponse
from navcache.simulation.runner import SimulationReport, run_simulation
from navcache.simulation.server import SimulatedServer
from navcache.simulation.workload import (
    RequestPattern,
    WorkloadGenerator,
    build_navigation_graph,
)

__all__ = [
    "PageRequest", "PageResponse",
    "HtmlContentProvider",
    "RequestPattern", "WorkloadGenerator", "build_navigation_graph",
    "SimulatedServer", "SimulatedClient",
    "SimulationReport", "run_simulation",
]
