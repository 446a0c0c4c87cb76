"""
Workload Generation - Page Request Patterns for Simulated Clients
=================================================================

Request patterns:
- sequential: cycles through the first 100 pages
- hotspot: 80% of requests hit the 20 hot pages, the rest pages 20-999
- random: uniform over pages 0-999
- markov: random walk over a fixed navigation graph with one dominant
  successor per page, so navigation patterns are learnable
"""

from enum import Enum

import networkx as nx
import numpy as np

from navcache.core.events import NO_PAGE, PageId

SEQUENTIAL_CYCLE = 100
HOT_PAGES = 20
TOTAL_PAGES = 1000
HOT_FRACTION = 0.8

# Markov navigation: weight of the dominant successor, rest shared by alternates
PRIMARY_WEIGHT = 0.75
ALTERNATE_LINKS = 2


class RequestPattern(str, Enum):
    """How a simulated client picks its next page."""
    SEQUENTIAL = "sequential"
    HOTSPOT = "hotspot"
    RANDOM = "random"
    MARKOV = "markov"


def build_navigation_graph(num_pages: int, rng: np.random.Generator) -> nx.DiGraph:
    """
    Build a site map where every page links to a dominant next page.

    Page ``i`` links to ``(i + 1) % num_pages`` with weight PRIMARY_WEIGHT and
    to up to ALTERNATE_LINKS random other pages sharing the remainder.
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(range(num_pages))

    for page in range(num_pages):
        primary = (page + 1) % num_pages
        candidates = [p for p in range(num_pages) if p not in (page, primary)]
        alternates = []
        if candidates:
            picks = rng.choice(len(candidates), size=min(ALTERNATE_LINKS, len(candidates)), replace=False)
            alternates = [candidates[int(i)] for i in picks]

        if alternates:
            graph.add_edge(page, primary, weight=PRIMARY_WEIGHT)
            share = (1.0 - PRIMARY_WEIGHT) / len(alternates)
            for alternate in alternates:
                graph.add_edge(page, alternate, weight=share)
        else:
            graph.add_edge(page, primary, weight=1.0)

    return graph


class WorkloadGenerator:
    """Produces the page sequence of one simulated client."""

    def __init__(
        self,
        pattern: RequestPattern | str,
        rng: np.random.Generator,
        navigation: nx.DiGraph | None = None,
    ):
        self.pattern = RequestPattern(pattern)
        self.rng = rng
        self.navigation = navigation
        self._issued = 0

        if self.pattern is RequestPattern.MARKOV and navigation is None:
            raise ValueError("markov pattern requires a navigation graph")

    def next_page(self, current: PageId = NO_PAGE) -> PageId:
        """Pick the page following ``current``."""
        if self.pattern is RequestPattern.SEQUENTIAL:
            page = self._issued % SEQUENTIAL_CYCLE
        elif self.pattern is RequestPattern.HOTSPOT:
            if self.rng.random() < HOT_FRACTION:
                page = int(self.rng.integers(0, HOT_PAGES))
            else:
                page = int(self.rng.integers(HOT_PAGES, TOTAL_PAGES))
        elif self.pattern is RequestPattern.RANDOM:
            page = int(self.rng.integers(0, TOTAL_PAGES))
        else:
            page = self._walk(current)

        self._issued += 1
        return page

    def _walk(self, current: PageId) -> PageId:
        if current == NO_PAGE or not self.navigation.has_node(current):
            return 0

        successors = list(self.navigation.successors(current))
        if not successors:
            return 0

        weights = np.array(
            [self.navigation[current][page]["weight"] for page in successors],
            dtype=float,
        )
        index = self.rng.choice(len(successors), p=weights / weights.sum())
        return successors[int(index)]
