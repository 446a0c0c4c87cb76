"""
Pattern Table - Online Navigation Learning + Next-Page Prediction
==================================================================

Learns ``(from_page -> to_page)`` transition frequencies and answers
confidence-gated prediction queries. Transitions live as ``count`` attributes
on the edges of a NetworkX DiGraph; probability ranking uses NumPy.

Invalid input (negative or non-integer page ids, self transitions,
non-positive counts) is silently ignored: the learner is best-effort and
must survive malformed upstream data.

Ordering note: predictions are sorted by probability descending with a stable
sort, so equal probabilities keep the edge insertion order of the graph.
That order is stable but is not a guaranteed global order.
"""

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass
from typing import Any

import networkx as nx
import numpy as np

from navcache.core.events import NO_PAGE, PageId, is_valid_page
from navcache.exceptions import PatternSerializationError

logger = logging.getLogger(__name__)

SERIALIZATION_VERSION = 1


def _is_count(value: Any, allow_negative: bool = False) -> bool:
    """Plain int (bools rejected), non-negative unless ``allow_negative``."""
    if not isinstance(value, int) or isinstance(value, bool):
        return False
    return allow_negative or value >= 0


@dataclass
class PatternStats:
    """Bookkeeping counters for the pattern table."""

    total_updates: int = 0
    prediction_requests: int = 0
    prediction_checks: int = 0
    successful_predictions: int = 0
    prediction_cache_hits: int = 0
    prediction_recomputes: int = 0


class PatternTable:
    """
    Markov-style transition learner.

    Features:
    - Transition counts with a running total
    - Memoized top-N predictions per page, invalidated on every write
    - Decay (down-weighting) and compaction of old patterns
    - Prediction accuracy bookkeeping
    - JSON serialization

    Not thread-safe on its own; callers that share it across threads must
    guard it (the orchestrator does, together with its cache store).
    """

    def __init__(
        self,
        confidence_threshold: float = 0.1,
        max_predictions: int = 5,
        learning_enabled: bool = True,
    ):
        """
        Initialize the Pattern Table.

        Args:
            confidence_threshold: Minimum probability for a page to be predicted.
                Values >= 1.0 disable prediction.
            max_predictions: Maximum predictions returned per page.
                Values <= 0 disable prediction.
            learning_enabled: When False every learning call is a no-op
        """
        self._graph: nx.DiGraph = nx.DiGraph()
        self._predictions: dict[PageId, list[PageId]] = {}
        self._total_transitions = 0
        self._confidence_threshold = float(confidence_threshold)
        self._max_predictions = int(max_predictions)
        self.learning_enabled = learning_enabled

        self.stats = PatternStats()

        logger.info(
            f"PatternTable initialized: "
            f"confidence_threshold={self._confidence_threshold}, "
            f"max_predictions={self._max_predictions}"
        )

    # ─── Configuration ──────────────────────────────────────────

    @property
    def confidence_threshold(self) -> float:
        return self._confidence_threshold

    @confidence_threshold.setter
    def confidence_threshold(self, value: float) -> None:
        self._confidence_threshold = float(value)
        self.clear_predictions_cache()

    @property
    def max_predictions(self) -> int:
        return self._max_predictions

    @max_predictions.setter
    def max_predictions(self, value: int) -> None:
        self._max_predictions = int(value)
        self.clear_predictions_cache()

    @property
    def predictions_enabled(self) -> bool:
        """False for degenerate configurations that can never predict."""
        return self._confidence_threshold < 1.0 and self._max_predictions > 0

    @property
    def total_transitions(self) -> int:
        return self._total_transitions

    @property
    def pattern_count(self) -> int:
        return self._graph.number_of_edges()

    def __len__(self) -> int:
        return self.pattern_count

    def __iter__(self) -> Iterator[tuple[PageId, PageId, int]]:
        """Iterate ``(from, to, count)`` triples in insertion order."""
        for from_page, to_page, count in self._graph.edges(data="count"):
            yield from_page, to_page, count

    # ─── Learning ───────────────────────────────────────────────

    def record_transition(self, from_page: PageId, to_page: PageId) -> None:
        """Record one observed navigation from ``from_page`` to ``to_page``."""
        if not self._accepts(from_page, to_page):
            return
        self._add_count(from_page, to_page, 1)

    def record_sequence(self, pages: Iterable[PageId]) -> None:
        """Record every consecutive pair of a navigation sequence."""
        if not self.learning_enabled:
            return
        sequence = list(pages)
        if len(sequence) < 2:
            return
        for from_page, to_page in zip(sequence, sequence[1:]):
            self.record_transition(from_page, to_page)

    def update_pattern(self, from_page: PageId, to_page: PageId, count: int = 1) -> None:
        """Add ``count`` observations of a transition in one step."""
        if not self._accepts(from_page, to_page):
            return
        if not isinstance(count, int) or isinstance(count, bool) or count <= 0:
            logger.debug(f"Ignoring non-positive pattern update: {from_page}->{to_page} x{count}")
            return
        self._add_count(from_page, to_page, count)

    def _accepts(self, from_page: Any, to_page: Any) -> bool:
        if not self.learning_enabled:
            return False
        if not is_valid_page(from_page) or not is_valid_page(to_page):
            logger.debug(f"Ignoring invalid transition: {from_page!r}->{to_page!r}")
            return False
        return from_page != to_page

    def _add_count(self, from_page: PageId, to_page: PageId, count: int) -> None:
        if self._graph.has_edge(from_page, to_page):
            self._graph[from_page][to_page]["count"] += count
        else:
            self._graph.add_edge(from_page, to_page, count=count)
        self._total_transitions += count
        self.stats.total_updates += 1
        self._predictions.pop(from_page, None)

    # ─── Prediction ─────────────────────────────────────────────

    def get_predictions(self, page: PageId) -> list[PageId]:
        """
        Predicted next pages for ``page``.

        Returns:
            Pages with probability >= confidence_threshold, most likely first,
            at most ``max_predictions`` of them. Empty for unknown pages.
        """
        self.stats.prediction_requests += 1
        return list(self._predict(page))

    def _predict(self, page: PageId) -> list[PageId]:
        if not is_valid_page(page) or not self.predictions_enabled:
            return []

        cached = self._predictions.get(page)
        if cached is not None:
            self.stats.prediction_cache_hits += 1
            return cached

        self.stats.prediction_recomputes += 1
        result = [
            to_page
            for to_page, probability in self._calculate_probabilities(page)
            if probability >= self._confidence_threshold
        ][: self._max_predictions]
        self._predictions[page] = result
        return result

    def get_predictions_with_confidence(self, page: PageId) -> list[tuple[PageId, float]]:
        """Every successor with its probability, most likely first. Never cached."""
        self.stats.prediction_requests += 1
        if not is_valid_page(page):
            return []
        return self._calculate_probabilities(page)

    def get_most_likely_next_page(self, page: PageId) -> PageId:
        """Single best successor, or ``NO_PAGE`` if none meets the threshold."""
        if not is_valid_page(page) or not self.predictions_enabled:
            return NO_PAGE
        probabilities = self._calculate_probabilities(page)
        if not probabilities or probabilities[0][1] < self._confidence_threshold:
            return NO_PAGE
        return probabilities[0][0]

    def get_transition_probability(self, from_page: PageId, to_page: PageId) -> float:
        if not is_valid_page(from_page) or not is_valid_page(to_page):
            return 0.0
        count = self.get_transition_count(from_page, to_page)
        if count == 0:
            return 0.0
        total = self.get_total_transitions_from(from_page)
        return count / total if total else 0.0

    def score_prediction(self, from_page: PageId, to_page: PageId) -> bool:
        """
        Check whether ``to_page`` was predicted for ``from_page``.

        Call before recording the transition; feeds prediction accuracy.
        """
        if not is_valid_page(from_page) or not is_valid_page(to_page):
            return False
        self.stats.prediction_checks += 1
        hit = to_page in self._predict(from_page)
        if hit:
            self.stats.successful_predictions += 1
        return hit

    def get_prediction_accuracy(self) -> float:
        """Fraction of scored navigations that had been predicted."""
        if self.stats.prediction_checks == 0:
            return 0.0
        return self.stats.successful_predictions / self.stats.prediction_checks

    def _calculate_probabilities(self, from_page: PageId) -> list[tuple[PageId, float]]:
        if not self._graph.has_node(from_page):
            return []

        successors = list(self._graph.successors(from_page))
        if not successors:
            return []

        counts = np.fromiter(
            (self._graph[from_page][to_page]["count"] for to_page in successors),
            dtype=float,
            count=len(successors),
        )
        total = counts.sum()
        if total <= 0:
            return []

        probabilities = counts / total
        order = np.argsort(-probabilities, kind="stable")
        return [(successors[i], float(probabilities[i])) for i in order]

    # ─── Analysis ───────────────────────────────────────────────

    def get_transition_count(self, from_page: PageId, to_page: PageId) -> int:
        if not is_valid_page(from_page) or not is_valid_page(to_page):
            return 0
        if not self._graph.has_edge(from_page, to_page):
            return 0
        return self._graph[from_page][to_page]["count"]

    def get_total_transitions_from(self, from_page: PageId) -> int:
        if not self._graph.has_node(from_page):
            return 0
        return int(self._graph.out_degree(from_page, weight="count"))

    def get_top_transitions(self, limit: int = 10) -> list[tuple[PageId, PageId]]:
        """Globally most frequent transitions; ties keep insertion order."""
        if limit <= 0:
            return []
        ranked = sorted(self._graph.edges(data="count"), key=lambda edge: edge[2], reverse=True)
        return [(from_page, to_page) for from_page, to_page, _ in ranked[:limit]]

    def get_reachable_pages(self, from_page: PageId) -> list[PageId]:
        if not is_valid_page(from_page) or not self._graph.has_node(from_page):
            return []
        return list(self._graph.successors(from_page))

    # ─── Maintenance ────────────────────────────────────────────

    def decay(self, factor: float = 0.9) -> None:
        """
        Down-weight every count by ``factor`` (rounding down).

        Surviving transitions are floored at 1 so rare edges are kept rather
        than forgotten. Factors outside (0, 1) are ignored.
        """
        if not 0.0 < factor < 1.0:
            logger.debug(f"Ignoring decay factor outside (0, 1): {factor}")
            return

        total = 0
        for _, _, data in self._graph.edges(data=True):
            data["count"] = max(1, int(data["count"] * factor))
            total += data["count"]
        self._total_transitions = total
        self.clear_predictions_cache()

        logger.info(f"Decayed pattern table by {factor}: total_transitions={total}")

    def compact(self, min_count: int = 1) -> int:
        """
        Drop every transition seen fewer than ``min_count`` times.

        Returns:
            Number of transitions removed
        """
        doomed = [
            (from_page, to_page, count)
            for from_page, to_page, count in self._graph.edges(data="count")
            if count < min_count
        ]
        self._graph.remove_edges_from((from_page, to_page) for from_page, to_page, _ in doomed)
        self._graph.remove_nodes_from(list(nx.isolates(self._graph)))
        self._total_transitions -= sum(count for _, _, count in doomed)
        self.clear_predictions_cache()

        if doomed:
            logger.info(f"Compacted pattern table: removed {len(doomed)} transitions below {min_count}")
        return len(doomed)

    def clear_predictions_cache(self) -> None:
        self._predictions.clear()

    def clear(self) -> None:
        """Forget every learned transition and reset statistics."""
        self._graph.clear()
        self._predictions.clear()
        self._total_transitions = 0
        self.stats = PatternStats()
        logger.info("PatternTable cleared")

    # ─── Persistence ────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": SERIALIZATION_VERSION,
            "confidence_threshold": self._confidence_threshold,
            "max_predictions": self._max_predictions,
            "learning_enabled": self.learning_enabled,
            "transitions": [[f, t, c] for f, t, c in self],
            "stats": asdict(self.stats),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PatternTable":
        """
        Build a table from ``to_dict`` output.

        Raises:
            PatternSerializationError: If the data is malformed
        """
        table = cls()
        table._restore(data)
        return table

    def serialize(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, data: str) -> "PatternTable":
        """Strict counterpart of ``serialize``; raises PatternSerializationError."""
        try:
            payload = json.loads(data)
        except (TypeError, ValueError) as e:
            raise PatternSerializationError(f"invalid JSON ({e})") from e
        return cls.from_dict(payload)

    def deserialize(self, data: str) -> bool:
        """
        Replace this table's state with serialized data.

        Returns:
            True on success; False (state untouched) if the data is malformed
        """
        try:
            restored = PatternTable.from_json(data)
        except PatternSerializationError as e:
            logger.warning(f"Failed to deserialize pattern table: {e}")
            return False

        self._graph = restored._graph
        self._total_transitions = restored._total_transitions
        self._confidence_threshold = restored._confidence_threshold
        self._max_predictions = restored._max_predictions
        self.learning_enabled = restored.learning_enabled
        self.stats = restored.stats
        self._predictions.clear()
        logger.debug(f"Deserialized pattern table with {self.pattern_count} transitions")
        return True

    def _restore(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise PatternSerializationError("payload must be an object")
        if data.get("version") != SERIALIZATION_VERSION:
            raise PatternSerializationError(f"unsupported version {data.get('version')!r}")

        threshold = data.get("confidence_threshold", 0.1)
        if not isinstance(threshold, (int, float)) or isinstance(threshold, bool):
            raise PatternSerializationError(f"bad confidence_threshold {threshold!r}")
        max_predictions = data.get("max_predictions", 5)
        if not _is_count(max_predictions, allow_negative=True):
            raise PatternSerializationError(f"bad max_predictions {max_predictions!r}")
        learning_enabled = data.get("learning_enabled", True)
        if not isinstance(learning_enabled, bool):
            raise PatternSerializationError(f"bad learning_enabled {learning_enabled!r}")

        stats = data.get("stats", {})
        if not isinstance(stats, dict):
            raise PatternSerializationError("stats must be an object")
        unknown = set(stats) - set(PatternStats.__dataclass_fields__)
        if unknown:
            raise PatternSerializationError(f"unknown stats fields {sorted(unknown)}")
        for name, value in stats.items():
            if not _is_count(value):
                raise PatternSerializationError(f"bad stats value {name}={value!r}")

        self._confidence_threshold = float(threshold)
        self._max_predictions = max_predictions
        self.learning_enabled = learning_enabled
        self.stats = PatternStats(**stats)

        transitions = data.get("transitions", [])
        if not isinstance(transitions, list):
            raise PatternSerializationError("transitions must be a list")

        for item in transitions:
            if not isinstance(item, (list, tuple)) or len(item) != 3:
                raise PatternSerializationError(f"bad transition entry {item!r}")
            from_page, to_page, count = item
            if not (is_valid_page(from_page) and is_valid_page(to_page)) or from_page == to_page:
                raise PatternSerializationError(f"bad transition pages {item!r}")
            if not isinstance(count, int) or isinstance(count, bool) or count <= 0:
                raise PatternSerializationError(f"bad transition count {item!r}")
            if self._graph.has_edge(from_page, to_page):
                self._graph[from_page][to_page]["count"] += count
            else:
                self._graph.add_edge(from_page, to_page, count=count)
            self._total_transitions += count

    # ─── Stats ──────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Get pattern table statistics."""
        return {
            "pattern_count": self.pattern_count,
            "total_transitions": self._total_transitions,
            "total_updates": self.stats.total_updates,
            "prediction_requests": self.stats.prediction_requests,
            "successful_predictions": self.stats.successful_predictions,
            "prediction_accuracy": self.get_prediction_accuracy(),
            "confidence_threshold": self._confidence_threshold,
            "max_predictions": self._max_predictions,
            "learning_enabled": self.learning_enabled,
        }

    def __repr__(self) -> str:
        return (
            f"PatternTable(patterns={self.pattern_count}, "
            f"total_transitions={self._total_transitions}, "
            f"accuracy={self.get_prediction_accuracy():.3f})"
        )
