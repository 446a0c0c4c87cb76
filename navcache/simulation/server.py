"""
Simulated page server.

Serves each request through the predictive engine as soon as it arrives and
delivers the response after a delay: the near-zero cache-hit cost for hits,
an exponentially distributed processing time for misses.
"""

import functools
from collections import Counter
import logging
from typing import Callable, Optional

import numpy as np

from navcache.core.events import TimerEventKind
from navcache.core.orchestrator import PredictiveOrchestrator
from navcache.core.protocols import TimerService
from navcache.simulation.messages import PageRequest, PageResponse

logger = logging.getLogger(__name__)

ResponseCallback = Callable[[PageResponse], None]


class SimulatedServer:
    """Request handling front-end around a PredictiveOrchestrator."""

    def __init__(
        self,
        orchestrator: PredictiveOrchestrator,
        timer_service: TimerService,
        rng: np.random.Generator,
        processing_time: float = 0.1,
        decay_every: int = 0,
        decay_factor: float = 0.9,
    ):
        """
        Args:
            orchestrator: Predictive caching engine
            timer_service: Clock and scheduler used for response delays
            rng: Random source for processing delays
            processing_time: Mean processing delay of a cache miss
            decay_every: Apply pattern decay after this many requests (0 = never)
            decay_factor: Decay factor applied
        """
        self.orchestrator = orchestrator
        self._timers = timer_service
        self.rng = rng
        self.processing_time = processing_time
        self.decay_every = decay_every
        self.decay_factor = decay_factor

        self.requests_received = 0
        self.responses_generated = 0
        self.processing_delays: list[float] = []
        self.access_frequency: Counter = Counter()

    def receive(self, request: PageRequest, reply: ResponseCallback) -> None:
        """Accept a request; ``reply`` is invoked once the response is ready."""
        self.requests_received += 1
        self.access_frequency[request.page] += 1
        now = self._timers.now()

        result = self.orchestrator.serve(request.client_id, request.from_page, request.page, now)

        if result.cache_hit:
            delay = self.orchestrator.config.cache_hit_cost
        else:
            delay = self._processing_delay()
        self.processing_delays.append(delay)

        response = PageResponse(
            request_id=request.request_id,
            client_id=request.client_id,
            page=request.page,
            content=result.content,
            ttl=self.orchestrator.config.content_ttl,
            served_from_cache=result.cache_hit,
        )
        self._timers.schedule(
            delay,
            functools.partial(self._deliver, response, reply),
            TimerEventKind.DELAYED_RESPONSE,
        )

        if self.decay_every and self.requests_received % self.decay_every == 0:
            self.orchestrator.apply_decay(self.decay_factor)

    def _processing_delay(self) -> float:
        if self.processing_time <= 0:
            return 0.0
        return float(self.rng.exponential(self.processing_time))

    def _deliver(self, response: PageResponse, reply: ResponseCallback) -> None:
        response.completed_at = self._timers.now()
        self.responses_generated += 1
        logger.debug(
            f"Sent response for page {response.page} (cached={response.served_from_cache})",
            extra={"client_id": response.client_id, "request_id": response.request_id},
        )
        reply(response)

    def mean_processing_delay(self) -> Optional[float]:
        if not self.processing_delays:
            return None
        return float(np.mean(self.processing_delays))
