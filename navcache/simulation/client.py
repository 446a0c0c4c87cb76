"""Simulated browsing client."""

import logging
from collections import OrderedDict

import numpy as np

from navcache.core.events import NO_PAGE, PageId, TimerEventKind
from navcache.core.protocols import TimerService
from navcache.simulation.messages import PageRequest, PageResponse
from navcache.simulation.server import SimulatedServer
from navcache.simulation.workload import WorkloadGenerator

logger = logging.getLogger(__name__)


class SimulatedClient:
    """
    Views ``num_requests`` pages with exponential think time.

    Each request carries the client's previous page so the server can learn
    navigation patterns. With ``cache_size > 0`` the client keeps its own FIFO
    cache of received pages; a fresh local copy is shown without contacting
    the server, so only local misses become requests.
    """

    def __init__(
        self,
        client_id: int,
        server: SimulatedServer,
        timer_service: TimerService,
        workload: WorkloadGenerator,
        rng: np.random.Generator,
        num_requests: int,
        request_interval: float = 1.0,
        cache_size: int = 0,
    ):
        self.client_id = client_id
        self.server = server
        self._timers = timer_service
        self.workload = workload
        self.rng = rng
        self.num_requests = num_requests
        self.request_interval = request_interval
        self.cache_size = max(0, int(cache_size))

        self.current_page: PageId = NO_PAGE
        self.page_views = 0
        self.requests_sent = 0
        self.responses_received = 0
        self.cached_responses = 0
        self.local_hits = 0
        self.local_misses = 0
        self.latencies: list[float] = []
        self._sent_at: dict[int, float] = {}
        self._local_cache: OrderedDict[PageId, PageResponse] = OrderedDict()

    @property
    def finished(self) -> bool:
        return self.page_views >= self.num_requests and not self._sent_at

    def start(self) -> None:
        if self.num_requests > 0:
            self._schedule_next()

    def cached_pages(self) -> list[PageId]:
        """Pages in the local cache, oldest first."""
        return list(self._local_cache)

    def _schedule_next(self) -> None:
        delay = float(self.rng.exponential(self.request_interval))
        self._timers.schedule(delay, self._step, TimerEventKind.CLIENT_REQUEST)

    def _step(self) -> None:
        page = self.workload.next_page(self.current_page)
        now = self._timers.now()
        self.page_views += 1

        if self._check_local(page, now):
            self.local_hits += 1
            self.current_page = page
            logger.debug(
                f"Client {self.client_id} served page {page} from its local cache",
                extra={"client_id": self.client_id, "page": page},
            )
        else:
            if self.cache_size:
                self.local_misses += 1
            self._send(page, now)

        if self.page_views < self.num_requests:
            self._schedule_next()

    def _send(self, page: PageId, now: float) -> None:
        request = PageRequest(
            request_id=self.requests_sent,
            client_id=self.client_id,
            page=page,
            from_page=self.current_page,
            sent_at=now,
        )
        self.current_page = page
        self.requests_sent += 1
        self._sent_at[request.request_id] = now

        logger.debug(
            f"Client {self.client_id} requests page {page} (#{self.requests_sent})",
            extra={"client_id": self.client_id, "page": page},
        )
        self.server.receive(request, self._on_response)

    def _on_response(self, response: PageResponse) -> None:
        sent_at = self._sent_at.pop(response.request_id, None)
        if sent_at is None:
            logger.warning(f"Client {self.client_id} got unexpected response {response.request_id}")
            return
        self.responses_received += 1
        self.latencies.append(response.completed_at - sent_at)
        if response.served_from_cache:
            self.cached_responses += 1
        self._store_local(response)

    # ─── Local cache ────────────────────────────────────────────

    def _check_local(self, page: PageId, now: float) -> bool:
        if not self.cache_size:
            return False
        response = self._local_cache.get(page)
        if response is None:
            return False
        if response.is_expired(now):
            del self._local_cache[page]
            return False
        return True

    def _store_local(self, response: PageResponse) -> None:
        if not self.cache_size or not response.cacheable:
            return
        if response.page in self._local_cache:
            # A newer copy keeps the page's place in the queue
            self._local_cache[response.page] = response
            return
        if len(self._local_cache) >= self.cache_size:
            self._local_cache.popitem(last=False)
        self._local_cache[response.page] = response
