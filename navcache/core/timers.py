"""
Timer Services - Scheduling Backends for Expiry and Simulation
==============================================================

Two implementations of the ``TimerService`` protocol:

- ManualTimerService: virtual clock driven explicitly by ``advance``/``run``.
  Deterministic; used by tests and as the discrete-event kernel of the
  simulator.
- ThreadingTimerService: wall-clock timers backed by ``threading.Timer``.

Cancellation is idempotent in both: cancelling a fired, cancelled or
unknown handle does nothing.
"""

import heapq
import itertools
import logging
import threading
import time
from typing import Callable

from navcache.core.events import TimerEventKind
from navcache.core.protocols import TimerHandle

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# MANUAL (VIRTUAL CLOCK)
# ═══════════════════════════════════════════════════════════════


class ManualTimerService:
    """
    Virtual-clock timer service.

    Time only moves when the owner calls ``advance``, ``advance_to`` or
    ``run``. Due callbacks fire in (due time, scheduling order) order, and the
    clock reads the callback's due time while it runs.
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._ids = itertools.count(1)
        self.fired_count = 0

    def now(self) -> float:
        return self._now

    def schedule(
        self,
        delay: float,
        callback: Callable[[], None],
        kind: TimerEventKind = TimerEventKind.ENTRY_EXPIRY,
    ) -> TimerHandle:
        handle = TimerHandle(
            handle_id=next(self._ids),
            due=self._now + max(0.0, float(delay)),
            kind=kind,
            callback=callback,
        )
        heapq.heappush(self._queue, (handle.due, handle.handle_id, handle))
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is None or not handle.active:
            return
        handle.cancelled = True

    def pending(self) -> int:
        """Number of timers that may still fire."""
        return sum(1 for _, _, handle in self._queue if handle.active)

    def next_due(self) -> float | None:
        """Due time of the earliest live timer, or None."""
        self._drop_dead_head()
        return self._queue[0][0] if self._queue else None

    def advance(self, delta: float) -> int:
        """Move the clock forward by ``delta``; returns callbacks fired."""
        return self.advance_to(self._now + max(0.0, float(delta)))

    def advance_to(self, target: float) -> int:
        """
        Fire every timer due at or before ``target`` and set the clock to it.

        Callbacks may schedule new timers; those fire too if they fall due
        before ``target``.
        """
        fired = 0
        while True:
            self._drop_dead_head()
            if not self._queue or self._queue[0][0] > target:
                break
            fired += self._fire_next()
        if target > self._now:
            self._now = target
        return fired

    def run(self, max_events: int | None = None) -> int:
        """Fire timers in order until none remain (or ``max_events`` fired)."""
        fired = 0
        while max_events is None or fired < max_events:
            self._drop_dead_head()
            if not self._queue:
                break
            fired += self._fire_next()
        return fired

    def _drop_dead_head(self) -> None:
        while self._queue and not self._queue[0][2].active:
            heapq.heappop(self._queue)

    def _fire_next(self) -> int:
        due, _, handle = heapq.heappop(self._queue)
        self._now = max(self._now, due)
        handle.fired = True
        self.fired_count += 1
        handle.callback()
        return 1


# ═══════════════════════════════════════════════════════════════
# WALL CLOCK (THREADS)
# ═══════════════════════════════════════════════════════════════


class ThreadingTimerService:
    """
    Wall-clock timer service.

    Each scheduled callback runs on its own daemon ``threading.Timer``
    thread, so callbacks must do their own locking. Exceptions raised by a
    callback are logged, not propagated.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._timers: dict[int, threading.Timer] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return time.monotonic()

    def schedule(
        self,
        delay: float,
        callback: Callable[[], None],
        kind: TimerEventKind = TimerEventKind.ENTRY_EXPIRY,
    ) -> TimerHandle:
        delay = max(0.0, float(delay))
        handle = TimerHandle(
            handle_id=next(self._ids),
            due=self.now() + delay,
            kind=kind,
            callback=callback,
        )
        timer = threading.Timer(delay, self._fire, args=(handle,))
        timer.daemon = True
        timer.name = f"navcache-timer-{kind.value.lower()}-{handle.handle_id}"
        with self._lock:
            self._timers[handle.handle_id] = timer
        timer.start()
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is None:
            return
        with self._lock:
            if not handle.active:
                return
            handle.cancelled = True
            timer = self._timers.pop(handle.handle_id, None)
        if timer is not None:
            timer.cancel()

    def pending(self) -> int:
        with self._lock:
            return len(self._timers)

    def close(self) -> None:
        """Cancel every outstanding timer."""
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        logger.debug(f"ThreadingTimerService closed, cancelled {len(timers)} timers")

    def _fire(self, handle: TimerHandle) -> None:
        with self._lock:
            if not handle.active:
                return
            handle.fired = True
            self._timers.pop(handle.handle_id, None)
        try:
            handle.callback()
        except Exception as e:
            logger.error(f"Timer callback failed ({handle.kind.value}): {e}", exc_info=True)
