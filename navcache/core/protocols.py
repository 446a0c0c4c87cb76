"""
Protocol Definitions for the navcache engine.

Defines structural typing protocols for the collaborators the caching core
consumes but does not implement itself.

This module provides:
- TimerHandle: Token returned by a timer service for later cancellation
- TimerService: Protocol for scheduling and cancelling callbacks
- ContentProvider: Protocol for (possibly expensive) page content synthesis
- MetricsSink: Protocol for counters and gauges
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Union, runtime_checkable

from navcache.core.events import PageContent, PageId, TimerEventKind


@dataclass(eq=False)
class TimerHandle:
    """
    Handle for one scheduled callback.

    Attributes:
        handle_id: Unique, monotonically increasing id within its service
        due: Absolute time (in the service's clock) the callback fires at
        kind: What the timer is for
        callback: Zero-argument callable invoked when the timer fires
        cancelled: Set by ``TimerService.cancel``
        fired: Set once the callback has been invoked
    """

    handle_id: int
    due: float
    kind: TimerEventKind
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False
    fired: bool = False

    @property
    def active(self) -> bool:
        """True while the timer may still fire."""
        return not (self.cancelled or self.fired)


@runtime_checkable
class TimerService(Protocol):
    """
    Protocol for timer backends.

    Example:
        >>> timers = ManualTimerService()
        >>> handle = timers.schedule(5.0, lambda: None, TimerEventKind.ENTRY_EXPIRY)
        >>> timers.cancel(handle)
        >>> timers.cancel(handle)  # Idempotent
    """

    def now(self) -> float:
        """Return the current time; never decreases."""
        ...

    def schedule(
        self,
        delay: float,
        callback: Callable[[], None],
        kind: TimerEventKind = TimerEventKind.ENTRY_EXPIRY,
    ) -> TimerHandle:
        """
        Schedule ``callback`` to run ``delay`` time units from now.

        Args:
            delay: Non-negative delay; negative values are treated as zero
            callback: Zero-argument callable
            kind: Tag describing the timer

        Returns:
            Handle usable with ``cancel``
        """
        ...

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        """
        Cancel a scheduled callback.

        Cancelling ``None``, an already-fired or an already-cancelled handle
        is a silent no-op.
        """
        ...


@runtime_checkable
class ContentProvider(Protocol):
    """Protocol for page content synthesis. Calls may be expensive."""

    def generate(self, page: PageId) -> Union[PageContent, str, bytes]:
        """Produce the content for ``page``."""
        ...


@runtime_checkable
class MetricsSink(Protocol):
    """Protocol for metric backends (counters and gauges)."""

    def increment(self, name: str, value: float = 1.0) -> None:
        """Add ``value`` to counter ``name``."""
        ...

    def gauge(self, name: str, value: float) -> None:
        """Set gauge ``name`` to ``value``."""
        ...
