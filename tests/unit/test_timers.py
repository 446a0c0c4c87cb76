"""
Tests for timer services.
"""

import threading
import time

import pytest

from navcache.core import ManualTimerService, ThreadingTimerService, TimerEventKind, TimerService

# ============================================================
# MANUAL TIMER SERVICE
# ============================================================


class TestManualTimerService:
    """Tests for the virtual-clock timer service."""

    def test_satisfies_protocol(self):
        """Test the service is a TimerService."""
        assert isinstance(ManualTimerService(), TimerService)

    def test_fires_in_due_order(self):
        """Test callbacks fire in due order and see their due time."""
        timers = ManualTimerService()
        fired = []
        timers.schedule(3, lambda: fired.append(("c", timers.now())))
        timers.schedule(1, lambda: fired.append(("a", timers.now())))
        timers.schedule(2, lambda: fired.append(("b", timers.now())))

        assert timers.advance(5) == 3
        assert fired == [("a", 1.0), ("b", 2.0), ("c", 3.0)]
        assert timers.now() == 5.0

    def test_same_due_fires_in_schedule_order(self):
        """Test ties are broken by scheduling order."""
        timers = ManualTimerService()
        fired = []
        for name in "xyz":
            timers.schedule(1, lambda name=name: fired.append(name))

        timers.advance(1)

        assert fired == ["x", "y", "z"]

    def test_not_due_does_not_fire(self):
        """Test timers after the target stay pending."""
        timers = ManualTimerService(start=10.0)
        handle = timers.schedule(5, lambda: None, TimerEventKind.CLEANUP_TICK)

        assert handle.due == 15.0
        assert timers.advance_to(14.9) == 0
        assert timers.pending() == 1
        assert handle.active is True

    def test_cancel_is_idempotent(self):
        """Test cancelled timers never fire and double cancel is harmless."""
        timers = ManualTimerService()
        fired = []
        handle = timers.schedule(1, lambda: fired.append(1))

        timers.cancel(handle)
        timers.cancel(handle)
        timers.cancel(None)
        timers.advance(2)

        assert fired == []
        assert handle.cancelled is True
        assert timers.pending() == 0

    def test_cancel_after_fire_is_noop(self):
        """Test cancelling a fired timer keeps it marked fired."""
        timers = ManualTimerService()
        handle = timers.schedule(1, lambda: None)
        timers.advance(1)
        timers.cancel(handle)

        assert handle.fired is True
        assert handle.cancelled is False

    def test_callback_scheduling_within_window(self):
        """Test timers scheduled by a callback fire within the same advance."""
        timers = ManualTimerService()
        fired = []
        timers.schedule(1, lambda: timers.schedule(1, lambda: fired.append(timers.now())))

        assert timers.advance(3) == 2
        assert fired == [2.0]

    def test_run_and_next_due(self):
        """Test run fires everything and max_events bounds it."""
        timers = ManualTimerService()
        for delay in (4, 2, 6):
            timers.schedule(delay, lambda: None)

        assert timers.next_due() == 2.0
        assert timers.run(max_events=1) == 1
        assert timers.now() == 2.0
        assert timers.run() == 2
        assert timers.now() == 6.0
        assert timers.next_due() is None
        assert timers.fired_count == 3

    def test_negative_delay_fires_now(self):
        """Test negative delays are clamped to zero."""
        timers = ManualTimerService(start=3.0)
        handle = timers.schedule(-5, lambda: None)

        assert handle.due == 3.0
        assert timers.advance(0) == 1


# ============================================================
# THREADING TIMER SERVICE
# ============================================================


class TestThreadingTimerService:
    """Tests for the wall-clock timer service."""

    def test_callback_fires(self):
        """Test a scheduled callback runs on a timer thread."""
        timers = ThreadingTimerService()
        done = threading.Event()

        handle = timers.schedule(0.01, done.set)

        assert done.wait(2.0) is True
        assert handle.fired is True
        assert timers.pending() == 0

    def test_cancel_prevents_fire(self):
        """Test cancelled timers never run."""
        timers = ThreadingTimerService()
        done = threading.Event()

        handle = timers.schedule(0.2, done.set)
        timers.cancel(handle)
        timers.cancel(handle)

        assert done.wait(0.4) is False
        assert handle.cancelled is True

    def test_callback_errors_are_contained(self, caplog):
        """Test a raising callback is logged, not propagated."""
        timers = ThreadingTimerService()
        done = threading.Event()

        def explode():
            done.set()
            raise RuntimeError("boom")

        timers.schedule(0, explode)
        assert done.wait(2.0) is True
        time.sleep(0.05)

        assert "Timer callback failed" in caplog.text

    def test_close_cancels_everything(self):
        """Test close cancels outstanding timers."""
        timers = ThreadingTimerService()
        done = threading.Event()
        timers.schedule(0.2, done.set)
        timers.schedule(0.3, done.set)

        timers.close()

        assert timers.pending() == 0
        assert done.wait(0.5) is False

    def test_now_is_monotonic(self):
        """Test the clock never goes backwards."""
        timers = ThreadingTimerService()
        first = timers.now()

        assert timers.now() >= first
        assert timers.schedule(10, lambda: None).due == pytest.approx(first + 10, abs=1.0)
        timers.close()
