"""
Monotonic clock sources.

Failure timestamps are taken from a monotonic clock so wall-clock adjustments
never shift the failure window. The clock is injected into the monitor so
tests can move time forward without sleeping.
"""

import time
from threading import Lock
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol for monotonic time sources."""

    def monotonic(self) -> float:
        """Return monotonic time in seconds."""
        ...


class MonotonicClock:
    """Clock backed by ``time.monotonic``."""

    def monotonic(self) -> float:
        return time.monotonic()


class ManualClock:
    """
    Clock that only moves when told to.

    Example:
        clock = ManualClock()
        monitor = SubscriptionMonitor(configuration, clock=clock)
        monitor.report_failure(TimeoutError("receive timed out"))
        clock.advance(120)
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._lock = Lock()

    def monotonic(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward and return the new time."""
        if seconds < 0:
            raise ValueError("A monotonic clock cannot move backwards")
        with self._lock:
            self._now += seconds
            return self._now
