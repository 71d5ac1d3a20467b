"""Clock sources driving the pomodoro engine.

Philosophy:
- One timing source per process, owned by the main thread
- Subscriptions are cancelled explicitly; a cancelled subscription never fires
- Deadlines come from a monotonic clock, so wall-clock jumps do not skew ticks

Public API (the "studs"):
    ClockSource: Abstract repeating-interval scheduler
    TickSubscription: Handle returned by ClockSource.schedule_repeating
    EventLoopClock: Deadline-based clock polled by an application loop
    ManualClock: Deterministic clock advanced by hand

Usage:
    >>> clock = ManualClock()
    >>> ticks = []
    >>> sub = clock.schedule_repeating(lambda: ticks.append(1))
    >>> clock.advance(3)
    3
    >>> len(ticks)
    3
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = logging.getLogger(__name__)


class TickSubscription:
    """A repeating callback registered with a clock."""

    def __init__(self, callback: Callable[[], None], interval: float, deadline: float):
        self.callback = callback
        self.interval = interval
        self.deadline = deadline
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop future callbacks. Safe to call more than once."""
        self._active = False


class ClockSource(ABC):
    """Scheduler for repeating callbacks."""

    @abstractmethod
    def schedule_repeating(
        self, callback: Callable[[], None], interval: float = 1.0
    ) -> TickSubscription:
        """Call ``callback`` every ``interval`` seconds until cancelled."""


class EventLoopClock(ClockSource):
    """Clock whose callbacks run inside the caller's loop.

    Nothing fires on its own: the owning loop waits for at most
    ``time_until_next()`` seconds and then calls ``run_due()``. When the loop
    falls behind, every missed interval is delivered so no tick is lost.
    """

    def __init__(self, time_func: Callable[[], float] = time.monotonic):
        """Initialize clock.

        Args:
            time_func: Source of monotonic seconds (default: time.monotonic)
        """
        self._time = time_func
        self._subscriptions: list[TickSubscription] = []

    def now(self) -> float:
        return self._time()

    def schedule_repeating(
        self, callback: Callable[[], None], interval: float = 1.0
    ) -> TickSubscription:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        subscription = TickSubscription(callback, interval, self._time() + interval)
        self._subscriptions.append(subscription)
        logger.debug(f"Scheduled repeating callback every {interval}s")
        return subscription

    @property
    def active_subscriptions(self) -> int:
        self._prune()
        return len(self._subscriptions)

    def time_until_next(self) -> float | None:
        """Seconds until the earliest deadline, or None when idle."""
        self._prune()
        if not self._subscriptions:
            return None
        earliest = min(sub.deadline for sub in self._subscriptions)
        return max(0.0, earliest - self._time())

    def run_due(self) -> int:
        """Fire every callback whose deadline has passed.

        Returns:
            Number of callbacks invoked
        """
        fired = 0
        now = self._time()
        # Callbacks may cancel or add subscriptions while we iterate
        for subscription in list(self._subscriptions):
            while subscription.active and subscription.deadline <= now:
                subscription.deadline += subscription.interval
                subscription.callback()
                fired += 1
        self._prune()
        return fired

    def _prune(self) -> None:
        self._subscriptions = [sub for sub in self._subscriptions if sub.active]


class ManualClock(EventLoopClock):
    """EventLoopClock with a hand-advanced time source."""

    def __init__(self, start: float = 0.0):
        self._now = start
        super().__init__(time_func=lambda: self._now)

    def advance(self, seconds: float) -> int:
        """Move time forward one whole second at a time, firing due callbacks.

        Returns:
            Number of callbacks invoked
        """
        fired = 0
        remaining = float(seconds)
        while remaining > 0:
            step = min(1.0, remaining)
            self._now += step
            remaining -= step
            fired += self.run_due()
        return fired


__all__ = ["ClockSource", "EventLoopClock", "ManualClock", "TickSubscription"]
