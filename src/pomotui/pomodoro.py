"""Pomodoro session engine.

Philosophy:
- Remaining time is a counter decremented once per tick, never recomputed
  from the wall clock, so pause/resume cannot drift
- At most one live tick subscription per engine
- Every transition stops the timer; the caller decides when to resume

Public API (the "studs"):
    Pomodoro: Session state machine
    format_time: Seconds to zero-padded MM:SS

Notification order on a finished session is fixed: the session-complete
listener sees the session that just ended, then the state listener sees the
new session.
"""

import logging
from collections.abc import Callable

from pomotui.clock import ClockSource, TickSubscription
from pomotui.models import EngineState, PomodoroConfig, SessionType

logger = logging.getLogger(__name__)

StateListener = Callable[[EngineState], None]
SessionCompleteListener = Callable[[SessionType], None]


def format_time(seconds: int) -> str:
    """Format seconds as MM:SS.

    Minutes are not wrapped into hours: 3661 seconds is "61:01".
    """
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


class Pomodoro:
    """Work/break state machine driven by a ClockSource.

    Example:
        >>> clock = ManualClock()
        >>> engine = Pomodoro(PomodoroConfig(work_duration=1), clock)
        >>> engine.start()
        >>> clock.advance(10)
        10
        >>> engine.get_state().time_remaining
        50
    """

    def __init__(self, config: PomodoroConfig, clock: ClockSource):
        """Initialize engine in a paused Work session.

        Args:
            config: Validated durations and cycle length
            clock: Source of one-second ticks
        """
        self._config = config
        self._clock = clock
        self._current_session = SessionType.WORK
        self._time_remaining = config.duration_seconds(SessionType.WORK)
        self._is_running = False
        self._completed_pomodoros = 0
        self._cycle_count = 0
        self._subscription: TickSubscription | None = None
        self._on_state_change: StateListener | None = None
        self._on_session_complete: SessionCompleteListener | None = None

    # Listener registration: one listener per event, last registration wins

    def set_on_tick(self, listener: StateListener | None) -> None:
        """Register the state-changed listener (None clears it)."""
        self._on_state_change = listener

    def set_on_session_complete(self, listener: SessionCompleteListener | None) -> None:
        """Register the session-complete listener (None clears it)."""
        self._on_session_complete = listener

    # Commands

    def start(self) -> None:
        if self._is_running:
            return
        self._cancel_ticks()
        self._is_running = True
        self._subscription = self._clock.schedule_repeating(self._tick, 1.0)
        logger.debug(
            f"Started {self._current_session.value} with {self._time_remaining}s remaining"
        )

    def pause(self) -> None:
        if not self._is_running:
            return
        self._cancel_ticks()
        self._is_running = False
        logger.debug(f"Paused at {format_time(self._time_remaining)}")

    def reset(self) -> None:
        """Stop and restore the full duration of the current session."""
        self._cancel_ticks()
        self._is_running = False
        self._time_remaining = self._config.duration_seconds(self._current_session)
        self._emit_state()

    def skip(self) -> None:
        """Complete the current session immediately."""
        self._complete_session()

    # Queries

    def get_state(self) -> EngineState:
        return EngineState(
            current_session=self._current_session,
            time_remaining=self._time_remaining,
            is_running=self._is_running,
            completed_pomodoros=self._completed_pomodoros,
        )

    def get_config(self) -> PomodoroConfig:
        return self._config

    @property
    def cycle_position(self) -> int:
        """Work sessions completed since the last long break."""
        return self._cycle_count

    def format_time(self, seconds: int) -> str:
        return format_time(seconds)

    # Internals

    def _tick(self) -> None:
        if not self._is_running:
            # Only reachable if a cancelled subscription fired
            logger.warning("Tick received while paused; ignoring")
            return

        self._time_remaining -= 1
        if self._time_remaining > 0:
            self._emit_state()
            return

        self._time_remaining = 0
        self._complete_session()

    def _complete_session(self) -> None:
        self._cancel_ticks()
        self._is_running = False
        ended = self._current_session

        if self._on_session_complete is not None:
            self._on_session_complete(ended)

        if ended is SessionType.WORK:
            self._completed_pomodoros += 1
            self._cycle_count += 1
            if self._cycle_count >= self._config.pomodoros_before_long_break:
                next_session = SessionType.LONG_BREAK
                self._cycle_count = 0
            else:
                next_session = SessionType.SHORT_BREAK
        else:
            next_session = SessionType.WORK

        self._current_session = next_session
        self._time_remaining = self._config.duration_seconds(next_session)
        logger.debug(f"Session {ended.value} complete, next is {next_session.value}")

        self._emit_state()

    def _cancel_ticks(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def _emit_state(self) -> None:
        if self._on_state_change is not None:
            self._on_state_change(self.get_state())


__all__ = ["Pomodoro", "format_time"]
