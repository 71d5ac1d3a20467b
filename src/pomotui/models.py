"""Core data types for the pomodoro engine.

Public API (the "studs"):
    SessionType: Work / short break / long break
    PomodoroConfig: Immutable per-run durations and cycle length
    EngineState: Read-only snapshot of the engine
    DEFAULT_CONFIG: 25/5/15 minutes, long break after 4 pomodoros
"""

from dataclasses import dataclass
from enum import Enum


class SessionType(Enum):
    """Kind of timed session.

    Values match the ``sessionType`` strings stored in the history file.
    """

    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @property
    def label(self) -> str:
        """Upper-case label used by the dashboard."""
        return {
            SessionType.WORK: "WORK",
            SessionType.SHORT_BREAK: "SHORT BREAK",
            SessionType.LONG_BREAK: "LONG BREAK",
        }[self]

    @property
    def is_break(self) -> bool:
        return self is not SessionType.WORK


@dataclass(frozen=True)
class PomodoroConfig:
    """Durations (minutes) and cycle length for one run."""

    work_duration: int = 25
    short_break_duration: int = 5
    long_break_duration: int = 15
    pomodoros_before_long_break: int = 4

    def validate(self) -> None:
        """Reject non-positive or non-integer fields.

        Raises:
            ValueError: If any field is not a positive integer
        """
        for name in (
            "work_duration",
            "short_break_duration",
            "long_break_duration",
            "pomodoros_before_long_break",
        ):
            value = getattr(self, name)
            # bool is an int subclass; True is not a duration
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    def duration_minutes(self, session: SessionType) -> int:
        """Configured length of a session type in minutes."""
        if session is SessionType.WORK:
            return self.work_duration
        if session is SessionType.SHORT_BREAK:
            return self.short_break_duration
        return self.long_break_duration

    def duration_seconds(self, session: SessionType) -> int:
        return self.duration_minutes(session) * 60


@dataclass(frozen=True)
class EngineState:
    """Observable engine state. Instances are snapshots; mutating the engine
    never changes a snapshot that was already handed out."""

    current_session: SessionType
    time_remaining: int
    is_running: bool
    completed_pomodoros: int


DEFAULT_CONFIG = PomodoroConfig()

__all__ = ["DEFAULT_CONFIG", "EngineState", "PomodoroConfig", "SessionType"]
