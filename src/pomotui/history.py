"""Session history persistence.

Completed sessions are appended to a single JSON document. Writes go to a
temporary file that is renamed over the original, so an interrupted write
never leaves a half-written history behind.

Document layout (version 1):
    {
      "version": 1,
      "entries": [
        {"id": "...", "sessionType": "work", "duration": 25,
         "completedAt": "2026-10-18T09:30:00+02:00", "date": "2026-10-18",
         "pomodoroNumber": 1}
      ],
      "totalPomodoros": 1,
      "lastUpdated": "2026-10-18T09:30:00+02:00"
    }

Loading fails closed: anything that is not a readable version-1 document is
treated as an empty history, and malformed entries are dropped.
"""

import json
import logging
import os
import random
import string
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from pomotui.models import SessionType

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_ID_ALPHABET = string.ascii_lowercase + string.digits


class HistoryError(Exception):
    """Raised when history cannot be written."""

    pass


def generate_id() -> str:
    """Return ``<epoch-ms>-<7 random base36 chars>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"{int(time.time() * 1000)}-{suffix}"


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class HistoryEntry:
    """One completed session."""

    id: str
    session_type: SessionType
    duration: int
    completed_at: str
    date: str
    pomodoro_number: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sessionType": self.session_type.value,
            "duration": self.duration,
            "completedAt": self.completed_at,
            "date": self.date,
            "pomodoroNumber": self.pomodoro_number,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        """Create from dictionary.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        try:
            duration = data["duration"]
            number = data.get("pomodoroNumber", 0)
            if isinstance(duration, bool) or not isinstance(duration, int):
                raise ValueError(f"duration must be an integer, got {duration!r}")
            if isinstance(number, bool) or not isinstance(number, int):
                raise ValueError(f"pomodoroNumber must be an integer, got {number!r}")
            return cls(
                id=str(data["id"]),
                session_type=SessionType(data["sessionType"]),
                duration=duration,
                completed_at=str(data["completedAt"]),
                date=str(data["date"]),
                pomodoro_number=number,
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed history entry: {e}") from e


@dataclass
class PomodoroHistory:
    """The whole history document."""

    entries: list[HistoryEntry] = field(default_factory=list)
    total_pomodoros: int = 0
    last_updated: str = field(default_factory=lambda: _local_now().isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": SCHEMA_VERSION,
            "entries": [entry.to_dict() for entry in self.entries],
            "totalPomodoros": self.total_pomodoros,
            "lastUpdated": self.last_updated,
        }


@dataclass
class TodayStats:
    pomodoros: int
    total_minutes: int


class HistoryManager:
    """Append-only store of completed sessions.

    Example:
        >>> history = HistoryManager(Path("~/.pomotui/history.json").expanduser())
        >>> entry = history.add_entry(SessionType.WORK, 25)
        >>> entry.pomodoro_number
        1
    """

    def __init__(self, file_path: Path, now_func: Callable[[], datetime] = _local_now):
        """Initialize history manager and load the file.

        Args:
            file_path: History JSON file
            now_func: Source of the current local time
        """
        self.file_path = Path(file_path)
        self._now = now_func
        self._history = self._load()

    def _load(self) -> PomodoroHistory:
        if not self.file_path.exists():
            logger.debug(f"History file not found, starting empty: {self.file_path}")
            return self._create_empty()

        try:
            content = self.file_path.read_text(encoding="utf-8")
            if not content.strip():
                return self._create_empty()
            data = json.loads(content)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read history file {self.file_path}: {e}")
            return self._create_empty()

        return self._decode(data)

    def _decode(self, data: Any) -> PomodoroHistory:
        if not isinstance(data, dict) or not isinstance(data.get("entries", []), list):
            logger.warning("History file has unexpected layout, starting empty")
            return self._create_empty()

        version = data.get("version", SCHEMA_VERSION)
        if not isinstance(version, int) or version > SCHEMA_VERSION:
            logger.warning(f"Unsupported history version {version!r}, starting empty")
            return self._create_empty()

        entries: list[HistoryEntry] = []
        for raw in data.get("entries", []):
            try:
                entries.append(HistoryEntry.from_dict(raw))
            except ValueError as e:
                logger.warning(f"Dropping history entry: {e}")

        work_count = sum(1 for e in entries if e.session_type is SessionType.WORK)
        total = data.get("totalPomodoros")
        if isinstance(total, bool) or not isinstance(total, int) or total < work_count:
            total = work_count

        last_updated = data.get("lastUpdated")
        if not isinstance(last_updated, str):
            last_updated = self._now().isoformat()

        return PomodoroHistory(entries=entries, total_pomodoros=total, last_updated=last_updated)

    def _create_empty(self) -> PomodoroHistory:
        return PomodoroHistory(last_updated=self._now().isoformat())

    def _today(self) -> str:
        return self._now().date().isoformat()

    def _work_entries_on(self, date: str) -> list[HistoryEntry]:
        return [
            e for e in self._history.entries
            if e.date == date and e.session_type is SessionType.WORK
        ]

    def add_entry(self, session_type: SessionType, duration: int) -> HistoryEntry:
        """Record a completed session and save.

        Args:
            session_type: Session that just ended
            duration: Configured length of that session in minutes

        Returns:
            The stored entry

        Raises:
            HistoryError: If the file cannot be written (entry stays in memory)
        """
        now = self._now()
        date = now.date().isoformat()
        is_work = session_type is SessionType.WORK

        entry = HistoryEntry(
            id=generate_id(),
            session_type=session_type,
            duration=duration,
            completed_at=now.isoformat(),
            date=date,
            pomodoro_number=len(self._work_entries_on(date)) + 1 if is_work else 0,
        )

        self._history.entries.append(entry)
        if is_work:
            self._history.total_pomodoros += 1
        self._history.last_updated = now.isoformat()

        self._save()
        logger.debug(f"Recorded {session_type.value} session ({duration}m)")
        return entry

    def _save(self) -> None:
        temp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(self._history.to_dict(), f, indent=2)
            os.replace(temp_path, self.file_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise HistoryError(f"Failed to save history: {e}") from e

    def get_history(self) -> PomodoroHistory:
        """Return a copy of the history document."""
        return PomodoroHistory(
            entries=[replace(e) for e in self._history.entries],
            total_pomodoros=self._history.total_pomodoros,
            last_updated=self._history.last_updated,
        )

    def get_recent(self, limit: int = 10) -> list[HistoryEntry]:
        """Most recent entries, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._history.entries[-limit:]))

    def get_today_stats(self) -> TodayStats:
        today = self._work_entries_on(self._today())
        return TodayStats(
            pomodoros=len(today),
            total_minutes=sum(e.duration for e in today),
        )

    def get_file_path(self) -> Path:
        return self.file_path


__all__ = [
    "HistoryEntry",
    "HistoryError",
    "HistoryManager",
    "PomodoroHistory",
    "TodayStats",
    "generate_id",
]
