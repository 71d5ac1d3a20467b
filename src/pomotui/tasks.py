"""Task list persistence.

A flat JSON list of tasks shown next to the timer. Loading is lenient:
a missing, empty or non-list file is an empty task list.
"""

import json
import logging
import os
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from pomotui.history import generate_id

logger = logging.getLogger(__name__)


class TaskError(Exception):
    """Raised when a task operation fails."""

    pass


@dataclass
class Task:
    id: str
    text: str
    completed: bool
    created_at: int  # epoch milliseconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        try:
            return cls(
                id=str(data["id"]),
                text=str(data["text"]),
                completed=bool(data.get("completed", False)),
                created_at=int(data.get("createdAt", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed task: {e}") from e


class TaskManager:
    """CRUD over the task file. Every mutation is saved immediately."""

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)
        self._tasks = self._load()

    def _load(self) -> list[Task]:
        try:
            content = self.file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read task file {self.file_path}: {e}")
            return []

        if not content.strip():
            return []

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Task file is not valid JSON: {e}")
            return []

        if not isinstance(data, list):
            logger.warning("Task file does not contain a list, ignoring it")
            return []

        tasks = []
        for raw in data:
            try:
                tasks.append(Task.from_dict(raw))
            except ValueError as e:
                logger.warning(f"Dropping task: {e}")
        return tasks

    def _save(self) -> None:
        temp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump([task.to_dict() for task in self._tasks], f, indent=2)
            os.replace(temp_path, self.file_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise TaskError(f"Failed to save tasks: {e}") from e

    def _find(self, task_id: str) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise TaskError(f"Task not found: {task_id}")

    def add(self, text: str) -> Task:
        """Add a pending task.

        Raises:
            TaskError: If text is blank or saving fails
        """
        text = text.strip()
        if not text:
            raise TaskError("Task text cannot be empty")

        task = Task(
            id=generate_id(),
            text=text,
            completed=False,
            created_at=int(time.time() * 1000),
        )
        self._tasks.append(task)
        self._save()
        return task

    def toggle(self, task_id: str) -> Task:
        task = self._find(task_id)
        task.completed = not task.completed
        self._save()
        return task

    def delete(self, task_id: str) -> None:
        self._find(task_id)
        self._tasks = [t for t in self._tasks if t.id != task_id]
        self._save()

    def resolve(self, ref: str) -> Task:
        """Find a task by id, or by its 1-based position in ``get_tasks()``.

        Raises:
            TaskError: If nothing matches
        """
        if ref.isdigit():
            position = int(ref)
            if 1 <= position <= len(self._tasks):
                return self._tasks[position - 1]
        return self._find(ref)

    def get_tasks(self) -> list[Task]:
        return [replace(t) for t in self._tasks]

    def get_pending(self) -> list[Task]:
        """Pending tasks, oldest first."""
        return sorted((t for t in self.get_tasks() if not t.completed), key=lambda t: t.created_at)

    def get_completed(self) -> list[Task]:
        """Completed tasks, newest first."""
        return sorted(
            (t for t in self.get_tasks() if t.completed),
            key=lambda t: t.created_at,
            reverse=True,
        )


__all__ = ["Task", "TaskError", "TaskManager"]
