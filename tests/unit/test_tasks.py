"""Unit tests for tasks module."""

import json
from unittest.mock import patch

import pytest

from pomotui.tasks import Task, TaskError, TaskManager


@pytest.fixture
def tasks(tasks_path):
    return TaskManager(tasks_path)


def write_tasks(path, rows):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(
            [
                {"id": f"{i}-task", "text": text, "completed": done, "createdAt": created}
                for i, (text, done, created) in enumerate(rows)
            ]
        )
    )


class TestTaskManager:
    """Tests for TaskManager."""

    def test_empty_when_missing(self, tasks, tasks_path):
        """Test a missing file gives an empty list."""
        assert tasks.get_tasks() == []
        assert not tasks_path.exists()

    def test_add(self, tasks, tasks_path):
        """Test adding a task saves it as pending."""
        task = tasks.add("  Write report  ")

        assert task.text == "Write report"
        assert task.completed is False
        saved = json.loads(tasks_path.read_text())
        assert saved == [task.to_dict()]
        assert set(saved[0]) == {"id", "text", "completed", "createdAt"}

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_add_blank_rejected(self, tasks, text):
        """Test blank task text is rejected."""
        with pytest.raises(TaskError, match="Task text cannot be empty"):
            tasks.add(text)

    def test_toggle(self, tasks):
        """Test toggling flips the completed flag both ways."""
        task = tasks.add("Review PR")
        assert tasks.toggle(task.id).completed is True
        assert tasks.toggle(task.id).completed is False

    def test_toggle_unknown(self, tasks):
        """Test toggling an unknown id fails."""
        with pytest.raises(TaskError, match="Task not found"):
            tasks.toggle("nope")

    def test_delete(self, tasks):
        """Test deleting removes only the given task."""
        first = tasks.add("one")
        second = tasks.add("two")

        tasks.delete(first.id)

        assert [t.id for t in tasks.get_tasks()] == [second.id]

    def test_delete_unknown(self, tasks):
        """Test deleting an unknown id fails."""
        with pytest.raises(TaskError, match="Task not found"):
            tasks.delete("nope")

    def test_persists_across_instances(self, tasks, tasks_path):
        """Test a new manager reads saved tasks."""
        task = tasks.add("Persist me")
        tasks.toggle(task.id)

        reloaded = TaskManager(tasks_path).get_tasks()

        assert len(reloaded) == 1
        assert reloaded[0].text == "Persist me"
        assert reloaded[0].completed is True

    def test_pending_oldest_first(self, tasks_path):
        """Test pending tasks are ordered by creation time."""
        write_tasks(tasks_path, [("c", False, 3), ("a", False, 1), ("done", True, 0), ("b", False, 2)])
        assert [t.text for t in TaskManager(tasks_path).get_pending()] == ["a", "b", "c"]

    def test_completed_newest_first(self, tasks_path):
        """Test completed tasks are ordered newest first."""
        write_tasks(tasks_path, [("a", True, 1), ("c", True, 3), ("todo", False, 9), ("b", True, 2)])
        assert [t.text for t in TaskManager(tasks_path).get_completed()] == ["c", "b", "a"]

    def test_get_tasks_is_a_copy(self, tasks):
        """Test callers cannot mutate stored tasks."""
        tasks.add("original")
        tasks.get_tasks()[0].text = "changed"
        assert tasks.get_tasks()[0].text == "original"

    def test_resolve_by_position_and_id(self, tasks):
        """Test resolving by 1-based position or by id."""
        first = tasks.add("one")
        second = tasks.add("two")

        assert tasks.resolve("1").id == first.id
        assert tasks.resolve("2").id == second.id
        assert tasks.resolve(second.id).id == second.id

    @pytest.mark.parametrize("ref", ["0", "3", "missing"])
    def test_resolve_unknown(self, tasks, ref):
        """Test unknown references fail."""
        tasks.add("one")
        tasks.add("two")
        with pytest.raises(TaskError, match="Task not found"):
            tasks.resolve(ref)

    def test_save_failure(self, tasks):
        """Test write failures surface as TaskError."""
        with patch("pomotui.tasks.json.dump", side_effect=OSError("read-only")):
            with pytest.raises(TaskError, match="Failed to save tasks"):
                tasks.add("doomed")


class TestTaskLoading:
    """Tests for lenient loading."""

    @pytest.mark.parametrize("content", ["", "{broken", '{"tasks": []}'])
    def test_unusable_file_is_empty(self, tasks_path, content):
        """Test corrupt or non-list files give an empty list."""
        tasks_path.parent.mkdir(parents=True)
        tasks_path.write_text(content)
        assert TaskManager(tasks_path).get_tasks() == []

    def test_bad_items_dropped(self, tasks_path):
        """Test malformed items are dropped."""
        tasks_path.parent.mkdir(parents=True)
        tasks_path.write_text(
            json.dumps(
                [
                    {"id": "1-a", "text": "keep", "completed": False, "createdAt": 5},
                    {"text": "no id"},
                    {"id": "2-b", "text": "bad time", "createdAt": "soon"},
                ]
            )
        )
        assert [t.id for t in TaskManager(tasks_path).get_tasks()] == ["1-a"]

    def test_task_round_trip_keys(self):
        """Test stored keys use camelCase."""
        task = Task(id="1-a", text="t", completed=True, created_at=7)
        assert Task.from_dict(task.to_dict()) == task
        assert task.to_dict()["createdAt"] == 7
