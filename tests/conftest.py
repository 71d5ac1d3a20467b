"""
Shared test fixtures and configuration for pomotui tests.

This module provides common fixtures used across all test types:
- Temporary home directory (tests never touch ~/.pomotui)
- Pomodoro configurations and a hand-driven clock
- Player probe and process mocks
"""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from pomotui.clock import ManualClock
from pomotui.models import PomodoroConfig
from pomotui.pomodoro import Pomodoro

# ============================================================================
# DIRECTORY FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def temp_home_dir(tmp_path, monkeypatch):
    """Temporary home directory for every test.

    Sets HOME to a temporary directory so config, history and task
    files are never read from or written to the real home directory.
    """
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))
    return home_dir


@pytest.fixture
def history_path(tmp_path):
    return tmp_path / "data" / "history.json"


@pytest.fixture
def tasks_path(tmp_path):
    return tmp_path / "data" / "tasks.json"


# ============================================================================
# ENGINE FIXTURES
# ============================================================================


@pytest.fixture
def small_config():
    """One-minute sessions, long break after two pomodoros."""
    return PomodoroConfig(
        work_duration=1,
        short_break_duration=1,
        long_break_duration=2,
        pomodoros_before_long_break=2,
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def engine(clock):
    """Engine with default 25/5/15/4 durations."""
    return Pomodoro(PomodoroConfig(), clock)


@pytest.fixture
def fixed_now():
    """Callable returning a fixed local time for history tests."""
    moment = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
    return lambda: moment


# ============================================================================
# AUDIO PLAYER FIXTURES
# ============================================================================


@pytest.fixture
def mpv_available():
    """Probe finds mpv and nothing else."""

    def which(name):
        return "/usr/bin/mpv" if name == "mpv" else None

    with patch("pomotui.music.shutil.which", side_effect=which) as mock:
        yield mock


@pytest.fixture
def no_player():
    """Probe finds no player at all."""
    with patch("pomotui.music.shutil.which", return_value=None) as mock:
        yield mock


@pytest.fixture
def mock_popen():
    """Mock subprocess.Popen returning processes that stay alive."""

    def make_process(*args, **kwargs):
        process = Mock()
        process.poll.return_value = None
        process.returncode = None
        process.pid = 4242
        return process

    with patch("pomotui.music.subprocess.Popen", side_effect=make_process) as mock:
        yield mock
