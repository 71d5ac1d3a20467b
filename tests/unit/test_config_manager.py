"""Unit tests for config_manager module."""

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from pomotui.config_manager import ConfigError, ConfigManager, PomotuiConfig
from pomotui.models import PomodoroConfig
from pomotui.music import MusicMode


class TestPomotuiConfig:
    """Tests for PomotuiConfig dataclass."""

    def test_default_values(self):
        """Test default configuration values."""
        config = PomotuiConfig()
        assert config.work_duration == 25
        assert config.short_break_duration == 5
        assert config.long_break_duration == 15
        assert config.pomodoros_before_long_break == 4
        assert config.music_mode == "radio"
        assert config.history_file is None
        assert config.spotify_token is None
        assert config.check_updates is False

    def test_to_dict_excludes_none(self):
        """Test None values are dropped since TOML cannot store them."""
        data = PomotuiConfig(work_duration=50).to_dict()
        assert data["work_duration"] == 50
        assert "history_file" not in data
        assert "spotify_token" not in data

    def test_from_dict(self):
        """Test creation from dictionary."""
        config = PomotuiConfig.from_dict(
            {"work_duration": 50, "music_mode": "off", "history_file": "~/h.json"}
        )
        assert config.work_duration == 50
        assert config.mode is MusicMode.OFF
        assert config.history_file == "~/h.json"
        assert config.short_break_duration == 5  # Default

    def test_from_dict_ignores_unknown_keys(self):
        """Test unknown keys from newer versions are ignored."""
        config = PomotuiConfig.from_dict({"theme": "dark", "work_duration": 30})
        assert config.work_duration == 30
        assert not hasattr(config, "theme")

    @pytest.mark.parametrize(
        "data",
        [
            {"work_duration": 0},
            {"short_break_duration": -5},
            {"long_break_duration": "15"},
            {"pomodoros_before_long_break": True},
            {"work_duration": 2.5},
        ],
    )
    def test_from_dict_rejects_bad_durations(self, data):
        """Test non-positive and non-integer durations are rejected."""
        with pytest.raises(ConfigError, match="must be a positive integer"):
            PomotuiConfig.from_dict(data)

    def test_rejects_unknown_music_mode(self):
        """Test music_mode must be a known mode."""
        with pytest.raises(ConfigError, match="music_mode must be one of"):
            PomotuiConfig.from_dict({"music_mode": "jukebox"})

    def test_rejects_blank_user_name(self):
        """Test user_name cannot be blank."""
        with pytest.raises(ConfigError, match="user_name"):
            PomotuiConfig.from_dict({"user_name": "   "})

    def test_rejects_non_bool_check_updates(self):
        """Test check_updates must be a boolean."""
        with pytest.raises(ConfigError, match="check_updates"):
            PomotuiConfig.from_dict({"check_updates": "yes"})

    def test_rejects_non_string_path(self):
        """Test file paths must be strings."""
        with pytest.raises(ConfigError, match="history_file must be a string"):
            PomotuiConfig.from_dict({"history_file": 42})

    def test_to_pomodoro_config(self):
        """Test conversion to engine configuration."""
        config = PomotuiConfig(work_duration=50, short_break_duration=10)
        assert config.to_pomodoro_config() == PomodoroConfig(
            work_duration=50,
            short_break_duration=10,
            long_break_duration=15,
            pomodoros_before_long_break=4,
        )


class TestConfigManager:
    """Tests for ConfigManager class."""

    def test_get_config_path_default(self):
        """Test default config path."""
        path = ConfigManager.get_config_path()
        assert path == Path.home() / ".pomotui" / "config.toml"

    def test_get_config_path_custom(self, tmp_path):
        """Test custom config path."""
        custom_path = tmp_path / "custom.toml"
        custom_path.touch()
        assert ConfigManager.get_config_path(str(custom_path)) == custom_path

    def test_get_config_path_custom_not_exists(self, tmp_path):
        """Test custom config path that doesn't exist."""
        with pytest.raises(ConfigError, match="Config file not found"):
            ConfigManager.get_config_path(str(tmp_path / "missing.toml"))

    def test_load_config_not_exists(self):
        """Test loading config when file doesn't exist."""
        config = ConfigManager.load_config()
        assert config == PomotuiConfig()

    def test_load_config_from_file(self, tmp_path):
        """Test loading values from a TOML file."""
        config_file = tmp_path / "config.toml"
        config_file.write_text('work_duration = 45\nmusic_mode = "spotify"\nuser_name = "Sam"\n')

        config = ConfigManager.load_config(str(config_file))

        assert config.work_duration == 45
        assert config.mode is MusicMode.SPOTIFY
        assert config.user_name == "Sam"

    def test_load_config_invalid_toml(self, tmp_path):
        """Test malformed TOML raises ConfigError."""
        config_file = tmp_path / "config.toml"
        config_file.write_text("work_duration = = 45")
        with pytest.raises(ConfigError, match="Failed to load config"):
            ConfigManager.load_config(str(config_file))

    def test_load_config_invalid_value(self, tmp_path):
        """Test out-of-range values in the file raise ConfigError."""
        config_file = tmp_path / "config.toml"
        config_file.write_text("work_duration = 0")
        with pytest.raises(ConfigError, match="work_duration"):
            ConfigManager.load_config(str(config_file))

    def test_save_and_load_default_location(self):
        """Test saving to ~/.pomotui and reading it back."""
        path = ConfigManager.save_config(PomotuiConfig(work_duration=50, check_updates=True))

        assert path == Path.home() / ".pomotui" / "config.toml"
        loaded = ConfigManager.load_config()
        assert loaded.work_duration == 50
        assert loaded.check_updates is True

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_save_config_secure_permissions(self):
        """Test config file is 0600 and directory is 0700."""
        path = ConfigManager.save_config(PomotuiConfig(spotify_token="secret"))
        assert os.stat(path).st_mode & 0o777 == 0o600
        assert os.stat(path.parent).st_mode & 0o777 == 0o700

    def test_save_config_preserves_comments(self, tmp_path):
        """Test comments in an existing file survive a save."""
        config_file = tmp_path / "config.toml"
        config_file.write_text("# my settings\nwork_duration = 30\n")

        ConfigManager.save_config(PomotuiConfig(work_duration=40), str(config_file))

        content = config_file.read_text()
        assert "# my settings" in content
        assert "work_duration = 40" in content

    def test_save_config_removes_cleared_keys(self, tmp_path):
        """Test keys reset to None are removed from the file."""
        config_file = tmp_path / "config.toml"
        config_file.write_text('spotify_token = "abc"\n')

        ConfigManager.save_config(PomotuiConfig(), str(config_file))

        assert "spotify_token" not in config_file.read_text()

    def test_save_config_rejects_invalid(self):
        """Test invalid configuration is never written."""
        with pytest.raises(ConfigError):
            ConfigManager.save_config(PomotuiConfig(work_duration=0))
        assert not (Path.home() / ".pomotui" / "config.toml").exists()

    def test_save_config_write_failure(self, tmp_path):
        """Test OS errors during save become ConfigError."""
        with patch("pomotui.config_manager.tomlkit.dump", side_effect=OSError("disk full")):
            with pytest.raises(ConfigError, match="Failed to save config"):
                ConfigManager.save_config(PomotuiConfig(), str(tmp_path / "config.toml"))
        assert not (tmp_path / "config.tmp").exists()


class TestSetValue:
    """Tests for ConfigManager.set_value."""

    def test_set_duration(self):
        """Test durations are parsed as integers."""
        config = ConfigManager.set_value("work_duration", "50")
        assert config.work_duration == 50
        assert ConfigManager.load_config().work_duration == 50

    def test_set_duration_not_a_number(self):
        """Test non-numeric durations are rejected."""
        with pytest.raises(ConfigError, match="must be a positive integer"):
            ConfigManager.set_value("work_duration", "fifty")

    def test_set_duration_zero(self):
        """Test zero durations are rejected."""
        with pytest.raises(ConfigError, match="must be a positive integer"):
            ConfigManager.set_value("short_break_duration", "0")

    @pytest.mark.parametrize("raw,expected", [("true", True), ("no", False), ("1", True)])
    def test_set_check_updates(self, raw, expected):
        """Test boolean parsing for check_updates."""
        assert ConfigManager.set_value("check_updates", raw).check_updates is expected

    def test_set_check_updates_invalid(self):
        """Test invalid boolean text is rejected."""
        with pytest.raises(ConfigError, match="check_updates must be true or false"):
            ConfigManager.set_value("check_updates", "maybe")

    def test_set_music_mode_invalid(self):
        """Test invalid music mode is rejected."""
        with pytest.raises(ConfigError, match="music_mode"):
            ConfigManager.set_value("music_mode", "jukebox")

    def test_clear_optional_value(self):
        """Test empty string clears optional settings."""
        ConfigManager.set_value("spotify_token", "abc")
        config = ConfigManager.set_value("spotify_token", "")
        assert config.spotify_token is None
        assert ConfigManager.load_config().spotify_token is None

    def test_unknown_key(self):
        """Test unknown settings are rejected."""
        with pytest.raises(ConfigError, match="Unknown setting: theme"):
            ConfigManager.set_value("theme", "dark")


class TestDataPaths:
    """Tests for history and task file locations."""

    def test_default_paths(self):
        """Test data files default to the config directory."""
        config = PomotuiConfig()
        assert ConfigManager.get_history_path(config) == Path.home() / ".pomotui" / "history.json"
        assert ConfigManager.get_tasks_path(config) == Path.home() / ".pomotui" / "tasks.json"

    def test_custom_paths_expand_user(self):
        """Test ~ is expanded in configured paths."""
        config = PomotuiConfig(history_file="~/notes/h.json", tasks_file="/tmp/t.json")
        assert ConfigManager.get_history_path(config) == Path.home() / "notes" / "h.json"
        assert ConfigManager.get_tasks_path(config) == Path("/tmp/t.json")
