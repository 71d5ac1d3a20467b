"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores default durations, music mode, data file locations and the optional
Spotify token.

Security:
- Config directory permissions: 0700, file permissions: 0600 (the file may
  hold a Spotify token)
- Atomic writes (temporary file + rename)
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import tomli
import tomlkit

from pomotui.models import PomodoroConfig
from pomotui.music import MusicMode

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".pomotui"
CONFIG_FILE_NAME = "config.toml"

_DURATION_KEYS = (
    "work_duration",
    "short_break_duration",
    "long_break_duration",
    "pomodoros_before_long_break",
)


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


@dataclass
class PomotuiConfig:
    """pomotui configuration data."""

    work_duration: int = 25
    short_break_duration: int = 5
    long_break_duration: int = 15
    pomodoros_before_long_break: int = 4
    music_mode: str = "radio"
    history_file: str | None = None  # default: <config dir>/history.json
    tasks_file: str | None = None  # default: <config dir>/tasks.json
    spotify_token: str | None = None
    user_name: str = "User"
    check_updates: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # Filter out None values as TOML doesn't support them
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PomotuiConfig":
        """Create from dictionary, validating every known key.

        Unknown keys are ignored so older versions can read newer files.

        Raises:
            ConfigError: If a value has the wrong type or range
        """
        config = cls()
        for f in fields(cls):
            if f.name in data:
                setattr(config, f.name, data[f.name])
        config.validate()
        return config

    def validate(self) -> None:
        """Check types and ranges.

        Raises:
            ConfigError: If any value is invalid
        """
        for key in _DURATION_KEYS:
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"{key} must be a positive integer, got {value!r}")

        try:
            MusicMode(self.music_mode)
        except ValueError:
            choices = ", ".join(m.value for m in MusicMode)
            raise ConfigError(f"music_mode must be one of: {choices}") from None

        for key in ("history_file", "tasks_file", "spotify_token"):
            value = getattr(self, key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{key} must be a string")

        if not isinstance(self.user_name, str) or not self.user_name.strip():
            raise ConfigError("user_name must be a non-empty string")
        if not isinstance(self.check_updates, bool):
            raise ConfigError("check_updates must be true or false")

    def to_pomodoro_config(self) -> PomodoroConfig:
        return PomodoroConfig(
            work_duration=self.work_duration,
            short_break_duration=self.short_break_duration,
            long_break_duration=self.long_break_duration,
            pomodoros_before_long_break=self.pomodoros_before_long_break,
        )

    @property
    def mode(self) -> MusicMode:
        return MusicMode(self.music_mode)


class ConfigManager:
    """Manage pomotui configuration file.

    Configuration is stored at ~/.pomotui/config.toml with secure permissions.
    """

    @classmethod
    def get_config_dir(cls) -> Path:
        return Path.home() / CONFIG_DIR_NAME

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Path to config file

        Raises:
            ConfigError: If a custom path was given and does not exist
        """
        if custom_path:
            path = Path(custom_path).expanduser().resolve()
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return cls.get_config_dir() / CONFIG_FILE_NAME

    @classmethod
    def ensure_config_dir(cls) -> Path:
        """Ensure config directory exists with secure permissions.

        Returns:
            Path to config directory

        Raises:
            ConfigError: If directory creation fails
        """
        config_dir = cls.get_config_dir()
        try:
            config_dir.mkdir(parents=True, exist_ok=True)

            # Set secure permissions (owner only: rwx------)
            os.chmod(config_dir, 0o700)

            logger.debug(f"Config directory ready: {config_dir}")
            return config_dir

        except OSError as e:
            raise ConfigError(f"Failed to create config directory: {e}") from e

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> PomotuiConfig:
        """Load configuration from file.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            PomotuiConfig object (defaults if no file exists)

        Raises:
            ConfigError: If the file cannot be read or holds invalid values
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return PomotuiConfig()

        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)
        except (OSError, tomli.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to load config: {e}") from e

        logger.debug(f"Loaded config from: {config_path}")
        return PomotuiConfig.from_dict(data)

    @classmethod
    def save_config(cls, config: PomotuiConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file.

        Comments and formatting of an existing file are preserved.

        Args:
            config: Configuration to save
            custom_path: Custom config file path (optional)

        Returns:
            Path written

        Raises:
            ConfigError: If the configuration is invalid or saving fails
        """
        config.validate()

        if custom_path:
            config_path = Path(custom_path).expanduser().resolve()
        else:
            cls.ensure_config_dir()
            config_path = cls.get_config_dir() / CONFIG_FILE_NAME

        temp_path = config_path.with_suffix(".tmp")
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            values = config.to_dict()
            for key, value in values.items():
                doc[key] = value
            # Keys reset to None must disappear from the file
            for key in [k for k in doc if k not in values and hasattr(config, k)]:
                del doc[key]

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            # Set secure permissions before moving
            os.chmod(temp_path, 0o600)

            # Atomic rename
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def set_value(cls, key: str, raw_value: str, custom_path: str | None = None) -> PomotuiConfig:
        """Parse and store a single setting given as text.

        Raises:
            ConfigError: If the key is unknown or the value is invalid
        """
        known = {f.name: f for f in fields(PomotuiConfig)}
        if key not in known:
            raise ConfigError(f"Unknown setting: {key}")

        config = cls.load_config(custom_path)
        if key in _DURATION_KEYS:
            try:
                value: Any = int(raw_value)
            except ValueError:
                raise ConfigError(f"{key} must be a positive integer, got {raw_value!r}") from None
        elif key == "check_updates":
            lowered = raw_value.strip().lower()
            if lowered not in ("true", "false", "yes", "no", "1", "0"):
                raise ConfigError("check_updates must be true or false")
            value = lowered in ("true", "yes", "1")
        elif raw_value == "" and key in ("history_file", "tasks_file", "spotify_token"):
            value = None
        else:
            value = raw_value

        setattr(config, key, value)
        cls.save_config(config, custom_path)
        return config

    @classmethod
    def get_history_path(cls, config: PomotuiConfig) -> Path:
        if config.history_file:
            return Path(config.history_file).expanduser()
        return cls.get_config_dir() / "history.json"

    @classmethod
    def get_tasks_path(cls, config: PomotuiConfig) -> Path:
        if config.tasks_file:
            return Path(config.tasks_file).expanduser()
        return cls.get_config_dir() / "tasks.json"


__all__ = ["ConfigError", "ConfigManager", "PomotuiConfig"]
