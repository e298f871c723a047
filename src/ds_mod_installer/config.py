import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    APP_TITLE,
    CONFIG_FILE,
    DEFAULT_INSTALL_COMMAND,
    DEFAULT_LAUNCH_COMMAND,
    DEFAULT_REPO_DIR,
    DEFAULT_REPO_URL,
    DEFAULT_UPDATE_FEED,
)

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '5MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | float | str) -> float:
    """Converts human-readable time strings (e.g., '5s', '2min') to seconds."""
    if isinstance(value, (int, float)):
        return float(value)
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return num * multiplier[unit]


def parse_command(value: str | list[str]) -> list[str]:
    """Accepts a command either as an argv list or a whitespace-separated string."""
    if isinstance(value, str):
        parts = value.split()
    elif isinstance(value, list) and all(isinstance(p, str) for p in value):
        parts = list(value)
    else:
        raise ValueError(f"Invalid command '{value}'")
    if not parts:
        raise ValueError("Command must not be empty")
    return parts


@dataclass
class RepoConfig:
    """Remote repository settings.

    Attributes:
        url (str): The repository to clone.
        directory (str): Working copy directory name inside the app data dir.
        branch (str | None): Branch to clone and pull. None uses the remote default.
        remote (str): Remote to pull from when a branch is set.
    """

    url: str = DEFAULT_REPO_URL
    directory: str = DEFAULT_REPO_DIR
    branch: str | None = None
    remote: str = "origin"


@dataclass
class InstallConfig:
    """Package manager settings.

    Attributes:
        command (list[str]): The install command, run inside the working copy.
    """

    command: list[str] = field(default_factory=lambda: list(DEFAULT_INSTALL_COMMAND))


@dataclass
class LaunchConfig:
    """Supervised process settings.

    Attributes:
        command (list[str]): The command that starts the synced application.
        stop_timeout (float): Seconds to wait after terminate() before kill().
    """

    command: list[str] = field(default_factory=lambda: list(DEFAULT_LAUNCH_COMMAND))
    stop_timeout: float = 5.0


@dataclass
class UpdateConfig:
    """Self-update settings.

    Attributes:
        enabled (bool): Whether to query the release feed at startup.
        feed_url (str): The "latest release" endpoint.
        timeout (float): Per-request network timeout in seconds.
    """

    enabled: bool = True
    feed_url: str = DEFAULT_UPDATE_FEED
    timeout: float = 15.0


@dataclass
class TrayConfig:
    """Tray icon settings.

    Attributes:
        title (str): Menu title and tooltip.
        icon (str | None): Optional path to a custom icon image.
    """

    title: str = APP_TITLE
    icon: str | None = None


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for the log file before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        repo (RepoConfig): Remote repository settings.
        install (InstallConfig): Package manager settings.
        launch (LaunchConfig): Supervised process settings.
        update (UpdateConfig): Self-update settings.
        tray (TrayConfig): Tray icon settings.
        limits (LimitsConfig): Resource limits.
    """

    repo: RepoConfig = field(default_factory=RepoConfig)
    install: InstallConfig = field(default_factory=InstallConfig)
    launch: LaunchConfig = field(default_factory=LaunchConfig)
    update: UpdateConfig = field(default_factory=UpdateConfig)
    tray: TrayConfig = field(default_factory=TrayConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    # Cache for the loaded configuration
    _cache: "Config | None" = None

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from defaults and the TOML config file.

        Args:
            path (Path | None): Explicit config file. Defaults to CONFIG_FILE,
                in which case the result is cached.

        Returns:
            Config: The fully merged configuration object.
        """
        if path is not None:
            instance = cls()
            if path.exists():
                instance._merge_from_file(path)
            return instance

        if cls._cache is None:
            instance = cls()
            if CONFIG_FILE.exists():
                instance._merge_from_file(CONFIG_FILE)
            cls._cache = instance

        return replace(cls._cache)

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            for section in ("repo", "install", "launch", "update", "tray", "limits"):
                if section in data:
                    setattr(
                        self,
                        section,
                        self._update_dataclass(
                            section, getattr(self, section), data[section]
                        ),
                    )

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k in ["stop_timeout", "timeout"]:
                    filtered_updates[k] = parse_time(v)
                elif k == "command":
                    filtered_updates[k] = parse_command(v)
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
