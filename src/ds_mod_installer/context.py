import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import Config
from .constants import APP_DATA_DIR


def _noop() -> None:
    pass


@dataclass
class ApplicationContext:
    """State shared by the sequence steps, the tray, and the shutdown hooks.

    Attributes:
        config (Config): The loaded configuration.
        app_data_dir (Path): Directory scoped to this utility.
        repo_dir (Path): The working copy, inside `app_data_dir`.
        process (subprocess.Popen | None): The supervised child process, if any.
        process_lock (threading.Lock): Guards swaps of `process`.
        tray (Any): The tray icon, set once when the UI is up.
        quit (Callable[[], None]): Terminates the host application loop.
    """

    config: Config
    app_data_dir: Path
    repo_dir: Path
    process: subprocess.Popen | None = None
    process_lock: threading.Lock = field(default_factory=threading.Lock)
    tray: Any = None
    quit: Callable[[], None] = _noop

    @classmethod
    def create(
        cls, config: Config, app_data_dir: Path = APP_DATA_DIR
    ) -> "ApplicationContext":
        """Builds a context whose working copy lives under `app_data_dir`."""
        return cls(
            config=config,
            app_data_dir=app_data_dir,
            repo_dir=app_data_dir / config.repo.directory,
        )
