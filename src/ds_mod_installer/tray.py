"""System tray icon and its Restart / Exit commands."""

import logging
import threading
from collections.abc import Callable
from pathlib import Path

import pystray
from PIL import Image

from .constants import APP_NAME, ICON_FILE, ICON_SIZE
from .orchestrator import Orchestrator
from .updater import UpdateChecker

logger = logging.getLogger(APP_NAME)


def blank_icon() -> Image.Image:
    """A fully transparent icon used when the real one cannot be loaded."""
    return Image.new("RGBA", ICON_SIZE, (0, 0, 0, 0))


def load_icon(path: Path = ICON_FILE) -> Image.Image:
    """Loads the tray icon and resizes it, falling back to a blank image."""
    try:
        with Image.open(path) as img:
            return img.convert("RGBA").resize(ICON_SIZE)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load tray icon from {path}: {e}")
        return blank_icon()


def _in_background(handler: Callable[[], None], name: str) -> Callable[..., None]:
    """Wraps a command handler so menu clicks never block the UI thread."""

    def _click(_icon=None, _item=None) -> None:
        threading.Thread(target=handler, name=name, daemon=True).start()

    return _click


def build_menu(
    title: str, on_restart: Callable[[], None], on_exit: Callable[[], None]
) -> pystray.Menu:
    """Builds the static menu: title, separator, Restart, Exit."""
    return pystray.Menu(
        pystray.MenuItem(title, None, enabled=False),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Restart", _in_background(on_restart, "restart")),
        pystray.MenuItem("Exit", _in_background(on_exit, "exit")),
    )


class TrayController:
    """Owns the tray icon for the lifetime of the process.

    The tray backend calls `_on_ready` once the icon is up; that is when the
    update check and the startup sequence begin.

    Attributes:
        orchestrator (Orchestrator): Runs the sequence and the shutdown.
        updater (UpdateChecker | None): Started on readiness if given.
        icon (pystray.Icon | None): Created by `run`.
        quit_requested (bool): True once the app asked to quit (vs. the tray
            being torn down from outside).
        startup (threading.Thread | None): Runs the startup sequence.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        updater: UpdateChecker | None = None,
        icon_path: Path | None = None,
    ):
        self.orchestrator = orchestrator
        self.updater = updater
        self.icon_path = icon_path or ICON_FILE
        self.icon: pystray.Icon | None = None
        self.quit_requested = False
        self.startup: threading.Thread | None = None

    def _create_icon(self) -> pystray.Icon:
        title = self.orchestrator.ctx.config.tray.title
        return pystray.Icon(
            APP_NAME,
            icon=load_icon(self.icon_path),
            title=title,
            menu=build_menu(title, self.on_restart, self.on_exit),
        )

    def quit(self) -> None:
        """Ends the tray loop, which lets `run` return."""
        self.quit_requested = True
        if self.icon is not None:
            self.icon.visible = False
            self.icon.stop()

    def on_restart(self) -> None:
        self.orchestrator.restart()

    def on_exit(self) -> None:
        self.orchestrator.shutdown()

    def _on_ready(self, icon: pystray.Icon) -> None:
        # The backend waits on this callback when stopping; return promptly.
        icon.visible = True
        if self.updater is not None:
            self.updater.check_in_background()
        self.startup = threading.Thread(
            target=self.orchestrator.initialize, name="startup", daemon=True
        )
        self.startup.start()

    def run(self) -> None:
        """Creates the tray icon and blocks in its event loop."""
        if self.icon is not None:
            raise RuntimeError("Tray is already running")

        ctx = self.orchestrator.ctx
        self.icon = self._create_icon()
        ctx.tray = self.icon
        ctx.quit = self.quit
        self.icon.run(setup=self._on_ready)
