import os
import sys
from pathlib import Path

"""Global constants and filesystem layout for DS Mod Installer.

This module defines application identifiers, the default remote repository,
and the platform-specific directories used for the working copy, logs, and
configuration.
"""

# --- Identity ---
APP_NAME = "ds-mod-installer"
"""str: The machine-readable application name (also the logger name)."""

APP_TITLE = "DS Mod Installer"
"""str: The human-readable title shown in the tray menu and tooltip."""

# --- Remote Repository ---
DEFAULT_REPO_URL = "https://github.com/6686-repos/sheltupdate6686"
"""str: The repository that is cloned and kept in sync."""

DEFAULT_REPO_DIR = "sheltupdate6686"
"""str: Name of the working copy directory inside the app data directory."""

DEFAULT_INSTALL_COMMAND = ["npm", "install"]
"""list[str]: Package manager command run inside the working copy."""

DEFAULT_LAUNCH_COMMAND = ["node", "src/index.js"]
"""list[str]: Command that starts the synced application."""

DEFAULT_UPDATE_FEED = (
    "https://api.github.com/repos/6686-repos/ds-mod-installer/releases/latest"
)
"""str: Release feed queried for newer versions of this utility."""


# --- Paths ---
def _app_data_root() -> Path:
    """Resolves the per-user data root for the current platform."""
    override = os.environ.get("DS_MOD_INSTALLER_HOME")
    if override:
        return Path(override)
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        return Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    xdg_data = os.environ.get("XDG_DATA_HOME")
    return Path(xdg_data) if xdg_data else Path.home() / ".local/share"


APP_DATA_DIR = _app_data_root() / "dsmodinstaller"
"""Path: The directory scoped to this utility (created on first sync)."""

LOG_FILE = APP_DATA_DIR / "installer.log"
"""Path: The rotating log file."""

UPDATES_DIR = APP_DATA_DIR / "updates"
"""Path: Download target for self-update packages."""

# --- Configuration Paths ---
_XDG_CONFIG = os.environ.get("XDG_CONFIG_HOME")
_BASE_CONFIG = Path(_XDG_CONFIG) if _XDG_CONFIG else Path.home() / ".config"

if sys.platform in ("win32", "darwin") or "DS_MOD_INSTALLER_HOME" in os.environ:
    CONFIG_DIR: Path = APP_DATA_DIR
else:
    CONFIG_DIR = _BASE_CONFIG / "ds-mod-installer"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

# --- Assets ---
ICON_FILE = Path(__file__).parent / "assets" / "icon.png"
"""Path: The bundled tray icon."""

ICON_SIZE = (16, 16)
"""tuple[int, int]: Tray icon dimensions after resizing."""
