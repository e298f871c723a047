"""Self-update for the installer utility.

The release feed is a GitHub "latest release" endpoint. When it advertises a
version newer than the running one, the matching asset is downloaded in the
background and the user is asked to restart into it. Nothing in here may
disturb the sync sequence: every failure ends in a log line.
"""

import logging
import stat
import subprocess
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import requests
from packaging.version import InvalidVersion, Version

from . import __version__
from .config import UpdateConfig
from .constants import APP_NAME, UPDATES_DIR
from .system import SystemStrategy

logger = logging.getLogger(APP_NAME)

DOWNLOAD_CHUNK_SIZE = 65536

# Preferred asset suffixes, most specific first.
ASSET_SUFFIXES = {
    "win32": (".whl", ".exe", ".msi"),
    "darwin": (".whl", ".pkg", ".dmg"),
    "linux": (".whl", ".AppImage"),
}


@dataclass
class Release:
    """A release advertised by the update feed.

    Attributes:
        version (Version): The parsed release version.
        asset_name (str): File name of the downloadable package.
        asset_url (str): Direct download URL of the package.
    """

    version: Version
    asset_name: str
    asset_url: str


def parse_tag(tag: str) -> Version:
    """Parses a release tag such as 'v1.4.0' into a Version."""
    return Version(tag.strip().lstrip("vV"))


def _pick_asset(assets: list[dict]) -> dict | None:
    """Chooses the asset best suited to this platform, if any."""
    platform = "linux" if sys.platform.startswith("linux") else sys.platform
    for suffix in ASSET_SUFFIXES.get(platform, (".whl",)):
        for asset in assets:
            if asset.get("name", "").endswith(suffix):
                return asset
    return None


def installer_command(package: Path) -> list[str]:
    """Returns the command that hands a platform installer to the OS.

    Downloads are written without the executable bit, and disk images or
    MSI packages cannot be executed directly at all.
    """
    suffix = package.suffix.lower()
    if suffix == ".appimage":
        package.chmod(package.stat().st_mode | stat.S_IXUSR)
        return [str(package)]
    if suffix in (".pkg", ".dmg"):
        return ["open", str(package)]
    if suffix == ".msi":
        return ["msiexec", "/i", str(package)]
    return [str(package)]


class UpdateChecker:
    """Checks the release feed and installs newer versions of this utility.

    Attributes:
        config (UpdateConfig): Feed URL and network timeout.
        system (SystemStrategy): Used for the notification and confirm dialog.
        quit (Callable[[], None]): Shuts the utility down after install.
        current_version (Version): The running version.
        download_dir (Path): Where packages are saved.
    """

    def __init__(
        self,
        config: UpdateConfig,
        system: SystemStrategy,
        quit: Callable[[], None],
        current_version: str = __version__,
        download_dir: Path = UPDATES_DIR,
    ):
        self.config = config
        self.system = system
        self.quit = quit
        self.current_version = Version(current_version)
        self.download_dir = download_dir

    def fetch_latest(self) -> Release | None:
        """Queries the feed and returns the release if it is newer than ours.

        Raises:
            requests.RequestException: On transport or HTTP errors.
            ValueError: If the feed payload is malformed.
        """
        resp = requests.get(
            self.config.feed_url,
            headers={"Accept": "application/vnd.github+json"},
            timeout=self.config.timeout,
        )
        resp.raise_for_status()
        data = resp.json()

        try:
            latest = parse_tag(data["tag_name"])
        except (KeyError, TypeError, InvalidVersion) as e:
            raise ValueError(f"Malformed release feed: {e}") from e

        if latest <= self.current_version:
            logger.info(f"Up to date (v{self.current_version})")
            return None

        asset = _pick_asset(data.get("assets") or [])
        if asset is None:
            logger.warning(f"Release v{latest} has no asset for {sys.platform}")
            return None

        return Release(latest, asset["name"], asset["browser_download_url"])

    def download(self, release: Release) -> Path:
        """Streams the release asset into the download directory.

        Returns:
            Path: The downloaded file.
        """
        self.download_dir.mkdir(parents=True, exist_ok=True)
        target = self.download_dir / release.asset_name
        partial = target.with_name(target.name + ".part")

        with requests.get(
            release.asset_url, stream=True, timeout=self.config.timeout
        ) as resp:
            resp.raise_for_status()
            with open(partial, "wb") as f:
                for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)

        partial.replace(target)
        logger.info(f"Downloaded update to {target}")
        return target

    def install_and_relaunch(self, package: Path) -> None:
        """Installs `package` and replaces the running utility with it.

        Wheels are installed into the running interpreter and the utility is
        started again; platform installers are launched detached and take
        care of the restart themselves. The current process then quits.
        """
        if package.suffix == ".whl":
            subprocess.run(
                [sys.executable, "-m", "pip", "install", "--upgrade", str(package)],
                check=True,
            )
            relaunch = [sys.executable, "-m", "ds_mod_installer", *sys.argv[1:]]
        else:
            relaunch = installer_command(package)

        logger.info(f"Relaunching: {' '.join(relaunch)}")
        if sys.platform == "win32":
            subprocess.Popen(relaunch, creationflags=subprocess.DETACHED_PROCESS)
        else:
            subprocess.Popen(relaunch, start_new_session=True)
        self.quit()

    def check_for_updates(self) -> None:
        """Runs one full check. Every failure is logged and swallowed."""
        try:
            release = self.fetch_latest()
            if release is None:
                return

            logger.info(f"Update available: v{release.version}")
            self.system.notify(
                "Update Available",
                "A new version is available. "
                "The update will be downloaded automatically.",
            )
            package = self.download(release)

            accepted = self.system.confirm(
                "Update Ready",
                "Update has been downloaded. "
                "The application will restart to install the update.",
                button="Restart",
            )
            if accepted:
                self.install_and_relaunch(package)
            else:
                logger.info("Update postponed by user")
        except Exception as e:
            logger.error(f"AutoUpdater error: {e}")

    def check_in_background(self) -> threading.Thread:
        """Starts `check_for_updates` on a daemon thread."""
        thread = threading.Thread(
            target=self.check_for_updates, name="update-check", daemon=True
        )
        thread.start()
        return thread
