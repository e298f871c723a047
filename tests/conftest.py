"""Shared fixtures. Keeps every test away from the real home directory."""

import os
import tempfile

# Must be set before the package computes its paths on import.
os.environ.setdefault("DS_MOD_INSTALLER_HOME", tempfile.mkdtemp(prefix="dsmod-"))
os.environ.setdefault("PYSTRAY_BACKEND", "dummy")

from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402

from ds_mod_installer.config import Config  # noqa: E402
from ds_mod_installer.context import ApplicationContext  # noqa: E402


@pytest.fixture(autouse=True)
def clear_config_cache() -> Any:
    """Ensures every test starts with a clean config cache."""
    Config._cache = None
    yield
    Config._cache = None


@pytest.fixture
def ctx(tmp_path: Path) -> ApplicationContext:
    """An application context rooted in a temporary directory."""
    conf = Config()
    conf.launch.stop_timeout = 0.1
    return ApplicationContext.create(conf, app_data_dir=tmp_path / "appdata")
