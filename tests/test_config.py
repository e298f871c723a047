"""Tests for the configuration management subsystem."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ds_mod_installer.config import Config, parse_command, parse_size, parse_time
from ds_mod_installer.constants import DEFAULT_REPO_URL


def test_config_defaults() -> None:
    """Verifies that the configuration initializes with the shipped defaults."""
    conf = Config()
    assert conf.repo.url == DEFAULT_REPO_URL
    assert conf.repo.branch is None
    assert conf.install.command == ["npm", "install"]
    assert conf.launch.command == ["node", "src/index.js"]
    assert conf.launch.stop_timeout == 5.0
    assert conf.update.enabled is True
    assert conf.tray.title == "DS Mod Installer"


def test_config_defaults_are_not_shared() -> None:
    """Verifies that mutable command lists are independent per instance."""
    a, b = Config(), Config()
    a.install.command.append("--production")
    assert b.install.command == ["npm", "install"]


def test_config_load_merges_file(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies that values from the global config file override defaults.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        mocker (MagicMock): Pytest fixture for mocking.
    """
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        '[repo]\nurl = "https://example.com/fork.git"\nbranch = "dev"\n'
        '[install]\ncommand = "pnpm install --frozen-lockfile"\n'
        '[launch]\ncommand = ["node", "dist/main.js"]\nstop_timeout = "2min"\n'
        "[update]\nenabled = false\n"
    )
    mocker.patch("ds_mod_installer.config.CONFIG_FILE", config_path)

    conf = Config.load()

    assert conf.repo.url == "https://example.com/fork.git"
    assert conf.repo.branch == "dev"
    assert conf.install.command == ["pnpm", "install", "--frozen-lockfile"]
    assert conf.launch.command == ["node", "dist/main.js"]
    assert conf.launch.stop_timeout == 120
    assert conf.update.enabled is False


def test_config_load_is_cached(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies that the global config file is parsed only once."""
    config_path = tmp_path / "config.toml"
    config_path.write_text('[tray]\ntitle = "First"\n')
    mocker.patch("ds_mod_installer.config.CONFIG_FILE", config_path)

    assert Config.load().tray.title == "First"
    config_path.write_text('[tray]\ntitle = "Second"\n')
    assert Config.load().tray.title == "First"


def test_config_load_explicit_path(tmp_path: Path) -> None:
    """Verifies that an explicit path bypasses the cache and the global file."""
    config_path = tmp_path / "custom.toml"
    config_path.write_text('[repo]\ndirectory = "checkout"\n')

    conf = Config.load(config_path)

    assert conf.repo.directory == "checkout"
    assert Config._cache is None


def test_parse_size() -> None:
    """Verifies that human-readable sizes are correctly converted to bytes."""
    assert parse_size(100) == 100
    assert parse_size("100kb") == 102400
    assert parse_size("10 MB") == 10485760

    with pytest.raises(ValueError, match=r"Invalid size format '100 bits'"):
        parse_size("100 bits")


def test_parse_time() -> None:
    """Verifies that human-readable times are correctly converted to seconds."""
    assert parse_time(5) == 5.0
    assert parse_time(0.5) == 0.5
    assert parse_time("30s") == 30
    assert parse_time("2 min") == 120
    assert parse_time("1.5h") == 5400

    with pytest.raises(ValueError, match=r"Invalid time format 'soon'"):
        parse_time("soon")


def test_parse_command() -> None:
    """Verifies that commands accept strings or argv lists but never empties."""
    assert parse_command("npm ci") == ["npm", "ci"]
    assert parse_command(["yarn"]) == ["yarn"]

    with pytest.raises(ValueError):
        parse_command("   ")
    with pytest.raises(ValueError):
        parse_command(["npm", 3])


def test_config_invalid_keys_and_values(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that unknown keys are ignored and invalid values fallback to defaults.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        caplog (pytest.LogCaptureFixture): Pytest fixture for capturing logs.
    """
    import logging

    caplog.set_level(logging.WARNING)

    config_path = tmp_path / "config.toml"
    config_path.write_text(
        "[launch]\n"
        'stop_timeout = "eventually"\n'
        'fake_setting = "ignored"\n'
        "[limits]\n"
        'max_log_size = "10 gallons"\n'
    )

    conf = Config.load(config_path)

    assert conf.launch.stop_timeout == 5.0
    assert conf.limits.max_log_size == 5242880

    assert "Unknown config keys in [launch]: fake_setting" in caplog.text
    assert "Config error in [launch].stop_timeout: Invalid time format" in caplog.text
    assert "Config error in [limits].max_log_size: Invalid size format" in caplog.text


def test_config_syntax_error_keeps_defaults(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that a malformed TOML file is reported and defaults are used."""
    config_path = tmp_path / "config.toml"
    config_path.write_text("[repo\nurl = ")

    conf = Config.load(config_path)

    assert conf.repo.url == DEFAULT_REPO_URL
    assert "Config syntax error" in caplog.text
