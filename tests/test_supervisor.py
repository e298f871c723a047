"""Tests for the supervised child process lifecycle."""

import io
import subprocess
from unittest.mock import MagicMock

import pytest

from ds_mod_installer import supervisor
from ds_mod_installer.context import ApplicationContext
from ds_mod_installer.errors import SpawnError


@pytest.fixture
def node_on_path(mocker: MagicMock) -> None:
    mocker.patch("shutil.which", return_value="/usr/bin/node")


def _fake_child() -> MagicMock:
    proc = MagicMock()
    proc.pid = 4242
    proc.stdout = io.StringIO("listening on :8080\n")
    proc.stderr = io.StringIO("")
    proc.wait.return_value = 0
    return proc


def test_start_process_stores_handle(
    ctx: ApplicationContext, mocker: MagicMock, node_on_path: None
) -> None:
    """Verifies the launch argv, working directory, and stored handle."""
    child = _fake_child()
    mock_popen = mocker.patch("subprocess.Popen", return_value=child)

    proc = supervisor.start_process(ctx)

    assert proc is child
    assert ctx.process is child
    args, kwargs = mock_popen.call_args
    assert args[0] == ["/usr/bin/node", "src/index.js"]
    assert kwargs["cwd"] == ctx.repo_dir


def test_start_process_terminates_previous_first(
    ctx: ApplicationContext, mocker: MagicMock, node_on_path: None
) -> None:
    """Verifies the old handle is signalled before the new one is spawned."""
    old = MagicMock()
    ctx.process = old

    def spawn(*args: object, **kwargs: object) -> MagicMock:
        assert old.terminate.called, "previous child must be signalled first"
        assert ctx.process is None
        return _fake_child()

    mocker.patch("subprocess.Popen", side_effect=spawn)

    new = supervisor.start_process(ctx)

    old.terminate.assert_called_once()
    assert ctx.process is new
    assert ctx.process is not old


def test_start_process_spawn_failure(
    ctx: ApplicationContext, mocker: MagicMock, node_on_path: None
) -> None:
    """Verifies that an unlaunchable entry point raises SpawnError and holds nothing."""
    mocker.patch("subprocess.Popen", side_effect=FileNotFoundError("node"))

    with pytest.raises(SpawnError):
        supervisor.start_process(ctx)

    assert ctx.process is None


def test_stop_process_signals_even_if_exited(ctx: ApplicationContext) -> None:
    """Verifies that a terminate is sent to a handle whose process already exited."""
    proc = MagicMock()
    proc.poll.return_value = 0
    ctx.process = proc

    supervisor.stop_process(ctx)

    proc.terminate.assert_called_once()
    proc.kill.assert_not_called()
    assert ctx.process is None


def test_stop_process_escalates_to_kill(
    ctx: ApplicationContext, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that a child ignoring terminate is killed after the timeout."""
    proc = MagicMock()
    proc.pid = 7
    proc.wait.side_effect = subprocess.TimeoutExpired("node", 0.1)
    ctx.process = proc

    supervisor.stop_process(ctx)

    proc.terminate.assert_called_once()
    proc.wait.assert_called_once_with(timeout=ctx.config.launch.stop_timeout)
    proc.kill.assert_called_once()
    assert "killing" in caplog.text


def test_stop_process_without_handle_is_noop(ctx: ApplicationContext) -> None:
    """Verifies that stopping with nothing held does nothing."""
    supervisor.stop_process(ctx)
    assert ctx.process is None


def test_is_running(ctx: ApplicationContext) -> None:
    """Verifies liveness is derived from the held handle."""
    assert supervisor.is_running(ctx) is False

    proc = MagicMock()
    proc.poll.return_value = None
    ctx.process = proc
    assert supervisor.is_running(ctx) is True

    proc.poll.return_value = 1
    assert supervisor.is_running(ctx) is False
