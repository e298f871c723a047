"""Lifecycle of the single supervised child process.

The handle lives on the ApplicationContext. Starting always stops the
previous handle first, so at most one child is current at any time.
"""

import logging
import subprocess
import sys
import threading

from .constants import APP_NAME
from .context import ApplicationContext
from .errors import SpawnError
from .ops import pump_stream, resolve_command

logger = logging.getLogger(APP_NAME)


def _detach_kwargs() -> dict:
    """Popen options that put the child in its own process group."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def _watch_exit(proc: subprocess.Popen) -> None:
    code = proc.wait()
    logger.info(f"Child process exited with code {code}")


def _terminate(proc: subprocess.Popen, timeout: float) -> None:
    """Sends terminate, then escalates to kill if the child outlives `timeout`."""
    try:
        proc.terminate()
    except OSError as e:
        # Already reaped.
        logger.debug(f"terminate() on pid {proc.pid} failed: {e}")
        return

    try:
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(
            f"Child process {proc.pid} ignored terminate for {timeout:g}s, killing"
        )
        try:
            proc.kill()
        except OSError as e:
            logger.debug(f"kill() on pid {proc.pid} failed: {e}")


def is_running(ctx: ApplicationContext) -> bool:
    """Returns True if a supervised process is held and has not exited."""
    proc = ctx.process
    return proc is not None and proc.poll() is None


def stop_process(ctx: ApplicationContext) -> None:
    """Stops the supervised process, if one is held, and clears the handle.

    A termination signal is always sent, even if the process already exited.
    """
    with ctx.process_lock:
        proc, ctx.process = ctx.process, None
    if proc is None:
        return

    logger.info(f"Stopping child process {proc.pid}")
    _terminate(proc, ctx.config.launch.stop_timeout)


def start_process(ctx: ApplicationContext) -> subprocess.Popen:
    """Replaces any running supervised process with a fresh one.

    The child's stdout and stderr are forwarded to the log line by line.
    Its exit is logged but never acted upon.

    Args:
        ctx (ApplicationContext): Holds the handle, working copy, and command.

    Returns:
        subprocess.Popen: The new handle, also stored on `ctx.process`.

    Raises:
        SpawnError: If the launch command cannot be started.
    """
    stop_process(ctx)

    command = ctx.config.launch.command
    argv = resolve_command(command)
    try:
        proc = subprocess.Popen(
            argv,
            cwd=ctx.repo_dir,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            **_detach_kwargs(),
        )
    except OSError as e:
        logger.error(f"Failed to start {command[0]} process: {e}")
        raise SpawnError(f"Failed to start {command[0]}: {e}") from e

    with ctx.process_lock:
        ctx.process = proc

    logger.info(f"Started {' '.join(command)} (pid {proc.pid})")
    pump_stream(proc.stdout, lambda line: logger.info(f"stdout: {line}"))
    pump_stream(proc.stderr, lambda line: logger.error(f"stderr: {line}"))
    threading.Thread(target=_watch_exit, args=(proc,), daemon=True).start()
    return proc
