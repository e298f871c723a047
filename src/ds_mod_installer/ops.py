import logging
import shutil
import subprocess
import threading
from collections.abc import Callable
from typing import IO

from .constants import APP_NAME
from .context import ApplicationContext
from .errors import InstallError, SpawnError, SyncError
from .git_wrapper import GitRepo

logger = logging.getLogger(APP_NAME)


def resolve_command(command: list[str]) -> list[str]:
    """Resolves the executable of `command` on the search path.

    This picks up wrapper scripts such as `npm.cmd` on Windows without
    going through a shell.

    Raises:
        SpawnError: If the executable cannot be found.
    """
    exe = shutil.which(command[0])
    if not exe:
        raise SpawnError(
            f"Failed to start {command[0]}: executable not found in PATH"
        )
    return [exe, *command[1:]]


def pump_stream(
    stream: IO[str], log: Callable[[str], None], sink: list[str] | None = None
) -> threading.Thread:
    """Starts a daemon thread forwarding each line of `stream` to `log`.

    Args:
        stream (IO[str]): A text pipe from a child process.
        log (Callable[[str], None]): Receives each line without its newline.
        sink (list[str] | None): If given, raw lines are also appended here.

    Returns:
        threading.Thread: The started reader thread.
    """

    def _read() -> None:
        with stream:
            for line in stream:
                if sink is not None:
                    sink.append(line)
                log(line.rstrip("\r\n"))

    thread = threading.Thread(target=_read, daemon=True)
    thread.start()
    return thread


def sync_repository(ctx: ApplicationContext) -> None:
    """Ensures the working copy exists and is current.

    Clones the configured repository if the working copy is missing,
    otherwise pulls into it. No retries are attempted.

    Args:
        ctx (ApplicationContext): Provides the paths and repository settings.

    Raises:
        SyncError: If creating the app data directory, cloning, or pulling fails.
    """
    repo_conf = ctx.config.repo
    try:
        ctx.app_data_dir.mkdir(parents=True, exist_ok=True)

        if not ctx.repo_dir.exists():
            logger.info("Repository not found, attempting to clone...")
            repo = GitRepo.clone(repo_conf.url, ctx.repo_dir, branch=repo_conf.branch)
            logger.info("Repository cloned successfully")
        else:
            logger.info("Repository exists, pulling latest changes...")
            repo = GitRepo(ctx.repo_dir)
            repo.pull(remote=repo_conf.remote, branch=repo_conf.branch)
            logger.info("Repository updated successfully")
    except (RuntimeError, ValueError, OSError) as e:
        logger.error(f"Git operation failed: {e}")
        raise SyncError(f"Git operation failed: {e}") from e

    head = repo.head_commit()
    if head:
        logger.info(f"Working copy at {head}")


def install_dependencies(ctx: ApplicationContext) -> None:
    """Runs the package manager inside the working copy and waits for it.

    Both output streams are logged line by line as they arrive and kept in
    full for the error report.

    Args:
        ctx (ApplicationContext): Provides the working copy and install command.

    Raises:
        SpawnError: If the package manager cannot be started.
        InstallError: If it exits with a non-zero code.
    """
    command = ctx.config.install.command
    logger.info(f"Starting {' '.join(command)}...")

    argv = resolve_command(command)
    try:
        proc = subprocess.Popen(
            argv,
            cwd=ctx.repo_dir,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
    except OSError as e:
        logger.error(f"Failed to start {command[0]} process: {e}")
        raise SpawnError(f"Failed to start {command[0]}: {e}") from e

    stdout_lines: list[str] = []
    stderr_lines: list[str] = []
    readers = [
        pump_stream(
            proc.stdout, lambda line: logger.info(f"install output: {line}"), stdout_lines
        ),
        pump_stream(
            proc.stderr, lambda line: logger.warning(f"install error: {line}"), stderr_lines
        ),
    ]

    code = proc.wait()
    for reader in readers:
        reader.join()

    if code != 0:
        err = InstallError(code, "".join(stdout_lines), "".join(stderr_lines))
        logger.error(str(err))
        raise err

    logger.info("Dependency install completed successfully")
