import enum
import logging
import threading
from collections.abc import Callable

from . import ops, supervisor
from .constants import APP_NAME
from .context import ApplicationContext
from .errors import InstallError, SpawnError, SyncError

logger = logging.getLogger(APP_NAME)


class SequenceState(enum.Enum):
    """Where the Sync -> Install -> Launch sequence currently is."""

    IDLE = "idle"
    SYNCING = "syncing"
    INSTALLING = "installing"
    LAUNCHING = "launching"
    RUNNING = "running"
    FAILED = "failed"


HINTS = {
    "sync": (
        "Failed to clone/pull repository. "
        "Please check your internet connection and try again."
    ),
    "install": (
        "Failed to install dependencies. Check the error log above for details.\n"
        "Common solutions:\n"
        "1. Check your internet connection\n"
        "2. Clear npm cache (run npm cache clean --force)\n"
        "3. Delete node_modules folder and try again"
    ),
    "spawn": (
        "Failed to start a required program. "
        "Please ensure it is installed and accessible in your PATH."
    ),
    "unknown": "Unexpected failure. Check the error log above for details.",
}


def classify_failure(err: BaseException) -> tuple[str, str]:
    """Maps a sequence failure to its kind and a remediation hint.

    Returns:
        tuple[str, str]: ("sync" | "install" | "spawn" | "unknown", hint).
    """
    if isinstance(err, SyncError):
        kind = "sync"
    elif isinstance(err, InstallError):
        kind = "install"
    elif isinstance(err, SpawnError):
        kind = "spawn"
    else:
        kind = "unknown"
    return kind, HINTS[kind]


class Orchestrator:
    """Drives the Sync -> Install -> Launch sequence.

    Only one sequence runs at a time; requests that arrive while one is in
    flight are ignored. Once shutdown begins, no sequence launches a child.

    Attributes:
        ctx (ApplicationContext): Shared paths, config, and child handle.
        state (SequenceState): The state of the most recent sequence.
        closing (threading.Event): Set by shutdown.
    """

    def __init__(self, ctx: ApplicationContext):
        self.ctx = ctx
        self.state = SequenceState.IDLE
        self.closing = threading.Event()
        self._busy = threading.Lock()

    @property
    def busy(self) -> bool:
        """True while a sequence is in flight."""
        return self._busy.locked()

    def _abandoned(self) -> bool:
        if self.closing.is_set():
            logger.info("Shutdown requested; abandoning the sync sequence")
            self.state = SequenceState.IDLE
            return True
        return False

    def _run_steps(self) -> bool:
        if self._abandoned():
            return False
        self.state = SequenceState.SYNCING
        logger.info("Cloning or pulling repository...")
        ops.sync_repository(self.ctx)

        if self._abandoned():
            return False
        self.state = SequenceState.INSTALLING
        logger.info("Installing dependencies...")
        ops.install_dependencies(self.ctx)

        if self._abandoned():
            return False
        self.state = SequenceState.LAUNCHING
        logger.info("Starting supervised process...")
        supervisor.start_process(self.ctx)

        # Shutdown may have run between the check above and the spawn.
        if self._abandoned():
            supervisor.stop_process(self.ctx)
            return False
        self.state = SequenceState.RUNNING
        return True

    def run_sequence(self, before: Callable[[], None] | None = None) -> bool:
        """Runs one sequence unless another is already in flight.

        Args:
            before (Callable[[], None] | None): Invoked inside the guard, before
                syncing. Used by restart to stop the current child.

        Returns:
            bool: False if the request was ignored because a sequence is busy,
            or the sequence was abandoned because the application is closing.

        Raises:
            Exception: Whatever the failing step raised; state is FAILED.
        """
        if not self._busy.acquire(blocking=False):
            logger.warning("A sync sequence is already running; request ignored")
            return False
        try:
            if before is not None:
                before()
            return self._run_steps()
        except Exception:
            self.state = SequenceState.FAILED
            raise
        finally:
            self._busy.release()

    def _report(self, err: Exception, context: str) -> None:
        kind, hint = classify_failure(err)
        logger.error(f"{context} ({kind} failure): {err}", exc_info=kind == "unknown")
        logger.error(hint)

    def initialize(self) -> None:
        """Runs the startup sequence. Any failure quits the application."""
        logger.info("Starting initialization...")
        try:
            if self.run_sequence():
                logger.info("Initialization completed successfully")
        except Exception as e:
            self._report(e, "Initialization failed")
            if not self.closing.is_set():
                self.ctx.quit()

    def _stop_for_restart(self) -> None:
        if supervisor.is_running(self.ctx):
            logger.info("Stopping the running instance before re-syncing")
        supervisor.stop_process(self.ctx)

    def restart(self) -> None:
        """Stops the supervised process and re-runs the sequence.

        Failures are logged; the application keeps running so the user can
        retry from the tray.
        """
        logger.info("Restart requested")
        try:
            if self.run_sequence(before=self._stop_for_restart):
                logger.info("Restart completed successfully")
        except Exception as e:
            self._report(e, "Failed to restart process")

    def shutdown(self) -> None:
        """Stops the supervised process, then quits the application.

        A sequence still in flight stops at its next step and never launches.
        """
        logger.info("Shutting down")
        self.closing.set()
        supervisor.stop_process(self.ctx)
        self.ctx.quit()
