"""Error taxonomy for the Sync -> Install -> Launch sequence.

Each step raises its own subclass so the orchestrator can classify a failure
by type instead of inspecting message text.
"""


class InstallerError(Exception):
    """Base class for failures of a sequence step."""


class SyncError(InstallerError):
    """Cloning or pulling the working copy failed."""


class SpawnError(InstallerError):
    """An external executable could not be started at all."""


class InstallError(InstallerError):
    """The package manager exited with a non-zero code.

    Attributes:
        exit_code (int): The package manager's exit code.
        output (str): Everything it wrote to stdout and stderr.
    """

    def __init__(self, exit_code: int, stdout: str, stderr: str):
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.output = stdout + stderr
        super().__init__(
            f"Dependency install failed with code {exit_code}\n"
            f"Output: {stdout}\nErrors: {stderr}"
        )
