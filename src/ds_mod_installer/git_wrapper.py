import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


def _git(args: list[str], cwd: Path | None = None) -> str:
    """Executes a git command and returns its stripped stdout.

    Raises:
        RuntimeError: If git exits non-zero or cannot be started.
    """
    try:
        res = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
        return res.stdout.strip()
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f"Git error: {(e.stderr or '').strip() or e}") from e
    except OSError as e:
        raise RuntimeError(f"Git could not be started: {e}") from e


class GitRepo:
    """A wrapper around the Git command-line interface for the working copy.

    Only the operations needed to keep a read-only checkout current are
    exposed: clone, pull, and a head lookup for diagnostics.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @classmethod
    def clone(cls, url: str, dest: Path, branch: str | None = None) -> "GitRepo":
        """Clones `url` into `dest` and returns a wrapper for the new checkout.

        Args:
            url (str): The remote repository URL.
            dest (Path): Target directory. Must not exist yet.
            branch (str | None): Branch to check out. Defaults to the remote HEAD.

        Raises:
            RuntimeError: If the clone fails.
        """
        cmd = ["clone"]
        if branch:
            cmd += ["--branch", branch]
        cmd += [url, str(dest)]
        _git(cmd, cwd=dest.parent)
        return cls(dest)

    def _run(self, args: list[str]) -> str:
        """Executes a Git command within the repository context."""
        return _git(args, cwd=self.path)

    def pull(self, remote: str | None = None, branch: str | None = None) -> str:
        """Pulls the latest changes into the working copy.

        Without arguments the branch's configured upstream is used.

        Returns:
            str: Git's summary output.
        """
        cmd = ["pull"]
        if branch:
            cmd += [remote or "origin", branch]
        return self._run(cmd)

    def head_commit(self) -> str:
        """Returns the abbreviated hash of HEAD, or an empty string on failure."""
        try:
            return self._run(["rev-parse", "--short", "HEAD"])
        except RuntimeError as e:
            logger.warning(f"Could not resolve HEAD in {self.path}: {e}")
            return ""
