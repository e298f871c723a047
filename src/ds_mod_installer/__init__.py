"""DS Mod Installer: keeps a synced repository installed and running.

This package clones or pulls a remote repository into a per-user data
directory, installs its dependencies with the package manager, and runs it as
a supervised child process controlled from a system-tray icon. It can also
update itself from a release feed.
"""

__version__ = "1.0.0"

from . import (
    cli,
    config,
    constants,
    context,
    errors,
    git_wrapper,
    ops,
    orchestrator,
    supervisor,
    system,
    updater,
)

__all__ = [
    "__version__",
    "cli",
    "config",
    "constants",
    "context",
    "errors",
    "git_wrapper",
    "ops",
    "orchestrator",
    "supervisor",
    "system",
    "updater",
]
