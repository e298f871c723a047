import argparse
import atexit
import logging
import os
import signal
import subprocess
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from types import FrameType

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from . import __version__, supervisor, system
from .config import Config
from .constants import APP_DATA_DIR, APP_NAME, APP_TITLE, CONFIG_FILE, LOG_FILE
from .context import ApplicationContext
from .git_wrapper import GitRepo
from .orchestrator import Orchestrator
from .updater import UpdateChecker

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)

console = Console()
err_console = Console(stderr=True)


def setup_logging(interactive: bool, config: Config, verbose: bool = False) -> None:
    """Configures the logging subsystem.

    Args:
        interactive (bool): If True, logs to stdout. Otherwise to stderr.
        config (Config): Supplies the log rotation size.
        verbose (bool): Enables DEBUG output.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    if verbose:
        logger.setLevel(logging.DEBUG)

    stream_handler = logging.StreamHandler(sys.stdout if interactive else sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=config.limits.max_log_size,
            backupCount=5,
            encoding="utf-8",
        )
    except OSError as e:
        logger.warning(f"Could not open log file {LOG_FILE}: {e}")
        return
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def _install_shutdown_hooks(orchestrator: Orchestrator) -> None:
    """Stops the supervised process on SIGINT/SIGTERM and at interpreter exit."""

    def signal_handler(_signum: int, _frame: FrameType | None) -> None:
        orchestrator.shutdown()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    atexit.register(supervisor.stop_process, orchestrator.ctx)


def _wait_until(stop: threading.Event) -> None:
    # Short timeouts keep the main thread responsive to signals on Windows.
    while not stop.wait(1.0):
        pass


def run_app(config: Config, headless: bool = False, check_updates: bool = True) -> None:
    """Runs the utility until Exit, a signal, or a startup failure.

    Args:
        config (Config): The loaded configuration.
        headless (bool): Skip the tray and supervise from the terminal.
        check_updates (bool): Whether to query the release feed at startup.
    """
    sys_strat = system.get_system()
    ctx = ApplicationContext.create(config, app_data_dir=APP_DATA_DIR)
    orchestrator = Orchestrator(ctx)

    stop = threading.Event()
    ctx.quit = stop.set
    _install_shutdown_hooks(orchestrator)

    updater = None
    if check_updates and config.update.enabled:
        updater = UpdateChecker(config.update, sys_strat, quit=orchestrator.shutdown)

    if headless:
        if updater is not None:
            updater.check_in_background()
        orchestrator.initialize()
        _wait_until(stop)
        return

    from .tray import TrayController

    tray = TrayController(
        orchestrator,
        updater,
        icon_path=Path(config.tray.icon) if config.tray.icon else None,
    )
    tray.run()

    if tray.quit_requested:
        return

    # The tray went away without Exit being chosen.
    if sys_strat.quits_when_ui_closes():
        orchestrator.shutdown()
        return

    logger.info("Tray closed; continuing in the background until signalled")
    ctx.quit = stop.set
    _wait_until(stop)


def show_status(config: Config) -> None:
    """Displays paths, the working copy revision, and key settings."""
    ctx = ApplicationContext.create(config, app_data_dir=APP_DATA_DIR)

    content = Text()
    content.append("Repository: ", style="bold")
    content.append(f"{config.repo.url}\n")
    content.append("Working copy: ", style="bold")
    if (ctx.repo_dir / ".git").exists():
        head = GitRepo(ctx.repo_dir).head_commit()
        content.append(f"{ctx.repo_dir}", style="green")
        content.append(f" @ {head or 'unknown'}\n")
    else:
        content.append(f"{ctx.repo_dir} (not cloned yet)\n", style="yellow")
    content.append("Install: ", style="bold")
    content.append(" ".join(config.install.command) + "\n")
    content.append("Launch: ", style="bold")
    content.append(" ".join(config.launch.command) + "\n")
    content.append("Updates: ", style="bold")
    if config.update.enabled:
        content.append(f"enabled (v{__version__})\n", style="green")
    else:
        content.append(f"disabled (v{__version__})\n", style="dim")
    content.append("Config: ", style="bold")
    content.append(f"{CONFIG_FILE}\n")
    content.append("Log: ", style="bold")
    content.append(f"{LOG_FILE}")

    console.print(Panel(content, title=f"{APP_TITLE} Status", expand=False))


def open_config() -> None:
    """Opens the configuration file in the system default editor."""
    if not CONFIG_FILE.exists():
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            f.write(
                f"# {APP_TITLE} Configuration\n\n"
                "[repo]\n"
                '# url = "https://github.com/6686-repos/sheltupdate6686"\n'
                '# branch = "main"\n\n'
                "[install]\n"
                '# command = ["npm", "install"]\n\n'
                "[launch]\n"
                '# command = ["node", "src/index.js"]\n'
                '# stop_timeout = "5s"\n\n'
                "[update]\n"
                "# enabled = true\n"
            )

    editor = os.environ.get("EDITOR")
    if not editor:
        if sys.platform == "darwin":
            editor = "open"
        elif sys.platform == "win32":
            editor = "notepad"
        else:
            editor = "nano"

    console.print(f"Opening [cyan]{CONFIG_FILE}[/cyan]...")

    try:
        subprocess.run([editor, str(CONFIG_FILE)])
    except OSError as e:
        console.print(f"[red]Could not open editor: {e}[/red]")


def tail_log() -> None:
    """Follows the log file in real-time."""
    if not LOG_FILE.exists():
        console.print(f"[red]No log file found yet at {LOG_FILE}.[/red]")
        return

    console.print(f"Tailing [bold cyan]{LOG_FILE}[/bold cyan] (Ctrl+C to stop)...")
    try:
        subprocess.run(["tail", "-n", "1000", "-f", str(LOG_FILE)])
    except FileNotFoundError:
        console.print(LOG_FILE.read_text(encoding="utf-8", errors="replace"))
    except KeyboardInterrupt:
        console.print("\nStopped.", style="dim")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the DS Mod Installer."""
    parser = argparse.ArgumentParser(prog=APP_NAME, description=APP_TITLE)
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config", type=Path, help=f"Config file (default: {CONFIG_FILE})"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Sync, install and run (default)")
    run_parser.add_argument(
        "--headless", action="store_true", help="Run without a tray icon"
    )
    run_parser.add_argument(
        "--no-update-check", action="store_true", help="Skip the self-update check"
    )
    subparsers.add_parser("status", help="Show paths and working copy status")
    subparsers.add_parser("config", help="Open the config file")
    subparsers.add_parser("log", help="Tail the log file")

    args = parser.parse_args(argv)

    if args.config is not None and not args.config.exists():
        err_console.print(
            f"[bold red]FATAL:[/bold red] Config file not found: {args.config}"
        )
        sys.exit(1)
    config = Config.load(args.config)

    if args.command == "status":
        show_status(config)
        return
    elif args.command == "config":
        open_config()
        return
    elif args.command == "log":
        tail_log()
        return

    # Default Action: run the utility.
    headless = getattr(args, "headless", False)
    setup_logging(interactive=headless, config=config, verbose=args.verbose)
    run_app(
        config,
        headless=headless,
        check_updates=not getattr(args, "no_update_check", False),
    )


if __name__ == "__main__":
    main()
