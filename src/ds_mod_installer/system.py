import logging
import subprocess
import sys

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


class SystemStrategy:
    """Base class defining the interface for desktop interactions."""

    def notify(self, title: str, message: str) -> None:
        """Shows a non-blocking informational message.

        Args:
            title (str): The notification title.
            message (str): The notification body text.
        """
        logger.info(f"{title}: {message}")

    def confirm(self, title: str, message: str, button: str = "OK") -> bool:
        """Asks the user to confirm an action. Blocks until answered.

        Args:
            title (str): The dialog title.
            message (str): The question or statement to confirm.
            button (str): Label of the accepting button.

        Returns:
            bool: True if the user accepted. The base strategy has no dialog
            to show, so nobody can accept and it always declines.
        """
        logger.warning(
            f"{title}: {message} (no dialog available, waiting for a later run)"
        )
        return False

    def quits_when_ui_closes(self) -> bool:
        """Whether the platform convention is to quit once the UI is gone."""
        return True


class MacOSStrategy(SystemStrategy):
    """System strategy implementation for macOS."""

    def notify(self, title: str, message: str) -> None:
        """Sends a notification using AppleScript."""
        # Sanitize quotes to prevent AppleScript syntax errors.
        clean_msg = message.replace('"', "'")
        script = f'display notification "{clean_msg}" with title "{title}"'
        try:
            subprocess.Popen(["osascript", "-e", script], stderr=subprocess.DEVNULL)
        except OSError:
            super().notify(title, message)

    def confirm(self, title: str, message: str, button: str = "OK") -> bool:
        """Shows a modal AppleScript dialog."""
        clean_msg = message.replace('"', "'")
        script = (
            f'display dialog "{clean_msg}" with title "{title}" '
            f'buttons {{"Later", "{button}"}} default button "{button}"'
        )
        try:
            res = subprocess.run(
                ["osascript", "-e", script], capture_output=True, text=True
            )
        except OSError:
            return super().confirm(title, message, button)
        return res.returncode == 0 and button in res.stdout

    def quits_when_ui_closes(self) -> bool:
        # Apps conventionally keep running on macOS.
        return False


class LinuxStrategy(SystemStrategy):
    """System strategy implementation for Linux."""

    def notify(self, title: str, message: str) -> None:
        """Sends a notification using `notify-send`."""
        try:
            subprocess.Popen(["notify-send", title, message], stderr=subprocess.DEVNULL)
        except FileNotFoundError:
            super().notify(title, message)

    def confirm(self, title: str, message: str, button: str = "OK") -> bool:
        """Shows a question dialog using `zenity`."""
        try:
            res = subprocess.run(
                [
                    "zenity",
                    "--question",
                    f"--title={title}",
                    f"--text={message}",
                    f"--ok-label={button}",
                    "--cancel-label=Later",
                ],
                stderr=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            return super().confirm(title, message, button)
        return res.returncode == 0


class WindowsStrategy(SystemStrategy):
    """System strategy implementation for Windows."""

    MB_OK = 0x0
    MB_OKCANCEL = 0x1
    MB_ICONINFORMATION = 0x40
    IDOK = 1

    def _message_box(self, title: str, message: str, flags: int) -> int:
        import ctypes

        return ctypes.windll.user32.MessageBoxW(None, message, title, flags)

    def notify(self, title: str, message: str) -> None:
        """Shows an information box on a worker thread so the caller never blocks."""
        import threading

        threading.Thread(
            target=self._message_box,
            args=(title, message, self.MB_OK | self.MB_ICONINFORMATION),
            daemon=True,
        ).start()

    def confirm(self, title: str, message: str, button: str = "OK") -> bool:
        """Shows an OK/Cancel message box."""
        answer = self._message_box(
            title, message, self.MB_OKCANCEL | self.MB_ICONINFORMATION
        )
        return answer == self.IDOK


def get_system() -> SystemStrategy:
    """Factory function to retrieve the platform-specific system strategy.

    Returns:
        SystemStrategy: An instance of MacOSStrategy, LinuxStrategy,
        WindowsStrategy, or the base SystemStrategy depending on the
        operating system.
    """
    if sys.platform == "darwin":
        return MacOSStrategy()
    elif sys.platform.startswith("linux"):
        return LinuxStrategy()
    elif sys.platform == "win32":
        return WindowsStrategy()
    else:
        return SystemStrategy()
