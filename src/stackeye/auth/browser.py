"""Cross-platform "open this URL in the default browser" launchers.

Each platform gets a :class:`Launcher` subclass that starts the native
opener command without waiting for it: ``open`` on macOS, ``xdg-open`` on
Linux/BSD, and ``rundll32 url.dll,FileProtocolHandler`` on Windows. Anything
else falls back to the standard library :mod:`webbrowser` module.

Launching is best effort. :func:`open_or_print` never raises for a launch
failure; it prints the URL to stderr so the operator can open it manually.
"""

from __future__ import annotations

import platform
import subprocess
import webbrowser
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlsplit

from stackeye.exceptions import LaunchError
from stackeye.output import debug, info, warning


def validate_url(url: str) -> None:
    """Check that *url* is a non-empty ``http`` or ``https`` URL with a host.

    Raises:
        LaunchError: If the URL is empty or uses any other scheme.
    """
    if not url:
        raise LaunchError("Browser URL must not be empty")
    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https"):
        raise LaunchError(
            f"Unsupported URL scheme {parts.scheme!r} (only http and https are allowed)"
        )
    if not parts.netloc:
        raise LaunchError(f"Invalid URL {url!r}: missing host")


class Launcher(ABC):
    """Opens a URL in the operator's default browser."""

    name: str = "browser"

    def open(self, url: str) -> None:
        """Validate *url* and hand it to the platform opener.

        Raises:
            LaunchError: If validation fails or the opener cannot be started.
        """
        validate_url(url)
        debug(f"Opening browser via {self.name}")
        self._launch(url)

    @abstractmethod
    def _launch(self, url: str) -> None:
        """Start the opener for an already validated URL."""


class CommandLauncher(Launcher):
    """Launcher that spawns an external command and does not wait for it."""

    command: tuple[str, ...] = ()

    def argv(self, url: str) -> list[str]:
        return [*self.command, url]

    def _launch(self, url: str) -> None:
        try:
            subprocess.Popen(
                self.argv(url),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchError(f"Could not run {self.command[0]}: {exc}") from exc


class MacLauncher(CommandLauncher):
    name = "open"
    command = ("open",)


class LinuxLauncher(CommandLauncher):
    name = "xdg-open"
    command = ("xdg-open",)


class WindowsLauncher(CommandLauncher):
    name = "rundll32"
    command = ("rundll32", "url.dll,FileProtocolHandler")

    def _launch(self, url: str) -> None:
        try:
            subprocess.Popen(
                self.argv(url),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            raise LaunchError(f"Could not run {self.command[0]}: {exc}") from exc


class WebbrowserLauncher(Launcher):
    """Fallback for platforms without a known opener command."""

    name = "webbrowser"

    def _launch(self, url: str) -> None:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as exc:
            raise LaunchError(f"Could not open browser: {exc}") from exc
        if not opened:
            raise LaunchError("No usable web browser was found")


def get_launcher(system: Optional[str] = None) -> Launcher:
    """Return the launcher for *system* (defaults to ``platform.system()``)."""
    system = system if system is not None else platform.system()
    if system == "Darwin":
        return MacLauncher()
    if system == "Windows":
        return WindowsLauncher()
    if system == "Linux" or system.endswith("BSD"):
        return LinuxLauncher()
    return WebbrowserLauncher()


def open_or_print(url: str, launcher: Optional[Launcher] = None) -> bool:
    """Try to open *url*; on failure warn and print it for manual use.

    Returns:
        ``True`` if the launcher started, ``False`` if the URL was printed
        instead.

    Raises:
        LaunchError: Only when the URL itself is invalid.
    """
    validate_url(url)
    launcher = launcher or get_launcher()
    try:
        launcher.open(url)
    except LaunchError as exc:
        warning(f"Could not open browser automatically: {exc}")
        info("Please open this URL manually:")
        info(f"  {url}")
        return False
    return True
