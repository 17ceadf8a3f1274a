"""Terminal output for stackeye, split between data and diagnostics.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** carries results only: the context table, the login and
  ``whoami`` summaries, ``context current``. Scripts can pipe it.
* **stderr** carries everything else: status lines, warnings, errors,
  next-step suggestions, and the ``--verbose`` handshake trace.
* Rich styling is used only when stdout is an interactive terminal and
  colour is allowed (``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` all
  turn it off).

Any API key that slips into a diagnostic message is masked before it is
written, so a failed login never leaves a usable credential in a terminal
scrollback or a CI log.

Commands call the module-level helpers (:func:`info`, :func:`error`, ...),
which delegate to the :class:`OutputManager` installed by
:func:`~stackeye.app.main_callback`.
"""

from __future__ import annotations

import json
import os
import re
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

_CREDENTIAL = re.compile(r"\bse_[0-9a-f]{8,}")


def redact(message: str) -> str:
    """Replace every full-looking API key in *message* with ``se_****``."""
    return _CREDENTIAL.sub("se_****", message)


class OutputFormat(str, Enum):
    """Output format selected by ``--json`` / ``--plain`` or auto-detected.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` everywhere else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


@dataclass(frozen=True)
class _Level:
    """How one kind of diagnostic is rendered on stderr."""

    prefix: str = ""
    style: str = ""
    quiet_hides: bool = True


_INFO = _Level()
_SUCCESS = _Level(style="green")
_WARNING = _Level(prefix="Warning: ", style="yellow", quiet_hides=False)
_ERROR = _Level(prefix="Error: ", style="bold red", quiet_hides=False)
_SUGGEST = _Level(prefix="→ ", style="dim")
_DEBUG = _Level(prefix="[debug] ", style="dim")


class OutputManager:
    """Routes data to stdout and diagnostics to stderr in the chosen format.

    Args:
        format: Requested format; ``AUTO`` is resolved against the terminal.
        no_color: Disable colour and Rich styling.
        quiet: Hide info, success and suggestion lines. Warnings and errors
            are always shown.
        verbose: Show debug lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Write one line of result data to stdout."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows under *headers*.

        JSON mode emits a list of objects keyed by header, plain mode emits
        tab-separated lines with a header line, and Rich mode draws a table
        (the only mode that shows *title*).
        """
        if self._format == OutputFormat.JSON:
            self._print_json([dict(zip(headers, row)) for row in rows])
            return
        if self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*(escape(cell) for cell in row))
        self._stdout.print(table)

    def print_fields(self, fields: list[tuple[str, str]]) -> None:
        """Print ``label: value`` pairs, aligned on the colon.

        JSON mode emits a single object instead.
        """
        if self._format == OutputFormat.JSON:
            self._print_json(dict(fields))
            return
        if self._format == OutputFormat.RICH:
            grid = Table.grid(padding=(0, 1))
            grid.add_column(style="bold")
            grid.add_column()
            for label, value in fields:
                grid.add_row(f"{escape(label)}:", escape(value))
            self._stdout.print(grid)
            return

        width = max((len(label) for label, _ in fields), default=0) + 1
        for label, value in fields:
            self.print_data(f"{label + ':':<{width}} {value}")

    def _print_json(self, data: object) -> None:
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False))

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._emit(_INFO, message)

    def success(self, message: str) -> None:
        self._emit(_SUCCESS, message)

    def warning(self, message: str) -> None:
        self._emit(_WARNING, message)

    def error(self, message: str) -> None:
        self._emit(_ERROR, message)

    def suggest(self, message: str) -> None:
        """Print a next step for the operator, prefixed with an arrow."""
        self._emit(_SUGGEST, message)

    def debug(self, message: str) -> None:
        """Print a trace line; only shown with ``--verbose``."""
        if self._verbose:
            self._emit(_DEBUG, message)

    def _emit(self, level: _Level, message: str) -> None:
        if self._quiet and level.quiet_hides:
            return
        text = level.prefix + redact(message)
        if self._no_color:
            print(text, file=sys.stderr, flush=True)
        elif level.style:
            self._stderr.print(f"[{level.style}]{escape(text)}[/{level.style}]")
        else:
            self._stderr.print(escape(text))


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one if needed."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager so the next call builds a fresh one.

    Tests call this because a manager keeps references to the streams that
    were current when it was built.
    """
    global _output
    _output = None


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def print_fields(fields: list[tuple[str, str]]) -> None:
    get_output().print_fields(fields)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
