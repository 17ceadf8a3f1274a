"""Root Typer application and the ``stackeye`` console-script entry point.

``app`` carries the global flags (see :func:`main_callback`) and the
built-in commands: ``login``, ``logout``, ``whoami`` and the ``context``
group. :func:`main` wraps it for the console script: Ctrl-C exits 130 after
the login handshake has stopped its callback server, a
:class:`~stackeye.exceptions.StackeyeError` becomes its exit code, and any
other exception leaves a traceback under ``<data dir>/logs``.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from stackeye import __version__
from stackeye.commands.context import context_app
from stackeye.commands.login import login_command
from stackeye.commands.logout import logout_command
from stackeye.commands.whoami import whoami_command
from stackeye.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="stackeye",
    help="Command-line client for the StackEye monitoring platform.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("login")(login_command)
app.command("logout")(logout_command)
app.command("whoami")(whoami_command)
app.add_typer(context_app, name="context", help="List, switch and delete contexts.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"stackeye {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True,
        help="Print the stackeye version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print results as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Never use colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results, warnings and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Trace the login handshake on stderr."),
    no_input: bool = typer.Option(
        False, "--no-input", help="Never prompt; fail where a confirmation would be needed."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=1,
        help="Seconds to wait for the browser login and for API calls.",
    ),
) -> None:
    """Install the output manager and share global flags through ``ctx.obj``.

    ``ctx.obj`` keys read by the commands: ``no_input``, ``timeout``
    (``None`` when not given) and ``verbose``.
    """
    from stackeye.output import OutputFormat, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.obj = {"no_input": no_input, "timeout": timeout, "verbose": verbose}


def _setup_signal_handlers() -> None:
    """Make Ctrl-C raise KeyboardInterrupt even if a parent process ignored SIGINT."""
    signal.signal(signal.SIGINT, signal.default_int_handler)


def _write_crash_log(exc: BaseException) -> Path:
    from stackeye.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return log_path


def main() -> None:
    """Console-script entry point; always ends in ``SystemExit``."""
    from stackeye.exceptions import StackeyeError
    from stackeye.output import error, suggest

    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(EXIT_CANCELLED)
    except StackeyeError as exc:
        error(str(exc))
        if exc.hint:
            suggest(exc.hint)
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Debug log: {_write_crash_log(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)
