"""Built-in CLI sub-commands for stackeye.

* :mod:`~stackeye.commands.login` -- browser login.
* :mod:`~stackeye.commands.logout` -- clear stored credentials.
* :mod:`~stackeye.commands.whoami` -- show who the current context belongs to.
* :mod:`~stackeye.commands.context` -- list, switch, show, and delete contexts.

Single commands export a plain function registered on the root app;
``context`` exports a :class:`typer.Typer` sub-application.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from stackeye.exceptions import StackeyeError
from stackeye.output import error, suggest


def abort(exc: StackeyeError) -> NoReturn:
    """Report *exc* on stderr and exit with its exit code."""
    error(str(exc))
    if exc.hint:
        suggest(exc.hint)
    raise typer.Exit(code=exc.exit_code) from None
