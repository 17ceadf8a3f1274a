"""``stackeye context`` -- inspect and switch between contexts.

Typical workflow::

    stackeye context list
    stackeye context use acme-corp-dev
    stackeye context current
    stackeye context delete old-org
"""

from __future__ import annotations

import typer

from stackeye.commands import abort
from stackeye.exceptions import StackeyeError


context_app = typer.Typer(no_args_is_help=True)


@context_app.command("list")
def context_list() -> None:
    """List all contexts, marking the current one with ``*``."""
    from stackeye.config import load_store
    from stackeye.output import info, print_table, suggest

    try:
        store = load_store()
    except StackeyeError as exc:
        abort(exc)

    if not store.contexts:
        info("No contexts configured.")
        suggest("Log in: stackeye login")
        return

    rows = []
    for name in store.context_names():
        ctx = store.contexts[name]
        rows.append(
            [
                "*" if name == store.current_context else "",
                name,
                ctx.organization_name,
                ctx.api_url,
                "logged in" if ctx.is_authenticated else "logged out",
            ]
        )
    print_table(["CURRENT", "NAME", "ORGANIZATION", "API URL", "STATUS"], rows, title="Contexts")


@context_app.command("use")
def context_use(
    name: str = typer.Argument(help="Context to make current."),
) -> None:
    """Switch the current context."""
    from stackeye.auth.contexts import use_context
    from stackeye.config import load_store, save_store
    from stackeye.output import success, suggest

    try:
        store = load_store()
        ctx = use_context(store, name)
        save_store(store)
    except StackeyeError as exc:
        abort(exc)

    success(f"Switched to context '{name}' ({ctx.api_url}).")
    if not ctx.is_authenticated:
        suggest("This context is logged out. Log in: stackeye login")


@context_app.command("current")
def context_current() -> None:
    """Print the name of the current context."""
    from stackeye.config import load_store, resolve_context_name
    from stackeye.output import info, print_data, suggest

    try:
        store = load_store()
    except StackeyeError as exc:
        abort(exc)

    name = resolve_context_name(store)
    if not name:
        info("No current context.")
        suggest("Log in: stackeye login")
        raise typer.Exit(code=1)
    print_data(name)


@context_app.command("delete")
def context_delete(
    ctx: typer.Context,
    name: str = typer.Argument(help="Context to delete."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete a context and its stored credentials."""
    from stackeye.auth.contexts import delete_context
    from stackeye.config import load_store, save_store
    from stackeye.exceptions import ContextNotFoundError
    from stackeye.output import error, info, success, suggest

    obj = ctx.obj or {}
    try:
        store = load_store()
        if store.get_context(name) is None:
            raise ContextNotFoundError(f"Context '{name}' not found")

        if not yes:
            if obj.get("no_input"):
                error(f"Refusing to delete context '{name}' without --yes in non-interactive mode.")
                raise typer.Exit(code=2)
            if not typer.confirm(f"Delete context '{name}'?", default=False):
                info("Cancelled.")
                return

        was_current = store.current_context == name
        delete_context(store, name)
        save_store(store)
    except StackeyeError as exc:
        abort(exc)

    success(f"Deleted context '{name}'.")
    if was_current:
        suggest("No context is current now. Switch with: stackeye context use <name>")
