"""``stackeye logout`` -- clear stored credentials.

Logging out empties the context's ``api_key`` but keeps the context itself,
so ``stackeye login`` to the same API URL later updates it in place. Use
``stackeye context delete`` to remove a context entirely.
"""

from __future__ import annotations

import typer

from stackeye.commands import abort
from stackeye.exceptions import StackeyeError


def logout_command(
    all_contexts: bool = typer.Option(
        False, "--all", help="Clear the credentials of every context."
    ),
) -> None:
    """Log out of the current context."""
    from stackeye.auth.contexts import clear_credential
    from stackeye.config import load_store, resolve_context_name, save_store
    from stackeye.output import info, success, suggest

    try:
        store = load_store()
        if all_contexts:
            cleared = [name for name in store.context_names() if store.contexts[name].is_authenticated]
            if not cleared:
                info("Not logged in to any context.")
                return
            for name in cleared:
                clear_credential(store, name)
            save_store(store)
            success(f"Logged out of {len(cleared)} context(s): {', '.join(cleared)}")
            return

        name = resolve_context_name(store)
        if not name:
            info("Not logged in.")
            suggest("Log in: stackeye login")
            return
        ctx = clear_credential(store, name)
        save_store(store)
    except StackeyeError as exc:
        abort(exc)

    success(f"Logged out of context '{name}' ({ctx.api_url}).")
    suggest("Log in again: stackeye login")
