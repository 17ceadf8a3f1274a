"""``stackeye whoami`` -- verify the current credential and show its owner."""

from __future__ import annotations

import typer

from stackeye.commands import abort
from stackeye.exceptions import ContextNotFoundError, StackeyeError

WHOAMI_TIMEOUT = 30.0


def whoami_command(ctx: typer.Context) -> None:
    """Display the current user and context.

    Calls the verification endpoint with the current context's API key, so
    a revoked or expired key is reported here rather than on the next
    command. ``STACKEYE_CONTEXT`` selects a different context for one run.
    """
    from stackeye.auth.verifier import CredentialVerifier
    from stackeye.config import load_store, resolve_context_name
    from stackeye.output import info, print_fields, suggest

    obj = ctx.obj or {}
    try:
        store = load_store()
        name = resolve_context_name(store)
        if not name:
            info("Not logged in.")
            suggest("Log in: stackeye login")
            return
        context = store.get_context(name)
        if context is None:
            raise ContextNotFoundError(f"Context '{name}' not found")
        if not context.is_authenticated:
            info(f"Not logged in: context '{name}' has no credentials.")
            suggest("Log in: stackeye login")
            return

        verifier = CredentialVerifier(context.api_url, timeout=obj.get("timeout") or WHOAMI_TIMEOUT)
        identity = verifier.verify(context.api_key)
    except StackeyeError as exc:
        abort(exc)

    fields: list[tuple[str, str]] = []
    if identity.user_email:
        fields.append(("User", identity.user_email))
        if identity.user_name and identity.user_name != identity.user_email:
            fields.append(("Name", identity.user_name))
        if identity.is_platform_admin:
            fields.append(("Role", "Platform Admin"))
    fields.append(("Context", name))
    org_name = identity.organization_name or context.organization_name
    org_id = identity.organization_id or context.organization_id
    fields.append(("Organization", f"{org_name} ({org_id})" if org_id else org_name))
    fields.append(("API URL", context.api_url))
    if identity.auth_type:
        fields.append(("Auth Type", identity.auth_type))
    print_fields(fields)
