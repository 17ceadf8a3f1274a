"""``stackeye login`` -- authenticate through the browser.

Opens the StackEye web UI, waits for it to call back to a local loopback
server with a fresh API key, verifies the key, and stores it as a context::

    stackeye login
    stackeye login --api-url https://api-dev.stackeye.io
    stackeye --no-input login --yes
"""

from __future__ import annotations

from typing import Optional

import typer

from stackeye.commands import abort
from stackeye.exceptions import StackeyeError

DEFAULT_LOGIN_TIMEOUT = 300.0
DEFAULT_VERIFY_TIMEOUT = 30.0


def login_command(
    ctx: typer.Context,
    api_url: Optional[str] = typer.Option(
        None, "--api-url", help="API URL to log in to (default: $STACKEYE_API_URL or production)."
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Log in even if this API URL already has a credential."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=1, help="Seconds to wait for the browser login."
    ),
) -> None:
    """Log in to StackEye using your browser."""
    from stackeye.auth import HandshakeCoordinator, perform_login
    from stackeye.config import resolve_api_url
    from stackeye.models import LoginOptions
    from stackeye.output import print_fields, success, suggest

    obj = ctx.obj or {}
    no_input = bool(obj.get("no_input"))
    window = timeout or obj.get("timeout") or DEFAULT_LOGIN_TIMEOUT

    options = LoginOptions(
        api_url=resolve_api_url(api_url),
        timeout=window,
        verify_timeout=obj.get("timeout") or DEFAULT_VERIFY_TIMEOUT,
        no_input=no_input,
        assume_yes=yes,
    )
    coordinator = HandshakeCoordinator(
        options,
        confirm=lambda message: typer.confirm(message, default=False),
    )

    try:
        summary = perform_login(options, coordinator=coordinator)
    except StackeyeError as exc:
        abort(exc)

    identity = summary.identity
    fields = [("Context", summary.context_name)]
    if summary.context.organization_name:
        fields.append(("Organization", summary.context.organization_name))
    if identity.user_email:
        user = identity.user_email
        if identity.user_name and identity.user_name != identity.user_email:
            user = f"{identity.user_name} ({identity.user_email})"
        fields.append(("User", user))
    fields.append(("API URL", summary.context.api_url))
    fields.append(("Config", str(summary.config_path)))

    success("Successfully logged in!")
    print_fields(fields)
    if not summary.created:
        suggest(f"Updated existing context '{summary.context_name}'.")
    suggest("Check your identity: stackeye whoami")
