"""Derive the web UI authorization URL from an API URL."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from stackeye.auth.callback import CALLBACK_PATH
from stackeye.auth.listener import LOOPBACK_HOST
from stackeye.exceptions import ConfigError
from stackeye.models import AuthorizationTarget
from stackeye.output import debug

PLATFORM_DOMAIN = "stackeye.io"


def api_url_to_web_url(api_url: str) -> str:
    """Map an API origin to the web UI origin serving the login page.

    * ``api.stackeye.io`` -> ``app.stackeye.io``
    * ``api-<env>.stackeye.io`` -> ``app-<env>.stackeye.io``
    * ``api.<env>.stackeye.io`` -> ``app.<env>.stackeye.io``

    Any other host (localhost, custom domains) is returned unchanged.

    Raises:
        ConfigError: If *api_url* has no scheme or host.
    """
    parts = urlsplit(api_url.strip())
    if not parts.scheme or not parts.netloc:
        raise ConfigError(f"Invalid API URL: {api_url!r}")

    host = (parts.hostname or "").lower()
    suffix = "." + PLATFORM_DOMAIN
    if host.endswith(suffix) and (host.startswith("api.") or host.startswith("api-")):
        web_host = "app" + host[len("api"):]
    else:
        debug(f"Non-platform API host {host!r}, using it as the web UI host")
        return api_url.rstrip("/")

    netloc = web_host if parts.port is None else f"{web_host}:{parts.port}"
    web_url = urlunsplit((parts.scheme, netloc, "", "", ""))
    debug(f"Web UI URL for {api_url}: {web_url}")
    return web_url


def build_authorization_target(api_url: str, port: int) -> AuthorizationTarget:
    """Build the target for a callback server listening on *port*."""
    callback_url = f"http://{LOOPBACK_HOST}:{port}{CALLBACK_PATH}"
    return AuthorizationTarget(base_url=api_url_to_web_url(api_url), callback_url=callback_url)
