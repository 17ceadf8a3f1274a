"""Canonical data shapes shared across all stackeye modules.

The models fall into two groups:

**Persisted models** -- pydantic v2 models serialised into the YAML config
file: :class:`Context` and :class:`ConfigStore`. Both use ``extra="allow"``
so that keys written by other commands or newer versions survive a
load/save round trip unchanged.

**Transient values** -- created and consumed within one command:
:class:`LoginOptions` (the explicit configuration of a login attempt),
:class:`HandshakeResult`, :class:`AuthorizationTarget`,
:class:`VerifiedIdentity`, and :class:`LoginSummary`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from stackeye.exceptions import StackeyeError


DEFAULT_API_URL = "https://api.stackeye.io"
"""Production API endpoint used when no URL is configured."""

AUTHORIZATION_PATH = "/cli-auth"
"""Path on the web UI host that performs the browser side of the login."""


# --- Persisted models ---


class Context(BaseModel):
    """One named, independently authenticated profile.

    A context is created by a successful login, updated in place when a
    later login resolves to the same name and API URL, and cleared (``api_key``
    emptied, everything else kept) by ``stackeye logout``.

    Example::

        Context(
            api_url="https://api.stackeye.io",
            organization_id="org_123",
            organization_name="Acme Corp",
            api_key="se_...",
        )
    """

    model_config = ConfigDict(extra="allow")

    api_url: str = Field(default=DEFAULT_API_URL, description="StackEye API endpoint")
    organization_id: str = Field(default="", description="Organization identifier")
    organization_name: str = Field(default="", description="Organization display name")
    api_key: str = Field(default="", description="Bearer credential; empty when logged out")

    @property
    def is_authenticated(self) -> bool:
        """Whether the context currently holds a credential."""
        return bool(self.api_key)


class ConfigStore(BaseModel):
    """The whole configuration file: every context plus the current one.

    ``current_context``, when non-empty, must name a key of ``contexts``;
    :func:`stackeye.config.save_store` refuses to persist a store that
    breaks this rule.
    """

    model_config = ConfigDict(extra="allow")

    current_context: str = Field(default="", description="Name of the active context")
    contexts: dict[str, Context] = Field(default_factory=dict)

    def get_context(self, name: str) -> Optional[Context]:
        """Return the context called *name*, or ``None``."""
        return self.contexts.get(name)

    def get_current(self) -> Optional[Context]:
        """Return the current context, or ``None`` when unset or dangling."""
        if not self.current_context:
            return None
        return self.contexts.get(self.current_context)

    def context_names(self) -> list[str]:
        """Return all context names, sorted alphabetically."""
        return sorted(self.contexts)

    def find_authenticated(self, api_url: str) -> Optional[tuple[str, Context]]:
        """Return the first ``(name, context)`` holding a credential for *api_url*."""
        wanted = normalize_api_url(api_url)
        for name in self.context_names():
            ctx = self.contexts[name]
            if ctx.is_authenticated and normalize_api_url(ctx.api_url) == wanted:
                return name, ctx
        return None


def normalize_api_url(api_url: str) -> str:
    """Normalise an API URL for comparison (lower-case scheme/host, no trailing slash)."""
    parts = urlsplit(api_url.strip())
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


# --- Transient values ---


class LoginOptions(BaseModel):
    """Explicit configuration of one login attempt.

    Built by the CLI layer from flags and environment and passed into
    :class:`~stackeye.auth.handshake.HandshakeCoordinator`, so the handshake
    never reads global state.
    """

    api_url: str = DEFAULT_API_URL
    timeout: float = Field(default=300.0, gt=0, description="Seconds to wait for the callback")
    shutdown_grace: float = Field(default=5.0, gt=0, description="Seconds allowed for server shutdown")
    verify_timeout: float = Field(default=30.0, gt=0, description="Seconds allowed for verification")
    no_input: bool = False
    assume_yes: bool = False


@dataclass(frozen=True)
class HandshakeResult:
    """Outcome published by the callback handler, consumed by the coordinator."""

    credential: str = ""
    org_id: str = ""
    org_name: str = ""
    error: Optional[StackeyeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AuthorizationTarget:
    """Where to send the operator's browser and where it will call back.

    Attributes:
        base_url: Web UI origin derived from the API URL.
        callback_url: Loopback URL served by the callback server.
    """

    base_url: str
    callback_url: str

    @property
    def authorization_url(self) -> str:
        """The full URL opened in the browser."""
        parts = urlsplit(self.base_url)
        query = urlencode({"callback": self.callback_url})
        return urlunsplit((parts.scheme, parts.netloc, AUTHORIZATION_PATH, query, ""))


@dataclass(frozen=True)
class VerifiedIdentity:
    """Identity and organization metadata returned by the verification call."""

    organization_id: str = ""
    organization_name: str = ""
    user_email: str = ""
    user_name: str = ""
    is_platform_admin: bool = False
    auth_type: str = ""

    @property
    def display_name(self) -> str:
        return self.user_name or self.user_email


@dataclass(frozen=True)
class LoginSummary:
    """Everything the ``login`` command reports after a successful login."""

    context_name: str
    context: Context
    identity: VerifiedIdentity
    created: bool
    config_path: Path
