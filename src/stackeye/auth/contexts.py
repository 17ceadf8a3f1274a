"""Context naming and context store mutations.

A successful login becomes a :class:`~stackeye.models.Context` whose name is
derived from the organization name and the API environment, for example
``acme-corp`` for production or ``acme-corp-dev`` for ``api-dev.stackeye.io``.
:func:`merge_context` places it in the store without ever overwriting a
context that points at a different API URL.

The functions here only mutate the in-memory
:class:`~stackeye.models.ConfigStore`; callers persist it with
:func:`stackeye.config.save_store`.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from stackeye.exceptions import ContextNotFoundError, StackeyeError
from stackeye.models import ConfigStore, Context, normalize_api_url
from stackeye.output import debug

DEFAULT_CONTEXT_NAME = "default"

_DISALLOWED = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")

_ENVIRONMENT_LABELS = {
    "dev": "dev",
    "stg": "stg",
    "staging": "stg",
}


def sanitize_context_name(name: str) -> str:
    """Turn an arbitrary display name into a context name.

    Lower-cases, maps spaces and underscores to hyphens, drops everything
    outside ``[a-z0-9-]``, collapses hyphen runs and trims hyphens from both
    ends. Returns ``"default"`` when nothing is left.

    >>> sanitize_context_name("Acme Corp")
    'acme-corp'
    >>> sanitize_context_name("  __!!__ ")
    'default'
    """
    result = name.lower().replace(" ", "-").replace("_", "-")
    result = _DISALLOWED.sub("", result)
    result = _HYPHEN_RUNS.sub("-", result).strip("-")
    return result or DEFAULT_CONTEXT_NAME


def extract_environment(api_url: str) -> str:
    """Return ``"dev"`` or ``"stg"`` for non-production API hosts, else ``""``.

    Recognises the environment either as its own host label
    (``api.dev.stackeye.io``) or as a hyphenated suffix of one
    (``api-dev.stackeye.io``, ``api-staging.stackeye.io``).
    """
    host = (urlsplit(api_url.strip()).hostname or "").lower()
    labels = host.split(".")[:-1]
    for label in labels:
        for token in (label, label.rsplit("-", 1)[-1]):
            env = _ENVIRONMENT_LABELS.get(token)
            if env:
                return env
    return ""


def generate_context_name(org_name: str, api_url: str) -> str:
    """Derive the candidate context name for *org_name* on *api_url*."""
    name = sanitize_context_name(org_name)
    env = extract_environment(api_url)
    if env:
        name = f"{name}-{env}"
    return name


def organization_from_email(email: str) -> str:
    """Guess an organization name from an email address's domain.

    ``jane@acme.com`` gives ``acme``. Anything that is not a single
    ``local@domain`` address gives ``"default"``.
    """
    parts = email.split("@")
    if len(parts) != 2 or not parts[1]:
        return DEFAULT_CONTEXT_NAME
    return parts[1].split(".")[0] or DEFAULT_CONTEXT_NAME


def merge_context(store: ConfigStore, candidate: str, new_context: Context) -> tuple[str, bool]:
    """Insert or update *new_context* under *candidate* and make it current.

    Resolution order for each name tried (``candidate``, ``candidate-2``,
    ``candidate-3``, ...):

    1. The name is free: add the context.
    2. The name holds a context for the same API URL: update it in place,
       keeping any extra keys it carries.
    3. Otherwise try the next suffix.

    At most ``len(store.contexts) + 1`` names are tried, which always
    reaches a free one.

    Returns:
        ``(name, created)`` where *created* is ``False`` for an in-place update.
    """
    wanted = normalize_api_url(new_context.api_url)
    for attempt in range(1, len(store.contexts) + 2):
        name = candidate if attempt == 1 else f"{candidate}-{attempt}"
        existing = store.contexts.get(name)
        if existing is None:
            store.contexts[name] = new_context
            store.current_context = name
            debug(f"Created context '{name}'")
            return name, True
        if normalize_api_url(existing.api_url) == wanted:
            existing.api_url = new_context.api_url
            existing.organization_id = new_context.organization_id
            existing.organization_name = new_context.organization_name
            existing.api_key = new_context.api_key
            store.current_context = name
            debug(f"Updated context '{name}' in place")
            return name, False
        debug(f"Context name '{name}' is taken by {existing.api_url}")

    raise StackeyeError(f"Could not find a free context name for '{candidate}'")


def use_context(store: ConfigStore, name: str) -> Context:
    """Make *name* the current context.

    Raises:
        ContextNotFoundError: If no such context exists.
    """
    ctx = store.get_context(name)
    if ctx is None:
        raise ContextNotFoundError(f"Context '{name}' not found")
    store.current_context = name
    return ctx


def clear_credential(store: ConfigStore, name: str) -> Context:
    """Empty the credential of context *name*, keeping every other field."""
    ctx = store.get_context(name)
    if ctx is None:
        raise ContextNotFoundError(f"Context '{name}' not found")
    ctx.api_key = ""
    return ctx


def delete_context(store: ConfigStore, name: str) -> Context:
    """Remove context *name*; unsets ``current_context`` if it pointed there."""
    ctx = store.contexts.pop(name, None)
    if ctx is None:
        raise ContextNotFoundError(f"Context '{name}' not found")
    if store.current_context == name:
        store.current_context = ""
    return ctx
