"""End-to-end login: handshake, verification, and context persistence."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

from stackeye.auth.contexts import generate_context_name, merge_context, organization_from_email
from stackeye.auth.handshake import HandshakeCoordinator
from stackeye.auth.verifier import CredentialVerifier, mask_credential
from stackeye.config import config_path, load_store, save_store
from stackeye.exceptions import PersistenceError, VerificationFailedError
from stackeye.models import Context, LoginOptions, LoginSummary
from stackeye.output import debug, info


def perform_login(
    options: LoginOptions,
    coordinator: Optional[HandshakeCoordinator] = None,
    verifier: Optional[CredentialVerifier] = None,
    path: Optional[Path] = None,
    cancel_event: Optional[threading.Event] = None,
) -> LoginSummary:
    """Log in to ``options.api_url`` and store the credential as a context.

    Nothing is written unless the handshake and the verification both
    succeed. The store is re-read after the browser step so that contexts
    saved by other commands in the meantime are kept.

    Args:
        options: Login configuration.
        coordinator: Handshake coordinator; one is built from *options* if omitted.
        verifier: Credential verifier; one is built from *options* if omitted.
        path: Config file location; defaults to :func:`stackeye.config.config_path`.
        cancel_event: Forwarded to :meth:`HandshakeCoordinator.run`.

    Raises:
        AlreadyLoggedInError: Before any listener is bound.
        StackeyeError: Any handshake, verification, or persistence failure.
    """
    coordinator = coordinator or HandshakeCoordinator(options)
    verifier = verifier or CredentialVerifier(options.api_url, timeout=options.verify_timeout)

    coordinator.check_existing_login(load_store(path))

    result = coordinator.run(cancel_event=cancel_event)
    debug(f"Received credential {mask_credential(result.credential)}")

    info("Verifying credentials...")
    try:
        identity = verifier.verify(result.credential)
    except VerificationFailedError as exc:
        raise VerificationFailedError(
            f"Login failed while verifying the API key: {exc}",
            exit_code=exc.exit_code,
            hint=exc.hint,
        ) from exc

    org_name = (
        result.org_name
        or identity.organization_name
        or organization_from_email(identity.user_email)
    )
    org_id = result.org_id or identity.organization_id

    new_context = Context(
        api_url=options.api_url,
        organization_id=org_id,
        organization_name=org_name,
        api_key=result.credential,
    )
    candidate = generate_context_name(org_name, options.api_url)

    try:
        store = load_store(path)
        name, created = merge_context(store, candidate, new_context)
        saved_to = save_store(store, path)
    except Exception as exc:
        raise PersistenceError(
            f"Login succeeded but the credentials could not be saved: {exc}",
            hint=(
                "Your browser sign-in worked; only saving failed. Fix the config "
                f"file problem at {path or config_path()} and retry 'stackeye login'."
            ),
        ) from exc

    return LoginSummary(
        context_name=name,
        context=store.contexts[name],
        identity=identity,
        created=created,
        config_path=saved_to,
    )
