"""Browser-delegated login for stackeye.

The login is split into small pieces that each do one thing:

- :mod:`~stackeye.auth.listener` -- binds the loopback port.
- :mod:`~stackeye.auth.callback` -- serves ``/callback`` and publishes the result.
- :mod:`~stackeye.auth.browser` -- per-platform browser launchers.
- :mod:`~stackeye.auth.urls` -- API URL to web UI authorization URL.
- :mod:`~stackeye.auth.handshake` -- :class:`HandshakeCoordinator`, the state machine.
- :mod:`~stackeye.auth.verifier` -- credential format check and verification call.
- :mod:`~stackeye.auth.contexts` -- context naming and store mutations.
- :mod:`~stackeye.auth.login` -- :func:`perform_login`, which composes them.

Typical usage::

    from stackeye.auth import perform_login
    from stackeye.models import LoginOptions

    summary = perform_login(LoginOptions(api_url="https://api.stackeye.io"))
    print(summary.context_name)
"""

from stackeye.auth.handshake import HandshakeCoordinator, HandshakeState
from stackeye.auth.login import perform_login
from stackeye.auth.verifier import CredentialVerifier

__all__ = [
    "CredentialVerifier",
    "HandshakeCoordinator",
    "HandshakeState",
    "perform_login",
]
