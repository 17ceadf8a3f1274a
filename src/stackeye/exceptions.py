"""Exception hierarchy for stackeye.

All exceptions inherit from :class:`StackeyeError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`stackeye.exit_codes`
and an optional ``hint`` telling the operator what to do next. The top-level
error handler in :func:`stackeye.app.main` catches ``StackeyeError``, prints
the message and hint, and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    StackeyeError (exit 1)
    +-- ConfigError                  (exit 1)
    +-- PersistenceError             (exit 1)
    +-- BindError                    (exit 1)
    +-- LaunchError                  (exit 1)
    +-- AlreadyLoggedInError         (exit 2)
    +-- ContextNotFoundError         (exit 4)
    +-- HandshakeTimeoutError        (exit 8)
    +-- HandshakeCancelledError      (exit 130)
    +-- AuthError                    (exit 3)
        +-- NonLocalOriginError
        +-- MissingCredentialError
        +-- InvalidCredentialFormatError
        +-- VerificationFailedError
"""

from __future__ import annotations

from stackeye.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_TIMEOUT,
)


class StackeyeError(Exception):
    """Base exception for all stackeye errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`stackeye.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
        hint: Optional remediation printed as a suggestion after the error.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    hint: str | None = None

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        hint: str | None = None,
    ):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code
        if hint is not None:
            self.hint = hint


class ConfigError(StackeyeError):
    """Raised when the configuration file cannot be read or parsed."""


class PersistenceError(StackeyeError):
    """Raised when the context store cannot be written.

    Login replaces the hint: by then the browser step and the verification
    call have succeeded, and only the save needs retrying.
    """

    hint = "Check that the config file and its directory are writable, then retry the command."


class BindError(StackeyeError):
    """Raised when no loopback port can be bound for the callback server."""

    hint = "Check that the local network stack allows binding to 127.0.0.1."


class LaunchError(StackeyeError):
    """Raised when the browser could not be launched, or the URL is unusable."""


class AlreadyLoggedInError(StackeyeError):
    """Raised when a login would duplicate an authenticated context."""

    exit_code = EXIT_INVALID_USAGE
    hint = "Pass --yes to create another login anyway."


class ContextNotFoundError(StackeyeError):
    """Raised when a named context does not exist in the store."""

    exit_code = EXIT_NOT_FOUND
    hint = "List available contexts: stackeye context list"


class HandshakeTimeoutError(StackeyeError):
    """Raised when no browser callback arrived within the login window."""

    exit_code = EXIT_TIMEOUT
    hint = "Run 'stackeye login' again and finish the browser step sooner."


class HandshakeCancelledError(StackeyeError):
    """Raised when the operator cancels the wait for the browser callback."""

    exit_code = EXIT_CANCELLED


class AuthError(StackeyeError):
    """Raised when authentication fails or a credential is rejected."""

    exit_code = EXIT_AUTH_FAILURE


class NonLocalOriginError(AuthError):
    """Raised when the callback request did not come from a loopback address."""


class MissingCredentialError(AuthError):
    """Raised when the callback request carries no ``api_key`` parameter."""

    hint = "Restart the login and complete it from the browser page it opens."


class InvalidCredentialFormatError(AuthError):
    """Raised when a credential does not have the platform's key format."""

    hint = "API keys start with 'se_' followed by 64 hex characters."


class VerificationFailedError(AuthError):
    """Raised when the platform does not accept the received credential."""
