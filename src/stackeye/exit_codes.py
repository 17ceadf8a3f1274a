"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~stackeye.exceptions.StackeyeError` subclass.
External tooling (CI scripts, shell wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ stackeye login --no-input
    $ echo $?
    2   # EXIT_INVALID_USAGE -- already logged in, no confirmation possible
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked in a state or with arguments it cannot act on."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed or the callback was rejected."""

EXIT_NOT_FOUND = 4
"""The requested context does not exist."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_TIMEOUT = 8
"""The browser handshake did not complete within the login window."""

EXIT_CANCELLED = 130
"""The operator interrupted the command (Ctrl-C)."""
