"""stackeye -- command-line client for the StackEye monitoring platform.

This package implements the browser-delegated login handshake and the
multi-context configuration store that every other ``stackeye`` command
reads its credentials from.

Typical workflow::

    stackeye login                    # authenticate via the browser
    stackeye whoami                   # confirm who you are
    stackeye context list             # see every configured context
    stackeye logout                   # clear the current credential

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models and transient value types.
    config: XDG-aware config location and the atomic context store.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    auth: The login handshake, credential verification, and context merge.
"""

__version__ = "0.4.0"
