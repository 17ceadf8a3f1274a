"""Loopback listener for the login callback.

The callback server never binds its own address: the coordinator binds a
socket here first so the port is known before the browser is opened, and
so a bind failure aborts the login before anything else happens.
"""

from __future__ import annotations

import socket

from stackeye.exceptions import BindError

LOOPBACK_HOST = "127.0.0.1"


def bind_loopback(host: str = LOOPBACK_HOST, backlog: int = 5) -> socket.socket:
    """Bind and listen on an OS-assigned ephemeral port on *host*.

    Args:
        host: Loopback address to bind. Only ``127.0.0.1`` is used in
            production; the parameter exists for tests.
        backlog: Listen backlog for the socket.

    Returns:
        A listening TCP socket. The caller owns it and must close it.

    Raises:
        BindError: If the socket cannot be bound. This is never retried.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, 0))
        sock.listen(backlog)
    except OSError as exc:
        sock.close()
        raise BindError(f"Failed to start local callback server on {host}: {exc}") from exc
    return sock


def listener_port(sock: socket.socket) -> int:
    """Return the TCP port a listening socket is bound to."""
    return sock.getsockname()[1]
