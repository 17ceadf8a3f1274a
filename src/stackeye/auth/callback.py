"""Local HTTP callback server that receives the login result from the browser.

After the operator authenticates in the web UI, the browser is redirected to
``http://127.0.0.1:<port>/callback?api_key=...&org_id=...&org_name=...``.
:class:`CallbackServer` serves that single endpoint on a pre-bound loopback
socket (see :mod:`stackeye.auth.listener`) and publishes exactly one
:class:`~stackeye.models.HandshakeResult` into a capacity-one queue that the
:class:`~stackeye.auth.handshake.HandshakeCoordinator` waits on.

Request handling order:

1. Peer address is not loopback -> ``403``, publish :class:`NonLocalOriginError`.
2. Path is not ``/callback`` -> ``404``, nothing published.
3. A result was already published -> ``409``, nothing published.
4. ``api_key`` missing or empty -> ``400``, publish :class:`MissingCredentialError`.
5. Otherwise -> ``200`` confirmation page, publish the credential.
"""

from __future__ import annotations

import ipaddress
import queue
import re
import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from stackeye.exceptions import (
    MissingCredentialError,
    NonLocalOriginError,
    StackeyeError,
)
from stackeye.models import HandshakeResult
from stackeye.output import debug

CALLBACK_PATH = "/callback"

_API_KEY_IN_QUERY = re.compile(r"(api_key=)[^&\s]+")

SUCCESS_HTML = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>StackEye CLI - Login Successful</title>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
               display: flex; justify-content: center; align-items: center; height: 100vh;
               margin: 0; background: #f5f5f5; }
        .container { text-align: center; padding: 2rem; background: white;
                     border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
        h1 { color: #10b981; margin-bottom: 0.5rem; }
        p { color: #6b7280; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Login Successful</h1>
        <p>You can close this window and return to your terminal.</p>
    </div>
</body>
</html>
"""


def is_loopback_address(address: str) -> bool:
    """Return True if *address* is an IPv4 ``127.0.0.0/8`` or IPv6 ``::1`` address.

    Accepts bracketed IPv6 literals and zone suffixes, and treats
    IPv4-mapped IPv6 loopback (``::ffff:127.0.0.1``) as loopback. Anything
    that does not parse as an IP address (including host names) is
    rejected.
    """
    host = address.strip()
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    host = host.split("%", 1)[0]
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return ip.is_loopback


def redact_query(text: str) -> str:
    """Mask the ``api_key`` query value in a request line or URL."""
    return _API_KEY_IN_QUERY.sub(r"\1***", text)


class CallbackHandler(BaseHTTPRequestHandler):
    """Request handler for the login callback endpoint."""

    server: CallbackServer
    server_version = "stackeye-callback"

    def setup(self) -> None:
        # Bounds how long a stalled client can hold the single-threaded server.
        self.timeout = self.server.request_timeout
        super().setup()

    def peer_address(self) -> str:
        """Return the IP address of the connected client."""
        return str(self.client_address[0])

    def do_GET(self) -> None:
        peer = self.peer_address()
        debug(f"Callback received: GET {redact_query(self.path)} from {peer}")

        if not is_loopback_address(peer):
            self._reject_non_local(peer)
            return

        parsed = urlsplit(self.path)
        if parsed.path != CALLBACK_PATH:
            self._respond(404, "Not found\n")
            return

        if self.server.completed:
            debug("Ignoring callback: handshake already completed")
            self._respond(409, "Login already completed. You can close this window.\n")
            return

        params = parse_qs(parsed.query)
        api_key = params.get("api_key", [""])[0]
        if not api_key:
            self.server.publish(
                HandshakeResult(
                    error=MissingCredentialError(
                        "Login callback did not include an api_key parameter"
                    )
                )
            )
            self._respond(400, "Missing api_key parameter\n")
            return

        org_id = params.get("org_id", [""])[0]
        org_name = params.get("org_name", [""])[0]
        debug(f"Callback carried org_id={org_id!r} org_name={org_name!r}")

        self.server.publish(
            HandshakeResult(credential=api_key, org_id=org_id, org_name=org_name)
        )
        self._respond(200, SUCCESS_HTML, content_type="text/html; charset=utf-8")

    def do_POST(self) -> None:
        peer = self.peer_address()
        if not is_loopback_address(peer):
            self._reject_non_local(peer)
            return
        self.send_response(405)
        self.send_header("Allow", "GET")
        self.send_header("Content-Length", "0")
        self.end_headers()

    do_PUT = do_POST
    do_PATCH = do_POST
    do_DELETE = do_POST

    def _reject_non_local(self, peer: str) -> None:
        debug(f"Rejected non-loopback callback from {peer}")
        self.server.publish(
            HandshakeResult(
                error=NonLocalOriginError(
                    f"Login callback rejected: request from non-localhost address {peer}"
                )
            )
        )
        self._respond(403, "Forbidden: requests must come from localhost\n")

    def _respond(
        self,
        status: int,
        body: str,
        content_type: str = "text/plain; charset=utf-8",
    ) -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format: str, *args: Any) -> None:
        debug(redact_query(format % args))


class CallbackServer(HTTPServer):
    """Single-threaded HTTP server bound to a pre-bound loopback socket.

    The server takes ownership of *listener*: :meth:`stop` closes it. The
    first call to :meth:`publish` puts its result into *results*; every
    later call is discarded so the handler can never block on a full queue.

    Args:
        listener: A bound, listening socket from
            :func:`~stackeye.auth.listener.bind_loopback`.
        results: Queue of capacity one shared with the coordinator.
        request_timeout: Socket timeout applied to each client connection.
    """

    def __init__(
        self,
        listener: socket.socket,
        results: "queue.Queue[HandshakeResult]",
        request_timeout: float = 5.0,
    ) -> None:
        address = listener.getsockname()
        super().__init__(address, CallbackHandler, bind_and_activate=False)
        # Swap the unbound socket created by TCPServer for the owned listener.
        self.socket.close()
        self.socket = listener
        self.server_address = address
        self.server_name, self.server_port = address[0], address[1]
        self.results = results
        self.request_timeout = request_timeout
        self.crash: Optional[BaseException] = None
        self._published = False
        self._thread: Optional[threading.Thread] = None
        self._stopped = False

    @property
    def port(self) -> int:
        return self.server_port

    @property
    def completed(self) -> bool:
        """Whether a result has already been published."""
        return self._published

    @property
    def is_serving(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def publish(self, result: HandshakeResult) -> bool:
        """Publish *result* unless one was already published.

        Returns:
            ``True`` if the result was delivered, ``False`` if discarded.
        """
        if self._published:
            return False
        try:
            self.results.put_nowait(result)
        except queue.Full:
            return False
        self._published = True
        return True

    def start(self) -> None:
        """Start serving on a daemon thread."""
        if self._thread is not None or self._stopped:
            return
        self._thread = threading.Thread(
            target=self._serve, name="stackeye-callback", daemon=True
        )
        self._thread.start()

    def _serve(self) -> None:
        try:
            self.serve_forever(poll_interval=0.1)
        except Exception as exc:
            self.crash = exc
            debug(f"Callback server crashed: {exc!r}")
            self.publish(
                HandshakeResult(error=StackeyeError(f"Local callback server crashed: {exc}"))
            )

    def stop(self, grace: float = 5.0) -> None:
        """Shut the server down and close the listener.

        Idempotent, and safe to call when :meth:`start` was never called.
        Waits at most about ``2 * grace`` seconds for the serving thread.
        """
        if self._stopped:
            return
        self._stopped = True

        thread = self._thread
        if thread is not None and thread.is_alive():
            # shutdown() blocks until serve_forever() returns; bound it.
            stopper = threading.Thread(target=self.shutdown, daemon=True)
            stopper.start()
            stopper.join(grace)
            thread.join(grace)
            if thread.is_alive():
                debug(f"Callback server did not stop within {grace:g}s")
        self.server_close()
        debug("Callback server stopped")

    def handle_error(self, request: Any, client_address: Any) -> None:
        debug(f"Error while handling callback from {client_address[0]}")
