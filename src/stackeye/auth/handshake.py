"""Browser-delegated login handshake.

:class:`HandshakeCoordinator` drives one login attempt through the states of
:class:`HandshakeState`::

    IDLE -> LISTENER_STARTED -> BROWSER_LAUNCHED -> WAITING_FOR_CALLBACK
         -> SUCCEEDED | TIMED_OUT | FAILED | CANCELLED -> SERVER_STOPPED

``SERVER_STOPPED`` is reached on every exit path, including exceptions and
Ctrl-C, so a handshake never leaks its listening socket.
"""

from __future__ import annotations

import queue
import socket
import threading
import time
from enum import Enum
from typing import Callable, Optional

from stackeye.auth.browser import Launcher, open_or_print
from stackeye.auth.callback import CallbackServer
from stackeye.auth.listener import bind_loopback
from stackeye.auth.urls import build_authorization_target
from stackeye.exceptions import (
    AlreadyLoggedInError,
    HandshakeCancelledError,
    HandshakeTimeoutError,
    StackeyeError,
)
from stackeye.models import AuthorizationTarget, ConfigStore, HandshakeResult, LoginOptions
from stackeye.output import debug, info

_POLL_INTERVAL = 0.25


class HandshakeState(str, Enum):
    IDLE = "idle"
    LISTENER_STARTED = "listener_started"
    BROWSER_LAUNCHED = "browser_launched"
    WAITING_FOR_CALLBACK = "waiting_for_callback"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SERVER_STOPPED = "server_stopped"


_TERMINAL_STATES = frozenset(
    {
        HandshakeState.SUCCEEDED,
        HandshakeState.TIMED_OUT,
        HandshakeState.FAILED,
        HandshakeState.CANCELLED,
    }
)


class HandshakeCoordinator:
    """Run one browser login and return the credential it delivered.

    A coordinator is single use: :meth:`run` may be called once.

    Args:
        options: Timeouts and interaction flags for this attempt.
        launcher: Browser launcher; defaults to the platform launcher.
        confirm: Asks the operator a yes/no question. Used only by
            :meth:`check_existing_login` when neither ``assume_yes`` nor
            ``no_input`` decides the answer.
        bind: Creates the listening socket; tests substitute failures here.
    """

    def __init__(
        self,
        options: LoginOptions,
        launcher: Optional[Launcher] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        bind: Callable[[], socket.socket] = bind_loopback,
    ) -> None:
        self.options = options
        self.launcher = launcher
        self.confirm = confirm
        self._bind = bind
        self.state = HandshakeState.IDLE
        self.history: list[HandshakeState] = [HandshakeState.IDLE]
        self.target: Optional[AuthorizationTarget] = None
        self.server: Optional[CallbackServer] = None

    def _transition(self, state: HandshakeState) -> None:
        debug(f"Handshake state: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def check_existing_login(self, store: ConfigStore) -> None:
        """Refuse to start when the target API URL already has a credential.

        Raises:
            AlreadyLoggedInError: If a context for ``options.api_url`` holds a
                credential and the operator did not agree to continue.
        """
        existing = store.find_authenticated(self.options.api_url)
        if existing is None:
            return
        name, _ = existing
        message = f"Already logged in to {self.options.api_url} (context '{name}')"
        if self.options.assume_yes:
            debug(f"{message}; continuing because --yes was given")
            return
        if self.options.no_input or self.confirm is None:
            raise AlreadyLoggedInError(message)
        if not self.confirm(f"{message}. Log in again anyway?"):
            raise AlreadyLoggedInError(message)

    def run(self, cancel_event: Optional[threading.Event] = None) -> HandshakeResult:
        """Perform the handshake.

        Args:
            cancel_event: When set from another thread, the wait ends with
                :class:`HandshakeCancelledError`.

        Returns:
            The successful :class:`HandshakeResult`.

        Raises:
            BindError: If no loopback port could be bound.
            HandshakeTimeoutError: If no callback arrived within ``options.timeout``.
            HandshakeCancelledError: On ``cancel_event`` or ``KeyboardInterrupt``.
            AuthError: If the callback carried an error (for example a
                non-loopback origin or a missing credential).
        """
        if self.state is not HandshakeState.IDLE:
            raise StackeyeError("A login handshake can only be run once")

        results: queue.Queue[HandshakeResult] = queue.Queue(maxsize=1)
        listener = self._bind()
        try:
            server = CallbackServer(listener, results, request_timeout=self.options.shutdown_grace)
        except BaseException:
            listener.close()
            raise
        self.server = server

        try:
            server.start()
            self._transition(HandshakeState.LISTENER_STARTED)
            debug(f"Callback server listening on 127.0.0.1:{server.port}")

            self.target = build_authorization_target(self.options.api_url, server.port)
            debug(f"Authorization URL: {self.target.authorization_url}")
            info("Opening browser to log in...")
            open_or_print(self.target.authorization_url, self.launcher)
            self._transition(HandshakeState.BROWSER_LAUNCHED)

            self._transition(HandshakeState.WAITING_FOR_CALLBACK)
            info(f"Waiting for authentication (timeout: {_format_seconds(self.options.timeout)})...")
            result = self._wait(results, cancel_event)
            if result.error is not None:
                self._transition(HandshakeState.FAILED)
                raise result.error
            self._transition(HandshakeState.SUCCEEDED)
            return result
        except HandshakeTimeoutError:
            self._transition(HandshakeState.TIMED_OUT)
            raise
        except HandshakeCancelledError:
            self._transition(HandshakeState.CANCELLED)
            raise
        except KeyboardInterrupt as exc:
            self._transition(HandshakeState.CANCELLED)
            raise HandshakeCancelledError("Login cancelled") from exc
        except BaseException:
            if self.state not in _TERMINAL_STATES:
                self._transition(HandshakeState.FAILED)
            raise
        finally:
            server.stop(self.options.shutdown_grace)
            self._transition(HandshakeState.SERVER_STOPPED)

    def _wait(
        self,
        results: "queue.Queue[HandshakeResult]",
        cancel_event: Optional[threading.Event],
    ) -> HandshakeResult:
        deadline = time.monotonic() + self.options.timeout
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise HandshakeCancelledError("Login cancelled")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise HandshakeTimeoutError(
                    "Timed out after "
                    f"{_format_seconds(self.options.timeout)} waiting for the browser login"
                )
            try:
                return results.get(timeout=min(remaining, _POLL_INTERVAL))
            except queue.Empty:
                continue


def _format_seconds(seconds: float) -> str:
    minutes, secs = divmod(int(round(seconds)), 60)
    if minutes and secs:
        return f"{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m"
    return f"{seconds:g}s"
