"""Tests for the loopback listener."""

from __future__ import annotations

import socket
from unittest.mock import patch

import pytest

from stackeye.auth.listener import bind_loopback, listener_port
from stackeye.exceptions import BindError


def test_binds_ephemeral_loopback_port() -> None:
    sock = bind_loopback()
    try:
        host, port = sock.getsockname()
        assert host == "127.0.0.1"
        assert port > 0
        assert listener_port(sock) == port
    finally:
        sock.close()


def test_listener_accepts_connections() -> None:
    sock = bind_loopback()
    try:
        client = socket.create_connection(("127.0.0.1", listener_port(sock)), timeout=2)
        conn, _ = sock.accept()
        conn.close()
        client.close()
    finally:
        sock.close()


def test_two_listeners_get_distinct_ports() -> None:
    first, second = bind_loopback(), bind_loopback()
    try:
        assert listener_port(first) != listener_port(second)
    finally:
        first.close()
        second.close()


def test_bind_failure_raises_bind_error_and_closes_socket() -> None:
    created: list[socket.socket] = []
    real_socket = socket.socket

    def fake_socket(*args, **kwargs):
        sock = real_socket(*args, **kwargs)
        created.append(sock)
        return sock

    with patch("stackeye.auth.listener.socket.socket", side_effect=fake_socket):
        with pytest.raises(BindError, match="192.0.2.1"):
            bind_loopback(host="192.0.2.1")

    assert created and created[0].fileno() == -1
