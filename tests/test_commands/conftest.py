"""Fixtures for invoking the stackeye CLI end to end."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from stackeye.auth.verifier import CredentialVerifier


VERIFY_BODY = {
    "valid": True,
    "organization_id": "org_123",
    "organization_name": "Acme Corp",
    "auth_type": "api_key",
    "user_email": "admin@acme.com",
    "user_name": "Admin User",
    "is_platform_admin": False,
}


class VerifyEndpoint:
    """Stand-in for ``GET /v1/cli-auth/verify`` behind an httpx.MockTransport.

    Records every request and answers with *status* and *body*.
    """

    def __init__(self, status: int = 200, body: Any = None) -> None:
        self.status = status
        self.body = dict(VERIFY_BODY) if body is None else body
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    def factory(self) -> Callable[..., CredentialVerifier]:
        """A drop-in replacement for the ``CredentialVerifier`` constructor."""
        transport = httpx.MockTransport(self.handler)

        def build(api_url: str, timeout: float = 30.0) -> CredentialVerifier:
            return CredentialVerifier(api_url, timeout=timeout, transport=transport)

        return build


@pytest.fixture
def verify_endpoint() -> VerifyEndpoint:
    return VerifyEndpoint()


@pytest.fixture
def cli():
    """Invoke the root app with ``--no-color`` so output is plain text."""
    from stackeye.app import app

    def invoke(cli_runner, *args: str, input: str | None = None):
        return cli_runner.invoke(app, ["--no-color", *args], input=input)

    return invoke
