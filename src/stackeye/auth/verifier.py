"""Credential format check and platform verification call."""

from __future__ import annotations

import re
from typing import Any, Optional

import httpx

from stackeye import __version__
from stackeye.exceptions import InvalidCredentialFormatError, VerificationFailedError
from stackeye.exit_codes import EXIT_CONNECTION_ERROR
from stackeye.models import VerifiedIdentity
from stackeye.output import debug

VERIFY_PATH = "/v1/cli-auth/verify"

CREDENTIAL_PREFIX = "se_"
CREDENTIAL_LENGTH = 67

_CREDENTIAL_RE = re.compile(r"^se_[0-9a-f]{64}$")


def mask_credential(credential: str) -> str:
    """Return *credential* with everything but its edges hidden (``se_0…cdef``)."""
    if len(credential) <= 8:
        return "***"
    return f"{credential[:4]}…{credential[-4:]}"


def validate_credential_format(credential: str) -> None:
    """Check that *credential* is ``se_`` followed by 64 lower-case hex characters.

    Raises:
        InvalidCredentialFormatError: If the format does not match.
    """
    if not credential.startswith(CREDENTIAL_PREFIX):
        raise InvalidCredentialFormatError(
            f"Invalid API key format: expected prefix '{CREDENTIAL_PREFIX}'"
        )
    if len(credential) != CREDENTIAL_LENGTH:
        raise InvalidCredentialFormatError(
            f"Invalid API key format: expected {CREDENTIAL_LENGTH} characters, "
            f"got {len(credential)}"
        )
    if not _CREDENTIAL_RE.match(credential):
        raise InvalidCredentialFormatError(
            "Invalid API key format: expected lower-case hex characters after the prefix"
        )


class CredentialVerifier:
    """Confirms a credential with the platform and fetches its identity.

    Makes exactly one ``GET /v1/cli-auth/verify`` request per call to
    :meth:`verify` and never retries.

    Args:
        api_url: Base URL of the StackEye API.
        timeout: Overall request timeout in seconds.
        transport: Optional httpx transport, used by tests to inject
            :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def verify(self, credential: str) -> VerifiedIdentity:
        """Verify *credential* and return the identity it belongs to.

        Raises:
            InvalidCredentialFormatError: Before any network I/O, if the
                credential is malformed.
            VerificationFailedError: If the platform rejects the credential,
                cannot be reached, or answers with an unusable body.
        """
        validate_credential_format(credential)

        url = f"{self.api_url}{VERIFY_PATH}"
        debug(f"Verifying credential {mask_credential(credential)} at {url}")
        try:
            with httpx.Client(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": f"stackeye-cli/{__version__}"},
            ) as client:
                response = client.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {credential}",
                        "Accept": "application/json",
                    },
                )
        except httpx.TimeoutException as exc:
            raise VerificationFailedError(
                f"Timed out verifying credentials after {self.timeout:g}s",
                exit_code=EXIT_CONNECTION_ERROR,
            ) from exc
        except httpx.HTTPError as exc:
            raise VerificationFailedError(
                f"Could not reach {self.api_url}: {exc}",
                exit_code=EXIT_CONNECTION_ERROR,
            ) from exc

        debug(f"Verification response: HTTP {response.status_code}")
        self._check_status(response)
        return self._parse(response)

    def _check_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status in (401, 403):
            raise VerificationFailedError(
                f"API key was rejected by the platform (HTTP {status})",
                hint="Run 'stackeye login' again to obtain a new key.",
            )

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""
        full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"
        raise VerificationFailedError(f"Credential verification failed: {full_msg}")

    def _parse(self, response: httpx.Response) -> VerifiedIdentity:
        try:
            body: Any = response.json()
        except ValueError as exc:
            raise VerificationFailedError(
                "Credential verification failed: response is not valid JSON"
            ) from exc
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            body = body["data"]
        if not isinstance(body, dict):
            raise VerificationFailedError(
                "Credential verification failed: unexpected response shape"
            )
        if not body.get("valid"):
            raise VerificationFailedError("API key is not valid")

        return VerifiedIdentity(
            organization_id=str(body.get("organization_id") or ""),
            organization_name=str(body.get("organization_name") or ""),
            user_email=str(body.get("user_email") or ""),
            user_name=str(body.get("user_name") or ""),
            is_platform_admin=bool(body.get("is_platform_admin", False)),
            auth_type=str(body.get("auth_type") or ""),
        )
