"""HTTP client for the central server's runner endpoints.

Endpoints:
- POST  /api/runners/register       {stable_id, hostname, registration_token}
- GET   /api/runners/{stable_id}    -> RunnerRecord (404 = no record)
- PATCH /api/runners/{stable_id}    {enabled?, hostname?} -> RunnerRecord

Status mapping:
- 401/403               -> AuthError
- 429, 5xx, transport   -> RegistrationError (retryable)
- other 4xx             -> RegistrationError (not retryable)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from runner_coordinator.errors import create_error, get_error_factory

from .models import RecordPatch, RegisterRequest, RegistrationResult, RunnerRecord

logger = logging.getLogger(__name__)

REGISTER_PATH = "/api/runners/register"
RECORD_PATH = "/api/runners/{stable_id}"


class ServerClient:
    """Async client for the runner registration and record endpoints.

    Every call carries the configured timeout; a timeout surfaces as a
    retryable RegistrationError.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        verify_tls: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Server URL, e.g. https://semaphore.example.com
            timeout_seconds: Bound on every request
            verify_tls: Verify server certificates
            transport: Optional transport (tests use httpx.MockTransport)
        """
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout_seconds,
            verify=verify_tls,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ServerClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def register(self, stable_id: str, hostname: str, token: str) -> RegistrationResult:
        """Call the registration endpoint once.

        Returns:
            RegistrationResult; already_registered is True on 409

        Raises:
            AuthError: On 401/403
            RegistrationError: On any other failure
        """
        body = RegisterRequest(stable_id=stable_id, hostname=hostname, registration_token=token)
        response = await self._request(
            "register",
            stable_id,
            "POST",
            REGISTER_PATH,
            json=body.model_dump(),
        )

        if response.status_code == 409:
            logger.debug(f"Server reports '{stable_id}' already registered")
            record = self._parse_record_or_none(response)
            return RegistrationResult(record=record, already_registered=True)

        self._check_status(response, "register", stable_id)
        return RegistrationResult(record=self._parse_record(response, "register", stable_id))

    async def fetch_record(self, stable_id: str, token: str) -> RunnerRecord | None:
        """Fetch the record for stable_id. Returns None on 404."""
        response = await self._request(
            "fetch",
            stable_id,
            "GET",
            RECORD_PATH.format(stable_id=stable_id),
            headers=self._auth_headers(token),
        )
        if response.status_code == 404:
            return None

        self._check_status(response, "fetch", stable_id)
        return self._parse_record(response, "fetch", stable_id)

    async def patch_record(self, stable_id: str, token: str, patch: RecordPatch) -> RunnerRecord:
        """Apply a partial update to the record in a single call."""
        response = await self._request(
            "patch",
            stable_id,
            "PATCH",
            RECORD_PATH.format(stable_id=stable_id),
            headers=self._auth_headers(token),
            json=patch.model_dump(exclude_none=True),
        )
        self._check_status(response, "patch", stable_id)
        return self._parse_record(response, "patch", stable_id)

    def _auth_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        operation: str,
        stable_id: str,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise get_error_factory().from_exception(
                e, operation=operation, stable_id=stable_id
            ) from e

    def _check_status(self, response: httpx.Response, operation: str, stable_id: str) -> None:
        status = response.status_code
        if status < 400:
            return

        if status in (401, 403):
            raise create_error("AUTH_REJECTED", status_code=status, stable_id=stable_id)

        if status == 429 or status >= 500:
            raise create_error(
                "REGISTRATION_FAILED",
                operation=operation,
                status_code=status,
                stable_id=stable_id,
                detail=f"HTTP {status}: {self._error_text(response)}",
            )

        raise create_error(
            "REGISTRATION_REJECTED",
            operation=operation,
            status_code=status,
            stable_id=stable_id,
            detail=f"HTTP {status}: {self._error_text(response)}",
        )

    def _parse_record(
        self, response: httpx.Response, operation: str, stable_id: str
    ) -> RunnerRecord:
        try:
            return RunnerRecord.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise create_error(
                "RESPONSE_INVALID",
                operation=operation,
                stable_id=stable_id,
                detail=str(e),
            ) from e

    def _parse_record_or_none(self, response: httpx.Response) -> RunnerRecord | None:
        try:
            return RunnerRecord.model_validate(response.json())
        except (ValueError, ValidationError):
            return None

    def _error_text(self, response: httpx.Response) -> str:
        text = response.text.strip()
        if len(text) > 200:
            text = text[:200] + "..."
        return text or response.reason_phrase
