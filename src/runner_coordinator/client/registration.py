"""Registration Client - the one-shot handshake, retried until it succeeds.

- Retryable failures (timeouts, refused connections, 5xx, missing token)
  back off exponentially up to the configured cap.
- AuthError ends the handshake after a single attempt.
- "Already registered" counts as success.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from runner_coordinator.errors import (
    AuthError,
    RegistrationError,
    TokenUnavailableError,
    create_error,
)
from runner_coordinator.telemetry import MetricLabels
from runner_coordinator.types import RetryConfig, calculate_retry_delay

from .models import DesiredState, RunnerRecord

if TYPE_CHECKING:
    from runner_coordinator.identity import RunnerIdentity
    from runner_coordinator.logging import CoordinatorLogger
    from runner_coordinator.telemetry import CoordinatorMetrics
    from runner_coordinator.tokens import TokenStore

    from .api import ServerClient

SleepFunc = Callable[[float], Awaitable[None]]


class RegistrationClient:
    """Registers one runner identity with the central server."""

    def __init__(
        self,
        server: ServerClient,
        token_store: TokenStore,
        retry: RetryConfig | None = None,
        logger: CoordinatorLogger | None = None,
        metrics: CoordinatorMetrics | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the registration client.

        Args:
            server: Server API client
            token_store: Source of the registration token, read once per attempt
            retry: Backoff settings (defaults to RetryConfig())
            logger: Optional event logger
            metrics: Optional metrics instance
            sleep: Coroutine used to wait between attempts
        """
        self._server = server
        self._token_store = token_store
        self._retry = retry or RetryConfig()
        self._logger = logger
        self._metrics = metrics
        self._sleep = sleep

    async def register(self, identity: RunnerIdentity, desired: DesiredState) -> RunnerRecord:
        """Register identity, retrying transient failures.

        Args:
            identity: Runner identity
            desired: Desired state; its hostname is sent with the registration

        Returns:
            The server's record for identity.stable_id

        Raises:
            AuthError: Token rejected (after exactly one attempt)
            RegistrationError: Non-retryable rejection, or retries exhausted
            TokenUnavailableError: Token still unavailable when retries are exhausted
        """
        stable_id = identity.stable_id
        events = self._logger.slot(stable_id).registration() if self._logger else None
        attempt = 0

        while True:
            attempt += 1
            if events:
                events.attempt(attempt, desired.hostname)

            try:
                record, already_registered = await self._attempt(stable_id, desired.hostname)
            except AuthError as e:
                self._record(stable_id, MetricLabels.OUTCOME_AUTH_REJECTED)
                if events:
                    events.auth_rejected(attempt, e.status_code)
                raise
            except (RegistrationError, TokenUnavailableError) as e:
                if not e.retryable:
                    self._record(stable_id, MetricLabels.OUTCOME_REJECTED)
                    if events:
                        events.failed(attempt, e)
                    raise

                self._record(stable_id, MetricLabels.OUTCOME_RETRYABLE)
                if self._retry.max_attempts and attempt >= self._retry.max_attempts:
                    if events:
                        events.failed(attempt, e)
                    raise

                delay = calculate_retry_delay(attempt, self._retry)
                if events:
                    events.retrying(attempt, delay, e)
                await self._sleep(delay)
                continue

            self._record(
                stable_id,
                MetricLabels.OUTCOME_ALREADY_REGISTERED
                if already_registered
                else MetricLabels.OUTCOME_REGISTERED,
            )
            if events:
                events.succeeded(attempt, already_registered)
            return record

    async def _attempt(self, stable_id: str, hostname: str) -> tuple[RunnerRecord, bool]:
        """One registration round trip, plus a fetch if a 409 carried no record."""
        token = self._token_store.current_token()
        result = await self._server.register(stable_id, hostname, token.value)

        record = result.record
        if record is None:
            record = await self._server.fetch_record(stable_id, token.value)
        if record is None:
            # 409 but the record is not visible yet; try again
            raise create_error(
                "REGISTRATION_FAILED",
                operation="register",
                stable_id=stable_id,
                detail="Server reported the runner as registered but returned no record",
            )
        return record, result.already_registered

    def _record(self, stable_id: str, outcome: str) -> None:
        if self._metrics:
            self._metrics.record_registration_attempt(stable_id, outcome)
