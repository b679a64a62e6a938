"""Runner Coordinator - lifecycle of one runner slot.

Wires the components together and drives the slot state machine:

    Unregistered -> Registering -> Registered(Divergent) -> Registered(Converged)
    Registered(Converged) --drift--> Registered(Divergent)
    any state --AuthError--> Fatal

1. Resolve the persisted identity
2. Register (retrying transient failures)
3. Reconcile immediately, then every interval until stopped

Register and reconcile cycles are serialized by a single lock so two calls
never race to patch the same record.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx

from runner_coordinator.client import (
    DesiredState,
    RegistrationClient,
    RunnerRecord,
    ServerClient,
)
from runner_coordinator.errors import AuthError, CoordinatorError, get_error_factory
from runner_coordinator.identity import IdentityManager, RunnerIdentity
from runner_coordinator.reconcile import ReconcileResult, RunnerStateReconciler
from runner_coordinator.telemetry import get_metrics
from runner_coordinator.tokens import create_token_store
from runner_coordinator.types import ReconcileOutcome, RetryConfig, SlotState

if TYPE_CHECKING:
    from runner_coordinator.client.registration import SleepFunc
    from runner_coordinator.config import CoordinatorConfig
    from runner_coordinator.logging import CoordinatorLogger, SlotLogger
    from runner_coordinator.telemetry import CoordinatorMetrics
    from runner_coordinator.tokens import TokenStore


class RunnerCoordinator:
    """Coordinates registration and reconciliation for one runner slot."""

    def __init__(
        self,
        identity_manager: IdentityManager,
        server: ServerClient,
        token_store: TokenStore,
        desired_enabled: bool = True,
        desired_hostname: str = "",
        interval_seconds: float = 30.0,
        retry: RetryConfig | None = None,
        logger: CoordinatorLogger | None = None,
        metrics: CoordinatorMetrics | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the coordinator.

        Args:
            identity_manager: Persists and recovers the slot identity
            server: Server API client (closed by aclose())
            token_store: Registration token source
            desired_enabled: Desired ``enabled`` value
            desired_hostname: Desired hostname; empty = the identity hostname
            interval_seconds: Time between reconcile passes
            retry: Backoff settings for registration
            logger: Optional event logger
            metrics: Optional metrics instance
            sleep: Coroutine used for registration backoff
        """
        self._identity_manager = identity_manager
        self._server = server
        self._desired_enabled = desired_enabled
        self._desired_hostname = desired_hostname
        self._interval = interval_seconds
        self._logger = logger
        self._metrics = metrics
        self._sleep = sleep

        self.registration = RegistrationClient(
            server,
            token_store,
            retry=retry,
            logger=logger,
            metrics=metrics,
            sleep=self._backoff,
        )
        self.reconciler = RunnerStateReconciler(
            server, token_store, logger=logger, metrics=metrics
        )

        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._state = SlotState.UNREGISTERED
        self._identity: RunnerIdentity | None = None
        self._desired: DesiredState | None = None
        self._task: asyncio.Task[Any] | None = None
        self._backing_off = False

    @classmethod
    def from_config(
        cls,
        config: CoordinatorConfig,
        logger: CoordinatorLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> RunnerCoordinator:
        """Build a coordinator and its collaborators from configuration."""
        identity_manager = IdentityManager(
            config.identity.path,
            slot_name=config.identity.slot_name,
            hostname=config.identity.hostname,
            pod_name=config.identity.pod_name,
        )
        server = ServerClient(
            config.server.url,
            timeout_seconds=config.server.timeout_seconds,
            verify_tls=config.server.verify_tls,
            transport=transport,
        )
        return cls(
            identity_manager,
            server,
            create_token_store(config.token),
            desired_enabled=config.desired.enabled,
            desired_hostname=config.desired.hostname,
            interval_seconds=config.reconcile.interval_seconds,
            retry=config.retry,
            logger=logger,
            metrics=get_metrics(),
        )

    @property
    def state(self) -> SlotState:
        return self._state

    @property
    def identity(self) -> RunnerIdentity | None:
        return self._identity

    @property
    def desired(self) -> DesiredState | None:
        return self._desired

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def resolve_identity(self) -> RunnerIdentity:
        """Resolve the slot identity and the desired state derived from it.

        Raises:
            IdentityCorruptError: Persisted identity is unreadable (fatal)
        """
        if self._identity is None:
            first_start = not self._identity_manager.exists()
            self._identity = self._identity_manager.resolve_identity()
            self._desired = DesiredState(
                hostname=self._desired_hostname or self._identity.hostname,
                enabled=self._desired_enabled,
            )
            if self._logger:
                path = str(self._identity_manager.path)
                if first_start:
                    self._events().identity_created(path, self._identity.pod_name)
                else:
                    self._events().identity_loaded(path, self._identity.pod_name)
            self._publish_state()
        return self._identity

    async def register(self) -> RunnerRecord:
        """Register the slot (Unregistered -> Registered(Divergent)).

        Raises:
            AuthError: Token rejected
            RegistrationError: Non-retryable rejection or retries exhausted
        """
        identity = self.resolve_identity()
        assert self._desired is not None

        async with self._lock:
            self._set_state(SlotState.REGISTERING)
            try:
                record = await self.registration.register(identity, self._desired)
            except AuthError:
                self._set_state(SlotState.FATAL)
                raise
            except BaseException:
                self._set_state(SlotState.UNREGISTERED)
                raise
            # Registration alone never sets enabled/hostname
            self._set_state(SlotState.DIVERGENT)
            return record

    async def reconcile_once(self) -> ReconcileResult:
        """Run one reconcile pass and apply the resulting state transition.

        Raises:
            AuthError: Token rejected
        """
        identity = self.resolve_identity()
        assert self._desired is not None

        async with self._lock:
            try:
                result = await self.reconciler.reconcile(identity, self._desired)
            except AuthError:
                self._set_state(SlotState.FATAL)
                raise

            if result.outcome == ReconcileOutcome.MISSING:
                self._set_state(SlotState.UNREGISTERED)
            elif result.outcome == ReconcileOutcome.CONVERGED:
                self._set_state(SlotState.CONVERGED)
            elif result.outcome == ReconcileOutcome.CORRECTED:
                # Drift was observed before it was patched
                self._set_state(SlotState.DIVERGENT)
                self._set_state(SlotState.CONVERGED)
            elif result.divergences:
                self._set_state(SlotState.DIVERGENT)
            return result

    async def run(self) -> None:
        """Resolve, register, then reconcile every interval until stopped.

        Returns normally after stop(). Fatal errors propagate; anything
        that is not a CoordinatorError is raised as INTERNAL_ERROR.

        Raises:
            IdentityCorruptError: Persisted identity is unreadable
            AuthError: Token rejected
            RegistrationError: Server refused the registration outright
            TokenUnavailableError: Token still unavailable when retries ran out
            CoordinatorError: Unexpected failure (INTERNAL_ERROR)
        """
        self._task = asyncio.current_task()
        try:
            self.resolve_identity()
            while not self.stopping:
                if self._state == SlotState.UNREGISTERED:
                    await self.register()
                    if self.stopping:
                        break
                await self.reconcile_once()
                if await self._wait_for_stop(self._interval):
                    break
        except asyncio.CancelledError:
            if not self.stopping:
                raise
            # Registration backoff ended by stop()
            if self._task is not None and self._task.cancelling():
                self._task.uncancel()
        except CoordinatorError as e:
            self._fatal(e)
            raise
        except Exception as e:
            error = get_error_factory().from_exception(
                e, stable_id=self._identity.stable_id if self._identity else None
            )
            self._fatal(error)
            raise error from e
        finally:
            self._task = None

        if self._logger and self._identity:
            self._events().stopped()

    def stop(self) -> None:
        """Request graceful shutdown.

        Requests in flight are never interrupted: a pending reconcile pass
        finishes its single patch call and a registration request gets its
        answer. Only a registration waiting in backoff is cancelled, which
        leaves the server record untouched.
        """
        self._stop_event.set()
        if self._task is not None and self._backing_off:
            self._task.cancel()

    async def aclose(self) -> None:
        await self._server.aclose()

    async def __aenter__(self) -> RunnerCoordinator:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep for timeout seconds; True if stop() was called meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    async def _backoff(self, delay: float) -> None:
        """Wait between registration attempts. stop() cancels only this wait."""
        if self.stopping:
            # stop() arrived while the failed request was in flight
            raise asyncio.CancelledError
        self._backing_off = True
        try:
            await self._sleep(delay)
        finally:
            self._backing_off = False

    def _fatal(self, error: CoordinatorError) -> None:
        self._set_state(SlotState.FATAL)
        if self._logger and self._identity:
            self._events().fatal(error, error.exit_code)

    def _events(self) -> SlotLogger:
        assert self._logger is not None and self._identity is not None
        return self._logger.slot(self._identity.stable_id)

    def _set_state(self, state: SlotState) -> None:
        if state == self._state:
            return
        old = self._state
        self._state = state
        if self._logger and self._identity:
            self._events().state_changed(old.value, state.value)
        self._publish_state()

    def _publish_state(self) -> None:
        if self._metrics and self._identity:
            self._metrics.record_state(self._identity.stable_id, self._state.value)
