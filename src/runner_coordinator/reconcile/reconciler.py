"""Runner State Reconciler - drives the server record toward desired state.

Registration cannot set ``enabled`` or ``hostname``; each pass fetches the
record, diffs those fields and patches only what differs. Fetch and patch
failures are absorbed and the pass is simply repeated next cycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from runner_coordinator.client import DesiredState, RecordPatch, RunnerRecord
from runner_coordinator.errors import AuthError, RegistrationError, TokenUnavailableError
from runner_coordinator.types import ReconcileOutcome

if TYPE_CHECKING:
    from runner_coordinator.client import ServerClient
    from runner_coordinator.identity import RunnerIdentity
    from runner_coordinator.logging import CoordinatorLogger
    from runner_coordinator.telemetry import CoordinatorMetrics
    from runner_coordinator.tokens import TokenStore

RECONCILED_FIELDS = ("enabled", "hostname")


@dataclass
class Divergence:
    """One field whose observed value differs from desired state."""

    field: str
    observed: Any
    desired: Any


@dataclass
class ReconcileResult:
    """Result of one reconciliation pass."""

    outcome: ReconcileOutcome
    divergences: list[Divergence] = field(default_factory=list)
    patched: bool = False
    record: RunnerRecord | None = None
    error: Exception | None = None

    @property
    def converged(self) -> bool:
        """True when the record matches desired state after this pass."""
        return self.outcome in (ReconcileOutcome.CONVERGED, ReconcileOutcome.CORRECTED)


def diff_record(record: RunnerRecord, desired: DesiredState) -> list[Divergence]:
    """List the reconciled fields where record differs from desired."""
    divergences = []
    for name in RECONCILED_FIELDS:
        observed = getattr(record, name)
        wanted = getattr(desired, name)
        if observed != wanted:
            divergences.append(Divergence(field=name, observed=observed, desired=wanted))
    return divergences


class RunnerStateReconciler:
    """Compares the server record with desired state and patches divergences."""

    def __init__(
        self,
        server: ServerClient,
        token_store: TokenStore,
        logger: CoordinatorLogger | None = None,
        metrics: CoordinatorMetrics | None = None,
    ) -> None:
        self._server = server
        self._token_store = token_store
        self._logger = logger
        self._metrics = metrics

    async def reconcile(self, identity: RunnerIdentity, desired: DesiredState) -> ReconcileResult:
        """Run one pass.

        Issues at most one patch call, and only when a divergence exists.

        Raises:
            AuthError: Token rejected; everything else is reported in the result
        """
        stable_id = identity.stable_id
        events = self._logger.slot(stable_id).reconcile() if self._logger else None

        try:
            token = self._token_store.current_token()
            record = await self._server.fetch_record(stable_id, token.value)
        except AuthError:
            raise
        except (RegistrationError, TokenUnavailableError) as e:
            if events:
                events.failed(e)
            return self._finish(stable_id, ReconcileResult(outcome=ReconcileOutcome.FAILED, error=e))

        if record is None:
            if events:
                events.record_missing()
            return self._finish(stable_id, ReconcileResult(outcome=ReconcileOutcome.MISSING))

        divergences = diff_record(record, desired)
        if not divergences:
            if events:
                events.converged()
            return self._finish(
                stable_id, ReconcileResult(outcome=ReconcileOutcome.CONVERGED, record=record)
            )

        if events:
            for divergence in divergences:
                events.divergence(divergence.field, divergence.observed, divergence.desired)

        patch = RecordPatch(**{d.field: d.desired for d in divergences})
        try:
            updated = await self._server.patch_record(stable_id, token.value, patch)
        except AuthError:
            raise
        except RegistrationError as e:
            # Divergence persists; the next cycle patches again
            if events:
                events.failed(e)
            return self._finish(
                stable_id,
                ReconcileResult(
                    outcome=ReconcileOutcome.FAILED,
                    divergences=divergences,
                    record=record,
                    error=e,
                ),
            )

        if self._metrics:
            self._metrics.record_patch(stable_id)
        if events:
            events.corrected([d.field for d in divergences])

        return self._finish(
            stable_id,
            ReconcileResult(
                outcome=ReconcileOutcome.CORRECTED,
                divergences=divergences,
                patched=True,
                record=updated,
            ),
        )

    def _finish(self, stable_id: str, result: ReconcileResult) -> ReconcileResult:
        if self._metrics:
            self._metrics.record_reconcile(
                stable_id, result.outcome.value, [d.field for d in result.divergences]
            )
        return result
