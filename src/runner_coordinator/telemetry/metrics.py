"""Runner coordinator metrics - OpenTelemetry conventions.

Metrics:
- Counters: registration attempts, reconcile passes, patches, divergences
- UpDownCounter: slot state (1 for the current state, 0 otherwise)

Instruments are no-ops until an SDK MeterProvider is installed.
All metrics use the 'runner_coordinator_' prefix.
"""

from dataclasses import dataclass

from opentelemetry import metrics
from opentelemetry.metrics import Counter, UpDownCounter

METRIC_PREFIX = "runner_coordinator"


@dataclass
class MetricLabels:
    """Standard metric labels/attributes."""

    STABLE_ID = "stable_id"
    OUTCOME = "outcome"
    FIELD = "field"
    STATE = "state"

    # Registration outcome values
    OUTCOME_REGISTERED = "registered"
    OUTCOME_ALREADY_REGISTERED = "already_registered"
    OUTCOME_RETRYABLE = "retryable_error"
    OUTCOME_AUTH_REJECTED = "auth_rejected"
    OUTCOME_REJECTED = "rejected"


class CoordinatorMetrics:
    """Coordinator metrics collection."""

    def __init__(self, meter: metrics.Meter):
        """Initialize metrics.

        Args:
            meter: OpenTelemetry Meter instance
        """
        self._meter = meter
        self._setup_counters()
        self._current_state: dict[str, str] = {}

    def _setup_counters(self) -> None:
        self.registration_attempts_total: Counter = self._meter.create_counter(
            name=f"{METRIC_PREFIX}_registration_attempts_total",
            description="Registration calls made, by outcome",
            unit="1",
        )

        self.reconcile_passes_total: Counter = self._meter.create_counter(
            name=f"{METRIC_PREFIX}_reconcile_passes_total",
            description="Reconciliation passes, by outcome",
            unit="1",
        )

        self.patches_total: Counter = self._meter.create_counter(
            name=f"{METRIC_PREFIX}_patches_total",
            description="Patch calls issued to correct runner records",
            unit="1",
        )

        self.divergences_total: Counter = self._meter.create_counter(
            name=f"{METRIC_PREFIX}_divergences_total",
            description="Fields found diverging from desired state",
            unit="1",
        )

        self.slot_state: UpDownCounter = self._meter.create_up_down_counter(
            name=f"{METRIC_PREFIX}_slot_state",
            description="Current lifecycle state of the runner slot",
            unit="1",
        )

    def record_registration_attempt(self, stable_id: str, outcome: str) -> None:
        self.registration_attempts_total.add(
            1, {MetricLabels.STABLE_ID: stable_id, MetricLabels.OUTCOME: outcome}
        )

    def record_reconcile(self, stable_id: str, outcome: str, divergent_fields: list[str]) -> None:
        """Record one reconcile pass and the fields it found diverging."""
        self.reconcile_passes_total.add(
            1, {MetricLabels.STABLE_ID: stable_id, MetricLabels.OUTCOME: outcome}
        )
        for field_name in divergent_fields:
            self.divergences_total.add(
                1, {MetricLabels.STABLE_ID: stable_id, MetricLabels.FIELD: field_name}
            )

    def record_patch(self, stable_id: str) -> None:
        self.patches_total.add(1, {MetricLabels.STABLE_ID: stable_id})

    def record_state(self, stable_id: str, state: str) -> None:
        """Move the slot_state gauge from the previous state to the new one."""
        previous = self._current_state.get(stable_id)
        if previous == state:
            return
        if previous is not None:
            self.slot_state.add(-1, {MetricLabels.STABLE_ID: stable_id, MetricLabels.STATE: previous})
        self.slot_state.add(1, {MetricLabels.STABLE_ID: stable_id, MetricLabels.STATE: state})
        self._current_state[stable_id] = state


_metrics: CoordinatorMetrics | None = None


def get_metrics() -> CoordinatorMetrics:
    """Get the process-wide metrics instance, bound to the global MeterProvider."""
    global _metrics  # noqa: PLW0603
    if _metrics is None:
        _metrics = CoordinatorMetrics(metrics.get_meter(METRIC_PREFIX))
    return _metrics


def reset_metrics() -> None:
    """Reset the metrics singleton (for testing)."""
    global _metrics  # noqa: PLW0603
    _metrics = None
