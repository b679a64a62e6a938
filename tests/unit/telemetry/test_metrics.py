"""Unit tests for coordinator telemetry metrics."""

from unittest.mock import MagicMock, call

import pytest

from runner_coordinator.telemetry import (
    METRIC_PREFIX,
    CoordinatorMetrics,
    MetricLabels,
    get_metrics,
    reset_metrics,
)


@pytest.fixture
def meter():
    """Meter whose instruments are distinct mocks per name."""
    meter = MagicMock()
    instruments: dict[str, MagicMock] = {}

    def _create(name, **kwargs):
        instruments[name] = MagicMock(name=name)
        return instruments[name]

    meter.create_counter.side_effect = _create
    meter.create_up_down_counter.side_effect = _create
    meter.instruments = instruments
    return meter


class TestCoordinatorMetrics:
    """Tests for CoordinatorMetrics."""

    def test_instruments_created(self, meter):
        CoordinatorMetrics(meter)

        assert set(meter.instruments) == {
            f"{METRIC_PREFIX}_registration_attempts_total",
            f"{METRIC_PREFIX}_reconcile_passes_total",
            f"{METRIC_PREFIX}_patches_total",
            f"{METRIC_PREFIX}_divergences_total",
            f"{METRIC_PREFIX}_slot_state",
        }

    def test_registration_attempt(self, meter):
        metrics = CoordinatorMetrics(meter)

        metrics.record_registration_attempt("r-001", MetricLabels.OUTCOME_REGISTERED)

        metrics.registration_attempts_total.add.assert_called_once_with(
            1, {"stable_id": "r-001", "outcome": "registered"}
        )

    def test_reconcile_counts_divergent_fields(self, meter):
        metrics = CoordinatorMetrics(meter)

        metrics.record_reconcile("r-001", "corrected", ["enabled", "hostname"])

        metrics.reconcile_passes_total.add.assert_called_once_with(
            1, {"stable_id": "r-001", "outcome": "corrected"}
        )
        assert metrics.divergences_total.add.call_args_list == [
            call(1, {"stable_id": "r-001", "field": "enabled"}),
            call(1, {"stable_id": "r-001", "field": "hostname"}),
        ]

    def test_patch(self, meter):
        metrics = CoordinatorMetrics(meter)
        metrics.record_patch("r-001")
        metrics.patches_total.add.assert_called_once_with(1, {"stable_id": "r-001"})

    def test_state_moves_between_values(self, meter):
        """Only the current state holds 1."""
        metrics = CoordinatorMetrics(meter)

        metrics.record_state("r-001", "unregistered")
        metrics.record_state("r-001", "registering")
        metrics.record_state("r-001", "registering")

        assert metrics.slot_state.add.call_args_list == [
            call(1, {"stable_id": "r-001", "state": "unregistered"}),
            call(-1, {"stable_id": "r-001", "state": "unregistered"}),
            call(1, {"stable_id": "r-001", "state": "registering"}),
        ]


class TestGlobalMetrics:
    """Tests for the process-wide instance."""

    def test_singleton(self):
        assert get_metrics() is get_metrics()

    def test_reset(self):
        first = get_metrics()
        reset_metrics()
        assert get_metrics() is not first

    def test_noop_without_sdk(self):
        """Recording works against the API's no-op provider."""
        metrics = get_metrics()
        metrics.record_registration_attempt("r-001", MetricLabels.OUTCOME_RETRYABLE)
        metrics.record_state("r-001", "fatal")
