"""Reconciliation of server-side runner records."""

from runner_coordinator.reconcile.reconciler import (
    RECONCILED_FIELDS,
    Divergence,
    ReconcileResult,
    RunnerStateReconciler,
    diff_record,
)

__all__ = [
    "RECONCILED_FIELDS",
    "Divergence",
    "ReconcileResult",
    "RunnerStateReconciler",
    "diff_record",
]
