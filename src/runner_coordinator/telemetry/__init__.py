"""Coordinator telemetry - OpenTelemetry metrics."""

from .metrics import (
    METRIC_PREFIX,
    CoordinatorMetrics,
    MetricLabels,
    get_metrics,
    reset_metrics,
)

__all__ = [
    "METRIC_PREFIX",
    "CoordinatorMetrics",
    "MetricLabels",
    "get_metrics",
    "reset_metrics",
]
