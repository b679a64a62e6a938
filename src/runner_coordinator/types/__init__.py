"""Shared types for the runner coordinator.

Import from here rather than submodules:
    from runner_coordinator.types import LogLevel, RetryConfig, SlotState
"""

from .config import RetryConfig, calculate_retry_delay
from .enums import (
    LogFormat,
    LogLevel,
    ReconcileOutcome,
    RecordStatus,
    SlotState,
    TokenBackend,
)
from .validation import ValidationIssue, ValidationResult

__all__ = [
    # Enums
    "LogLevel",
    "LogFormat",
    "TokenBackend",
    "RecordStatus",
    "SlotState",
    "ReconcileOutcome",
    # Config
    "RetryConfig",
    "calculate_retry_delay",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
