"""Shared enumerations for the runner coordinator."""

from enum import Enum


class LogLevel(str, Enum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Log output format."""

    COLORED = "colored"
    JSON = "json"


class TokenBackend(str, Enum):
    """Where the registration token is read from."""

    FILE = "file"
    ENV = "env"


class RecordStatus(str, Enum):
    """Server-side runner record status."""

    PENDING = "pending"
    ACTIVE = "active"
    STALE = "stale"
    DISABLED = "disabled"


class SlotState(str, Enum):
    """Lifecycle state of a single runner slot."""

    UNREGISTERED = "unregistered"
    REGISTERING = "registering"
    DIVERGENT = "registered_divergent"
    CONVERGED = "registered_converged"
    FATAL = "fatal"


class ReconcileOutcome(str, Enum):
    """Outcome of one reconciliation pass."""

    CONVERGED = "converged"  # no divergence, nothing patched
    CORRECTED = "corrected"  # divergence found and patched
    FAILED = "failed"  # fetch/patch/token failure, retried next cycle
    MISSING = "missing"  # server has no record for the stable_id
