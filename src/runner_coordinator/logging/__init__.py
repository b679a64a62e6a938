"""Coordinator logging - structured colored/JSON events per runner slot."""

from .colors import (
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    ORANGE,
    RED,
    RESET,
    YELLOW,
)
from .logger import (
    CoordinatorLogger,
    LogConfig,
    ReconcileLogger,
    RegistrationLogger,
    SlotLogger,
)
from .structured import StructuredLogFormatter, configure_logging

__all__ = [
    # Logger classes
    "CoordinatorLogger",
    "SlotLogger",
    "RegistrationLogger",
    "ReconcileLogger",
    "LogConfig",
    # Stdlib integration
    "StructuredLogFormatter",
    "configure_logging",
    # Colors
    "RESET",
    "GREEN",
    "RED",
    "YELLOW",
    "ORANGE",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
