"""Coordinator configuration - config loading and models."""

from .loader import (
    CONFIG_PATH_ENV,
    ConfigLoader,
    resolve_env_vars,
)
from .models import (
    CoordinatorConfig,
    DesiredStateConfig,
    IdentityConfig,
    LoggingConfig,
    ReconcileConfig,
    ServerConfig,
    TokenConfig,
)

__all__ = [
    # Config models
    "CoordinatorConfig",
    "ServerConfig",
    "IdentityConfig",
    "TokenConfig",
    "DesiredStateConfig",
    "ReconcileConfig",
    "LoggingConfig",
    # Loader
    "CONFIG_PATH_ENV",
    "ConfigLoader",
    # Utilities
    "resolve_env_vars",
]
