"""Runner registration coordinator.

Keeps one runner slot registered with its central task server under a
stable identity, with the server-side record enabled and carrying the
runner's hostname.
"""

from runner_coordinator.client import DesiredState, RunnerRecord
from runner_coordinator.coordinator import RunnerCoordinator
from runner_coordinator.errors import (
    AuthError,
    CoordinatorError,
    IdentityCorruptError,
    RegistrationError,
    TokenUnavailableError,
)
from runner_coordinator.identity import IdentityManager, RunnerIdentity
from runner_coordinator.reconcile import ReconcileResult
from runner_coordinator.tokens import RegistrationToken, TokenStore

__version__ = "0.1.0"

__all__ = [
    "RunnerCoordinator",
    "IdentityManager",
    "RunnerIdentity",
    "DesiredState",
    "RunnerRecord",
    "ReconcileResult",
    "RegistrationToken",
    "TokenStore",
    "CoordinatorError",
    "IdentityCorruptError",
    "AuthError",
    "RegistrationError",
    "TokenUnavailableError",
]
