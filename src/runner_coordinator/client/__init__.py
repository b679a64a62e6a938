"""Central server client: wire models, HTTP calls and the registration handshake."""

from runner_coordinator.client.api import REGISTER_PATH, RECORD_PATH, ServerClient
from runner_coordinator.client.models import (
    DesiredState,
    RecordPatch,
    RegisterRequest,
    RegistrationResult,
    RunnerRecord,
)
from runner_coordinator.client.registration import RegistrationClient

__all__ = [
    "REGISTER_PATH",
    "RECORD_PATH",
    "ServerClient",
    "RegistrationClient",
    "DesiredState",
    "RecordPatch",
    "RegisterRequest",
    "RegistrationResult",
    "RunnerRecord",
]
