"""Stable runner identity, persisted per slot."""

from runner_coordinator.identity.manager import (
    IdentityManager,
    PersistedIdentity,
    RunnerIdentity,
    generate_stable_id,
    resolve_hostname,
    resolve_pod_name,
)

__all__ = [
    "IdentityManager",
    "PersistedIdentity",
    "RunnerIdentity",
    "generate_stable_id",
    "resolve_hostname",
    "resolve_pod_name",
]
