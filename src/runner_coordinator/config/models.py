"""Coordinator configuration data models."""

from dataclasses import dataclass, field

from runner_coordinator.types import LogFormat, LogLevel, RetryConfig, TokenBackend


@dataclass
class ServerConfig:
    """Central server connection."""

    url: str = "http://semaphore:3000"
    timeout_seconds: float = 10.0
    verify_tls: bool = True


@dataclass
class IdentityConfig:
    """Where the slot's identity lives.

    hostname and pod_name fall back to the HOSTNAME / POD_NAME environment
    variables when empty.
    """

    path: str = "/var/lib/runner-coordinator/identity.yaml"
    slot_name: str = ""  # e.g. the PVC name; empty = generate an id
    hostname: str = ""
    pod_name: str = ""


@dataclass
class TokenConfig:
    """Registration token source."""

    backend: TokenBackend = TokenBackend.FILE
    name: str = "registration-token"
    directory: str = "/var/run/secrets/runner-coordinator"
    env_var: str = "RUNNER_REGISTRATION_TOKEN"
    scope: str = "runner"


@dataclass
class DesiredStateConfig:
    """Desired server-side record state. Empty hostname = identity hostname."""

    enabled: bool = True
    hostname: str = ""


@dataclass
class ReconcileConfig:
    """Reconciliation loop configuration."""

    interval_seconds: float = 30.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED


@dataclass
class CoordinatorConfig:
    """Root configuration object."""

    server: ServerConfig = field(default_factory=ServerConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    token: TokenConfig = field(default_factory=TokenConfig)
    desired: DesiredStateConfig = field(default_factory=DesiredStateConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
