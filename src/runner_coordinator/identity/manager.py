"""Identity Manager - stable runner identity persisted on the slot volume.

The stable_id is written once per slot and read back on every start. Pod
names change on every redeploy; the stable_id does not.
"""

from __future__ import annotations

import logging
import os
import re
import secrets
import socket
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from runner_coordinator.errors import create_error

logger = logging.getLogger(__name__)

STABLE_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


@dataclass
class RunnerIdentity:
    """Identity of one runner slot.

    Attributes:
        stable_id: Persistent logical id (survives pod recreation)
        hostname: Resolved hostname of the current pod
        pod_name: Ephemeral pod name
        created_at: When the stable_id was first persisted
    """

    stable_id: str
    hostname: str
    pod_name: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "stable_id": self.stable_id,
            "hostname": self.hostname,
            "pod_name": self.pod_name,
            "created_at": self.created_at.isoformat(),
        }


class PersistedIdentity(BaseModel):
    """On-disk identity document."""

    model_config = ConfigDict(extra="ignore")

    stable_id: str = Field(pattern=STABLE_ID_PATTERN.pattern)
    created_at: datetime
    slot_name: str | None = None


def generate_stable_id() -> str:
    """Generate a unique stable id."""
    return f"runner_{secrets.token_hex(6)}"


def resolve_hostname(configured: str = "") -> str:
    """Configured hostname, else $HOSTNAME, else the socket hostname."""
    return configured or os.environ.get("HOSTNAME") or socket.gethostname()


def resolve_pod_name(configured: str = "", hostname: str = "") -> str:
    """Configured pod name, else $POD_NAME, else the hostname."""
    return configured or os.environ.get("POD_NAME") or hostname


class IdentityManager:
    """Creates and recovers the stable identity of one runner slot."""

    def __init__(
        self,
        path: str | Path,
        slot_name: str = "",
        hostname: str = "",
        pod_name: str = "",
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            path: Identity file on the slot's volume
            slot_name: Slot name to derive the stable_id from (e.g. the PVC name)
            hostname: Hostname override
            pod_name: Pod name override
            id_factory: Generator for new ids when no slot_name is given
        """
        self._path = Path(path)
        self._slot_name = slot_name.strip()
        self._hostname = hostname
        self._pod_name = pod_name
        self._id_factory = id_factory or generate_stable_id

        if self._slot_name and not STABLE_ID_PATTERN.fullmatch(self._slot_name):
            raise create_error(
                "CONFIG_INVALID",
                detail=f"slot_name '{self._slot_name}' is not a valid runner id",
            )

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        """Whether an identity has been persisted for this slot."""
        return self._path.exists()

    def resolve_identity(self) -> RunnerIdentity:
        """Recover the persisted identity, creating it on first start.

        Returns:
            RunnerIdentity for the current pod

        Raises:
            IdentityCorruptError: If the persisted file is unreadable or
                malformed, or a new identity cannot be written
        """
        hostname = resolve_hostname(self._hostname)
        pod_name = resolve_pod_name(self._pod_name, hostname)

        if self._path.exists():
            persisted = self._read()
            if self._slot_name and persisted.stable_id != self._slot_name:
                # The persisted id wins: changing it would orphan the server record
                logger.warning(
                    f"Persisted stable_id '{persisted.stable_id}' differs from slot name "
                    f"'{self._slot_name}'; keeping the persisted id"
                )
            return RunnerIdentity(
                stable_id=persisted.stable_id,
                hostname=hostname,
                pod_name=pod_name,
                created_at=persisted.created_at,
            )

        stable_id = self._slot_name or self._id_factory()
        if not STABLE_ID_PATTERN.fullmatch(stable_id):
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Generated stable_id '{stable_id}' is not a valid runner id",
            )

        persisted = PersistedIdentity(
            stable_id=stable_id,
            created_at=datetime.now(UTC),
            slot_name=self._slot_name or None,
        )
        self._write(persisted)
        logger.info(f"Persisted new identity '{stable_id}' to {self._path}")

        return RunnerIdentity(
            stable_id=persisted.stable_id,
            hostname=hostname,
            pod_name=pod_name,
            created_at=persisted.created_at,
        )

    def forget(self) -> bool:
        """Remove the persisted identity (slot decommissioning).

        Returns:
            True if a file was removed
        """
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Removed identity file {self._path}")
        return True

    def _read(self) -> PersistedIdentity:
        try:
            with self._path.open() as f:
                data = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise create_error(
                "IDENTITY_CORRUPT",
                path=str(self._path),
                detail=f"Cannot read identity file: {e}",
            ) from e
        except yaml.YAMLError as e:
            raise create_error(
                "IDENTITY_CORRUPT",
                path=str(self._path),
                detail=f"Invalid YAML in identity file: {e}",
            ) from e

        if not isinstance(data, dict):
            raise create_error(
                "IDENTITY_CORRUPT",
                path=str(self._path),
                detail=f"Identity file must contain a mapping, got {type(data).__name__}",
            )

        try:
            return PersistedIdentity.model_validate(data)
        except ValidationError as e:
            raise create_error(
                "IDENTITY_CORRUPT",
                path=str(self._path),
                detail=f"Identity file failed validation: {e.error_count()} error(s)",
            ) from e

    def _write(self, persisted: PersistedIdentity) -> None:
        """Write atomically: temp file in the same directory, then rename."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w") as f:
                    f.write("# runner-coordinator identity - do not edit\n")
                    yaml.safe_dump(
                        persisted.model_dump(mode="json", exclude_none=True),
                        f,
                        default_flow_style=False,
                        sort_keys=False,
                    )
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise create_error(
                "IDENTITY_UNWRITABLE",
                path=str(self._path),
                detail=str(e),
            ) from e
