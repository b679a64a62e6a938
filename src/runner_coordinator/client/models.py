"""Wire models for the central server's runner API."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from runner_coordinator.types import RecordStatus


class RunnerRecord(BaseModel):
    """Server-side runner record. Owned by the server, never deleted by us."""

    model_config = ConfigDict(extra="ignore")

    stable_id: str = Field(description="Stable runner identifier")
    enabled: bool = Field(default=False, description="Whether the server dispatches tasks to it")
    hostname: str = Field(default="", description="Hostname the server reaches the runner at")
    last_seen: datetime | None = Field(default=None, description="Last contact timestamp")
    status: RecordStatus = Field(default=RecordStatus.PENDING, description="Record status")

    @field_validator("hostname", mode="before")
    @classmethod
    def _null_hostname(cls, value: object) -> object:
        return "" if value is None else value


class RegisterRequest(BaseModel):
    """Body of the registration call."""

    stable_id: str
    hostname: str
    registration_token: str


class RecordPatch(BaseModel):
    """Partial update of a runner record. Unset fields are left alone."""

    enabled: bool | None = None
    hostname: str | None = None


@dataclass
class RegistrationResult:
    """Outcome of one registration call.

    record is None when the server answered "already registered" without
    returning the existing record.
    """

    record: RunnerRecord | None
    already_registered: bool = False


@dataclass(frozen=True)
class DesiredState:
    """State the coordinator drives the server record toward."""

    hostname: str
    enabled: bool = True
