"""Token Store adapters - read-only access to the registration secret.

Stores re-read their backing source on every call so a rotated token is
picked up on the next registration or reconcile pass.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from runner_coordinator.errors import create_error
from runner_coordinator.types import TokenBackend

if TYPE_CHECKING:
    from runner_coordinator.config import TokenConfig


def mask_value(value: str) -> str:
    """Mask a secret for display: "abcd***xyz"."""
    if len(value) <= 8:
        return "***"
    prefix_len = min(4, len(value) // 4)
    suffix_len = min(3, len(value) // 4)
    return f"{value[:prefix_len]}***{value[-suffix_len:]}"


@dataclass(frozen=True)
class RegistrationToken:
    """Registration secret. Never logged; repr shows a masked value."""

    value: str = field(repr=False)
    scope: str = "runner"
    expiry: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expiry is None:
            return False
        return (now or datetime.now(UTC)) >= self.expiry

    @property
    def masked(self) -> str:
        return mask_value(self.value)

    def __str__(self) -> str:
        return self.masked


class TokenStore(ABC):
    """Narrow read-only interface to a secret-bearing store."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the secret in the backing store."""

    @abstractmethod
    def _read(self) -> RegistrationToken:
        """Read the token from the backing store.

        Raises:
            TokenUnavailableError: If the store cannot be read
        """

    def current_token(self) -> RegistrationToken:
        """Return the current token.

        Raises:
            TokenUnavailableError: If the store is unreachable, the token is
                empty, or it has expired
        """
        token = self._read()
        if not token.value:
            raise create_error("TOKEN_UNAVAILABLE", name=self.name, detail="Token is empty")
        if token.is_expired():
            raise create_error(
                "TOKEN_EXPIRED",
                name=self.name,
                expiry=token.expiry.isoformat() if token.expiry else "unknown",
            )
        return token


def _parse_expiry(raw: str, source: str) -> datetime:
    try:
        expiry = datetime.fromisoformat(raw.strip())
    except ValueError as e:
        raise create_error(
            "TOKEN_UNAVAILABLE",
            name=source,
            detail=f"Invalid expiry timestamp {raw.strip()!r}",
        ) from e
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=UTC)
    return expiry


class FileTokenStore(TokenStore):
    """Token read from a mounted secret directory, one file per key.

    Layout (Kubernetes secret volume):
        <directory>/<name>          token value
        <directory>/<name>.scope    optional scope
        <directory>/<name>.expiry   optional ISO-8601 expiry
    """

    def __init__(self, directory: str | Path, name: str, scope: str = "runner") -> None:
        self._directory = Path(directory)
        self._name = name
        self._scope = scope

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        return self._directory / self._name

    def _read_optional(self, suffix: str) -> str | None:
        path = self._directory / f"{self._name}.{suffix}"
        try:
            return path.read_text().strip() or None
        except FileNotFoundError:
            return None
        except OSError as e:
            raise create_error("TOKEN_UNAVAILABLE", name=self._name, detail=str(e)) from e

    def _read(self) -> RegistrationToken:
        try:
            value = self.path.read_text().strip()
        except FileNotFoundError as e:
            raise create_error(
                "TOKEN_UNAVAILABLE",
                name=self._name,
                detail=f"Secret file not found: {self.path}",
            ) from e
        except OSError as e:
            raise create_error("TOKEN_UNAVAILABLE", name=self._name, detail=str(e)) from e

        expiry_raw = self._read_optional("expiry")
        return RegistrationToken(
            value=value,
            scope=self._read_optional("scope") or self._scope,
            expiry=_parse_expiry(expiry_raw, self._name) if expiry_raw else None,
        )


class EnvTokenStore(TokenStore):
    """Token read from an environment variable (secretKeyRef injection).

    ``<VAR>_EXPIRY`` optionally carries an ISO-8601 expiry.
    """

    def __init__(self, env_var: str, scope: str = "runner") -> None:
        self._env_var = env_var
        self._scope = scope

    @property
    def name(self) -> str:
        return self._env_var

    def _read(self) -> RegistrationToken:
        value = os.environ.get(self._env_var)
        if value is None:
            raise create_error(
                "TOKEN_UNAVAILABLE",
                name=self._env_var,
                detail=f"Environment variable {self._env_var} is not set",
            )
        expiry_raw = os.environ.get(f"{self._env_var}_EXPIRY")
        return RegistrationToken(
            value=value.strip(),
            scope=self._scope,
            expiry=_parse_expiry(expiry_raw, self._env_var) if expiry_raw else None,
        )


def create_token_store(config: TokenConfig) -> TokenStore:
    """Build the store selected by the token configuration."""
    if config.backend == TokenBackend.ENV:
        return EnvTokenStore(config.env_var, scope=config.scope)
    return FileTokenStore(config.directory, config.name, scope=config.scope)
