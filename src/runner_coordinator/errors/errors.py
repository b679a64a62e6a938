"""Coordinator error types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar


class ErrorCategory(str, Enum):
    """Error source categories."""

    IDENTITY = "IDENTITY"
    AUTH = "AUTH"
    REGISTRATION = "REGISTRATION"
    TOKEN = "TOKEN"
    CONFIG = "CONFIG"
    SYSTEM = "SYSTEM"


@dataclass
class CoordinatorError(Exception):
    """Structured error with context. Base exception for all coordinator errors."""

    exit_code: ClassVar[int] = 1

    # Identity
    code: str  # e.g., "AUTH_REJECTED"
    category: ErrorCategory

    # Messages
    message: str  # Human-readable summary
    detail: str | None = None  # Extended explanation
    suggestion: str | None = None  # Actionable fix

    # Context
    retryable: bool = False  # Is retry potentially useful?
    status_code: int | None = None  # HTTP status from the server, if any
    stable_id: str | None = None  # Which runner slot was affected

    # Metadata
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Set Exception message."""
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logs.

        Returns:
            Dictionary representation of the error
        """
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "detail": self.detail,
            "suggestion": self.suggestion,
            "retryable": self.retryable,
            "status_code": self.status_code,
            "stable_id": self.stable_id,
            "timestamp": self.timestamp.isoformat(),
        }


class IdentityCorruptError(CoordinatorError):
    """The persisted identity is unreadable or malformed.

    Fatal: regenerating would orphan the existing server-side record.
    """

    exit_code = 2


class AuthError(CoordinatorError):
    """The server rejected the registration token (401/403)."""

    exit_code = 3


class ConfigError(CoordinatorError):
    """Configuration could not be loaded or is invalid."""

    exit_code = 4


class RegistrationError(CoordinatorError):
    """Server call failed. Retryable unless the server rejected the request outright."""

    exit_code = 5


class TokenUnavailableError(CoordinatorError):
    """The token store could not produce a usable token. Always retryable."""

    exit_code = 6


@dataclass
class ErrorTemplate:
    """Template for creating errors."""

    code: str
    category: ErrorCategory
    message_template: str  # "Registration of '{stable_id}' failed"
    error_class: type[CoordinatorError] = CoordinatorError
    detail_template: str | None = None
    suggestion_template: str | None = None
    default_retryable: bool = False


@dataclass
class MatchResult:
    """Result of matching an exception."""

    code: str
    context: dict[str, Any]
    retryable: bool | None = None  # None = use template default


class ErrorMatcher(ABC):
    """Base class for exception matchers."""

    @abstractmethod
    def matches(self, error: Exception) -> bool:
        """Check if this matcher handles the error."""

    @abstractmethod
    def extract(self, error: Exception) -> MatchResult:
        """Extract error code and context from the exception."""
