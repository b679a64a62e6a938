"""Coordinator error handling - Structured errors with context."""

from .errors import (
    AuthError,
    ConfigError,
    CoordinatorError,
    ErrorCategory,
    ErrorMatcher,
    ErrorTemplate,
    IdentityCorruptError,
    MatchResult,
    RegistrationError,
    TokenUnavailableError,
)
from .factory import ErrorFactory, create_error, get_error_factory
from .matchers import ErrorMatcherChain
from .registry import ErrorRegistry

__all__ = [
    # Core error types
    "CoordinatorError",
    "ErrorCategory",
    "ErrorTemplate",
    "MatchResult",
    # Taxonomy
    "IdentityCorruptError",
    "AuthError",
    "RegistrationError",
    "TokenUnavailableError",
    "ConfigError",
    # Registry and factory
    "ErrorRegistry",
    "ErrorFactory",
    "ErrorMatcherChain",
    "ErrorMatcher",
    # Convenience functions
    "get_error_factory",
    "create_error",
]
