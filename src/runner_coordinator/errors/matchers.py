"""Error matchers for converting transport exceptions to coordinator errors."""

from typing import Any

import httpx

from .errors import ErrorMatcher, MatchResult


class TimeoutErrorMatcher(ErrorMatcher):
    """Matches httpx timeouts (connect, read, write, pool)."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, httpx.TimeoutException)

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="REGISTRATION_FAILED",
            context={"detail": f"Request timed out ({type(error).__name__})"},
            retryable=True,
        )


class ConnectionErrorMatcher(ErrorMatcher):
    """Matches refused/reset connections and other transport failures."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, httpx.TransportError)

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="REGISTRATION_FAILED",
            context={"detail": f"Connection failed: {error}"},
            retryable=True,
        )


class GenericErrorMatcher(ErrorMatcher):
    """Fallback for anything unexpected: a bug, not a server failure."""

    def matches(self, error: Exception) -> bool:
        """Always matches."""
        return True

    def extract(self, error: Exception) -> MatchResult:
        context: dict[str, Any] = {
            "detail": f"{type(error).__name__}: {error}",
            "error_type": type(error).__name__,
        }
        return MatchResult(
            code="INTERNAL_ERROR",
            context=context,
            retryable=False,
        )


class ErrorMatcherChain:
    """Ordered chain of matchers. First match wins."""

    def __init__(self) -> None:
        """Initialize matcher chain with built-in matchers."""
        self.matchers: list[ErrorMatcher] = []
        self._load_builtin_matchers()

    def match(self, error: Exception) -> MatchResult:
        """Find first matching matcher and extract result."""
        return next(m.extract(error) for m in self.matchers if m.matches(error))

    def _load_builtin_matchers(self) -> None:
        """Load built-in matchers in priority order."""
        # TimeoutException subclasses TransportError, so timeouts go first
        self.matchers = [
            TimeoutErrorMatcher(),
            ConnectionErrorMatcher(),
            GenericErrorMatcher(),  # Fallback - must be last
        ]
