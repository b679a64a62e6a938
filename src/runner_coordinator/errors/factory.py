"""Error factory for creating CoordinatorErrors from any exception type."""

from typing import Any

from .errors import CoordinatorError
from .matchers import ErrorMatcherChain
from .registry import ErrorRegistry


class ErrorFactory:
    """Creates CoordinatorErrors from any exception type."""

    def __init__(
        self,
        registry: ErrorRegistry | None = None,
        matcher_chain: ErrorMatcherChain | None = None,
    ):
        """Initialize error factory.

        Args:
            registry: Error registry (defaults to new ErrorRegistry())
            matcher_chain: Matcher chain (defaults to new ErrorMatcherChain())
        """
        self.registry = registry or ErrorRegistry()
        self.matcher_chain = matcher_chain or ErrorMatcherChain()

    def from_exception(
        self,
        error: Exception,
        operation: str | None = None,
        stable_id: str | None = None,
    ) -> CoordinatorError:
        """Convert a non-coordinator exception to a CoordinatorError.

        Args:
            error: Exception to convert
            operation: Server call that was in flight (register, fetch, patch)
            stable_id: Runner the call was made for

        Returns:
            CoordinatorError instance
        """
        match_result = self.matcher_chain.match(error)

        context = match_result.context.copy()
        if operation:
            context["operation"] = operation
        if stable_id:
            context["stable_id"] = stable_id

        coordinator_error = self.registry.create(code=match_result.code, context=context)

        if match_result.retryable is not None:
            coordinator_error.retryable = match_result.retryable

        return coordinator_error

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> CoordinatorError:
        """Create CoordinatorError directly from code.

        Args:
            code: Error code
            context: Context variables for template interpolation
            **kwargs: Additional context variables

        Returns:
            CoordinatorError instance
        """
        merged_context = dict(context or {})
        merged_context.update(kwargs)

        return self.registry.create(code=code, context=merged_context)


# Convenience singleton
_default_factory: ErrorFactory | None = None


def get_error_factory() -> ErrorFactory:
    """Get default error factory singleton."""
    global _default_factory  # noqa: PLW0603
    if _default_factory is None:
        _default_factory = ErrorFactory()
    return _default_factory


def create_error(code: str, **context: Any) -> CoordinatorError:
    """Convenience function to create error.

    Args:
        code: Error code
        **context: Context variables for template interpolation

    Returns:
        CoordinatorError instance
    """
    return get_error_factory().create(code, context)
