"""Error registry for creating errors from templates."""

from typing import Any

from .errors import (
    AuthError,
    ConfigError,
    CoordinatorError,
    ErrorCategory,
    ErrorTemplate,
    IdentityCorruptError,
    RegistrationError,
    TokenUnavailableError,
)


class ErrorRegistry:
    """Registry of error templates. Creates errors from templates + context."""

    def __init__(self) -> None:
        """Initialize error registry with built-in templates."""
        self._templates: dict[str, ErrorTemplate] = {}
        self._load_builtin_templates()

    def get_template(self, code: str) -> ErrorTemplate | None:
        """Get template by error code."""
        return self._templates.get(code)

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
    ) -> CoordinatorError:
        """Create error instance from template + context.

        A ``detail`` key in the context takes precedence over the
        template's detail text.

        Args:
            code: Error code
            context: Context variables for template interpolation

        Returns:
            Instance of the template's error class

        Raises:
            ValueError: If error code not found
        """
        template = self.get_template(code)
        if not template:
            msg = f"Unknown error code: {code}"
            raise ValueError(msg)

        context = context or {}

        message = self._interpolate(template.message_template, context)
        detail = context.get("detail") or self._interpolate(template.detail_template, context)
        suggestion = self._interpolate(template.suggestion_template, context)

        if message is None:
            message = f"Error {code}"

        return template.error_class(
            code=template.code,
            category=template.category,
            message=message,
            detail=detail,
            suggestion=suggestion,
            retryable=template.default_retryable,
            status_code=context.get("status_code"),
            stable_id=context.get("stable_id"),
        )

    def _interpolate(
        self,
        template: str | None,
        context: dict[str, Any],
    ) -> str | None:
        """Safe string interpolation.

        Args:
            template: Template string with {var} placeholders
            context: Context variables

        Returns:
            Interpolated string or None if template is None
        """
        if template is None:
            return None

        try:
            return template.format(**context)
        except KeyError:
            # Missing context variable - return template as-is
            return template

    def _load_builtin_templates(self) -> None:
        """Load hardcoded built-in templates."""
        # IDENTITY Errors
        self._templates["IDENTITY_CORRUPT"] = ErrorTemplate(
            code="IDENTITY_CORRUPT",
            category=ErrorCategory.IDENTITY,
            error_class=IdentityCorruptError,
            message_template="Persisted runner identity at '{path}' is corrupt",
            detail_template="The identity file exists but could not be read or parsed",
            suggestion_template=(
                "Local state is damaged: restore or reset the identity volume for this slot. "
                "A new identity is never generated automatically"
            ),
            default_retryable=False,
        )

        self._templates["IDENTITY_UNWRITABLE"] = ErrorTemplate(
            code="IDENTITY_UNWRITABLE",
            category=ErrorCategory.IDENTITY,
            error_class=IdentityCorruptError,
            message_template="Cannot persist runner identity to '{path}'",
            suggestion_template="Check that the identity volume is mounted and writable",
            default_retryable=False,
        )

        # AUTH Errors
        self._templates["AUTH_REJECTED"] = ErrorTemplate(
            code="AUTH_REJECTED",
            category=ErrorCategory.AUTH,
            error_class=AuthError,
            message_template="Server rejected the registration token (HTTP {status_code})",
            detail_template="The token is wrong or has been revoked",
            suggestion_template="Bad credentials: rotate the registration token in the secret store",
            default_retryable=False,
        )

        # REGISTRATION Errors
        self._templates["REGISTRATION_FAILED"] = ErrorTemplate(
            code="REGISTRATION_FAILED",
            category=ErrorCategory.REGISTRATION,
            error_class=RegistrationError,
            message_template="Server call '{operation}' failed",
            detail_template="The server could not be reached or returned a server error",
            suggestion_template="Transient failure, the call will be retried",
            default_retryable=True,
        )

        self._templates["REGISTRATION_REJECTED"] = ErrorTemplate(
            code="REGISTRATION_REJECTED",
            category=ErrorCategory.REGISTRATION,
            error_class=RegistrationError,
            message_template="Server rejected '{operation}' (HTTP {status_code})",
            detail_template="The request was refused and retrying will not change the answer",
            suggestion_template="Check the server URL and the coordinator configuration",
            default_retryable=False,
        )

        self._templates["RESPONSE_INVALID"] = ErrorTemplate(
            code="RESPONSE_INVALID",
            category=ErrorCategory.REGISTRATION,
            error_class=RegistrationError,
            message_template="Server returned a malformed response to '{operation}'",
            default_retryable=True,
        )

        # TOKEN Errors
        self._templates["TOKEN_UNAVAILABLE"] = ErrorTemplate(
            code="TOKEN_UNAVAILABLE",
            category=ErrorCategory.TOKEN,
            error_class=TokenUnavailableError,
            message_template="Registration token '{name}' is unavailable",
            detail_template="The token store could not be read",
            suggestion_template="Check that the secret is mounted or the variable is set",
            default_retryable=True,
        )

        self._templates["TOKEN_EXPIRED"] = ErrorTemplate(
            code="TOKEN_EXPIRED",
            category=ErrorCategory.TOKEN,
            error_class=TokenUnavailableError,
            message_template="Registration token '{name}' expired at {expiry}",
            suggestion_template="Waiting for the token to be rotated",
            default_retryable=True,
        )

        # SYSTEM Errors
        self._templates["CONFIG_INVALID"] = ErrorTemplate(
            code="CONFIG_INVALID",
            category=ErrorCategory.CONFIG,
            error_class=ConfigError,
            message_template="Invalid configuration",
            detail_template="The coordinator configuration is invalid",
            suggestion_template="Check the configuration file and fix errors",
            default_retryable=False,
        )

        self._templates["INTERNAL_ERROR"] = ErrorTemplate(
            code="INTERNAL_ERROR",
            category=ErrorCategory.SYSTEM,
            message_template="Internal coordinator error",
            detail_template="An unexpected error occurred",
            suggestion_template="Check the logs and report this issue",
            default_retryable=False,
        )
