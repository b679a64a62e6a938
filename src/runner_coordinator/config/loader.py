"""Coordinator configuration loader."""

import dataclasses
import math
import os
import re
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from runner_coordinator.errors import create_error
from runner_coordinator.types import ValidationIssue, ValidationResult

from .models import CoordinatorConfig

CONFIG_PATH_ENV = "RUNNER_COORDINATOR_CONFIG"
DEFAULT_CONFIG_FILE = "runner-coordinator.yaml"

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


def resolve_env_vars(value: str) -> str:
    """Resolve environment variable references in string.

    Supports:
    - ${VAR} - Required, error if not set
    - ${VAR:-default} - With default value
    - ${VAR:?error message} - Required with custom error

    Raises:
        ConfigError: If a required variable is not set
    """
    pattern = r"\$\{([^}:]+)(?::([?-])([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        operator = match.group(2)  # '-' or '?' or None
        operand = match.group(3)  # default value or error message

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value

        if operator == "-":
            return operand or ""
        elif operator == "?":
            error_msg = operand or f"Required environment variable {var_name} not set"
            raise create_error("CONFIG_INVALID", detail=error_msg)
        else:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Required environment variable {var_name} not set",
            )

    return re.sub(pattern, replacer, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    else:
        return data


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_value(field_type: Any, value: Any) -> Any:
    """Convert a raw YAML scalar to the annotated field type.

    Interpolated values are always strings, so "true", "30" and "0.5"
    are accepted where a bool, int or float is expected.

    Raises:
        ValueError: If value cannot represent field_type
    """
    if field_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise ValueError(f"must be a boolean (true/false), got {value!r}")

    if field_type is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                pass
        raise ValueError(f"must be an integer, got {value!r}")

    if field_type is float:
        number: float | None = None
        if isinstance(value, str) or _is_number(value):
            try:
                number = float(value)
            except (ValueError, OverflowError):
                number = None
        if number is not None and math.isfinite(number):
            return number
        raise ValueError(f"must be a number, got {value!r}")

    if field_type is str:
        if isinstance(value, str):
            return value
        raise ValueError(f"must be a string, got {value!r}")

    if isinstance(field_type, type) and issubclass(field_type, Enum):
        try:
            return field_type(value)
        except ValueError:
            allowed = [member.value for member in field_type]
            raise ValueError(f"must be one of {allowed}, got {value!r}") from None

    return value


class ConfigLoader:
    """Load and validate coordinator configuration."""

    SECTIONS = {f.name: f.type for f in dataclasses.fields(CoordinatorConfig)}

    def __init__(self) -> None:
        self._config_path: Path | None = None
        self._warnings: list[ValidationIssue] = []

    @property
    def config_path(self) -> Path | None:
        """Path of the last loaded file, None when defaults were used."""
        return self._config_path

    @property
    def warnings(self) -> list[ValidationIssue]:
        """Warnings (unknown keys) from the last successful load."""
        return list(self._warnings)

    def load(self, path: str | Path | None = None, use_defaults: bool = True) -> CoordinatorConfig:
        """Load configuration from file.

        Resolution order if path not specified:
        1. RUNNER_COORDINATOR_CONFIG environment variable
        2. ./runner-coordinator.yaml
        3. If use_defaults=True and no file found, use default configuration

        Args:
            path: Optional path to config file
            use_defaults: Use default config when no file is found

        Returns:
            Loaded CoordinatorConfig instance

        Raises:
            ConfigError: If file not found (when use_defaults=False) or invalid
        """
        data = self._read(path, use_defaults=use_defaults)
        if data is None:
            return self.load_defaults()
        return self.load_from_dict(data, self._config_path)

    def _read(self, path: str | Path | None, use_defaults: bool) -> dict[str, Any] | None:
        """Read and interpolate the raw configuration mapping.

        Returns:
            The interpolated mapping, or None when no file exists and
            defaults apply

        Raises:
            ConfigError: If the file is missing (when required) or not a YAML mapping
        """
        explicit = path is not None or CONFIG_PATH_ENV in os.environ
        if path is None:
            path = self._resolve_config_path()

        config_path = Path(path)

        if not config_path.exists():
            # An explicitly named file must exist
            if use_defaults and not explicit:
                self._config_path = None
                return None
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Configuration file not found: {config_path}",
            )

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Invalid YAML in config file: {e}",
            ) from e

        if not isinstance(data, dict):
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Config file must contain a mapping, got {type(data).__name__}",
            )

        self._config_path = config_path
        return _resolve_env_vars_recursive(data)

    def load_defaults(self) -> CoordinatorConfig:
        """Load default configuration without a file."""
        return self.load_from_dict({})

    def load_from_dict(
        self, data: dict[str, Any], config_path: Path | None = None
    ) -> CoordinatorConfig:
        """Load configuration from dictionary.

        Raises:
            ConfigError: If configuration is invalid
        """
        validation = self.validate(data)
        if not validation.valid:
            error_messages = [f"- {issue.path}: {issue.message}" for issue in validation.errors]
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration validation failed:\n" + "\n".join(error_messages),
            )

        try:
            config = self._convert_field(CoordinatorConfig, data)
        except (TypeError, ValueError) as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Failed to parse configuration: {e}",
            ) from e

        self._config_path = config_path
        self._warnings = validation.warnings
        return config

    def validate(self, data: dict[str, Any]) -> ValidationResult:
        """Validate config data without loading.

        Every field is checked against its annotated type first; range
        checks then run on the converted values.

        Args:
            data: Configuration dictionary

        Returns:
            ValidationResult with errors and warnings
        """
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        def error(path: str, message: str) -> None:
            errors.append(ValidationIssue(path=path, message=message, severity="error"))

        def warning(path: str, message: str) -> None:
            warnings.append(ValidationIssue(path=path, message=message, severity="warning"))

        typed: dict[str, dict[str, Any]] = {}
        for key, value in data.items():
            section_type = self.SECTIONS.get(key)
            if section_type is None:
                warning(key, f"Unknown configuration key: {key}")
                continue
            if not isinstance(value, dict):
                error(key, f"{key} must be a dictionary")
                continue

            field_types = {f.name: f.type for f in dataclasses.fields(section_type)}
            typed[key] = {}
            for name, raw in value.items():
                path = f"{key}.{name}"
                if name not in field_types:
                    warning(path, f"Unknown configuration key: {path}")
                    continue
                try:
                    typed[key][name] = _coerce_value(field_types[name], raw)
                except ValueError as e:
                    error(path, f"{name} {e}")

        def checked(section: str, name: str) -> Any:
            return typed.get(section, {}).get(name)

        url = checked("server", "url")
        if url is not None and not url.startswith(("http://", "https://")):
            error("server.url", "url must start with http:// or https://")

        if checked("identity", "path") == "":
            error("identity.path", "path must be a non-empty string")

        for section, name in (
            ("server", "timeout_seconds"),
            ("reconcile", "interval_seconds"),
            ("retry", "initial_delay_seconds"),
            ("retry", "max_delay_seconds"),
        ):
            value = checked(section, name)
            if value is not None and value <= 0:
                error(f"{section}.{name}", f"{name} must be a positive number")

        multiplier = checked("retry", "multiplier")
        if multiplier is not None and multiplier <= 1:
            error("retry.multiplier", "multiplier must be greater than 1")

        max_attempts = checked("retry", "max_attempts")
        if max_attempts is not None and max_attempts < 0:
            error("retry.max_attempts", "max_attempts must be 0 (unlimited) or a positive integer")

        return ValidationResult(valid=True, errors=errors, warnings=warnings)

    def _resolve_config_path(self) -> Path:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        if env_path:
            return Path(env_path)
        return Path(DEFAULT_CONFIG_FILE)

    def _convert_field(self, field_type: Any, value: Any) -> Any:
        """Convert a raw YAML value to the annotated field type."""
        if dataclasses.is_dataclass(field_type) and isinstance(value, dict):
            kwargs = {}
            for f in dataclasses.fields(field_type):
                if f.name in value:
                    kwargs[f.name] = self._convert_field(f.type, value[f.name])
            return field_type(**kwargs)

        return _coerce_value(field_type, value)
