"""Coordinator event logger - structured events for registration and reconciliation."""

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TextIO

from runner_coordinator.logging.colors import (
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    ORANGE,
    RED,
    RESET,
    YELLOW,
)
from runner_coordinator.types import LogFormat, LogLevel


@dataclass
class LogConfig:
    """Logger configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.COLORED
    show_context: bool = True
    truncate_at: int = 200
    output: TextIO = field(default=sys.stdout)


class CoordinatorLogger:
    """Main logger facade. Creates slot-scoped loggers."""

    def __init__(self, config: LogConfig | None = None):
        """Initialize logger with configuration.

        Args:
            config: Logger configuration (defaults to LogConfig())
        """
        self.config = config or LogConfig()
        self._level_order = {
            LogLevel.DEBUG: 0,
            LogLevel.INFO: 1,
            LogLevel.WARN: 2,
            LogLevel.ERROR: 3,
        }

    def slot(self, stable_id: str) -> "SlotLogger":
        """Get a logger scoped to one runner slot.

        Args:
            stable_id: Stable runner identifier

        Returns:
            SlotLogger instance
        """
        return SlotLogger(self, stable_id)

    def _should_log(self, level: LogLevel) -> bool:
        return self._level_order.get(level, 0) >= self._level_order.get(self.config.level, 1)

    def _log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Internal logging method.

        Args:
            level: Log level
            component: Component name (coordinator, identity, registration, reconcile)
            message: Log message
            context: Additional context data
        """
        if not self._should_log(level):
            return

        if self.config.format == LogFormat.JSON:
            self._log_json(level, component, message, context)
        else:
            self._log_colored(level, component, message, context)

    def _log_json(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": level.value,
            "component": component,
            "message": message,
        }
        if context:
            log_entry.update(context)

        print(json.dumps(log_entry, default=str), file=self.config.output)

    def _log_colored(
        self,
        level: LogLevel,
        component: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        level_colors = {
            LogLevel.DEBUG: LIGHT_BLUE,
            LogLevel.INFO: CYAN,
            LogLevel.WARN: YELLOW,
            LogLevel.ERROR: RED,
        }

        color = level_colors.get(level, RESET)
        component_color = {
            "coordinator": GREEN,
            "identity": MAGENTA,
            "registration": CYAN,
            "reconcile": ORANGE,
        }.get(component, RESET)

        # Format: [COMPONENT] message
        output = f"{component_color}[{component.upper()}]{RESET} {color}{message}{RESET}"

        if context and self.config.show_context:
            context_str = str(context)
            if len(context_str) > self.config.truncate_at:
                context_str = context_str[: self.config.truncate_at] + "..."
            output += f" {LIGHT_BLUE}{context_str}{RESET}"

        print(output, file=self.config.output)


class SlotLogger:
    """Logger for slot lifecycle events."""

    def __init__(self, parent: CoordinatorLogger, stable_id: str):
        self.parent = parent
        self.stable_id = stable_id

    def _context(self, event: str, **extra: Any) -> dict[str, Any]:
        context: dict[str, Any] = {"stable_id": self.stable_id, "event": event}
        context.update(extra)
        return context

    def identity_created(self, path: str, pod_name: str) -> None:
        """Log first-start identity generation."""
        context = self._context("identity_created", path=path, pod_name=pod_name)
        message = f"Created identity '{self.stable_id}' at {path}"
        self.parent._log(LogLevel.INFO, "identity", message, context)

    def identity_loaded(self, path: str, pod_name: str) -> None:
        """Log identity recovered from the slot volume."""
        context = self._context("identity_loaded", path=path, pod_name=pod_name)
        message = f"Recovered identity '{self.stable_id}' (pod {pod_name})"
        self.parent._log(LogLevel.INFO, "identity", message, context)

    def state_changed(self, old: str, new: str) -> None:
        """Log a slot state transition."""
        context = self._context("state_changed", old_state=old, new_state=new)
        message = f"Slot '{self.stable_id}': {old} -> {new}"
        self.parent._log(LogLevel.DEBUG, "coordinator", message, context)

    def fatal(self, error: Exception, exit_code: int) -> None:
        """Log a fatal condition that stops the coordinator."""
        context = self._context(
            "fatal",
            error=str(error),
            error_type=type(error).__name__,
            exit_code=exit_code,
        )
        suggestion = getattr(error, "suggestion", None)
        if suggestion:
            context["suggestion"] = suggestion

        message = f"Fatal ({type(error).__name__}): {error}"
        self.parent._log(LogLevel.ERROR, "coordinator", message, context)

    def stopped(self) -> None:
        """Log graceful shutdown."""
        context = self._context("stopped")
        self.parent._log(LogLevel.INFO, "coordinator", f"Slot '{self.stable_id}' stopped", context)

    def registration(self) -> "RegistrationLogger":
        return RegistrationLogger(self)

    def reconcile(self) -> "ReconcileLogger":
        return ReconcileLogger(self)


class RegistrationLogger:
    """Logger for registration handshake events."""

    def __init__(self, parent: SlotLogger):
        self.parent = parent

    def _emit(self, level: LogLevel, message: str, context: dict[str, Any]) -> None:
        self.parent.parent._log(level, "registration", message, context)

    def attempt(self, attempt: int, hostname: str) -> None:
        """Log a registration attempt."""
        context = self.parent._context("registration_attempt", attempt=attempt, hostname=hostname)
        self._emit(LogLevel.INFO, f"Registering (attempt {attempt})", context)

    def succeeded(self, attempt: int, already_registered: bool) -> None:
        """Log successful registration."""
        context = self.parent._context(
            "registration_succeeded",
            attempt=attempt,
            already_registered=already_registered,
        )
        if already_registered:
            message = f"Runner '{self.parent.stable_id}' already registered ✓"
        else:
            message = f"Runner '{self.parent.stable_id}' registered ✓"
        self._emit(LogLevel.INFO, message, context)

    def retrying(self, attempt: int, delay_seconds: float, error: Exception) -> None:
        """Log a transient failure and the backoff before the next attempt."""
        context = self.parent._context(
            "registration_retrying",
            attempt=attempt,
            delay_seconds=delay_seconds,
            error=str(error),
            error_type=type(error).__name__,
        )
        message = f"Registration attempt {attempt} failed, retrying in {delay_seconds:.1f}s: {error}"
        self._emit(LogLevel.WARN, message, context)

    def failed(self, attempt: int, error: Exception) -> None:
        """Log a registration failure that ends the handshake."""
        context = self.parent._context(
            "registration_failed",
            attempt=attempt,
            error=str(error),
            error_type=type(error).__name__,
        )
        self._emit(LogLevel.ERROR, f"Registration failed after {attempt} attempt(s): {error}", context)

    def auth_rejected(self, attempt: int, status_code: int | None) -> None:
        """Log token rejection. The token itself is never logged."""
        context = self.parent._context(
            "registration_auth_rejected",
            attempt=attempt,
            status_code=status_code,
        )
        self._emit(LogLevel.ERROR, f"Registration token rejected (HTTP {status_code})", context)


class ReconcileLogger:
    """Logger for reconciliation events."""

    def __init__(self, parent: SlotLogger):
        self.parent = parent

    def _emit(self, level: LogLevel, message: str, context: dict[str, Any]) -> None:
        self.parent.parent._log(level, "reconcile", message, context)

    def divergence(self, field_name: str, observed: Any, desired: Any) -> None:
        """Log one field that differs from desired state."""
        context = self.parent._context(
            "reconcile_divergence",
            field=field_name,
            observed=observed,
            desired=desired,
        )
        message = f"'{field_name}' is {observed!r}, want {desired!r}"
        self._emit(LogLevel.WARN, message, context)

    def corrected(self, fields: list[str]) -> None:
        """Log a successful patch."""
        context = self.parent._context("reconcile_corrected", fields=fields)
        self._emit(LogLevel.INFO, f"Patched {', '.join(fields)} ✓", context)

    def converged(self) -> None:
        """Log a pass with nothing to do."""
        context = self.parent._context("reconcile_converged")
        self._emit(LogLevel.DEBUG, "Record matches desired state", context)

    def failed(self, error: Exception) -> None:
        """Log a pass that could not complete. Retried next cycle."""
        context = self.parent._context(
            "reconcile_failed",
            error=str(error),
            error_type=type(error).__name__,
        )
        self._emit(LogLevel.WARN, f"Reconcile failed, will retry next cycle: {error}", context)

    def record_missing(self) -> None:
        """Log that the server no longer has a record for this runner."""
        context = self.parent._context("reconcile_record_missing")
        self._emit(LogLevel.WARN, "Server has no record for this runner", context)
