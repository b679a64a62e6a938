"""ANSI color codes for terminal output.

All colors use the 256-color palette.

Usage:
    from runner_coordinator.logging.colors import GREEN, RESET

    print(f"{GREEN}Converged{RESET}")
"""

RESET = "\033[0m"

GREEN = "\033[38;5;82m"  # Coordinator events
RED = "\033[38;5;196m"  # Errors
YELLOW = "\033[38;5;226m"  # Warnings
ORANGE = "\033[38;5;208m"  # Reconcile events
LIGHT_BLUE = "\033[38;5;153m"  # Context payloads
CYAN = "\033[38;5;51m"  # Info, registration events
MAGENTA = "\033[38;5;201m"  # Identity events

__all__ = [
    "RESET",
    "GREEN",
    "RED",
    "YELLOW",
    "ORANGE",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
