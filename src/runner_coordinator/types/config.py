"""Shared configuration types for the runner coordinator."""

from dataclasses import dataclass


@dataclass
class RetryConfig:
    """Exponential backoff settings for network calls.

    max_attempts of 0 retries forever.
    """

    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0
    multiplier: float = 2.0
    max_attempts: int = 0


def calculate_retry_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay before the next attempt, capped at max_delay_seconds.

    Args:
        attempt: Number of the attempt that just failed (1-based)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    # delay = initial * (multiplier ^ (attempt - 1))
    delay: float = config.initial_delay_seconds * (config.multiplier ** (attempt - 1))
    return min(delay, config.max_delay_seconds)
