"""Bounded exponential backoff used to space out reconnect attempts."""

from __future__ import annotations

import logging
import random as _random
from dataclasses import dataclass
from typing import Final

from .config.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY_SECONDS = 1.0
DEFAULT_MAX_DELAY_SECONDS = 30.0
DEFAULT_MULTIPLIER = 2.0
DEFAULT_MAX_ATTEMPTS = 10

_SECURE_RANDOM: Final = _random.SystemRandom()


def uniform(a: float, b: float) -> float:
    """Delegate to SystemRandom.uniform so callers can monkeypatch in tests."""

    return _SECURE_RANDOM.uniform(a, b)


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Stateless rule computing the delay before a reconnect attempt.

    Attributes:
        base_delay: Delay in seconds before attempt 0
        multiplier: Growth factor per attempt, at least 1
        max_delay: Upper bound for any computed delay, in seconds
        max_attempts: Number of attempts allowed before giving up
        jitter_range: Optional +/- randomisation as a fraction of the delay
    """

    base_delay: float = DEFAULT_BASE_DELAY_SECONDS
    multiplier: float = DEFAULT_MULTIPLIER
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    jitter_range: float = 0.0

    def __post_init__(self) -> None:
        if self.base_delay < 0:
            raise ConfigurationError.invalid_value("base_delay", self.base_delay, "Must be non-negative")
        if self.multiplier < 1:
            raise ConfigurationError.invalid_value("multiplier", self.multiplier, "Must be at least 1")
        if self.max_delay < 0:
            raise ConfigurationError.invalid_value("max_delay", self.max_delay, "Must be non-negative")
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int) or self.max_attempts < 0:
            raise ConfigurationError.invalid_value("max_attempts", self.max_attempts, "Must be a non-negative integer")
        if not 0 <= self.jitter_range < 1:
            raise ConfigurationError.invalid_value("jitter_range", self.jitter_range, "Must be in [0, 1)")

    def calculate_base_delay(self, attempt: int) -> float:
        """Exponential delay for a 0-indexed attempt, capped at max_delay."""
        return min(self.base_delay * (self.multiplier**attempt), self.max_delay)

    def calculate_delay(self, attempt: int) -> float:
        """
        Delay in seconds before the given 0-indexed attempt.

        Without jitter this is exactly ``min(base_delay * multiplier**attempt, max_delay)``.
        """
        base_delay = self.calculate_base_delay(attempt)
        if not self.jitter_range:
            return base_delay

        jitter_amount = base_delay * self.jitter_range
        final_delay = max(0.0, base_delay + uniform(-jitter_amount, jitter_amount))
        logger.debug(
            "Calculated backoff: attempt=%s, base_delay=%.2fs, final_delay=%.2fs",
            attempt,
            base_delay,
            final_delay,
        )
        return final_delay

    def can_retry(self, attempt: int) -> bool:
        """True while ``attempt`` attempts have been scheduled and more are allowed."""
        return attempt < self.max_attempts


__all__ = [
    "BackoffPolicy",
    "DEFAULT_BASE_DELAY_SECONDS",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MAX_DELAY_SECONDS",
    "DEFAULT_MULTIPLIER",
]
