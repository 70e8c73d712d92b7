"""Reconnection scheduling with exponential backoff."""

import asyncio
import logging
from typing import Callable, Optional

from ..backoff_policy import BackoffPolicy


class ReconnectScheduler:
    """
    Owns the attempt counter and the single pending reconnect timer.

    Arming a timer always cancels the previous one, so at most one retry is
    ever outstanding.
    """

    def __init__(self, name: str, policy: BackoffPolicy):
        self.name = name
        self.policy = policy
        self.attempts = 0
        self.last_delay: Optional[float] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self.logger = logging.getLogger(f"{__name__}.{name}")

    @property
    def has_pending(self) -> bool:
        return self._timer is not None

    def can_retry(self) -> bool:
        return self.policy.can_retry(self.attempts)

    def schedule(self, on_fire: Callable[[], None]) -> Optional[float]:
        """
        Arm the timer for the next attempt.

        Returns the delay in seconds, or None when the attempt ceiling was
        reached; any pending timer is cancelled in that case.
        """
        if not self.can_retry():
            self.cancel()
            self.logger.warning("Max reconnection attempts (%s) reached", self.policy.max_attempts)
            return None

        delay = self.policy.calculate_delay(self.attempts)
        self.attempts += 1
        self.last_delay = delay
        self.cancel()

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._fire, on_fire)
        self.logger.info("Reconnecting in %.1fs (attempt %s)", delay, self.attempts)
        return delay

    def _fire(self, on_fire: Callable[[], None]) -> None:
        self._timer = None
        on_fire()

    def cancel(self) -> bool:
        """Cancel the pending timer; True when one was outstanding."""
        if self._timer is None:
            return False
        self._timer.cancel()
        self._timer = None
        self.logger.debug("Cancelled pending reconnect timer")
        return True

    def reset(self) -> None:
        if self.attempts:
            self.logger.debug("Resetting reconnect attempts after %s", self.attempts)
        self.attempts = 0
        self.last_delay = None
