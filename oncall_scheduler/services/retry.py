"""Bounded retry with exponential backoff for downstream calls."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 4
    base_delay_seconds: float = 2.0
    max_delay_seconds: float = 16.0

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            base_delay_seconds=settings.base_delay_seconds,
            max_delay_seconds=settings.max_delay_seconds,
        )

    def delay_after(self, attempt: int) -> float:
        """Delay before the attempt following `attempt` (1-based)."""
        return min((2 ** (attempt - 1)) * self.base_delay_seconds, self.max_delay_seconds)


NO_RETRY = RetryPolicy(max_attempts=1, base_delay_seconds=0.0, max_delay_seconds=0.0)


def retry_with_backoff(
    fn: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "call",
) -> T:
    """
    Call `fn` until it succeeds or the policy's attempt ceiling is reached.

    Raises:
        The exception from the final attempt
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return fn()
        except Exception as e:
            if attempt >= policy.max_attempts:
                logger.warning("%s failed after %d attempt(s): %s", description, attempt, e)
                raise
            delay = policy.delay_after(attempt)
            logger.debug("%s failed (attempt %d/%d), retrying in %.1fs: %s",
                         description, attempt, policy.max_attempts, delay, e)
            sleep(delay)
            attempt += 1
