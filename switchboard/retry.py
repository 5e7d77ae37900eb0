"""
Retry policies for Switchboard.

Used by the lifecycle manager to retry document writes that lost an
optimistic concurrency race. A retry re-reads the document and re-applies
the patch, so it is always safe for the idempotent lifecycle mutations.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


# =============================================================================
# Backoff Strategies
# =============================================================================


class BackoffStrategy(ABC):
    """Abstract base for backoff delay calculation."""

    @abstractmethod
    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay before next retry attempt.

        Args:
            attempt: Current attempt number (1-indexed, first retry is attempt 1)

        Returns:
            Delay in seconds before next attempt
        """
        ...


@dataclass
class NoBackoff(BackoffStrategy):
    """No delay between retries. Use for tests and in-process stores."""

    def get_delay(self, attempt: int) -> float:
        return 0.0


@dataclass
class ExponentialBackoff(BackoffStrategy):
    """
    Exponentially increasing delay between retries.

    delay = base * (multiplier ^ (attempt - 1))

    Jitter spreads out writers that collided on the same document so they
    do not collide again on the retry.

    Example:
        backoff = ExponentialBackoff(base=0.05, multiplier=2.0, max_delay=1.0)
        # Attempt 1: 0.05s, Attempt 2: 0.1s, Attempt 3: 0.2s, ...
    """

    base: float = 0.05
    multiplier: float = 2.0
    max_delay: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.25  # +/- 25%

    def get_delay(self, attempt: int) -> float:
        delay = self.base * (self.multiplier ** (attempt - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_range = delay * self.jitter_factor
            delay += random.uniform(-jitter_range, jitter_range)
            delay = max(0, delay)

        return delay


# =============================================================================
# Retry Policy
# =============================================================================


@dataclass
class RetryPolicy:
    """
    Configures retry behavior for an operation.

    Example:
        policy = RetryPolicy(
            max_attempts=5,
            backoff=ExponentialBackoff(base=0.05),
            retry_on=(ConflictError,),
        )
    """

    max_attempts: int = 1  # 1 = no retry (single attempt)
    backoff: BackoffStrategy = field(default_factory=NoBackoff)
    retry_on: tuple[type[Exception], ...] = (Exception,)

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """
        Determine if retry should be attempted.

        Args:
            attempt: Current attempt number (1-indexed)
            error: Exception that caused failure (if any)
        """
        if attempt >= self.max_attempts:
            return False

        if error is not None:
            return isinstance(error, self.retry_on)

        return False

    def get_delay(self, attempt: int) -> float:
        """Get delay before next retry attempt."""
        return self.backoff.get_delay(attempt)


__all__ = [
    "BackoffStrategy",
    "ExponentialBackoff",
    "NoBackoff",
    "RetryPolicy",
]
