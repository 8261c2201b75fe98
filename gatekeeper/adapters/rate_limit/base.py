"""Rate limiter boundary.

The middleware depends on this abstraction only. Counting, windows and the
backing store live behind it and are provided by the embedding application
(e.g., a Redis-backed limiter).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a successful limiter check.

    A limiter that cannot reach a decision raises instead of returning a
    result; the middleware treats any raised exception as a limiter failure.

    Attributes:
        reached: Whether the key has exceeded its budget.
        limit: Max requests per period, when the limiter exposes it.
        remaining: Requests left in the current period, when known.
        reset_at: UNIX epoch seconds when the period resets, when known.
    """

    reached: bool
    limit: int | None = None
    remaining: int | None = None
    reset_at: int | None = None


class AbstractRateLimiter(ABC):
    """Interface for rate limiting decision sources."""

    @abstractmethod
    def check(self, key: str) -> RateLimitResult | Awaitable[RateLimitResult]:
        """Record one request for ``key`` and report whether it is over budget.

        Implementations may be synchronous or return an awaitable.

        Args:
            key: Identifier produced by the middleware's key getter.

        Returns:
            RateLimitResult describing the decision.

        Raises:
            Exception: Any error means no decision could be made.
        """
        raise NotImplementedError
