"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports ``gatekeeper.core.config``
so the module-level settings are built from known values.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from collections import Counter

import pytest

from gatekeeper.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class RecordingLimiter(AbstractRateLimiter):
    """Fake limiter returning a scripted outcome and counting calls per key."""

    def __init__(
        self,
        result: RateLimitResult | None = None,
        error: Exception | None = None,
    ) -> None:
        self.result = result or RateLimitResult(reached=False)
        self.error = error
        self.calls: Counter[str] = Counter()

    def check(self, key: str) -> RateLimitResult:
        self.calls[key] += 1
        if self.error is not None:
            raise self.error
        return self.result


class AsyncRecordingLimiter(RecordingLimiter):
    """Same as RecordingLimiter but with a coroutine ``check``."""

    async def check(self, key: str) -> RateLimitResult:  # type: ignore[override]
        return super().check(key)


@pytest.fixture
def allow_limiter() -> RecordingLimiter:
    return RecordingLimiter(RateLimitResult(reached=False, limit=5, remaining=4, reset_at=1700000060))


@pytest.fixture
def deny_limiter() -> RecordingLimiter:
    return RecordingLimiter(RateLimitResult(reached=True, limit=5, remaining=0, reset_at=1700000060))


@pytest.fixture
def failing_limiter() -> RecordingLimiter:
    return RecordingLimiter(error=ConnectionError("store unreachable"))
