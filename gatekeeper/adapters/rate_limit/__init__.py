"""Rate limiter boundary used by the admission middleware.

Only the abstract decision source lives here; concrete limiters are supplied
by the application that mounts the middleware.
"""

from gatekeeper.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

__all__ = ["AbstractRateLimiter", "RateLimitResult"]
