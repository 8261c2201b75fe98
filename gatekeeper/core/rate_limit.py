"""Rate limiting middleware.

For every request the middleware:
1. derives a key with the configured key getter,
2. lets excluded keys through without consulting the limiter,
3. calls ``limiter.check(key)`` exactly once,
4. continues the chain when allowed, or hands the request to the
   limit-reached handler (over budget) or the error handler (limiter raised).

Excluded keys are never recorded by the limiter: they bypass accounting as
well as rejection.

Usage:
    app.add_middleware(
        RateLimitMiddleware,
        limiter=my_limiter,
        options=[with_excluded_key(default_excluded_key(["127.0.0.1"]))],
    )
"""

from __future__ import annotations

import hashlib
import inspect
import logging
from typing import Sequence

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from gatekeeper.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from gatekeeper.core.config import AppSettings, parse_excluded_keys
from gatekeeper.core.options import (
    MiddlewareConfig,
    Option,
    build_config,
    default_excluded_key,
    forwarded_for_key_getter,
    with_excluded_key,
    with_key_getter,
    with_rate_limit_headers,
)

logger = logging.getLogger(__name__)

HEADER_LIMIT = "X-RateLimit-Limit"
HEADER_REMAINING = "X-RateLimit-Remaining"
HEADER_RESET = "X-RateLimit-Reset"


def hash_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing it."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def options_from_settings(app_settings: AppSettings) -> list[Option]:
    """Translate environment settings into middleware options.

    Args:
        app_settings: Rate limiting settings.

    Returns:
        Options to apply before any explicitly supplied ones.
    """

    options = [with_rate_limit_headers(app_settings.rate_limit_include_headers)]

    excluded_keys = parse_excluded_keys(app_settings.rate_limit_excluded_keys)
    if excluded_keys:
        options.append(with_excluded_key(default_excluded_key(excluded_keys)))

    if app_settings.rate_limit_trust_forwarded_for:
        options.append(
            with_key_getter(forwarded_for_key_getter(app_settings.rate_limit_forwarded_header))
        )

    return options


def _apply_headers(response: Response, result: RateLimitResult) -> None:
    for header, value in (
        (HEADER_LIMIT, result.limit),
        (HEADER_REMAINING, result.remaining),
        (HEADER_RESET, result.reset_at),
    ):
        if value is not None:
            response.headers[header] = str(value)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Admission control in front of the application's routes.

    The configuration is resolved once in ``__init__`` and never mutated, so a
    single instance serves concurrent requests without locking.
    """

    def __init__(
        self,
        app: ASGIApp,
        limiter: AbstractRateLimiter,
        options: Sequence[Option] = (),
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.config: MiddlewareConfig = build_config(*options)

        logger.info(
            "rate_limit.middleware_initialized",
            extra={
                "limiter": type(limiter).__name__,
                "options": len(options),
                "include_headers": self.config.include_headers,
            },
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        config = self.config
        key = config.key_getter(request)
        key_hash = hash_key(key)

        if config.excluded_key(key):
            logger.debug(
                "rate_limit.excluded",
                extra={"key_hash": key_hash, "path": request.url.path},
            )
            return await call_next(request)

        try:
            result = self.limiter.check(key)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.error(
                "rate_limit.limiter_failure",
                extra={
                    "key_hash": key_hash,
                    "path": request.url.path,
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return config.on_error(request, exc)

        if result.reached:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "key_hash": key_hash,
                    "path": request.url.path,
                    "method": request.method,
                    "limit": result.limit,
                    "reset_at": result.reset_at,
                },
            )
            response = config.on_limit_reached(request)
        else:
            logger.debug(
                "rate_limit.allowed",
                extra={"key_hash": key_hash, "remaining": result.remaining},
            )
            response = await call_next(request)

        if config.include_headers:
            _apply_headers(response, result)
        return response
