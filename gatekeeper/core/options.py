"""Configuration surface of the rate limiting middleware.

The middleware is configured once, at construction, by folding a sequence of
``Option`` values over ``DEFAULTS``. Each option targets exactly one field of
``MiddlewareConfig``; when several options target the same field the last one
wins. Passing ``None`` as an option value restores that field's default.

Example:
    >>> config = build_config(
    ...     with_excluded_key(default_excluded_key(["10.0.0.1"])),
    ...     with_limit_reached_handler(my_handler),
    ... )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Iterable, NoReturn

from fastapi import Request, Response, status
from fastapi.responses import PlainTextResponse

from gatekeeper.core.errors import LimiterFailureError

logger = logging.getLogger(__name__)


KeyGetter = Callable[[Request], str]
ExcludedKey = Callable[[str], bool]
ErrorHandler = Callable[[Request, Exception], Response]
LimitReachedHandler = Callable[[Request], Response]

LIMIT_EXCEEDED_BODY = "Limit exceeded"
UNKNOWN_CLIENT = "unknown"


def client_ip_key_getter(request: Request) -> str:
    """Default key getter: the caller's network address."""

    return request.client.host if request.client else UNKNOWN_CLIENT


def forwarded_for_key_getter(header: str = "X-Forwarded-For") -> KeyGetter:
    """Build a key getter that trusts a proxy-supplied client address header.

    The first non-empty entry of the comma-separated header value is used.
    Requests without the header fall back to ``client_ip_key_getter``.

    Only enable this behind a proxy that overwrites the header; clients can
    otherwise pick their own key.

    Args:
        header: Name of the header carrying the original client address.

    Returns:
        KeyGetter reading the header.
    """

    def get_key(request: Request) -> str:
        for entry in request.headers.get(header, "").split(","):
            address = entry.strip()
            if address:
                return address
        return client_ip_key_getter(request)

    return get_key


def no_excluded_keys(key: str) -> bool:
    """Default exclusion predicate: no key bypasses the limiter."""

    return False


def default_excluded_key(keys: Iterable[str]) -> ExcludedKey:
    """Build an exclusion predicate from a fixed list of keys.

    The set is built once; duplicates collapse and later changes to ``keys``
    have no effect on the predicate.

    Examples:
        >>> is_excluded = default_excluded_key(["a", "b"])
        >>> is_excluded("a"), is_excluded("c")
        (True, False)
    """

    excluded = frozenset(keys)

    def is_excluded(key: str) -> bool:
        return key in excluded

    return is_excluded


def default_limit_reached_handler(request: Request) -> Response:
    """Reject the request with a fixed 429 response."""

    return PlainTextResponse(
        LIMIT_EXCEEDED_BODY,
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )


def default_error_handler(request: Request, error: Exception) -> NoReturn:
    """Escalate a limiter failure.

    The request is neither allowed nor denied: the failure propagates to the
    server error layer. Supply a custom handler to degrade gracefully.

    Raises:
        LimiterFailureError: Always, chained to ``error``.
    """

    raise LimiterFailureError(
        code="rate_limiter_failure",
        message="Rate limiter failed to produce a decision",
        details={"error_type": type(error).__name__},
    ) from error


class OptionField(str, Enum):
    """Middleware configuration field targeted by an ``Option``."""

    ON_ERROR = "on_error"
    ON_LIMIT_REACHED = "on_limit_reached"
    KEY_GETTER = "key_getter"
    EXCLUDED_KEY = "excluded_key"
    INCLUDE_HEADERS = "include_headers"


@dataclass(frozen=True)
class Option:
    """A single named configuration change."""

    field: OptionField
    value: Any


@dataclass(frozen=True)
class MiddlewareConfig:
    """Resolved, read-only middleware configuration."""

    on_error: ErrorHandler = default_error_handler
    on_limit_reached: LimitReachedHandler = default_limit_reached_handler
    key_getter: KeyGetter = client_ip_key_getter
    excluded_key: ExcludedKey = no_excluded_keys
    include_headers: bool = False


DEFAULTS = MiddlewareConfig()


def with_error_handler(handler: ErrorHandler | None) -> Option:
    return Option(OptionField.ON_ERROR, handler)


def with_limit_reached_handler(handler: LimitReachedHandler | None) -> Option:
    return Option(OptionField.ON_LIMIT_REACHED, handler)


def with_key_getter(key_getter: KeyGetter | None) -> Option:
    return Option(OptionField.KEY_GETTER, key_getter)


def with_excluded_key(predicate: ExcludedKey | None) -> Option:
    return Option(OptionField.EXCLUDED_KEY, predicate)


def with_rate_limit_headers(enabled: bool | None) -> Option:
    """Expose X-RateLimit-* headers from the limiter's result metadata."""

    return Option(OptionField.INCLUDE_HEADERS, enabled)


def build_config(*options: Option) -> MiddlewareConfig:
    """Apply options in order over the defaults.

    Args:
        options: Options to apply; the last option per field wins.

    Returns:
        Fully populated MiddlewareConfig.
    """

    config = DEFAULTS
    for option in options:
        name = option.field.value
        value = option.value
        if value is None:
            value = getattr(DEFAULTS, name)
        config = replace(config, **{name: value})

    logger.debug(
        "rate_limit.config_built",
        extra={
            "options_applied": [option.field.value for option in options],
            "include_headers": config.include_headers,
        },
    )
    return config
