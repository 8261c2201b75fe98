"""Application-level exception types.

Limit exhaustion is an expected outcome and is not modelled as an exception;
it is routed to the limit-reached handler. Limiter failures are unexpected and
surface as ``LimiterFailureError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    error_type: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class LimiterFailureError(AppError):
    """Raised when the rate limiter could not produce a decision.

    This is the fail-loud escalation of the default error handler. It is never
    converted into an allow or deny decision by the middleware.
    """
