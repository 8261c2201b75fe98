"""Application factory.

Builds a FastAPI app guarded by ``RateLimitMiddleware``. The limiter is
supplied by the caller; this package does not implement one.
"""

from __future__ import annotations

import logging
from typing import Sequence

from fastapi import FastAPI

from gatekeeper.adapters.rate_limit.base import AbstractRateLimiter
from gatekeeper.api.routes import health_router
from gatekeeper.core.config import AppSettings, settings
from gatekeeper.core.exception_handlers import setup_exception_handlers
from gatekeeper.core.logging import configure_logging
from gatekeeper.core.middleware import request_id_middleware
from gatekeeper.core.options import Option
from gatekeeper.core.rate_limit import RateLimitMiddleware, options_from_settings

logger = logging.getLogger(__name__)


def create_app(
    limiter: AbstractRateLimiter,
    *,
    options: Sequence[Option] = (),
    app_settings: AppSettings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        limiter: Decision source consulted for every non-excluded request.
        options: Middleware options applied after the settings-derived ones,
            so they take precedence.
        app_settings: Rate limiting settings; defaults to global settings.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    cfg = app_settings or settings.app

    app = FastAPI(title="Gatekeeper")

    # Added first so the request id middleware wraps it
    if cfg.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            limiter=limiter,
            options=[*options_from_settings(cfg), *options],
        )
    else:
        logger.info("rate_limit.disabled", extra={"reason": "rate_limit_enabled_false"})

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(health_router)

    return app
