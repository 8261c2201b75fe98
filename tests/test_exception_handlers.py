"""Tests for global exception handlers."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from gatekeeper.core.errors import AppError, LimiterFailureError, ValidationAppError
from gatekeeper.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestAppErrorHandler:

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/bad")
        async def bad():
            raise ValidationAppError(code="bad_key", message="Key must not be empty")

        response = client.get("/bad")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "bad_key"
        assert data["error"]["message"] == "Key must not be empty"
        assert "request_id" in data["error"]
        assert "details" not in data["error"]

    def test_limiter_failure_returns_500_with_details(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/limiter")
        async def limiter():
            raise LimiterFailureError(
                code="rate_limiter_failure",
                message="Rate limiter failed to produce a decision",
                details={"error_type": "ConnectionError"},
            )

        response = client.get("/limiter")

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "rate_limiter_failure"
        assert data["error"]["details"] == {"error_type": "ConnectionError"}


class TestGeneralExceptionHandler:

    def test_never_leaks_exception_text(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(
            general_exception_handler(request, RuntimeError("redis://secret@host failed"))
        )

        body = bytes(response.body).decode()
        data = json.loads(body)
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "redis://" not in body
        assert "RuntimeError" not in body


def test_setup_registers_handlers(app_with_handlers: FastAPI):
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
