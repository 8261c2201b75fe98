"""Tests for redaction and request correlation in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from gatekeeper.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired with the production filters, writing JSON to a buffer."""
    logger = logging.getLogger("test_gatekeeper_logging")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_redacts_client_identifiers(capture):
    logger, stream = capture

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "rate_limit_key": "203.0.113.7",
            "client_ip": "203.0.113.7",
            "key_hash": "abc123",
        },
    )

    output = stream.getvalue()
    assert "203.0.113.7" not in output
    assert "[REDACTED]" in output
    assert "abc123" in output


def test_redacts_nested_headers(capture):
    logger, stream = capture

    logger.info(
        "request_seen",
        extra={"headers": {"X-Forwarded-For": "198.51.100.4", "user-agent": "pytest"}},
    )

    payload = json.loads(stream.getvalue())
    assert payload["headers"]["X-Forwarded-For"] == "[REDACTED]"
    assert payload["headers"]["user-agent"] == "pytest"


def test_safe_fields_pass_through(capture):
    logger, stream = capture

    logger.info("rate_limit.allowed", extra={"path": "/health", "remaining": 3})

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "rate_limit.allowed"
    assert payload["level"] == "info"
    assert payload["path"] == "/health"
    assert payload["remaining"] == 3


def test_request_id_from_context(capture):
    logger, stream = capture
    set_request_id("req-42")

    logger.info("rate_limit.allowed")

    assert json.loads(stream.getvalue())["request_id"] == "req-42"


def test_exception_info_is_serialized(capture):
    logger, stream = capture

    try:
        raise ConnectionError("store unreachable")
    except ConnectionError:
        logger.error("rate_limit.limiter_failure", exc_info=True)

    payload = json.loads(stream.getvalue())
    assert "ConnectionError" in payload["exception"]
