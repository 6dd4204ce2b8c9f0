"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from app.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    hash_identifier,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired to an in-memory JSON stream."""
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
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


def test_sensitive_filter_redacts_api_keys(capture):
    logger, stream = capture

    logger.info(
        "test_event",
        extra={
            "api_key": "sk-secret-123",
            "x-api-key": "another-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()
    assert "sk-secret-123" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_credentials_and_prompts(capture):
    logger, stream = capture

    logger.info(
        "auth_event",
        extra={
            "email": "trader@example.com",
            "password": "Hunter2!x",
            "prompt": "Act as a senior crypto market analyst",
            "char_count": 100,
        },
    )

    output = stream.getvalue()
    assert "trader@example.com" not in output
    assert "Hunter2!x" not in output
    assert "senior crypto" not in output
    assert "char_count" in output


def test_sensitive_filter_allows_safe_fields(capture):
    logger, stream = capture

    logger.info(
        "rate_limit.exceeded",
        extra={
            "endpoint": "/api/trade",
            "client_hash": hash_identifier("1.2.3.4"),
            "retry_after": 60,
        },
    )

    data = json.loads(stream.getvalue())
    assert data["message"] == "rate_limit.exceeded"
    assert data["endpoint"] == "/api/trade"
    assert data["retry_after"] == 60
    assert "[REDACTED]" not in stream.getvalue()


def test_sensitive_filter_redacts_nested_dicts(capture):
    logger, stream = capture

    logger.info(
        "nested_event",
        extra={
            "headers": {"x-api-key": "secret-key", "user-agent": "pytest"},
            "safe_data": {"count": 5, "type": "test"},
        },
    )

    output = stream.getvalue()
    assert "secret-key" not in output
    assert "[REDACTED]" in output
    assert "pytest" in output


def test_request_id_from_context_is_attached(capture):
    logger, stream = capture
    set_request_id("req-abc")

    logger.info("with_context")

    assert json.loads(stream.getvalue())["request_id"] == "req-abc"


def test_hash_identifier_is_stable_and_opaque():
    digest = hash_identifier("1.2.3.4")

    assert digest == hash_identifier("1.2.3.4")
    assert digest != hash_identifier("5.6.7.8")
    assert len(digest) == 16
    assert "1.2.3.4" not in digest
