"""Tests for input validation helpers."""

import pytest

from app.adapters.rate_limit.base import EndpointPolicy
from app.adapters.rate_limit.in_memory import InMemoryAbuseGuard
from app.utils.input_validators import (
    is_valid_email,
    sanitize_input,
    validate_api_key_format,
    validate_password,
)


def test_sanitize_input_escapes_markup() -> None:
    assert sanitize_input('<script>alert("x")</script>') == (
        "&lt;script&gt;alert(&quot;x&quot;)&lt;&#x2F;script&gt;"
    )
    assert sanitize_input("it's") == "it&#x27;s"
    assert sanitize_input("plain text") == "plain text"


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("trader@example.com", True),
        ("a.b@sub.example.io", True),
        ("missing-at.example.com", False),
        ("no-tld@example", False),
        ("spaces in@example.com", False),
    ],
)
def test_is_valid_email(email: str, expected: bool) -> None:
    assert is_valid_email(email) is expected


def test_strong_password_passes() -> None:
    check = validate_password("Str0ng!pass")

    assert check.valid is True
    assert check.errors == []


def test_weak_password_reports_every_failed_rule() -> None:
    check = validate_password("abc")

    assert check.valid is False
    assert len(check.errors) == 4
    assert any("8 characters" in e for e in check.errors)
    assert any("uppercase" in e for e in check.errors)
    assert any("number" in e for e in check.errors)
    assert any("special character" in e for e in check.errors)


class TestApiKeyFormat:
    @pytest.fixture
    def guard(self, clock) -> InMemoryAbuseGuard:
        policies = {"/api/auth": EndpointPolicy(window_seconds=60, max_requests=5, message="m")}
        return InMemoryAbuseGuard(policies, suspicious_threshold=2, clock=clock)

    def test_valid_key(self, guard: InMemoryAbuseGuard) -> None:
        assert validate_api_key_format(guard, "c", "k" * 20, "market data") == (True, None)
        assert guard.get_security_stats()["suspicious_activities_count"] == 0

    def test_missing_key_is_suspicious(self, guard: InMemoryAbuseGuard) -> None:
        valid, message = validate_api_key_format(guard, "c", None, "market data")

        assert valid is False
        assert message == "API key is required"
        assert guard.get_security_stats()["suspicious_activities_count"] == 1

    def test_repeated_bad_keys_block_client(self, guard: InMemoryAbuseGuard) -> None:
        validate_api_key_format(guard, "c", "short", "AI")
        validate_api_key_format(guard, "c", "", "AI")

        assert guard.is_blocked("c") is True
        assert guard.check_rate_limit("c", "/api/auth").blocked is True
