"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any app module is imported so the
module-level settings object is built with test values: no LLM provider
(simulated commentary) and quiet logging.
"""

import os

import pytest

os.environ["APP_ENV"] = "testing"
os.environ["LLM_PROVIDER"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")


class FakeClock:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
