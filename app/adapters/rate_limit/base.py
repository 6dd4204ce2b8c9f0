"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class EndpointPolicy:
    """Quota applied to one protected endpoint identifier.

    Attributes:
        window_seconds: Length of the fixed window.
        max_requests: Requests allowed per client within one window.
        message: Human-readable rejection message.
    """

    window_seconds: float
    max_requests: int
    message: str


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        message: Rejection message (None when allowed).
        reset_at: UNIX epoch seconds when the exhausted window resets.
        retry_after_seconds: Suggested wait time in seconds when rejected.
        limit: Max requests per window for the endpoint (None if unrestricted).
        remaining: Remaining requests in the current window.
        blocked: True when the client is under a temporary block.
    """

    allowed: bool
    message: str | None = None
    reset_at: float | None = None
    retry_after_seconds: int | None = None
    limit: int | None = None
    remaining: int | None = None
    blocked: bool = False


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check_rate_limit(self, client_id: str, endpoint_id: str) -> RateLimitResult:
        """Count one request from client_id against endpoint_id's quota.

        Args:
            client_id: Unique client identifier (e.g., IP address).
            endpoint_id: Protected endpoint identifier (e.g., "/api/trade").

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def get_security_stats(self) -> dict[str, int]:
        """Return counters describing the limiter's internal state."""
        raise NotImplementedError
