"""Rate limiting dependency for FastAPI routes.

This module wires the abuse guard into the HTTP layer.

Design goals:
- Minimal coupling: routes declare ``Depends(enforce_rate_limit("/api/..."))``.
- Swap-friendly: routes only see ``AbstractRateLimiter``.
- No ambient singletons: the guard instance lives on ``app.state`` and is
  owned by the application factory.

Rate limiting strategy:
- Fixed-window limit per (client IP, endpoint identifier).
- Rejections map to 429; blocked clients map to 403. Both carry Retry-After.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.config import Settings
from app.core.errors import ClientBlockedAppError, RateLimitAppError
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the guard owned by the running application."""

    return request.app.state.abuse_guard


def resolve_client_id(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Identify the requester for rate limiting purposes.

    Args:
        request: FastAPI request.
        trust_forwarded_for: Use the first X-Forwarded-For hop when present.
            Only enable behind a proxy that overwrites the header.

    Returns:
        str: Client identifier (IP address or "unknown").
    """

    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    return request.client.host if request.client else "unknown"


def _rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    headers: dict[str, str] = {}
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    if result.limit is not None:
        headers["X-RateLimit-Limit"] = str(result.limit)
    if result.remaining is not None:
        headers["X-RateLimit-Remaining"] = str(result.remaining)
    if result.reset_at is not None:
        headers["X-RateLimit-Reset"] = str(int(result.reset_at))
    return headers


def enforce_rate_limit(endpoint_id: str) -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency enforcing the policy for endpoint_id.

    Usage:
        @router.get("/coins", dependencies=[Depends(enforce_rate_limit("/api/crypto-data"))])

    Args:
        endpoint_id: Policy identifier registered with the guard.

    Returns:
        Dependency coroutine raising RateLimitAppError (429) or
        ClientBlockedAppError (403) when the request must be rejected.
    """

    async def _enforce(request: Request) -> None:
        app_settings: Settings = request.app.state.settings
        if not app_settings.security.enabled:
            return

        limiter = get_rate_limiter(request)
        client_id = resolve_client_id(
            request, trust_forwarded_for=app_settings.security.trust_forwarded_for
        )
        result = limiter.check_rate_limit(client_id, endpoint_id)
        if result.allowed:
            return

        retry_after = result.retry_after_seconds or 0
        headers = _rate_limit_headers(result) if app_settings.security.include_headers else None
        log_extra = {
            "endpoint": endpoint_id,
            "client_hash": hash_identifier(client_id),
            "retry_after_s": retry_after,
        }

        if result.blocked:
            logger.warning("rate_limit.client_blocked", extra=log_extra)
            raise ClientBlockedAppError(
                code="client_blocked",
                message=result.message or "Client temporarily blocked.",
                details={"retry_after": retry_after, "endpoint": endpoint_id},
                headers=headers,
            )

        logger.warning("rate_limit.exceeded", extra={**log_extra, "limit": result.limit})
        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message=result.message or "Rate limit exceeded. Try again later.",
            details={
                "retry_after": retry_after,
                "reset_at": result.reset_at,
                "limit": result.limit,
                "endpoint": endpoint_id,
            },
            headers=headers,
        )

    return _enforce
