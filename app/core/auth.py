"""Client API key checks for FastAPI routes.

Keys are not looked up anywhere; the dependency only rejects requests whose
key is missing or implausibly short. Each rejection is recorded as suspicious
activity, so a client retrying with bad keys ends up blocked by the abuse
guard like one that keeps hitting rate limits.

Disabled by default; enable with ``SECURITY_REQUIRE_API_KEY=true``.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import Request

from app.core.config import Settings
from app.core.errors import AuthenticationAppError
from app.core.logging import hash_identifier
from app.core.rate_limit import resolve_client_id
from app.utils.input_validators import validate_api_key_format

logger = logging.getLogger(__name__)


def require_api_key(service: str) -> Callable[[Request], Awaitable[None]]:
    """Build a dependency validating the client API key for service.

    Usage:
        router = APIRouter(dependencies=[Depends(require_api_key("AI service"))])

    Args:
        service: Human-readable service name used in suspicious-activity reasons.

    Returns:
        Dependency coroutine raising AuthenticationAppError (403) on a missing
        or malformed key.
    """

    async def _verify(request: Request) -> None:
        app_settings: Settings = request.app.state.settings
        security = app_settings.security
        if not security.require_api_key:
            return

        client_id = resolve_client_id(request, trust_forwarded_for=security.trust_forwarded_for)
        api_key = request.headers.get(security.api_key_header)

        valid, message = validate_api_key_format(
            request.app.state.abuse_guard, client_id, api_key, service
        )
        if valid:
            return

        logger.warning(
            "auth.invalid_api_key",
            extra={
                "service": service,
                "client_hash": hash_identifier(client_id),
                "api_key_present": bool(api_key),
            },
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message=message or "Invalid API key",
            details={"hint": f"Provide a valid {security.api_key_header} header"},
        )

    return _verify
