from __future__ import annotations

from app.api.routes.ai import router as ai_router
from app.api.routes.auth import router as auth_router
from app.api.routes.health import router as health_router
from app.api.routes.market import router as market_router
from app.api.routes.security import router as security_router

__all__ = ["ai_router", "auth_router", "health_router", "market_router", "security_router"]
