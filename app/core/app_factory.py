"""Application factory for the FastAPI app.

This is the composition root: it builds the shared cache, the abuse guard and
the services that consume them, stores them on ``app.state`` and ties the
background sweepers to the application lifespan. Nothing else constructs
these instances.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.factory import create_llm_client
from app.adapters.market_data.base import AbstractMarketDataSource
from app.adapters.market_data.coingecko_client import CoinGeckoMarketDataSource
from app.adapters.rate_limit.base import EndpointPolicy
from app.adapters.rate_limit.in_memory import InMemoryAbuseGuard
from app.api.routes import (
    ai_router,
    auth_router,
    health_router,
    market_router,
    security_router,
)
from app.core.config import SecuritySettings, Settings, settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.services.analysis_service import MarketAnalysisService
from app.services.maintenance import PeriodicSweeper
from app.services.market_service import MarketCacheTTLs, MarketDataService
from app.utils.ttl_cache import TTLCache


def build_policies(security: SecuritySettings) -> dict[str, EndpointPolicy]:
    """Convert configured rate limits into guard policies."""
    return {
        endpoint_id: EndpointPolicy(
            window_seconds=policy.window_seconds,
            max_requests=policy.max_requests,
            message=policy.message,
        )
        for endpoint_id, policy in security.rate_limits.items()
    }


def build_abuse_guard(security: SecuritySettings) -> InMemoryAbuseGuard:
    return InMemoryAbuseGuard(
        build_policies(security),
        block_duration_seconds=security.block_duration_seconds,
        suspicious_threshold=security.suspicious_threshold,
    )


def create_app(
    app_settings: Settings | None = None,
    *,
    market_source: AbstractMarketDataSource | None = None,
    llm_client: AbstractLLMClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the environment-loaded ones.
        market_source: Upstream market data adapter; CoinGecko by default.
        llm_client: LLM adapter; built from ``LLM_*`` settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and state.
    """
    cfg = app_settings or settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    cache = TTLCache(
        default_ttl_seconds=cfg.cache.default_ttl_seconds,
        max_entries=cfg.cache.max_entries,
        single_flight=cfg.cache.single_flight,
    )
    guard = build_abuse_guard(cfg.security)

    source = market_source or CoinGeckoMarketDataSource(
        base_url=cfg.market.coingecko_base_url,
        news_url=cfg.market.news_url,
        timeout_seconds=cfg.market.timeout_seconds,
    )
    market_service = MarketDataService(
        source,
        cache,
        ttls=MarketCacheTTLs(
            top_coins=cfg.market.top_coins_ttl_seconds,
            news=cfg.market.news_ttl_seconds,
            history=cfg.market.history_ttl_seconds,
            description=cfg.market.description_ttl_seconds,
        ),
        top_coins_limit=cfg.market.top_coins_limit,
        news_limit=cfg.market.news_limit,
        history_days=cfg.market.history_days,
    )
    llm = llm_client if llm_client is not None else create_llm_client(cfg.llm)
    analysis_service = MarketAnalysisService(llm, cache, ttl_seconds=cfg.llm.analysis_ttl_seconds)

    sweepers = [
        PeriodicSweeper("cache", cfg.cache.sweep_interval_seconds, cache.purge_expired),
        PeriodicSweeper("abuse_guard", cfg.security.sweep_interval_seconds, guard.sweep),
    ]

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        for sweeper in sweepers:
            sweeper.start()
        try:
            yield
        finally:
            for sweeper in sweepers:
                await sweeper.stop()
            if isinstance(source, CoinGeckoMarketDataSource):
                await source.aclose()

    app = FastAPI(
        title="Trading Simulator Market Gateway",
        description=(
            "Market data, AI commentary and abuse protection for the crypto "
            "trading simulator dashboard. Upstream calls are memoized in a TTL "
            "cache; every API family is rate limited per client IP and repeat "
            "offenders are temporarily blocked."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.cache = cache
    app.state.abuse_guard = guard
    app.state.market_service = market_service
    app.state.analysis_service = analysis_service
    app.state.sweepers = sweepers

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(market_router)
    app.include_router(ai_router)
    app.include_router(auth_router)
    app.include_router(security_router)
    app.include_router(health_router)

    return app
