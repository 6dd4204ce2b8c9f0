"""FastAPI dependencies exposing the services owned by the application."""

from __future__ import annotations

from fastapi import Request

from app.services.analysis_service import MarketAnalysisService
from app.services.market_service import MarketDataService
from app.utils.ttl_cache import TTLCache


def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


def get_market_service(request: Request) -> MarketDataService:
    return request.app.state.market_service


def get_analysis_service(request: Request) -> MarketAnalysisService:
    return request.app.state.analysis_service
