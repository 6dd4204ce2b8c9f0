from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from app.api.dependencies import get_market_service
from app.core.rate_limit import enforce_rate_limit
from app.schemas.market import (
    CoinDescriptionResponse,
    CoinHistoryResponse,
    CoinListResponse,
    NewsResponse,
)
from app.services.market_service import MarketDataService

router = APIRouter(
    prefix="/api/crypto-data",
    tags=["Market"],
    dependencies=[Depends(enforce_rate_limit("/api/crypto-data"))],
)

CoinId = Annotated[
    str,
    Path(pattern=r"^[a-z0-9-]{1,64}$", description="Provider coin id, e.g. 'bitcoin'."),
]


@router.get("/coins", response_model=CoinListResponse)
async def list_top_coins(
    limit: int | None = Query(None, ge=1, le=250),
    service: MarketDataService = Depends(get_market_service),
) -> CoinListResponse:
    """Top coins by market cap, cached for five minutes by default."""
    return await service.get_top_coins(limit)


@router.get("/coins/{coin_id}/history", response_model=CoinHistoryResponse)
async def coin_history(
    coin_id: CoinId,
    days: int | None = Query(None, ge=1, le=365),
    service: MarketDataService = Depends(get_market_service),
) -> CoinHistoryResponse:
    """Daily USD closes for a coin, cached for thirty minutes by default."""
    return await service.get_coin_history(coin_id, days)


@router.get("/coins/{coin_id}/description", response_model=CoinDescriptionResponse)
async def coin_description(
    coin_id: CoinId,
    service: MarketDataService = Depends(get_market_service),
) -> CoinDescriptionResponse:
    return await service.get_coin_description(coin_id)


@router.get("/news", response_model=NewsResponse)
async def crypto_news(
    limit: int | None = Query(None, ge=1, le=50),
    service: MarketDataService = Depends(get_market_service),
) -> NewsResponse:
    """Latest crypto headlines, cached for ten minutes by default."""
    return await service.get_news(limit)
