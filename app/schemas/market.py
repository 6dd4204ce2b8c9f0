"""Pydantic schemas for market data returned by the crypto-data endpoints."""

from typing import Literal

from pydantic import BaseModel, Field


class Coin(BaseModel):
    """Market snapshot for a single asset."""

    id: str = Field(..., description="Provider coin id (e.g., 'bitcoin').")
    name: str
    symbol: str = Field(..., description="Upper-case ticker symbol.")
    price: float = Field(..., description="Current price in USD.")
    change_24h: float = Field(0.0, description="Price change over 24h, in percent.")
    market_cap: float = 0.0
    volume_24h: float = 0.0
    image: str | None = None


class PricePoint(BaseModel):
    """One daily close in a coin's price history."""

    date: str = Field(..., description="ISO date (YYYY-MM-DD) or 'Day N' for synthetic series.")
    price: float


class NewsItem(BaseModel):
    id: str
    title: str
    summary: str
    source: str
    published_at: str = Field(..., description="ISO-8601 UTC publication time.")
    sentiment: Literal["bullish", "bearish", "neutral"] = "neutral"


class CoinListResponse(BaseModel):
    coins: list[Coin]
    simulated: bool = Field(False, description="True when served from fallback data.")


class CoinHistoryResponse(BaseModel):
    coin_id: str
    prices: list[PricePoint]
    simulated: bool = False


class CoinDescriptionResponse(BaseModel):
    coin_id: str
    description: str


class NewsResponse(BaseModel):
    items: list[NewsItem]
    simulated: bool = False
