"""Market data adapter layer - abstracts over upstream price/news providers."""

from app.adapters.market_data.base import AbstractMarketDataSource
from app.adapters.market_data.coingecko_client import CoinGeckoMarketDataSource

__all__ = [
    "AbstractMarketDataSource",
    "CoinGeckoMarketDataSource",
]
