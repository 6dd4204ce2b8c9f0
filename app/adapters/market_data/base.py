from abc import ABC, abstractmethod

from app.schemas.market import Coin, NewsItem, PricePoint


class AbstractMarketDataSource(ABC):
	"""Interface for upstream market data providers.

	Implementations raise UpstreamAppError when the provider is unreachable
	or returns a payload that cannot be normalized.
	"""

	@abstractmethod
	async def fetch_top_coins(self, limit: int) -> list[Coin]:
		"""Return the top ``limit`` coins ordered by market cap."""
		...

	@abstractmethod
	async def fetch_news(self, limit: int) -> list[NewsItem]:
		"""Return the ``limit`` most recent news items."""
		...

	@abstractmethod
	async def fetch_coin_history(self, coin_id: str, days: int) -> list[PricePoint]:
		"""Return daily USD prices for the last ``days`` days."""
		...

	@abstractmethod
	async def fetch_coin_description(self, coin_id: str) -> str:
		"""Return a short plain-text description of the coin."""
		...
