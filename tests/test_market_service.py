"""Unit tests for MarketDataService caching and fallbacks."""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.errors import UpstreamAppError
from app.schemas.market import Coin, PricePoint
from app.services.market_service import (
    MOCK_COINS,
    MOCK_NEWS,
    MarketCacheTTLs,
    MarketDataService,
    simulated_history,
)
from app.utils.ttl_cache import TTLCache

BTC = Coin(id="bitcoin", name="Bitcoin", symbol="BTC", price=50_000.0)


def _upstream_down() -> UpstreamAppError:
    return UpstreamAppError(code="upstream_unavailable", message="Market data provider is unavailable")


@pytest.fixture
def source() -> MagicMock:
    source = MagicMock()
    source.fetch_top_coins = AsyncMock(return_value=[BTC])
    source.fetch_news = AsyncMock(return_value=[])
    source.fetch_coin_history = AsyncMock(return_value=[PricePoint(date="2024-01-01", price=1.0)])
    source.fetch_coin_description = AsyncMock(return_value="Bitcoin is a coin.")
    return source


@pytest.fixture
def service(source: MagicMock, clock) -> MarketDataService:
    return MarketDataService(
        source,
        TTLCache(clock=clock),
        ttls=MarketCacheTTLs(top_coins=300, news=600, history=1800, description=3600),
        top_coins_limit=15,
    )


class TestTopCoins:
    @pytest.mark.asyncio
    async def test_repeat_within_ttl_hits_cache(self, service, source, clock) -> None:
        await service.get_top_coins()
        clock.advance(299)
        result = await service.get_top_coins()

        assert result.coins == [BTC]
        assert result.simulated is False
        source.fetch_top_coins.assert_awaited_once_with(15)

    @pytest.mark.asyncio
    async def test_refetches_after_ttl(self, service, source, clock) -> None:
        await service.get_top_coins()
        clock.advance(301)
        await service.get_top_coins()

        assert source.fetch_top_coins.await_count == 2

    @pytest.mark.asyncio
    async def test_limit_is_part_of_cache_key(self, service, source) -> None:
        await service.get_top_coins(5)
        await service.get_top_coins(10)

        assert source.fetch_top_coins.await_count == 2

    @pytest.mark.asyncio
    async def test_upstream_failure_serves_mock_coins_uncached(self, service, source) -> None:
        source.fetch_top_coins.side_effect = _upstream_down()

        result = await service.get_top_coins(3)

        assert result.simulated is True
        assert result.coins == list(MOCK_COINS[:3])
        assert service.cache.size() == 0

        source.fetch_top_coins.side_effect = None
        recovered = await service.get_top_coins(3)
        assert recovered.simulated is False


class TestOtherReads:
    @pytest.mark.asyncio
    async def test_news_fallback(self, service, source) -> None:
        source.fetch_news.side_effect = _upstream_down()

        result = await service.get_news(2)

        assert result.simulated is True
        assert result.items == list(MOCK_NEWS[:2])

    @pytest.mark.asyncio
    async def test_history_is_cached_per_coin_and_days(self, service, source) -> None:
        await service.get_coin_history("bitcoin", 7)
        await service.get_coin_history("bitcoin", 7)
        await service.get_coin_history("bitcoin", 30)

        assert source.fetch_coin_history.await_count == 2

    @pytest.mark.asyncio
    async def test_history_fallback_is_simulated(self, service, source) -> None:
        source.fetch_coin_history.side_effect = _upstream_down()

        result = await service.get_coin_history("solana", 10)

        assert result.simulated is True
        assert len(result.prices) == 10
        assert result.prices[0].date == "Day 1"

    @pytest.mark.asyncio
    async def test_description_failure_returns_empty_text(self, service, source) -> None:
        source.fetch_coin_description.side_effect = _upstream_down()

        result = await service.get_coin_description("bitcoin")

        assert result.description == ""

    @pytest.mark.asyncio
    async def test_description_is_cached(self, service, source) -> None:
        first = await service.get_coin_description("bitcoin")
        await service.get_coin_description("bitcoin")

        assert first.description == "Bitcoin is a coin."
        source.fetch_coin_description.assert_awaited_once_with("bitcoin")


def test_simulated_history_is_shaped_by_coin_id() -> None:
    a = simulated_history("bitcoin", 5, rng=random.Random(0))
    b = simulated_history("bitcoin", 5, rng=random.Random(0))

    assert [p.price for p in a] == [p.price for p in b]
    assert all(p.price > 0 for p in a)
