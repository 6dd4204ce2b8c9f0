"""Tests for the CoinGecko/CryptoCompare adapter using httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from app.adapters.market_data.coingecko_client import (
    CoinGeckoMarketDataSource,
    strip_html,
    summarize_description,
)
from app.core.errors import UpstreamAppError

BASE_URL = "https://coingecko.test/api/v3"
NEWS_URL = "https://news.test/data/v2/news/?lang=EN"


def _source(handler) -> CoinGeckoMarketDataSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CoinGeckoMarketDataSource(base_url=BASE_URL, news_url=NEWS_URL, client=client)


class TestHelpers:
    def test_strip_html_removes_tags(self) -> None:
        assert strip_html('<a href="x">Bitcoin</a> is <b>digital</b>') == "Bitcoin is digital"

    def test_summary_keeps_three_sentences(self) -> None:
        raw = "One. Two. Three. Four. Five."

        assert summarize_description(raw) == "One. Two. Three."

    def test_short_description_is_unchanged(self) -> None:
        assert summarize_description("Only one sentence.") == "Only one sentence."


@pytest.mark.asyncio
async def test_fetch_top_coins_normalizes_payload() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["per_page"] = request.url.params["per_page"]
        return httpx.Response(
            200,
            json=[
                {
                    "id": "bitcoin",
                    "name": "Bitcoin",
                    "symbol": "btc",
                    "current_price": 50000,
                    "price_change_percentage_24h": None,
                    "market_cap": 1_000,
                    "total_volume": 10,
                    "image": "https://img/btc.png",
                }
            ],
        )

    coins = await _source(handler).fetch_top_coins(15)

    assert seen == {"path": "/api/v3/coins/markets", "per_page": "15"}
    assert coins[0].symbol == "BTC"
    assert coins[0].price == 50000
    assert coins[0].change_24h == 0.0


@pytest.mark.asyncio
async def test_fetch_news_truncates_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "Data": [
                    {
                        "id": 7,
                        "title": "Headline",
                        "body": "x" * 400,
                        "source_info": {"name": "Wire"},
                        "published_on": 0,
                    }
                ]
            },
        )

    items = await _source(handler).fetch_news(10)

    assert items[0].id == "7"
    assert items[0].summary == "x" * 150 + "..."
    assert items[0].source == "Wire"
    assert items[0].published_at.startswith("1970-01-01")


@pytest.mark.asyncio
async def test_fetch_coin_history_maps_timestamps_to_dates() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v3/coins/bitcoin/market_chart"
        return httpx.Response(200, json={"prices": [[86_400_000, 1.5], [172_800_000, 2.5]]})

    points = await _source(handler).fetch_coin_history("bitcoin", 2)

    assert [(p.date, p.price) for p in points] == [("1970-01-02", 1.5), ("1970-01-03", 2.5)]


@pytest.mark.asyncio
async def test_fetch_coin_description_summarizes_english_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"description": {"en": "<p>A</p>. B. C. D."}}
        )

    assert await _source(handler).fetch_coin_description("bitcoin") == "A. B. C."


@pytest.mark.asyncio
async def test_http_error_maps_to_upstream_error() -> None:
    source = _source(lambda request: httpx.Response(503))

    with pytest.raises(UpstreamAppError) as exc_info:
        await source.fetch_top_coins(5)

    assert exc_info.value.code == "upstream_http_error"
    assert exc_info.value.details["http_status"] == 503


@pytest.mark.asyncio
async def test_transport_error_maps_to_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamAppError) as exc_info:
        await _source(handler).fetch_news(5)

    assert exc_info.value.code == "upstream_unavailable"


@pytest.mark.asyncio
async def test_malformed_payload_is_rejected() -> None:
    source = _source(lambda request: httpx.Response(200, json={"unexpected": True}))

    with pytest.raises(UpstreamAppError) as exc_info:
        await source.fetch_coin_history("bitcoin", 3)

    assert exc_info.value.code == "upstream_malformed"
