"""CoinGecko (prices) and CryptoCompare (news) market data adapter."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from app.adapters.market_data.base import AbstractMarketDataSource
from app.core.errors import UpstreamAppError
from app.schemas.market import Coin, NewsItem, PricePoint

logger = logging.getLogger(__name__)

_HTML_TAG_RE = re.compile(r"<[^>]*>?")

NEWS_SUMMARY_CHARS = 150


def strip_html(text: str) -> str:
    return _HTML_TAG_RE.sub("", text)


def summarize_description(raw: str, max_sentences: int = 3) -> str:
    """Strip HTML and keep the first few sentences of a coin description.

    Args:
        raw: Provider description, possibly containing HTML links.
        max_sentences: Number of ". "-separated sentences to keep.

    Returns:
        Plain-text summary, terminated with "." when it was shortened.
    """
    sentences = strip_html(raw).split(". ")
    summary = ". ".join(sentences[:max_sentences])
    if len(sentences) > max_sentences:
        summary += "."
    return summary


class CoinGeckoMarketDataSource(AbstractMarketDataSource):
    """Fetch and normalize market data over HTTP.

    Uses a shared ``httpx.AsyncClient``; pass one in to control transport
    (tests use ``httpx.MockTransport``), otherwise one is created and owned
    by this adapter and released by ``aclose``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        news_url: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.news_url = news_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET url and decode JSON, mapping transport/HTTP failures to UpstreamAppError."""
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "market_data.http_error",
                extra={"upstream": url, "status_code": exc.response.status_code},
            )
            raise UpstreamAppError(
                code="upstream_http_error",
                message=f"Market data provider returned HTTP {exc.response.status_code}",
                details={"upstream": url, "http_status": exc.response.status_code},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "market_data.request_failed",
                extra={"upstream": url, "error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code="upstream_unavailable",
                message="Market data provider is unavailable",
                details={"upstream": url},
            ) from exc

    async def fetch_top_coins(self, limit: int) -> list[Coin]:
        data = await self._get_json(
            f"{self.base_url}/coins/markets",
            params={
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": limit,
                "page": 1,
                "sparkline": "false",
            },
        )
        try:
            return [
                Coin(
                    id=item["id"],
                    name=item["name"],
                    symbol=str(item["symbol"]).upper(),
                    price=item["current_price"],
                    change_24h=item.get("price_change_percentage_24h") or 0.0,
                    market_cap=item.get("market_cap") or 0.0,
                    volume_24h=item.get("total_volume") or 0.0,
                    image=item.get("image"),
                )
                for item in data
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamAppError(
                code="upstream_malformed",
                message="Unexpected coin markets payload",
                details={"upstream": "coingecko"},
            ) from exc

    async def fetch_news(self, limit: int) -> list[NewsItem]:
        data = await self._get_json(self.news_url)
        try:
            items = []
            for item in data["Data"][:limit]:
                body = item.get("body") or ""
                items.append(
                    NewsItem(
                        id=str(item["id"]),
                        title=item["title"],
                        summary=body[:NEWS_SUMMARY_CHARS] + "...",
                        source=item.get("source_info", {}).get("name", "unknown"),
                        published_at=datetime.fromtimestamp(
                            int(item["published_on"]), tz=timezone.utc
                        ).isoformat(),
                    )
                )
            return items
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamAppError(
                code="upstream_malformed",
                message="Unexpected news payload",
                details={"upstream": "cryptocompare"},
            ) from exc

    async def fetch_coin_history(self, coin_id: str, days: int) -> list[PricePoint]:
        data = await self._get_json(
            f"{self.base_url}/coins/{coin_id}/market_chart",
            params={"vs_currency": "usd", "days": days, "interval": "daily"},
        )
        try:
            return [
                PricePoint(
                    date=datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).date().isoformat(),
                    price=price,
                )
                for ts_ms, price in data["prices"]
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamAppError(
                code="upstream_malformed",
                message="Unexpected market chart payload",
                details={"upstream": "coingecko", "coin_id": coin_id},
            ) from exc

    async def fetch_coin_description(self, coin_id: str) -> str:
        data = await self._get_json(
            f"{self.base_url}/coins/{coin_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "market_data": "false",
                "community_data": "false",
                "developer_data": "false",
                "sparkline": "false",
            },
        )
        if not isinstance(data, dict):
            return ""
        description = (data.get("description") or {}).get("en") or ""
        return summarize_description(description)
