"""AI market commentary orchestrating LLM calls, caching, and fallbacks.

This service turns market snapshots into LLM prompts and validated results:
- Prompt construction for market overviews and trading signals
- Response caching by prompt hash (one LLM call per distinct snapshot and TTL)
- Output validation for JSON signals
- Deterministic-shape simulated fallback when the LLM is disabled or failing

Fallback results are never cached so the next request retries the LLM.
"""

import hashlib
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import LLMAppError, ValidationAppError
from app.schemas.analysis import MarketAnalysis, SignalPayload, TradingSignal
from app.schemas.market import Coin
from app.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

# Prompt version for cache invalidation when prompt changes
PROMPT_VERSION = "v1"


def _hash_prompt(kind: str, prompt: str) -> str:
    """Build the cache key for a prompt.

    Includes prompt version to invalidate cache when prompt logic changes.
    """
    raw = f"{PROMPT_VERSION}::{kind}::{prompt}".encode("utf-8", errors="ignore")
    return f"ai:{kind}:{hashlib.sha256(raw).hexdigest()}"


def build_market_prompt(coins: list[Coin]) -> str:
    """Build the market overview prompt from a coin snapshot."""
    snapshot = ", ".join(f"{c.name} (${c.price}, {c.change_24h}%)" for c in coins)
    return f"""
Act as a senior crypto market analyst.
Here is a snapshot of the top cryptocurrencies right now: {snapshot}.

Provide a concise 3-paragraph analysis:
1. Overall market sentiment (Bullish/Bearish/Neutral) and why.
2. Key movers and what it implies for the broader market.
3. A short-term outlook for the next 24-48 hours.

Keep it professional and data-driven.
""".strip()


def build_signal_prompt(coin: Coin) -> str:
    """Build the trading signal prompt for a single coin."""
    return f"""
Generate a simulated trading signal for {coin.name} ({coin.symbol}) based on standard
technical analysis patterns (RSI, MACD, Moving Averages).
Current Price: {coin.price}.

Return ONLY a JSON object with this exact structure:
{{
  "type": "BUY" | "SELL",
  "entry": <number>,
  "target": <number>,
  "stop_loss": <number>,
  "reasoning": "short string explaining the setup",
  "confidence": <integer 0-100>
}}
""".strip()


def simulated_market_analysis(coins: list[Coin]) -> str:
    bullish = sum(1 for c in coins if c.change_24h > 0) > len(coins) / 2
    leader = coins[0].name if coins else "Bitcoin"
    sentiment = "Cautiously Bullish" if bullish else "Bearish Consolidation"
    pressure = "signs of recovery" if bullish else "downward pressure"
    return (
        f"**Market Sentiment: {sentiment}**\n\n"
        f"The market is currently showing {pressure} with mixed signals across major assets. "
        "High volatility suggests traders are reacting to macroeconomic factors.\n\n"
        f"**Key Movers:**\n{leader} continues to lead the trend, influencing altcoin performance. "
        "Volume analysis indicates steady accumulation in the top tier assets.\n\n"
        "**Outlook:**\nExpect continued volatility in the short term. Support levels are being "
        "tested, and a breakout could occur within the next 24 hours. "
        "(Simulated analysis: AI service unavailable)"
    )


def simulated_signal(coin: Coin, *, rng: random.Random | None = None) -> TradingSignal:
    rng = rng or random.Random()
    return TradingSignal(
        id=f"sim-{uuid.uuid4().hex[:9]}",
        pair=f"{coin.symbol}/USD",
        type="BUY" if rng.random() > 0.5 else "SELL",
        entry=coin.price,
        target=coin.price * 1.05,
        stop_loss=coin.price * 0.95,
        reasoning="AI connection unstable. Showing simulated fallback signal based on generic momentum.",
        confidence=rng.randint(75, 94),
        timestamp=datetime.now(timezone.utc).isoformat(),
        simulated=True,
    )


class MarketAnalysisService:
    """Service producing AI commentary for the dashboard.

    Attributes:
        llm: LLM client adapter, or None when AI is disabled.
        cache: Shared TTL cache owned by the application.
        ttl_seconds: Lifetime of cached commentary.
    """

    def __init__(
        self,
        llm: AbstractLLMClient | None,
        cache: TTLCache,
        *,
        ttl_seconds: float = 900.0,
    ) -> None:
        self.llm = llm
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def _cached_call(self, key: str, fetch) -> tuple[Any, bool]:
        """Return (value, cached) memoizing fetch under key."""
        return await self.cache.get_or_set_with_hit(key, fetch, self.ttl_seconds)

    async def analyze_market(self, coins: list[Coin]) -> MarketAnalysis:
        """Generate (or reuse) a market overview for the given snapshot.

        Args:
            coins: Coins to cover; at least one.

        Returns:
            MarketAnalysis, simulated when the LLM is unavailable.

        Raises:
            ValidationAppError: If coins is empty.
        """
        if not coins:
            raise ValidationAppError(
                code="empty_market_snapshot",
                message="At least one coin is required for market analysis.",
            )
        if self.llm is None:
            return MarketAnalysis(text=simulated_market_analysis(coins), simulated=True)

        prompt = build_market_prompt(coins)
        llm = self.llm
        try:
            text, cached = await self._cached_call(
                _hash_prompt("market", prompt),
                lambda: llm.generate_text(prompt),
            )
        except LLMAppError as exc:
            logger.warning("analysis.fallback", extra={"kind": "market", "error_code": exc.code})
            return MarketAnalysis(text=simulated_market_analysis(coins), simulated=True)

        return MarketAnalysis(text=text, cached=cached)

    async def _fetch_signal_payload(self, llm: AbstractLLMClient, prompt: str) -> dict[str, Any]:
        raw = await llm.generate_json(prompt, schema=SignalPayload.model_json_schema())
        try:
            return SignalPayload.model_validate(raw).model_dump()
        except ValidationError as exc:
            raise LLMAppError(
                code="llm_invalid_signal",
                message="LLM returned a signal that does not match the expected schema",
                details={"context": {"errors": exc.error_count()}},
            ) from exc

    async def generate_signal(self, coin: Coin) -> TradingSignal:
        """Generate (or reuse) a simulated trading signal for coin.

        Args:
            coin: Current market snapshot for the coin.

        Returns:
            TradingSignal, simulated when the LLM is unavailable or its output
            fails validation.
        """
        if self.llm is None:
            return simulated_signal(coin)

        prompt = build_signal_prompt(coin)
        llm = self.llm
        try:
            payload, cached = await self._cached_call(
                _hash_prompt("signal", prompt),
                lambda: self._fetch_signal_payload(llm, prompt),
            )
        except LLMAppError as exc:
            logger.warning(
                "analysis.fallback",
                extra={"kind": "signal", "coin_id": coin.id, "error_code": exc.code},
            )
            return simulated_signal(coin)

        return TradingSignal(
            **payload,
            id=uuid.uuid4().hex[:9],
            pair=f"{coin.symbol}/USD",
            timestamp=datetime.now(timezone.utc).isoformat(),
            cached=cached,
        )
