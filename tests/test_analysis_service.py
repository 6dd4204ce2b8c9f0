"""Unit tests for MarketAnalysisService."""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.errors import LLMAppError, ValidationAppError
from app.schemas.market import Coin
from app.services.analysis_service import (
    MarketAnalysisService,
    _hash_prompt,
    build_market_prompt,
    build_signal_prompt,
    simulated_market_analysis,
    simulated_signal,
)
from app.utils.ttl_cache import TTLCache

BTC = Coin(id="bitcoin", name="Bitcoin", symbol="BTC", price=50_000.0, change_24h=2.0)
ETH = Coin(id="ethereum", name="Ethereum", symbol="ETH", price=3_000.0, change_24h=-1.0)

VALID_SIGNAL = {
    "type": "BUY",
    "entry": 50_000.0,
    "target": 52_500.0,
    "stop_loss": 48_000.0,
    "reasoning": "RSI bounce off support",
    "confidence": 81,
}


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock()
    llm.generate_text = AsyncMock(return_value="Bullish across the board.")
    llm.generate_json = AsyncMock(return_value=dict(VALID_SIGNAL))
    return llm


@pytest.fixture
def service(mock_llm: MagicMock) -> MarketAnalysisService:
    return MarketAnalysisService(mock_llm, TTLCache(), ttl_seconds=900)


class TestHelperFunctions:
    """Test module-level helper functions."""

    def test_hash_prompt_is_deterministic_and_namespaced(self) -> None:
        key = _hash_prompt("market", "prompt")

        assert key == _hash_prompt("market", "prompt")
        assert key.startswith("ai:market:")
        assert key != _hash_prompt("signal", "prompt")

    def test_market_prompt_lists_every_coin(self) -> None:
        prompt = build_market_prompt([BTC, ETH])

        assert "Bitcoin ($50000.0, 2.0%)" in prompt
        assert "Ethereum" in prompt

    def test_signal_prompt_mentions_coin_and_price(self) -> None:
        prompt = build_signal_prompt(BTC)

        assert "Bitcoin (BTC)" in prompt
        assert "50000.0" in prompt
        assert "stop_loss" in prompt

    def test_simulated_analysis_reflects_majority_direction(self) -> None:
        assert "Cautiously Bullish" in simulated_market_analysis([BTC])
        assert "Bearish Consolidation" in simulated_market_analysis([ETH])

    def test_simulated_signal_brackets_entry_price(self) -> None:
        signal = simulated_signal(BTC, rng=random.Random(1))

        assert signal.simulated is True
        assert signal.pair == "BTC/USD"
        assert signal.entry == BTC.price
        assert signal.target == pytest.approx(BTC.price * 1.05)
        assert signal.stop_loss == pytest.approx(BTC.price * 0.95)
        assert 75 <= signal.confidence <= 94


class TestAnalyzeMarket:
    @pytest.mark.asyncio
    async def test_empty_snapshot_is_rejected(self, service: MarketAnalysisService) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            await service.analyze_market([])

        assert exc_info.value.code == "empty_market_snapshot"

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(
        self, service: MarketAnalysisService, mock_llm: MagicMock
    ) -> None:
        first = await service.analyze_market([BTC, ETH])
        second = await service.analyze_market([BTC, ETH])

        assert first.text == "Bullish across the board."
        assert first.cached is False
        assert second.cached is True
        assert mock_llm.generate_text.await_count == 1

    @pytest.mark.asyncio
    async def test_each_request_moves_cache_counters_once(
        self, service: MarketAnalysisService
    ) -> None:
        await service.analyze_market([BTC])
        await service.analyze_market([BTC])

        stats = service.cache.get_stats()
        assert stats["misses"] == 1
        assert stats["hits"] == 1

    @pytest.mark.asyncio
    async def test_different_snapshot_misses_cache(
        self, service: MarketAnalysisService, mock_llm: MagicMock
    ) -> None:
        await service.analyze_market([BTC])
        await service.analyze_market([ETH])

        assert mock_llm.generate_text.await_count == 2

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back_without_caching(
        self, service: MarketAnalysisService, mock_llm: MagicMock
    ) -> None:
        mock_llm.generate_text.side_effect = LLMAppError(code="llm_request_failed", message="down")

        result = await service.analyze_market([BTC])

        assert result.simulated is True
        assert service.cache.size() == 0

    @pytest.mark.asyncio
    async def test_disabled_llm_serves_simulated_text(self) -> None:
        service = MarketAnalysisService(None, TTLCache())

        result = await service.analyze_market([BTC])

        assert result.simulated is True
        assert "Simulated analysis" in result.text


class TestGenerateSignal:
    @pytest.mark.asyncio
    async def test_valid_llm_payload_is_enriched(
        self, service: MarketAnalysisService, mock_llm: MagicMock
    ) -> None:
        signal = await service.generate_signal(BTC)

        assert signal.type == "BUY"
        assert signal.pair == "BTC/USD"
        assert signal.simulated is False
        assert signal.confidence == 81
        mock_llm.generate_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cached_signal_gets_fresh_identity(
        self, service: MarketAnalysisService, mock_llm: MagicMock
    ) -> None:
        first = await service.generate_signal(BTC)
        second = await service.generate_signal(BTC)

        assert second.cached is True
        assert second.id != first.id
        assert mock_llm.generate_json.await_count == 1

    @pytest.mark.asyncio
    async def test_schema_violation_falls_back(
        self, service: MarketAnalysisService, mock_llm: MagicMock
    ) -> None:
        mock_llm.generate_json.return_value = {**VALID_SIGNAL, "type": "HOLD"}

        signal = await service.generate_signal(BTC)

        assert signal.simulated is True
        assert service.cache.size() == 0

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back(
        self, service: MarketAnalysisService, mock_llm: MagicMock
    ) -> None:
        mock_llm.generate_json.side_effect = LLMAppError(code="llm_invalid_json", message="bad")

        signal = await service.generate_signal(BTC)

        assert signal.simulated is True
