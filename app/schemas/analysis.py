"""Pydantic schemas for AI market commentary."""

from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.market import Coin


class MarketAnalysisRequest(BaseModel):
    """Snapshot of coins the commentary should cover."""

    coins: list[Coin] = Field(..., min_length=1, max_length=50)


class MarketAnalysis(BaseModel):
    """Free-form market commentary produced by the LLM or the simulator."""

    text: str = Field(..., description="Markdown commentary.")
    simulated: bool = Field(
        False,
        description="True when the LLM was unavailable and the text was simulated.",
    )
    cached: bool = Field(False, description="True when served from cache.")


class SignalRequest(BaseModel):
    coin: Coin


class SignalPayload(BaseModel):
    """Fields the LLM must return for a trading signal."""

    type: Literal["BUY", "SELL"]
    entry: float = Field(..., gt=0)
    target: float = Field(..., gt=0)
    stop_loss: float = Field(..., gt=0)
    reasoning: str = Field(..., description="Short explanation of the setup.")
    confidence: int = Field(..., ge=0, le=100)


class TradingSignal(SignalPayload):
    """Simulated trading signal enriched with identity and provenance."""

    id: str
    pair: str = Field(..., description="Trading pair, e.g. 'BTC/USD'.")
    timestamp: str = Field(..., description="ISO-8601 UTC generation time.")
    simulated: bool = False
    cached: bool = False
