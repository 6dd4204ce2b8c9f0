from fastapi import APIRouter, Depends

from app.api.dependencies import get_analysis_service
from app.core.auth import require_api_key
from app.core.rate_limit import enforce_rate_limit
from app.schemas.analysis import (
    MarketAnalysis,
    MarketAnalysisRequest,
    SignalRequest,
    TradingSignal,
)
from app.services.analysis_service import MarketAnalysisService

router = APIRouter(
    prefix="/api/gemini",
    tags=["AI"],
    dependencies=[
        Depends(enforce_rate_limit("/api/gemini")),
        Depends(require_api_key("AI service")),
    ],
)


@router.post("/market-analysis", response_model=MarketAnalysis)
async def market_analysis(
    body: MarketAnalysisRequest,
    service: MarketAnalysisService = Depends(get_analysis_service),
) -> MarketAnalysis:
    """AI overview of the supplied market snapshot.

    Falls back to simulated commentary (``simulated=true``) when the LLM is
    disabled or failing, so the dashboard always has something to render.
    """
    return await service.analyze_market(body.coins)


@router.post("/signal", response_model=TradingSignal)
async def trading_signal(
    body: SignalRequest,
    service: MarketAnalysisService = Depends(get_analysis_service),
) -> TradingSignal:
    """Simulated BUY/SELL setup for one coin. Not financial advice."""
    return await service.generate_signal(body.coin)
