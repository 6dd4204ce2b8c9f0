from fastapi import APIRouter, Depends

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.api.dependencies import get_cache
from app.core.rate_limit import get_rate_limiter
from app.schemas.security import CacheStats, SecurityStats, StatsResponse
from app.utils.ttl_cache import TTLCache

router = APIRouter(prefix="/api/security", tags=["Security"])


@router.get("/stats", response_model=StatsResponse)
def security_stats(
    limiter: AbstractRateLimiter = Depends(get_rate_limiter),
    cache: TTLCache = Depends(get_cache),
) -> StatsResponse:
    """Operational counters for the abuse guard and the shared cache."""
    return StatsResponse(
        security=SecurityStats(**limiter.get_security_stats()),
        cache=CacheStats(**cache.get_stats()),
    )
