"""Pydantic schemas for the operational stats endpoint."""

from pydantic import BaseModel, Field


class SecurityStats(BaseModel):
    active_blocks: int
    suspicious_activities_count: int
    rate_limit_store_size: int


class CacheStats(BaseModel):
    size: int
    capacity: int
    percentage: float = Field(..., description="Fill level, 100 * size / capacity.")
    hits: int
    misses: int
    evictions: int
    default_ttl_seconds: float


class StatsResponse(BaseModel):
    security: SecurityStats
    cache: CacheStats
