"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class RateLimitPolicySettings(BaseModel):
    """Quota for one protected endpoint."""

    window_seconds: float = Field(60.0, gt=0)
    max_requests: int = Field(..., ge=1)
    message: str


def _default_rate_limits() -> dict[str, RateLimitPolicySettings]:
    return {
        "/api/crypto-data": RateLimitPolicySettings(
            max_requests=100,
            message="Too many requests to crypto data API, please slow down.",
        ),
        "/api/gemini": RateLimitPolicySettings(
            max_requests=50,
            message="Too many requests to AI service, please slow down.",
        ),
        "/api/trade": RateLimitPolicySettings(
            max_requests=10,
            message="Too many trade requests, please slow down.",
        ),
        "/api/auth": RateLimitPolicySettings(
            max_requests=5,
            message="Too many authentication attempts, please try again later.",
        ),
    }


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate log file after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field("X-Request-ID", description="Header carrying the correlation id")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """In-memory TTL cache configuration."""

    default_ttl_seconds: float = Field(
        300.0,
        description="TTL used when a caller does not pass one",
    )
    max_entries: int = Field(
        1000,
        description="Maximum number of cached entries before FIFO eviction",
        ge=1,
    )
    sweep_interval_seconds: float = Field(
        60.0,
        description="Period of the background expired-entry sweep",
        gt=0,
    )
    single_flight: bool = Field(
        True,
        description="Share one in-flight fetch between concurrent misses on the same key",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class SecuritySettings(BaseSettings):
    """Rate limiting and abuse guard configuration."""

    enabled: bool = Field(
        True,
        description="Enable per-endpoint rate limiting",
    )
    block_duration_seconds: float = Field(
        900.0,
        description="Temporary block length; also the suspicious-activity retention window",
        gt=0,
    )
    suspicious_threshold: int = Field(
        5,
        description="Suspicious events within the block window that trigger a block",
        ge=1,
    )
    sweep_interval_seconds: float = Field(
        60.0,
        description="Period of the background counter sweep",
        gt=0,
    )
    trust_forwarded_for: bool = Field(
        False,
        description="Use the first X-Forwarded-For hop as the client id",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    require_api_key: bool = Field(
        False,
        description="Require a well-formed client API key header on AI endpoints",
    )
    api_key_header: str = Field(
        "X-API-Key",
        description="Header carrying the client API key",
    )
    rate_limits: dict[str, RateLimitPolicySettings] = Field(
        default_factory=_default_rate_limits,
        description="Endpoint identifier to policy (JSON when set via env)",
    )

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        case_sensitive=False,
    )


class MarketSettings(BaseSettings):
    """Upstream market data sources and cache lifetimes."""

    coingecko_base_url: str = Field("https://api.coingecko.com/api/v3")
    news_url: str = Field("https://min-api.cryptocompare.com/data/v2/news/?lang=EN")
    timeout_seconds: float = Field(10.0, description="Upstream request timeout")
    top_coins_limit: int = Field(15, ge=1, le=250)
    news_limit: int = Field(10, ge=1)
    history_days: int = Field(30, ge=1)
    top_coins_ttl_seconds: float = Field(300.0, description="Top coins cache TTL (5 minutes)")
    news_ttl_seconds: float = Field(600.0, description="News cache TTL (10 minutes)")
    history_ttl_seconds: float = Field(1800.0, description="Coin history cache TTL (30 minutes)")
    description_ttl_seconds: float = Field(3600.0, description="Coin description cache TTL (1 hour)")

    model_config = SettingsConfigDict(
        env_prefix="MARKET_",
        case_sensitive=False,
    )


class LLMSettings(BaseSettings):
    """LLM provider configuration.

    The provider is optional: without one the analysis service serves
    simulated commentary.
    """

    provider: str | None = Field(
        None,
        description="LLM provider name (e.g., openai)",
    )
    model: str = Field(
        "gpt-4o-mini",
        description="Model name",
    )
    api_key: str | None = Field(
        None,
        description="API key for cloud providers (required for OpenAI)",
    )
    base_url: str | None = Field(
        None,
        description="Custom OpenAI-compatible API endpoint",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )
    analysis_ttl_seconds: float = Field(
        900.0,
        description="Cache TTL for generated commentary",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


def _build_log_settings() -> LogSettings:
    return LogSettings()  # type: ignore[call-arg]


def _build_cache_settings() -> CacheSettings:
    return CacheSettings()  # type: ignore[call-arg]


def _build_security_settings() -> SecuritySettings:
    return SecuritySettings()  # type: ignore[call-arg]


def _build_market_settings() -> MarketSettings:
    return MarketSettings()  # type: ignore[call-arg]


def _build_llm_settings() -> LLMSettings:
    """Build LLM settings from environment.

    Static type checkers often treat BaseSettings fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return LLMSettings()  # type: ignore[call-arg]


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=_build_log_settings)
    cache: CacheSettings = Field(default_factory=_build_cache_settings)
    security: SecuritySettings = Field(default_factory=_build_security_settings)
    market: MarketSettings = Field(default_factory=_build_market_settings)
    llm: LLMSettings = Field(default_factory=_build_llm_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
