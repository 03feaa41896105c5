"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "CoinWatch Backend"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS (Frontend URL)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Market data providers
    binance_base_url: str = "https://api.binance.com"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_api_key: Optional[str] = None
    http_timeout_seconds: float = 10.0

    # Cache storage
    cache_backend: str = "memory"  # Options: memory, redis
    redis_url: str = "redis://localhost:6379"
    cache_prefix: str = "coinwatch:"
    cache_capacity_bytes: int = 5_000_000  # Same order as browser localStorage

    # Cache TTLs (seconds)
    series_ttl_seconds: int = 60
    live_bundle_ttl_seconds: int = 90
    last_known_ttl_seconds: int = 86_400
    market_overview_ttl_seconds: int = 300
    session_ttl_seconds: int = 30 * 86_400

    # Klines
    kline_limit: int = 100

    # Periodic jobs (seconds)
    sweep_interval_seconds: int = 60
    selection_refresh_interval_seconds: int = 300
    enable_scheduler: bool = True

    # Default selection
    default_coin_id: str = "bitcoin"
    default_coin_symbol: str = "BTC"
    default_coin_name: str = "Bitcoin"
    default_timeframe: str = "1h"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
