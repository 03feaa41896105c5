"""
CONTRACT 1: Market Data

Input: (symbol, timeframe, limit) from the Refresh Orchestrator
Output: Series (ordered OHLCV candles)

Also holds the slower-moving overview models (coin quote, global stats)
fetched from CoinGecko.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class Timeframe(str, Enum):
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"


class DataSource(str, Enum):
    """Where a served value came from."""

    LIVE = "live"
    CACHED = "cached"
    SYNTHETIC = "synthetic"


# Timeframe to milliseconds
TIMEFRAME_MS = {
    Timeframe.M1: 60_000,
    Timeframe.M5: 300_000,
    Timeframe.M15: 900_000,
    Timeframe.H1: 3_600_000,
    Timeframe.H4: 14_400_000,
    Timeframe.D1: 86_400_000,
    Timeframe.W1: 604_800_000,
}


# =============================================================================
# CANDLES
# =============================================================================


class Candle(BaseModel):
    """Single OHLCV sample. Immutable once stored."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., ge=0, description="Open time, ms since epoch")
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def check_price_envelope(self):
        if self.low > min(self.open, self.close):
            raise ValueError("low must be <= open and close")
        if self.high < max(self.open, self.close):
            raise ValueError("high must be >= open and close")
        return self


class Series(BaseModel):
    """Ordered candles for one (symbol, timeframe) key."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    timeframe: Timeframe
    candles: list[Candle]
    fetched_at: datetime = Field(default_factory=datetime.now)

    @field_validator("candles")
    @classmethod
    def timestamps_strictly_increasing(cls, v):
        for prev, cur in zip(v, v[1:]):
            if cur.timestamp <= prev.timestamp:
                raise ValueError("candle timestamps must be strictly increasing")
        return v

    def __len__(self) -> int:
        return len(self.candles)

    @property
    def closes(self) -> np.ndarray:
        return np.array([c.close for c in self.candles], dtype=np.float64)

    @property
    def highs(self) -> np.ndarray:
        return np.array([c.high for c in self.candles], dtype=np.float64)

    @property
    def lows(self) -> np.ndarray:
        return np.array([c.low for c in self.candles], dtype=np.float64)

    @property
    def volumes(self) -> np.ndarray:
        return np.array([c.volume for c in self.candles], dtype=np.float64)


# =============================================================================
# OVERVIEW
# =============================================================================


class CoinRef(BaseModel):
    """A selectable coin (CoinGecko id plus ticker)."""

    id: str
    symbol: str
    name: str
    market_cap_rank: Optional[int] = None


class CoinQuote(BaseModel):
    """Headline market data for one coin."""

    coin_id: str
    symbol: str
    name: str
    price_usd: float
    change_24h_percent: Optional[float] = None
    volume_24h_usd: Optional[float] = None
    market_cap_usd: Optional[float] = None
    price_display: str
    change_display: Optional[str] = None
    volume_display: Optional[str] = None
    market_cap_display: Optional[str] = None
    fetched_at: datetime
    data_source: DataSource = DataSource.LIVE


class GlobalMarketStats(BaseModel):
    """Whole-market aggregates."""

    total_market_cap_usd: float
    total_volume_24h_usd: float
    btc_dominance_percent: float
    market_cap_change_24h_percent: Optional[float] = None
    total_market_cap_display: str
    total_volume_display: str
    btc_dominance_display: str
    fetched_at: datetime
    data_source: DataSource = DataSource.LIVE

    class Config:
        json_schema_extra = {
            "example": {
                "total_market_cap_usd": 2.45e12,
                "total_volume_24h_usd": 8.72e10,
                "btc_dominance_percent": 54.2,
                "total_market_cap_display": "$2.45T",
                "total_volume_display": "$87.20B",
                "btc_dominance_display": "54.2%",
                "fetched_at": "2024-02-04T10:30:00",
                "data_source": "live",
            }
        }
