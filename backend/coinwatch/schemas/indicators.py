"""
CONTRACT 2: Indicator Engine

Input: Series (OHLCV candles for one symbol/timeframe)
Output: IndicatorBundle

This module performs ALL mathematical calculations.
Pure Python/NumPy.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from coinwatch.schemas.market import DataSource, Timeframe


# =============================================================================
# ENUMS
# =============================================================================


class IndicatorName(str, Enum):
    RSI = "rsi"
    MACD = "macd"
    SMA = "sma"
    EMA = "ema"
    STOCHASTIC = "stochastic"
    WILLIAMS_R = "williams_r"
    BOLLINGER = "bollinger"
    ATR = "atr"
    CCI = "cci"
    ADX = "adx"


class IndicatorStatus(str, Enum):
    OVERBOUGHT = "overbought"
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"
    BULLISH = "bullish"
    BEARISH = "bearish"
    ABOVE_AVERAGE = "above average"
    BELOW_AVERAGE = "below average"
    STRONG_TREND = "strong trend"
    MODERATE_TREND = "moderate"
    WEAK_TREND = "weak trend"
    HIGH_VOLATILITY = "high volatility"
    NORMAL_VOLATILITY = "normal"
    LOW_VOLATILITY = "low volatility"
    INSUFFICIENT_DATA = "insufficient data"


class BollingerPosition(str, Enum):
    ABOVE_UPPER = "above upper band"
    BELOW_LOWER = "below lower band"
    INSIDE = "inside"


# =============================================================================
# OUTPUT
# =============================================================================


class IndicatorResult(BaseModel):
    """One named indicator, formatted for display."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., description="Formatted value or categorical label")
    status: str = Field(..., description="Categorical label derived from value")
    time: str = Field(..., description="Display timestamp")
    raw: Optional[float] = Field(
        default=None,
        description="Unrounded value for downstream recomputation",
    )


class IndicatorBundle(BaseModel):
    """
    Complete indicator set for a (symbol, timeframe) key.
    Returned by: Refresh Orchestrator
    Consumed by: API / UI callbacks

    Superseded by the next successful computation, never mutated.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "symbol": "BTCUSDT",
                "timeframe": "1h",
                "computed_at": "2024-02-04T10:30:00",
                "data_point_count": 100,
                "indicators": {
                    "rsi": {"value": "62.5", "status": "neutral", "time": "10:30:00"},
                    "bollinger": {"value": "inside", "status": "neutral", "time": "10:30:00"},
                },
                "data_source": "live",
                "sequence": 3,
            }
        },
    )

    symbol: str
    timeframe: Timeframe
    computed_at: datetime
    data_point_count: int = Field(..., ge=0)
    indicators: dict[str, IndicatorResult]
    data_source: DataSource = DataSource.LIVE
    sequence: int = Field(default=0, ge=0, description="Request sequence that produced it")

    @property
    def is_live(self) -> bool:
        return self.data_source == DataSource.LIVE

    def relabel(self, data_source: DataSource) -> "IndicatorBundle":
        """Copy of this bundle tagged with another data source."""
        return self.model_copy(update={"data_source": data_source})

