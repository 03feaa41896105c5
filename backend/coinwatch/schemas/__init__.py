"""
CoinWatch Schema Contracts

This module defines all JSON contracts between system components.
These are the authoritative interfaces - all modules must conform to these schemas.
"""

from coinwatch.schemas.market import (
    Timeframe,
    DataSource,
    Candle,
    Series,
    CoinRef,
    CoinQuote,
    GlobalMarketStats,
)
from coinwatch.schemas.indicators import (
    IndicatorName,
    IndicatorStatus,
    BollingerPosition,
    IndicatorResult,
    IndicatorBundle,
)

__all__ = [
    # Market
    "Timeframe",
    "DataSource",
    "Candle",
    "Series",
    "CoinRef",
    "CoinQuote",
    "GlobalMarketStats",
    # Indicators
    "IndicatorName",
    "IndicatorStatus",
    "BollingerPosition",
    "IndicatorResult",
    "IndicatorBundle",
]
