"""
Indicator Engine Service

CONTRACT:
    Input:  Series (normalized OHLCV candles)
    Output: IndicatorBundle

RESPONSIBILITIES:
    - Calculate all technical indicators (RSI, MACD, SMA, EMA, Stochastic,
      Williams %R, Bollinger position, ATR, CCI, ADX)
    - Apply the short-series policy per indicator
    - Derive status labels and display formatting
    - Produce tagged synthetic bundles for fallback

PURE PYTHON - Uses NumPy for calculations.
All math is deterministic and reproducible.
"""

from coinwatch.services.indicators.interface import IndicatorServiceInterface
from coinwatch.services.indicators.service import (
    IndicatorParams,
    IndicatorService,
    get_indicator_service,
)
from coinwatch.services.indicators.synthetic import (
    generate_synthetic_bundle,
    generate_synthetic_series,
)

__all__ = [
    "IndicatorServiceInterface",
    "IndicatorParams",
    "IndicatorService",
    "get_indicator_service",
    "generate_synthetic_bundle",
    "generate_synthetic_series",
]
