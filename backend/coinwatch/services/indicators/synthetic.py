"""
Synthetic Data Generator

Generates random-walk candles and indicator bundles used as a placeholder
when no live or cached data exists. Every bundle produced here is tagged
DataSource.SYNTHETIC so consumers render it as simulated.
"""

import random
from datetime import datetime, timedelta
from typing import Optional

from coinwatch.schemas.market import Candle, DataSource, Series, Timeframe, TIMEFRAME_MS
from coinwatch.schemas.indicators import IndicatorBundle
from coinwatch.services.indicators.service import IndicatorService, get_indicator_service


# Rough anchor prices so placeholders look plausible
SYMBOL_BASE_PRICES = {
    "BTCUSDT": 67000.0,
    "ETHUSDT": 3500.0,
    "BNBUSDT": 580.0,
    "SOLUSDT": 150.0,
    "XRPUSDT": 0.52,
    "ADAUSDT": 0.45,
    "DOGEUSDT": 0.15,
    "LTCUSDT": 80.0,
    "MATICUSDT": 0.7,
    "DOTUSDT": 7.0,
}

DEFAULT_BASE_PRICE = 100.0


def get_base_price(symbol: str) -> float:
    """Get base price for a symbol."""
    return SYMBOL_BASE_PRICES.get(symbol.upper(), DEFAULT_BASE_PRICE)


def generate_synthetic_series(
    symbol: str,
    timeframe: Timeframe,
    lookback: int = 100,
    base_price: Optional[float] = None,
    rng: Optional[random.Random] = None,
    end_time: Optional[datetime] = None,
) -> Series:
    """Generate a random-walk series ending at `end_time`."""
    rng = rng or random.Random()
    end_time = end_time or datetime.now()

    interval_ms = TIMEFRAME_MS[timeframe]
    price = base_price or get_base_price(symbol)
    volatility = price * 0.02  # 2% volatility

    start = end_time - timedelta(milliseconds=interval_ms * lookback)
    timestamp = int(start.timestamp() * 1000)

    candles = []
    for _ in range(lookback):
        # Random walk, floored so prices stay positive
        change = (rng.random() - 0.5) * volatility

        open_price = price
        close_price = max(open_price + change, price * 0.5)
        high_price = max(open_price, close_price) + rng.random() * volatility * 0.5
        low_price = max(min(open_price, close_price) - rng.random() * volatility * 0.5, 0.0)

        candles.append(
            Candle(
                timestamp=timestamp,
                open=open_price,
                high=high_price,
                low=low_price,
                close=close_price,
                volume=rng.uniform(100.0, 10_000.0),
            )
        )

        price = close_price
        timestamp += interval_ms

    return Series(symbol=symbol, timeframe=timeframe, candles=candles)


def generate_synthetic_bundle(
    symbol: str,
    timeframe: Timeframe,
    lookback: int = 100,
    base_price: Optional[float] = None,
    rng: Optional[random.Random] = None,
    service: Optional[IndicatorService] = None,
    sequence: int = 0,
) -> IndicatorBundle:
    """Indicator bundle computed over a synthetic series."""
    service = service or get_indicator_service()
    lookback = max(lookback, service.params.max_window)
    series = generate_synthetic_series(symbol, timeframe, lookback, base_price, rng)
    return service.compute_bundle(
        series,
        sequence=sequence,
        data_source=DataSource.SYNTHETIC,
    )
