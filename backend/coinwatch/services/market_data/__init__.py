"""
Market Data Service

CONTRACT:
    Input:  (symbol, timeframe, limit)
    Output: Series

RESPONSIBILITIES:
    - Fetch klines from Binance
    - Fetch coin quotes, global stats and search results from CoinGecko
    - Map coin ids to exchange pairs
    - Normalize candles and cache the latest series
"""

from coinwatch.services.market_data.interface import MarketDataProvider
from coinwatch.services.market_data.binance_adapter import BinanceKlinesClient, parse_klines
from coinwatch.services.market_data.coingecko_adapter import CoinGeckoClient
from coinwatch.services.market_data.series_store import SeriesStore, normalize_series
from coinwatch.services.market_data.symbols import to_exchange_symbol

__all__ = [
    "MarketDataProvider",
    "BinanceKlinesClient",
    "parse_klines",
    "CoinGeckoClient",
    "SeriesStore",
    "normalize_series",
    "to_exchange_symbol",
]
