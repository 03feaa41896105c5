"""
Series Store

Fetches klines from a provider, normalizes them into a Series and keeps the
latest series per (symbol, timeframe) in the expiring cache. Never
substitutes data: provider failures surface as FetchError.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from coinwatch.core.config import settings
from coinwatch.schemas.market import Candle, Series, Timeframe
from coinwatch.services.base import FetchError
from coinwatch.services.cache.expiring import ExpiringCache
from coinwatch.services.market_data.interface import MarketDataProvider

logger = logging.getLogger(__name__)

SERVICE_NAME = "SeriesStore"


def series_cache_key(symbol: str, timeframe: Timeframe) -> str:
    return f"series:{symbol.upper()}:{timeframe.value}"


def normalize_series(symbol: str, timeframe: Timeframe, candles: list[Candle]) -> Series:
    """
    Order candles by timestamp and drop duplicate timestamps (last wins).

    Raises:
        FetchError: If nothing usable remains
    """
    if not candles:
        raise FetchError(SERVICE_NAME, f"empty series for {symbol} {timeframe.value}")

    by_timestamp = {c.timestamp: c for c in candles}
    ordered = [by_timestamp[ts] for ts in sorted(by_timestamp)]

    if len(ordered) != len(candles):
        logger.debug(f"Dropped {len(candles) - len(ordered)} duplicate candles for {symbol}")

    try:
        return Series(symbol=symbol.upper(), timeframe=timeframe, candles=ordered)
    except ValidationError as e:
        raise FetchError(SERVICE_NAME, f"invalid series for {symbol}", cause=e) from e


class SeriesStore:
    """
    Usage:
        store = SeriesStore(BinanceKlinesClient(), cache)
        series = await store.fetch_series("BTCUSDT", Timeframe.H1, 100)
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        cache: Optional[ExpiringCache] = None,
        ttl: Optional[int] = None,
    ):
        self._provider = provider
        self._cache = cache
        self._ttl = ttl if ttl is not None else settings.series_ttl_seconds

    @property
    def provider(self) -> MarketDataProvider:
        return self._provider

    async def fetch_series(
        self,
        symbol: str,
        timeframe: Timeframe,
        limit: Optional[int] = None,
    ) -> Series:
        """
        Fetch a fresh series from the provider.

        Args:
            symbol: Exchange pair, e.g. "BTCUSDT"
            timeframe: Candle interval
            limit: Candles to request (defaults to settings.kline_limit)

        Raises:
            FetchError: On provider error or malformed payload
        """
        limit = limit or settings.kline_limit
        candles = await self._provider.get_klines(symbol, timeframe, limit)
        series = normalize_series(symbol, timeframe, candles)

        if self._cache is not None:
            # Whole series replaced on each refresh
            self._cache.set(
                series_cache_key(symbol, timeframe),
                series.model_dump(mode="json"),
                self._ttl,
            )

        logger.info(f"Fetched {len(series)} candles for {series.symbol} {timeframe.value}")
        return series

    def get_cached_series(self, symbol: str, timeframe: Timeframe) -> Optional[Series]:
        """Last fetched series, if still within its TTL."""
        if self._cache is None:
            return None

        payload = self._cache.get(series_cache_key(symbol, timeframe))
        if payload is None:
            return None

        try:
            return Series.model_validate(payload)
        except ValidationError as e:
            logger.debug(f"Discarding unreadable cached series for {symbol}: {e}")
            self._cache.remove(series_cache_key(symbol, timeframe))
            return None

    async def close(self) -> None:
        await self._provider.close()
