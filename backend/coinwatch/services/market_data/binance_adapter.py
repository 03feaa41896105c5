"""
Binance Spot Klines Adapter

Thin async client for the public klines endpoint:

    GET https://api.binance.com/api/v3/klines
        ?symbol=BTCUSDT&interval=1h&limit=100

Each row is [open_time, open, high, low, close, volume, close_time, ...]
with prices as strings.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from coinwatch.core.config import settings
from coinwatch.schemas.market import Candle, Timeframe
from coinwatch.services.base import FetchError
from coinwatch.services.market_data.interface import MarketDataProvider

logger = logging.getLogger(__name__)

KLINES_ENDPOINT = "/api/v3/klines"
MAX_LIMIT = 1000

# Binance interval mapping
INTERVAL_MAP = {
    Timeframe.M1: "1m",
    Timeframe.M5: "5m",
    Timeframe.M15: "15m",
    Timeframe.H1: "1h",
    Timeframe.H4: "4h",
    Timeframe.D1: "1d",
    Timeframe.W1: "1w",
}

PROVIDER_NAME = "BinanceKlines"


def parse_klines(payload: Any) -> list[Candle]:
    """
    Convert a raw klines payload to candles.

    Raises:
        FetchError: If the payload is not a list of well-formed rows
    """
    if not isinstance(payload, list):
        raise FetchError(PROVIDER_NAME, f"unexpected klines payload: {type(payload).__name__}")

    candles = []
    for row in payload:
        try:
            candles.append(
                Candle(
                    timestamp=int(row[0]),
                    open=float(row[1]),
                    high=float(row[2]),
                    low=float(row[3]),
                    close=float(row[4]),
                    volume=float(row[5]),
                )
            )
        except (IndexError, KeyError, TypeError, ValueError) as e:
            # pydantic's ValidationError is a ValueError
            raise FetchError(PROVIDER_NAME, f"malformed kline row {row!r}", cause=e) from e

    return candles


class BinanceKlinesClient(MarketDataProvider):
    """
    Fetches OHLCV klines from the Binance spot REST API.

    A single aiohttp session is reused across calls; call close() on shutdown.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self._base_url = (base_url or settings.binance_base_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={"Accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def get_klines(self, symbol: str, interval: Timeframe, limit: int) -> list[Candle]:
        """Fetch the most recent `limit` klines for a symbol."""
        params = {
            "symbol": symbol.upper(),
            "interval": INTERVAL_MAP[interval],
            "limit": max(1, min(limit, MAX_LIMIT)),
        }

        try:
            session = await self._ensure_session()
            async with session.get(self._base_url + KLINES_ENDPOINT, params=params) as resp:
                if resp.status != 200:
                    error = await resp.text()
                    raise FetchError(
                        self.name,
                        f"HTTP {resp.status} for {symbol} {interval.value}",
                        details={"status": resp.status, "body": error[:200]},
                    )
                payload = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise FetchError(self.name, f"request failed for {symbol}: {e}", cause=e) from e

        candles = parse_klines(payload)
        logger.debug(f"Fetched {len(candles)} klines for {symbol} {interval.value}")
        return candles
