"""
Shared fixtures: candle builders, a controllable clock and fake providers.
"""

import asyncio
from typing import Optional

import pytest

from coinwatch.schemas.market import Candle, CoinRef, Series, TIMEFRAME_MS, Timeframe
from coinwatch.services.base import FetchError
from coinwatch.services.cache.expiring import ExpiringCache
from coinwatch.services.cache.storage import MemoryStorage
from coinwatch.services.market_data.coingecko_adapter import parse_coin_quote, parse_global_stats
from coinwatch.services.market_data.interface import MarketDataProvider

START_MS = 1_700_000_000_000


def make_candles(
    closes: list[float],
    timeframe: Timeframe = Timeframe.H1,
    spread: float = 1.0,
    start: int = START_MS,
) -> list[Candle]:
    step = TIMEFRAME_MS[timeframe]
    return [
        Candle(
            timestamp=start + i * step,
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=1000.0,
        )
        for i, close in enumerate(closes)
    ]


def make_series(
    closes: list[float],
    symbol: str = "BTCUSDT",
    timeframe: Timeframe = Timeframe.H1,
    spread: float = 1.0,
) -> Series:
    return Series(symbol=symbol, timeframe=timeframe, candles=make_candles(closes, timeframe, spread))


def ramp(start: float, count: int, step: float = 1.0) -> list[float]:
    return [start + i * step for i in range(count)]


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(MarketDataProvider):
    """
    Scripted kline provider.

    Set `closes` for the data returned, `error` to fail, or `gate` to hold
    every call until the event is set.
    """

    def __init__(self, closes: Optional[list[float]] = None):
        self.closes = closes if closes is not None else ramp(100.0, 100)
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.calls = 0
        self.cancelled = 0
        self.closed = False

    @property
    def name(self) -> str:
        return "FakeProvider"

    async def get_klines(self, symbol: str, interval: Timeframe, limit: int) -> list[Candle]:
        self.calls += 1
        closes = list(self.closes)
        error = self.error

        if self.gate is not None:
            try:
                await self.gate.wait()
            except asyncio.CancelledError:
                self.cancelled += 1
                raise

        if error is not None:
            raise error
        return make_candles(closes[-limit:], interval)

    async def close(self) -> None:
        self.closed = True


COIN_PAYLOAD = {
    "id": "bitcoin",
    "symbol": "btc",
    "name": "Bitcoin",
    "market_data": {
        "current_price": {"usd": 67123.45},
        "price_change_percentage_24h": -1.234,
        "total_volume": {"usd": 3.2e10},
        "market_cap": {"usd": 1.32e12},
    },
}

GLOBAL_PAYLOAD = {
    "data": {
        "total_market_cap": {"usd": 2.45e12},
        "total_volume": {"usd": 8.72e10},
        "market_cap_percentage": {"btc": 54.23},
        "market_cap_change_percentage_24h_usd": 0.8,
    }
}


class FakeCoinGecko:
    """Canned CoinGecko client; set `error` to make every call fail."""

    def __init__(self):
        self.error: Optional[Exception] = None
        self.calls = 0
        self.closed = False

    async def _call(self):
        self.calls += 1
        if self.error is not None:
            raise self.error

    async def get_coin_quote(self, coin_id):
        await self._call()
        return parse_coin_quote(COIN_PAYLOAD)

    async def get_global_stats(self):
        await self._call()
        return parse_global_stats(GLOBAL_PAYLOAD)

    async def search_coins(self, query):
        await self._call()
        return [CoinRef(id="solana", symbol="SOL", name="Solana", market_cap_rank=5)]

    async def close(self):
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def cache(storage, clock) -> ExpiringCache:
    return ExpiringCache(storage, prefix="test:", clock=clock)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def fetch_error() -> FetchError:
    return FetchError("FakeProvider", "HTTP 503 for /api/v3/klines")
