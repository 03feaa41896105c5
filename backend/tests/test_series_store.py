"""SeriesStore and the Binance klines adapter."""

import pytest

from coinwatch.schemas.market import Candle, Timeframe
from coinwatch.services.base import FetchError
from coinwatch.services.market_data import SeriesStore, normalize_series, parse_klines
from coinwatch.services.market_data.binance_adapter import INTERVAL_MAP
from coinwatch.services.market_data.series_store import series_cache_key

from conftest import FakeProvider, START_MS, ramp


def kline_row(ts, o, h, l, c, v="10.0"):
    # Binance returns numbers as strings plus trailing fields
    return [ts, str(o), str(h), str(l), str(c), v, ts + 3_599_999, "0", 5, "0", "0", "0"]


def test_parse_klines():
    candles = parse_klines([kline_row(START_MS, 100, 105, 99, 104)])
    assert candles == [
        Candle(timestamp=START_MS, open=100, high=105, low=99, close=104, volume=10.0)
    ]


@pytest.mark.parametrize(
    "payload",
    [
        {"code": -1121, "msg": "Invalid symbol."},
        [["not", "enough"]],
        [kline_row(START_MS, "abc", 105, 99, 104)],
        [kline_row(START_MS, 100, 101, 99, 104)],  # high below close
        [{"open": 1, "high": 2, "low": 0.5, "close": 1.5}],
    ],
)
def test_parse_klines_malformed(payload):
    with pytest.raises(FetchError):
        parse_klines(payload)


def test_interval_map_covers_every_timeframe():
    assert set(INTERVAL_MAP) == set(Timeframe)


def test_normalize_sorts_and_dedupes_last_wins():
    a = Candle(timestamp=2000, open=1, high=2, low=0.5, close=1.5)
    b = Candle(timestamp=1000, open=1, high=2, low=0.5, close=1.0)
    b2 = Candle(timestamp=1000, open=1, high=3, low=0.5, close=2.5)

    series = normalize_series("btcusdt", Timeframe.H1, [a, b, b2])
    assert series.symbol == "BTCUSDT"
    assert [c.timestamp for c in series.candles] == [1000, 2000]
    assert series.candles[0].close == 2.5


def test_normalize_empty_is_fetch_error():
    with pytest.raises(FetchError):
        normalize_series("BTCUSDT", Timeframe.H1, [])


async def test_fetch_series_caches_latest(cache):
    provider = FakeProvider(ramp(100.0, 50))
    store = SeriesStore(provider, cache, ttl=60)

    series = await store.fetch_series("BTCUSDT", Timeframe.H1, 30)
    assert len(series) == 30
    assert series.closes[-1] == 149.0

    cached = store.get_cached_series("BTCUSDT", Timeframe.H1)
    assert cached is not None
    assert cached.candles == series.candles
    assert cache.get(series_cache_key("btcusdt", Timeframe.H1)) is not None


async def test_fetch_replaces_cached_series(cache):
    provider = FakeProvider(ramp(100.0, 50))
    store = SeriesStore(provider, cache)
    await store.fetch_series("BTCUSDT", Timeframe.H1, 30)

    provider.closes = ramp(200.0, 50)
    await store.fetch_series("BTCUSDT", Timeframe.H1, 30)
    assert store.get_cached_series("BTCUSDT", Timeframe.H1).closes[-1] == 249.0


async def test_cached_series_expires(cache, clock):
    store = SeriesStore(FakeProvider(), cache, ttl=60)
    await store.fetch_series("BTCUSDT", Timeframe.H1)
    clock.advance(61)
    assert store.get_cached_series("BTCUSDT", Timeframe.H1) is None


async def test_provider_error_propagates_and_keeps_cache(cache, fetch_error):
    provider = FakeProvider(ramp(100.0, 50))
    store = SeriesStore(provider, cache)
    await store.fetch_series("BTCUSDT", Timeframe.H1, 30)

    provider.error = fetch_error
    with pytest.raises(FetchError):
        await store.fetch_series("BTCUSDT", Timeframe.H1, 30)
    assert store.get_cached_series("BTCUSDT", Timeframe.H1) is not None


async def test_close_releases_provider():
    provider = FakeProvider()
    await SeriesStore(provider).close()
    assert provider.closed
