"""SessionContext selection and the background RefreshScheduler."""

import asyncio
import random

from coinwatch.core.config import settings
from coinwatch.schemas.market import CoinRef, DataSource, Timeframe
from coinwatch.services.indicators import IndicatorService
from coinwatch.services.market_data import SeriesStore
from coinwatch.services.overview import MarketOverviewService
from coinwatch.services.refresh import (
    RefreshOrchestrator,
    RefreshScheduler,
    SessionContext,
    get_session,
    set_session,
)
import coinwatch.services.refresh.session as session_module

from conftest import FakeCoinGecko

ETH = CoinRef(id="ethereum", symbol="ETH", name="Ethereum")


def test_default_session_from_settings():
    session = SessionContext.from_settings()
    assert session.coin.id == "bitcoin"
    assert session.timeframe == Timeframe.H1
    assert session.exchange_symbol == "BTCUSDT"


def test_select_reports_change():
    session = SessionContext.from_settings()
    assert session.select(ETH)
    assert session.exchange_symbol == "ETHUSDT"
    assert session.timeframe == Timeframe.H1

    assert not session.select(ETH)
    assert session.select(ETH, Timeframe.H4)


def test_unmapped_coin_uses_ticker():
    session = SessionContext(coin=CoinRef(id="some-new-coin", symbol="snc", name="SNC"), timeframe=Timeframe.D1)
    assert session.exchange_symbol == "SNCUSDT"


def test_selection_survives_restart(cache):
    session = SessionContext.restore(cache)
    assert session.coin.id == "bitcoin"

    session.select(ETH, Timeframe.H4)

    restored = SessionContext.restore(cache)
    assert restored.coin == ETH
    assert restored.timeframe == Timeframe.H4
    assert restored.exchange_symbol == "ETHUSDT"


def test_saved_selection_expires(cache, clock):
    SessionContext.restore(cache).select(ETH)
    clock.advance(settings.session_ttl_seconds + 1)

    assert SessionContext.restore(cache).coin.id == "bitcoin"


def test_unreadable_saved_selection_falls_back_to_default(cache):
    cache.set(session_module.SELECTION_KEY, {"coin": "eth", "timeframe": "1h"}, ttl=60)

    session = SessionContext.restore(cache)
    assert session.coin.id == "bitcoin"
    assert cache.get(session_module.SELECTION_KEY) is None


def test_get_session_restores_from_shared_cache(monkeypatch, cache):
    SessionContext.restore(cache).select(ETH)
    monkeypatch.setattr(session_module, "get_cache", lambda: cache)
    set_session(None)

    try:
        assert get_session().coin == ETH
    finally:
        set_session(None)


def build_scheduler(provider, cache, **kwargs):
    orchestrator = RefreshOrchestrator(
        SeriesStore(provider, cache),
        cache,
        IndicatorService(),
        rng=random.Random(0),
    )
    overview = MarketOverviewService(FakeCoinGecko(), cache)
    session = SessionContext.from_settings()
    return RefreshScheduler(orchestrator, cache, session, overview, **kwargs), orchestrator, overview


async def test_refresh_selection_warms_everything(provider, cache):
    scheduler, orchestrator, overview = build_scheduler(provider, cache)

    await scheduler.refresh_selection()

    assert orchestrator.get_indicators("BTCUSDT", Timeframe.H1).data_source == DataSource.LIVE
    assert cache.get("quote:bitcoin") is not None
    assert cache.get("global") is not None


async def test_overview_failure_does_not_stop_refresh(provider, cache, fetch_error):
    scheduler, orchestrator, overview = build_scheduler(provider, cache)
    overview._client.error = fetch_error

    await scheduler.refresh_selection()
    assert orchestrator.get_indicators("BTCUSDT", Timeframe.H1).is_live


async def test_start_and_stop(provider, cache, clock):
    scheduler, orchestrator, _ = build_scheduler(
        provider, cache, sweep_interval=0.01, refresh_interval=60
    )
    cache.set("short-lived", 1, ttl=5)
    clock.advance(10)

    assert await scheduler.start()
    assert scheduler.is_running
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert not scheduler.is_running
    assert provider.calls == 1
    assert cache.storage.keys("test:short-lived") == []


async def test_refresh_loop_survives_unexpected_errors(provider, cache):
    scheduler, orchestrator, overview = build_scheduler(
        provider, cache, sweep_interval=60, refresh_interval=0.01
    )
    overview._client.error = ValueError("unexpected body")

    await scheduler.start()
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert overview._client.calls >= 2
    assert provider.calls >= 2
