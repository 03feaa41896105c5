"""HTTP API over fake providers."""

import random

import pytest
from fastapi.testclient import TestClient

from coinwatch.core.config import settings
from coinwatch.main import app
from coinwatch.services.base import FetchError
from coinwatch.services.indicators import IndicatorService
from coinwatch.services.market_data import SeriesStore
from coinwatch.services.overview import MarketOverviewService, set_market_overview_service
from coinwatch.services.refresh import RefreshOrchestrator, set_orchestrator, set_session

from conftest import FakeCoinGecko


@pytest.fixture
def coingecko():
    return FakeCoinGecko()


@pytest.fixture
def client(monkeypatch, provider, cache, coingecko):
    monkeypatch.setattr(settings, "enable_scheduler", False)

    set_orchestrator(
        RefreshOrchestrator(SeriesStore(provider, cache), cache, IndicatorService(), rng=random.Random(0))
    )
    set_market_overview_service(MarketOverviewService(coingecko, cache))
    set_session(None)

    with TestClient(app) as test_client:
        yield test_client

    set_orchestrator(None)
    set_market_overview_service(None)
    set_session(None)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_refresh_returns_live_bundle(client):
    response = client.post("/api/v1/indicators/bitcoin/refresh", params={"timeframe": "1h"})
    assert response.status_code == 200

    body = response.json()
    assert body["symbol"] == "BTCUSDT"
    assert body["data_source"] == "live"
    assert body["data_point_count"] == 100
    assert set(body["indicators"]) >= {"rsi", "macd", "bollinger", "adx"}


def test_get_serves_cached_bundle_after_refresh(client):
    client.post("/api/v1/indicators/BTCUSDT/refresh")
    body = client.get("/api/v1/indicators/btc").json()
    assert body["data_source"] == "live"
    assert body["sequence"] == 1


def test_get_without_history_is_synthetic(client, provider, fetch_error):
    provider.error = fetch_error
    body = client.get("/api/v1/indicators/ethereum", params={"timeframe": "4h"}).json()
    assert body["symbol"] == "ETHUSDT"
    assert body["data_source"] == "synthetic"


def test_provider_failure_is_not_an_http_error(client, provider, fetch_error):
    provider.error = fetch_error
    response = client.post("/api/v1/indicators/bitcoin/refresh", params={"force": "true"})
    assert response.status_code == 200
    assert response.json()["data_source"] == "synthetic"


def test_unknown_timeframe_is_rejected(client):
    response = client.get("/api/v1/indicators/bitcoin", params={"timeframe": "3h"})
    assert response.status_code == 422


def test_refresh_status(client):
    client.post("/api/v1/indicators/bitcoin/refresh")
    body = client.get("/api/v1/indicators/bitcoin/status").json()
    assert body == {"symbol": "BTCUSDT", "timeframe": "1h", "state": "ready", "fetching": False}


def test_coin_quote(client):
    body = client.get("/api/v1/market/coins/bitcoin").json()
    assert body["price_display"] == "$67,123.45"
    assert body["data_source"] == "live"


def test_coin_quote_unavailable(client, coingecko):
    coingecko.error = FetchError("CoinGecko", "HTTP 500 for /coins/bitcoin")
    assert client.get("/api/v1/market/coins/bitcoin").status_code == 503


def test_global_stats(client):
    body = client.get("/api/v1/market/global").json()
    assert body["btc_dominance_display"] == "54.2%"


def test_search(client):
    assert client.get("/api/v1/market/search", params={"query": "so"}).json() == []
    results = client.get("/api/v1/market/search", params={"query": "sol"}).json()
    assert results[0]["id"] == "solana"


def test_symbol_mapping(client):
    assert client.get("/api/v1/market/symbol/ethereum").json() == {
        "coin": "ethereum",
        "symbol": "ETHUSDT",
        "mapped": True,
    }


def test_session_selection(client):
    body = client.get("/api/v1/session").json()
    assert body["coin"]["id"] == "bitcoin"
    assert body["exchange_symbol"] == "BTCUSDT"

    response = client.post(
        "/api/v1/session/select",
        json={"coin": {"id": "solana", "symbol": "SOL", "name": "Solana"}, "timeframe": "15m"},
    )
    body = response.json()
    assert body["changed"] is True
    assert body["exchange_symbol"] == "SOLUSDT"
    assert body["timeframe"] == "15m"

    assert client.get("/api/v1/session").json()["coin"]["id"] == "solana"
