"""
CoinGecko Data Adapter

Coin headline data, global market aggregates and coin search from the
public CoinGecko v3 API.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

import aiohttp

from coinwatch.core.config import settings
from coinwatch.schemas.market import CoinQuote, CoinRef, GlobalMarketStats
from coinwatch.services.base import FetchError
from coinwatch.utils.formatting import format_change, format_large_number, format_number

logger = logging.getLogger(__name__)

PROVIDER_NAME = "CoinGecko"
MAX_SEARCH_RESULTS = 10


def _require_object(payload: Any, what: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise FetchError(PROVIDER_NAME, f"unexpected {what} payload: {type(payload).__name__}")
    return payload


def parse_coin_quote(payload: dict[str, Any]) -> CoinQuote:
    """Build a CoinQuote from a /coins/{id} response."""
    payload = _require_object(payload, "coin")
    market_data = payload.get("market_data")
    if not market_data or not isinstance(market_data, dict):
        raise FetchError(PROVIDER_NAME, f"no market data for {payload.get('id')}")

    try:
        price = float(market_data["current_price"]["usd"])
    except (KeyError, TypeError, ValueError) as e:
        raise FetchError(PROVIDER_NAME, f"no USD price for {payload.get('id')}", cause=e) from e

    change = market_data.get("price_change_percentage_24h")
    volume = (market_data.get("total_volume") or {}).get("usd")
    market_cap = (market_data.get("market_cap") or {}).get("usd")

    return CoinQuote(
        coin_id=payload.get("id", ""),
        symbol=str(payload.get("symbol", "")).upper(),
        name=payload.get("name", ""),
        price_usd=price,
        change_24h_percent=change,
        volume_24h_usd=volume,
        market_cap_usd=market_cap,
        price_display=f"${format_number(price)}",
        change_display=format_change(change),
        volume_display=f"${format_large_number(volume)}" if volume is not None else None,
        market_cap_display=f"${format_large_number(market_cap)}" if market_cap is not None else None,
        fetched_at=datetime.now(),
    )


def parse_global_stats(payload: dict[str, Any]) -> GlobalMarketStats:
    """Build GlobalMarketStats from a /global response."""
    payload = _require_object(payload, "global stats")
    data = payload.get("data") or {}
    try:
        total_cap = float(data["total_market_cap"]["usd"])
        total_volume = float(data["total_volume"]["usd"])
        btc_dominance = float(data["market_cap_percentage"]["btc"])
    except (KeyError, TypeError, ValueError) as e:
        raise FetchError(PROVIDER_NAME, "malformed global stats payload", cause=e) from e

    return GlobalMarketStats(
        total_market_cap_usd=total_cap,
        total_volume_24h_usd=total_volume,
        btc_dominance_percent=btc_dominance,
        market_cap_change_24h_percent=data.get("market_cap_change_percentage_24h_usd"),
        total_market_cap_display=f"${format_large_number(total_cap)}",
        total_volume_display=f"${format_large_number(total_volume)}",
        btc_dominance_display=f"{btc_dominance:.1f}%",
        fetched_at=datetime.now(),
    )


def parse_search_results(payload: dict[str, Any]) -> list[CoinRef]:
    """Top coins from a /search response."""
    coins = _require_object(payload, "search").get("coins") or []
    if not isinstance(coins, list):
        raise FetchError(PROVIDER_NAME, "malformed search payload")
    return [
        CoinRef(
            id=coin["id"],
            symbol=str(coin.get("symbol", "")).upper(),
            name=coin.get("name", coin["id"]),
            market_cap_rank=coin.get("market_cap_rank"),
        )
        for coin in coins[:MAX_SEARCH_RESULTS]
        if coin.get("id")
    ]


class CoinGeckoClient:
    """
    CoinGecko v3 client wrapper.

    A single aiohttp session is reused across calls; call close() on shutdown.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self._base_url = (base_url or settings.coingecko_base_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            headers = {"Accept": "application/json"}
            if settings.coingecko_api_key:
                headers["x-cg-demo-api-key"] = settings.coingecko_api_key
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=headers,
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_json(self, path: str, params: Optional[dict] = None) -> dict[str, Any]:
        try:
            session = await self._ensure_session()
            async with session.get(f"{self._base_url}{path}", params=params) as resp:
                if resp.status != 200:
                    error = await resp.text()
                    raise FetchError(
                        self.name,
                        f"HTTP {resp.status} for {path}",
                        details={"status": resp.status, "body": error[:200]},
                    )
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise FetchError(self.name, f"request failed for {path}: {e}", cause=e) from e

    async def get_coin_quote(self, coin_id: str) -> CoinQuote:
        """Headline market data for one coin."""
        payload = await self._get_json(
            f"/coins/{coin_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "market_data": "true",
                "community_data": "false",
                "developer_data": "false",
            },
        )
        return parse_coin_quote(payload)

    async def get_global_stats(self) -> GlobalMarketStats:
        """Total market cap, volume and BTC dominance."""
        return parse_global_stats(await self._get_json("/global"))

    async def search_coins(self, query: str) -> list[CoinRef]:
        """Coins matching a free-text query."""
        return parse_search_results(await self._get_json("/search", params={"query": query}))
