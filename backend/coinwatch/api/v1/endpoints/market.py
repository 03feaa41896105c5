"""
Market Data API Endpoints

Coin headline data, global stats, coin search and symbol mapping.
"""

from fastapi import APIRouter, HTTPException, Query

from coinwatch.schemas.market import CoinQuote, CoinRef, GlobalMarketStats
from coinwatch.services.base import FetchError
from coinwatch.services.market_data.symbols import is_mapped, to_exchange_symbol
from coinwatch.services.overview import get_market_overview_service

router = APIRouter()


@router.get("/coins/{coin_id}", response_model=CoinQuote)
async def get_coin_quote(coin_id: str):
    """
    Price, 24h change, volume and market cap for one coin.

    Served from cache within its TTL; the last known quote is returned
    (data_source="cached") when CoinGecko is unavailable.
    """
    service = get_market_overview_service()
    try:
        return await service.get_coin_quote(coin_id)
    except FetchError as e:
        raise HTTPException(status_code=503, detail=f"Quote unavailable for {coin_id}: {e.message}")


@router.get("/global", response_model=GlobalMarketStats)
async def get_global_stats():
    """Total market cap, 24h volume and BTC dominance."""
    service = get_market_overview_service()
    try:
        return await service.get_global_stats()
    except FetchError as e:
        raise HTTPException(status_code=503, detail=f"Global stats unavailable: {e.message}")


@router.get("/search", response_model=list[CoinRef])
async def search_coins(query: str = Query(..., description="At least 3 characters")):
    """
    Search coins by name or ticker.

    Returns at most 10 matches; short queries return an empty list.
    """
    service = get_market_overview_service()
    try:
        return await service.search_coins(query)
    except FetchError as e:
        raise HTTPException(status_code=503, detail=f"Search unavailable: {e.message}")


@router.get("/symbol/{coin}")
async def get_exchange_symbol(coin: str):
    """Exchange pair used for a coin id or ticker."""
    return {
        "coin": coin,
        "symbol": to_exchange_symbol(coin),
        "mapped": is_mapped(coin),
    }
