"""
Indicator API Endpoints

Indicator bundles for a coin and timeframe. Provider failures never
surface as errors here: the bundle's data_source says what was served.
"""

import logging

from fastapi import APIRouter, Query
from pydantic import BaseModel

from coinwatch.schemas.market import Timeframe
from coinwatch.schemas.indicators import IndicatorBundle
from coinwatch.services.market_data.symbols import to_exchange_symbol
from coinwatch.services.refresh import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


class RefreshStatusResponse(BaseModel):
    """Refresh state of one (symbol, timeframe) key."""
    symbol: str
    timeframe: Timeframe
    state: str
    fetching: bool


@router.get("/{symbol}", response_model=IndicatorBundle)
async def get_indicators(symbol: str, timeframe: Timeframe = Timeframe.H1):
    """
    Best bundle available now.

    Accepts a coin id ("bitcoin"), ticker ("btc") or pair ("BTCUSDT").
    A background refresh is started; poll again or call /refresh to wait.
    """
    orchestrator = get_orchestrator()
    return orchestrator.get_or_refresh(to_exchange_symbol(symbol), timeframe)


@router.post("/{symbol}/refresh", response_model=IndicatorBundle)
async def refresh_indicators(
    symbol: str,
    timeframe: Timeframe = Timeframe.H1,
    force: bool = Query(default=False, description="Supersede an in-flight fetch"),
):
    """
    Fetch fresh candles and recompute.

    Joins an in-flight refresh for the same key unless force=true.
    """
    orchestrator = get_orchestrator()
    bundle = await orchestrator.refresh_indicators(to_exchange_symbol(symbol), timeframe, force=force)

    if not bundle.is_live:
        logger.info(f"Refresh for {bundle.symbol} served {bundle.data_source.value} data")
    return bundle


@router.get("/{symbol}/status", response_model=RefreshStatusResponse)
async def get_refresh_status(symbol: str, timeframe: Timeframe = Timeframe.H1):
    """Whether the key is idle, fetching, ready or degraded."""
    orchestrator = get_orchestrator()
    pair = to_exchange_symbol(symbol)
    return RefreshStatusResponse(
        symbol=pair,
        timeframe=timeframe,
        state=orchestrator.state(pair, timeframe).value,
        fetching=orchestrator.is_fetching(pair, timeframe),
    )
