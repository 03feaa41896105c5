"""
Session API Endpoints

The dashboard's current coin and timeframe selection.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from coinwatch.schemas.market import CoinRef, Timeframe
from coinwatch.services.refresh import get_orchestrator, get_session

router = APIRouter()


class SelectionRequest(BaseModel):
    coin: CoinRef
    timeframe: Optional[Timeframe] = None


class SessionResponse(BaseModel):
    coin: CoinRef
    timeframe: Timeframe
    exchange_symbol: str
    selected_at: datetime
    changed: bool = False


def _session_response(changed: bool = False) -> SessionResponse:
    session = get_session()
    return SessionResponse(
        coin=session.coin,
        timeframe=session.timeframe,
        exchange_symbol=session.exchange_symbol,
        selected_at=session.selected_at,
        changed=changed,
    )


@router.get("", response_model=SessionResponse)
async def get_selection():
    """Current selection."""
    return _session_response()


@router.post("/select", response_model=SessionResponse)
async def select_coin(request: SelectionRequest):
    """
    Change the selected coin and/or timeframe.

    A new selection starts a background refresh of its indicators.
    """
    session = get_session()
    changed = session.select(request.coin, request.timeframe)

    if changed:
        get_orchestrator().schedule_refresh(session.exchange_symbol, session.timeframe)

    return _session_response(changed)
