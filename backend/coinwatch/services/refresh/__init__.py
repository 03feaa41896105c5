"""
Refresh Orchestrator

CONTRACT:
    Input:  (symbol, timeframe, force)
    Output: IndicatorBundle (live, cached or synthetic)

RESPONSIBILITIES:
    - Serve cached bundles immediately and revalidate in the background
    - At most one in-flight fetch per key, newer requests supersede older
    - Fall back to the last known or a synthetic bundle, never raise
    - Track the selected coin and keep it refreshed
"""

from coinwatch.services.refresh.orchestrator import (
    KeyState,
    RefreshOrchestrator,
    RefreshState,
    close_orchestrator,
    get_orchestrator,
    set_orchestrator,
)
from coinwatch.services.refresh.session import SessionContext, get_session, set_session
from coinwatch.services.refresh.scheduler import RefreshScheduler

__all__ = [
    "KeyState",
    "RefreshOrchestrator",
    "RefreshState",
    "close_orchestrator",
    "get_orchestrator",
    "set_orchestrator",
    "SessionContext",
    "get_session",
    "set_session",
    "RefreshScheduler",
]
