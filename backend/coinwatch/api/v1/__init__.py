"""
API v1 Router

All API endpoints for the dashboard.
"""

from fastapi import APIRouter

from coinwatch.api.v1.endpoints import indicators, market, session

router = APIRouter()

# Include all endpoint routers
router.include_router(market.router, prefix="/market", tags=["Market Data"])
router.include_router(indicators.router, prefix="/indicators", tags=["Indicators"])
router.include_router(session.router, prefix="/session", tags=["Session"])
