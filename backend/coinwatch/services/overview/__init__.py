"""
Market Overview Service

CONTRACT:
    Input:  coin id / search query
    Output: CoinQuote, GlobalMarketStats, list[CoinRef]

RESPONSIBILITIES:
    - Headline price, change, volume and market cap for the selected coin
    - Global market cap, volume and BTC dominance
    - Coin search (top 10 matches)
    - Serve the last known value, tagged cached, when CoinGecko fails
"""

from coinwatch.services.overview.service import (
    MarketOverviewService,
    close_market_overview_service,
    get_market_overview_service,
    set_market_overview_service,
)

__all__ = [
    "MarketOverviewService",
    "close_market_overview_service",
    "get_market_overview_service",
    "set_market_overview_service",
]
