"""
Market Data Provider Interface

Defines the contract every kline source implements.
"""

from abc import ABC, abstractmethod

from coinwatch.schemas.market import Candle, Timeframe


class MarketDataProvider(ABC):
    """
    Kline provider contract.

    INPUT: exchange symbol (e.g. "BTCUSDT"), timeframe, candle count
    OUTPUT: list[Candle], oldest first

    Raises FetchError on network failure or malformed payloads.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging."""
        pass

    @abstractmethod
    async def get_klines(self, symbol: str, interval: Timeframe, limit: int) -> list[Candle]:
        """Fetch the most recent `limit` candles."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass
