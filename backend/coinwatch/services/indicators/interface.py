"""
Indicator Engine Service Interface

Defines the contract for the indicator calculation layer.
"""

from abc import abstractmethod
from datetime import datetime
from typing import Optional

from coinwatch.services.base import BaseService
from coinwatch.schemas.market import DataSource, Series
from coinwatch.schemas.indicators import IndicatorBundle


class IndicatorServiceInterface(BaseService[Series, IndicatorBundle]):
    """
    Indicator Engine Service Contract.

    INPUT: Series
        - symbol, timeframe, ordered OHLCV candles

    OUTPUT: IndicatorBundle
        - one IndicatorResult per indicator name
        - data point count and computation timestamp
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    @abstractmethod
    async def execute(self, input_data: Series) -> IndicatorBundle:
        """Calculate the indicator bundle for a series."""
        pass

    @abstractmethod
    def compute_bundle(
        self,
        series: Series,
        sequence: int = 0,
        data_source: DataSource = DataSource.LIVE,
        computed_at: Optional[datetime] = None,
    ) -> IndicatorBundle:
        """
        Calculate indicators synchronously.

        Args:
            series: Normalized candles
            sequence: Request sequence number to stamp on the bundle
            data_source: Tag for the bundle (live unless synthetic)
            computed_at: Override for the computation timestamp

        Raises:
            InsufficientDataError: If no indicator window can be filled
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        pass
