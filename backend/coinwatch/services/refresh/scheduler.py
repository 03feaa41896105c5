"""
Refresh Scheduler

Background loops that keep the dashboard warm:
    - sweep expired cache entries
    - refresh the selected coin's indicators and overview data
"""

import asyncio
import logging
from typing import Optional

from coinwatch.core.config import settings
from coinwatch.services.base import FetchError
from coinwatch.services.cache.expiring import ExpiringCache
from coinwatch.services.overview.service import MarketOverviewService
from coinwatch.services.refresh.orchestrator import RefreshOrchestrator
from coinwatch.services.refresh.session import SessionContext

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Usage:
        scheduler = RefreshScheduler(orchestrator, cache, session, overview)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        orchestrator: RefreshOrchestrator,
        cache: ExpiringCache,
        session: SessionContext,
        overview: Optional[MarketOverviewService] = None,
        sweep_interval: Optional[float] = None,
        refresh_interval: Optional[float] = None,
    ):
        self._orchestrator = orchestrator
        self._cache = cache
        self._session = session
        self._overview = overview
        self._sweep_interval = sweep_interval or settings.sweep_interval_seconds
        self._refresh_interval = refresh_interval or settings.selection_refresh_interval_seconds

        self._tasks: list[asyncio.Task] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> bool:
        """Start the background loops."""
        if self._running:
            logger.warning("Refresh scheduler already running")
            return True

        self._running = True
        self._tasks = [
            asyncio.create_task(self._sweep_loop(), name="cache-sweep"),
            asyncio.create_task(self._refresh_loop(), name="selection-refresh"),
        ]
        logger.info(
            f"Refresh scheduler started (sweep every {self._sweep_interval}s, "
            f"refresh every {self._refresh_interval}s)"
        )
        return True

    async def stop(self) -> None:
        """Stop the background loops."""
        self._running = False

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

        logger.info("Refresh scheduler stopped")

    # ============ Loops ============

    async def _sweep_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._sweep_interval)
            try:
                self._cache.sweep()
            except Exception:
                logger.exception("Cache sweep failed")

    async def _refresh_loop(self) -> None:
        while self._running:
            try:
                await self.refresh_selection()
            except Exception:
                # One bad payload must not end the loop
                logger.exception(f"Scheduled refresh of {self._session.coin.id} failed")
            await asyncio.sleep(self._refresh_interval)

    async def refresh_selection(self) -> None:
        """Refresh indicators and overview data for the current selection."""
        symbol = self._session.exchange_symbol
        timeframe = self._session.timeframe

        bundle = await self._orchestrator.refresh_indicators(symbol, timeframe)
        logger.debug(f"Scheduled refresh of {symbol} {timeframe.value}: {bundle.data_source.value}")

        if self._overview is None:
            return

        try:
            await self._overview.get_coin_quote(self._session.coin.id)
            await self._overview.get_global_stats()
        except FetchError as e:
            logger.warning(f"Overview refresh failed: {e.message}")
