"""
Refresh Orchestrator

Decides, per (symbol, timeframe), whether to serve a cached bundle, start a
fetch + recompute, or fall back to the last known / synthetic bundle.

State per key:

    IDLE -> FETCHING -> READY      (fresh bundle computed and cached)
                     -> DEGRADED   (fetch failed or too little data)

At most one fetch is in flight per key; concurrent callers share it. A
forced refresh cancels the in-flight fetch and supersedes it. Every fetch
carries a per-key sequence number and only the latest one may write the
cache, so a slow, superseded fetch can never overwrite a newer result.
"""

import asyncio
import inspect
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

from pydantic import ValidationError

from coinwatch.core.config import settings
from coinwatch.schemas.market import DataSource, Timeframe
from coinwatch.schemas.indicators import IndicatorBundle
from coinwatch.services.base import FetchError, InsufficientDataError, StaleResultDiscarded
from coinwatch.services.cache.expiring import ExpiringCache
from coinwatch.services.indicators.service import IndicatorService, get_indicator_service
from coinwatch.services.indicators.synthetic import generate_synthetic_bundle
from coinwatch.services.market_data.series_store import SeriesStore

logger = logging.getLogger(__name__)

SERVICE_NAME = "RefreshOrchestrator"

BundleListener = Callable[[IndicatorBundle], Any]


class RefreshState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    READY = "ready"
    DEGRADED = "degraded"


@dataclass
class KeyState:
    """Bookkeeping for one (symbol, timeframe) key."""

    state: RefreshState = RefreshState.IDLE
    sequence: int = 0  # latest issued
    task: Optional[asyncio.Task] = None
    last_error: Optional[str] = None


def bundle_key(symbol: str, timeframe: Timeframe) -> str:
    return f"bundle:{symbol.upper()}:{timeframe.value}"


def last_known_key(symbol: str, timeframe: Timeframe) -> str:
    return f"bundle:last:{symbol.upper()}:{timeframe.value}"


class RefreshOrchestrator:
    """
    Usage:
        orchestrator = RefreshOrchestrator(series_store, cache)
        bundle = orchestrator.get_indicators("BTCUSDT", Timeframe.H1)       # immediate
        bundle = await orchestrator.refresh_indicators("BTCUSDT", Timeframe.H1)
    """

    def __init__(
        self,
        series_store: SeriesStore,
        cache: ExpiringCache,
        indicator_service: Optional[IndicatorService] = None,
        live_ttl: Optional[int] = None,
        last_known_ttl: Optional[int] = None,
        kline_limit: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self._store = series_store
        self._cache = cache
        self._indicators = indicator_service or get_indicator_service()
        self._live_ttl = live_ttl if live_ttl is not None else settings.live_bundle_ttl_seconds
        self._last_known_ttl = (
            last_known_ttl if last_known_ttl is not None else settings.last_known_ttl_seconds
        )
        self._kline_limit = kline_limit or settings.kline_limit
        self._rng = rng or random.Random()

        self._keys: Dict[str, KeyState] = {}
        self._listeners: list[BundleListener] = []
        self._listener_tasks: Set[asyncio.Task] = set()

    # ============ State ============

    def _key_state(self, symbol: str, timeframe: Timeframe) -> KeyState:
        return self._keys.setdefault(bundle_key(symbol, timeframe), KeyState())

    def state(self, symbol: str, timeframe: Timeframe) -> RefreshState:
        ks = self._keys.get(bundle_key(symbol, timeframe))
        return ks.state if ks else RefreshState.IDLE

    def is_fetching(self, symbol: str, timeframe: Timeframe) -> bool:
        ks = self._keys.get(bundle_key(symbol, timeframe))
        return ks is not None and ks.task is not None and not ks.task.done()

    # ============ Listeners ============

    def subscribe(self, listener: BundleListener) -> Callable[[], None]:
        """
        Register a callback for completed refreshes (live or degraded).
        Returns a function that unsubscribes it.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, bundle: IndicatorBundle) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(bundle)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._listener_tasks.add(task)
                    task.add_done_callback(self._listener_tasks.discard)
            except Exception as e:
                logger.error(f"Bundle listener failed for {bundle.symbol}: {e}")

    # ============ Cache access ============

    def _load_bundle(self, key: str) -> Optional[IndicatorBundle]:
        payload = self._cache.get(key)
        if payload is None:
            return None
        try:
            return IndicatorBundle.model_validate(payload)
        except ValidationError as e:
            logger.debug(f"Discarding unreadable bundle {key}: {e}")
            self._cache.remove(key)
            return None

    def _store_bundle(self, bundle: IndicatorBundle) -> None:
        payload = bundle.model_dump(mode="json")
        # Failures are logged by the cache; the bundle is still served
        self._cache.set(bundle_key(bundle.symbol, bundle.timeframe), payload, self._live_ttl)
        self._cache.set(last_known_key(bundle.symbol, bundle.timeframe), payload, self._last_known_ttl)

    def _fallback_bundle(self, symbol: str, timeframe: Timeframe, sequence: int = 0) -> IndicatorBundle:
        """Last known bundle tagged as cached, else a synthetic bundle."""
        last = self._load_bundle(last_known_key(symbol, timeframe))
        if last is not None:
            return last.relabel(DataSource.CACHED)

        cached_series = self._store.get_cached_series(symbol, timeframe)
        base_price = float(cached_series.closes[-1]) if cached_series else None

        logger.warning(f"No data for {symbol} {timeframe.value}, serving synthetic indicators")
        return generate_synthetic_bundle(
            symbol.upper(),
            timeframe,
            lookback=self._kline_limit,
            base_price=base_price,
            rng=self._rng,
            service=self._indicators,
            sequence=sequence,
        )

    # ============ Consumer surface ============

    def get_indicators(self, symbol: str, timeframe: Timeframe) -> IndicatorBundle:
        """
        Best bundle available right now, without fetching.

        Fresh cached bundle as stored, else the last known bundle tagged
        cached, else a synthetic bundle.
        """
        bundle = self._load_bundle(bundle_key(symbol, timeframe))
        if bundle is not None:
            return bundle
        return self._fallback_bundle(symbol, timeframe)

    async def refresh_indicators(
        self,
        symbol: str,
        timeframe: Timeframe,
        force: bool = False,
    ) -> IndicatorBundle:
        """
        Fetch, recompute and cache a bundle.

        Joins the in-flight fetch for this key unless `force` is set, in
        which case the in-flight fetch is cancelled and a new one started.
        Never raises for provider or data problems: the result is then a
        degraded bundle (data_source != "live").
        """
        ks = self._key_state(symbol, timeframe)

        if ks.task is None or ks.task.done():
            self._start(symbol, timeframe)
        elif force:
            logger.debug(f"Superseding in-flight refresh #{ks.sequence} for {symbol}")
            ks.task.cancel()
            self._start(symbol, timeframe)

        return await self._await_latest(ks)

    def get_or_refresh(self, symbol: str, timeframe: Timeframe) -> IndicatorBundle:
        """
        Stale-while-revalidate: return the best bundle now and start a
        background refresh. Listeners hear about the refreshed bundle.
        Must be called from a running event loop.
        """
        bundle = self.get_indicators(symbol, timeframe)
        self.schedule_refresh(symbol, timeframe)
        return bundle

    def schedule_refresh(self, symbol: str, timeframe: Timeframe) -> None:
        """Start a background refresh unless one is already in flight."""
        if not self.is_fetching(symbol, timeframe):
            self._start(symbol, timeframe)

    # ============ Fetch pipeline ============

    def _start(self, symbol: str, timeframe: Timeframe) -> asyncio.Task:
        ks = self._key_state(symbol, timeframe)
        ks.sequence += 1
        ks.state = RefreshState.FETCHING

        ks.task = asyncio.create_task(
            self._run(symbol, timeframe, ks.sequence),
            name=f"refresh:{symbol.upper()}:{timeframe.value}#{ks.sequence}",
        )
        return ks.task

    async def _await_latest(self, ks: KeyState) -> IndicatorBundle:
        while True:
            task = ks.task
            try:
                bundle = await asyncio.shield(task)
            except asyncio.CancelledError:
                if ks.task is not task:
                    # Superseded by a forced refresh, follow the newer one
                    continue
                raise

            if bundle is None and ks.task is not task:
                continue
            return bundle

    def _ensure_current(self, symbol: str, timeframe: Timeframe, sequence: int) -> None:
        ks = self._key_state(symbol, timeframe)
        if sequence != ks.sequence:
            raise StaleResultDiscarded(
                SERVICE_NAME, bundle_key(symbol, timeframe), sequence, ks.sequence
            )

    async def _run(self, symbol: str, timeframe: Timeframe, sequence: int) -> Optional[IndicatorBundle]:
        ks = self._key_state(symbol, timeframe)
        limit = max(self._kline_limit, self._indicators.params.max_window + 1)

        try:
            try:
                series = await self._store.fetch_series(symbol, timeframe, limit)
                self._ensure_current(symbol, timeframe, sequence)
                bundle = self._indicators.compute_bundle(series, sequence=sequence)
            except (FetchError, InsufficientDataError) as e:
                self._ensure_current(symbol, timeframe, sequence)
                return self._degrade(ks, symbol, timeframe, sequence, e)
            except StaleResultDiscarded:
                raise
            except Exception as e:
                logger.exception(f"Unexpected error refreshing {symbol} {timeframe.value}")
                self._ensure_current(symbol, timeframe, sequence)
                return self._degrade(ks, symbol, timeframe, sequence, e)
        except StaleResultDiscarded as e:
            logger.debug(f"Discarded result: {e}")
            return None

        self._store_bundle(bundle)
        ks.state = RefreshState.READY
        ks.last_error = None
        self._notify(bundle)
        return bundle

    def _degrade(
        self,
        ks: KeyState,
        symbol: str,
        timeframe: Timeframe,
        sequence: int,
        error: Exception,
    ) -> IndicatorBundle:
        logger.warning(f"Refresh degraded for {symbol} {timeframe.value}: {error}")
        ks.state = RefreshState.DEGRADED
        ks.last_error = str(error)

        bundle = self._fallback_bundle(symbol, timeframe, sequence)
        self._notify(bundle)
        return bundle

    # ============ Lifecycle ============

    async def close(self) -> None:
        """Cancel in-flight fetches and release the provider."""
        tasks = [ks.task for ks in self._keys.values() if ks.task and not ks.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._store.close()


# Singleton instance
_orchestrator: Optional[RefreshOrchestrator] = None


def get_orchestrator() -> RefreshOrchestrator:
    """Get the orchestrator singleton, wired to Binance and the shared cache."""
    global _orchestrator
    if _orchestrator is None:
        from coinwatch.services.cache.expiring import get_cache
        from coinwatch.services.market_data.binance_adapter import BinanceKlinesClient

        cache = get_cache()
        _orchestrator = RefreshOrchestrator(SeriesStore(BinanceKlinesClient(), cache), cache)
    return _orchestrator


def set_orchestrator(orchestrator: Optional[RefreshOrchestrator]) -> None:
    """Replace the singleton (startup wiring and tests)."""
    global _orchestrator
    _orchestrator = orchestrator


async def close_orchestrator() -> None:
    """Cancel in-flight work and close the provider session."""
    global _orchestrator
    if _orchestrator:
        await _orchestrator.close()
        _orchestrator = None
