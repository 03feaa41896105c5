"""
Market Overview Service

Coin headline data, global market stats and coin search, cached in the
shared expiring cache. When CoinGecko is unreachable the last known value
is served, tagged as cached.
"""

import logging
from typing import Optional, TypeVar

from pydantic import BaseModel, ValidationError

from coinwatch.core.config import settings
from coinwatch.schemas.market import CoinQuote, CoinRef, DataSource, GlobalMarketStats
from coinwatch.services.base import FetchError
from coinwatch.services.cache.expiring import ExpiringCache, get_cache
from coinwatch.services.market_data.coingecko_adapter import CoinGeckoClient

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

MIN_QUERY_LENGTH = 3


class MarketOverviewService:
    """
    Usage:
        overview = MarketOverviewService(CoinGeckoClient(), cache)
        quote = await overview.get_coin_quote("bitcoin")
        stats = await overview.get_global_stats()
        coins = await overview.search_coins("sol")
    """

    def __init__(
        self,
        client: CoinGeckoClient,
        cache: ExpiringCache,
        ttl: Optional[int] = None,
        last_known_ttl: Optional[int] = None,
    ):
        self._client = client
        self._cache = cache
        self._ttl = ttl if ttl is not None else settings.market_overview_ttl_seconds
        self._last_known_ttl = (
            last_known_ttl if last_known_ttl is not None else settings.last_known_ttl_seconds
        )

    @property
    def name(self) -> str:
        return "MarketOverviewService"

    # ============ Cache helpers ============

    def _load(self, key: str, model: type[ModelT]) -> Optional[ModelT]:
        payload = self._cache.get(key)
        if payload is None:
            return None
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.debug(f"Discarding unreadable cache entry {key}: {e}")
            self._cache.remove(key)
            return None

    def _store(self, key: str, value: BaseModel) -> None:
        payload = value.model_dump(mode="json")
        self._cache.set(key, payload, self._ttl)
        self._cache.set(f"{key}:last", payload, self._last_known_ttl)

    def _last_known(self, key: str, model: type[ModelT], error: FetchError) -> ModelT:
        last = self._load(f"{key}:last", model)
        if last is None:
            raise error
        logger.warning(f"{error.message}; serving last known {key}")
        return last.model_copy(update={"data_source": DataSource.CACHED})

    # ============ Operations ============

    async def get_coin_quote(self, coin_id: str) -> CoinQuote:
        """
        Headline data for one coin.

        Raises:
            FetchError: Provider failed and nothing was ever cached
        """
        key = f"quote:{coin_id.lower()}"
        cached = self._load(key, CoinQuote)
        if cached is not None:
            return cached

        try:
            quote = await self._client.get_coin_quote(coin_id.lower())
        except FetchError as e:
            return self._last_known(key, CoinQuote, e)

        self._store(key, quote)
        return quote

    async def get_global_stats(self) -> GlobalMarketStats:
        """
        Market-wide aggregates.

        Raises:
            FetchError: Provider failed and nothing was ever cached
        """
        key = "global"
        cached = self._load(key, GlobalMarketStats)
        if cached is not None:
            return cached

        try:
            stats = await self._client.get_global_stats()
        except FetchError as e:
            return self._last_known(key, GlobalMarketStats, e)

        self._store(key, stats)
        return stats

    async def search_coins(self, query: str) -> list[CoinRef]:
        """
        Coins matching a query. Queries shorter than three characters
        return nothing without calling the provider.
        """
        query = query.strip().lower()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        key = f"search:{query}"
        payload = self._cache.get(key)
        if payload is not None:
            return [CoinRef.model_validate(item) for item in payload]

        coins = await self._client.search_coins(query)
        self._cache.set(key, [c.model_dump(mode="json") for c in coins], self._ttl)
        return coins

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        await self._client.close()


# Singleton instance
_service_instance: Optional[MarketOverviewService] = None


def get_market_overview_service() -> MarketOverviewService:
    """Get the market overview service singleton."""
    global _service_instance
    if _service_instance is None:
        _service_instance = MarketOverviewService(CoinGeckoClient(), get_cache())
    return _service_instance


def set_market_overview_service(service: Optional[MarketOverviewService]) -> None:
    global _service_instance
    _service_instance = service


async def close_market_overview_service() -> None:
    global _service_instance
    if _service_instance:
        await _service_instance.close()
        _service_instance = None
