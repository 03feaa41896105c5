"""
Session Context

The coin and timeframe the dashboard is currently looking at. Owned by the
application and passed to whoever needs it; there is no global mutable
selection outside this object.

With a cache attached, every change is persisted under `session:selection`
and restored on the next start.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from coinwatch.core.config import settings
from coinwatch.schemas.market import CoinRef, Timeframe
from coinwatch.services.cache.expiring import ExpiringCache, get_cache
from coinwatch.services.market_data.symbols import is_mapped, to_exchange_symbol

logger = logging.getLogger(__name__)

SELECTION_KEY = "session:selection"


@dataclass
class SessionContext:
    coin: CoinRef
    timeframe: Timeframe
    selected_at: datetime = field(default_factory=datetime.now)
    cache: Optional[ExpiringCache] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_settings(cls, cache: Optional[ExpiringCache] = None) -> "SessionContext":
        return cls(
            coin=CoinRef(
                id=settings.default_coin_id,
                symbol=settings.default_coin_symbol,
                name=settings.default_coin_name,
            ),
            timeframe=Timeframe(settings.default_timeframe),
            cache=cache,
        )

    @classmethod
    def restore(cls, cache: ExpiringCache) -> "SessionContext":
        """Last persisted selection, or the configured default."""
        saved = cache.get(SELECTION_KEY)
        if saved is None:
            return cls.from_settings(cache)

        try:
            session = cls(
                coin=CoinRef.model_validate(saved["coin"]),
                timeframe=Timeframe(saved["timeframe"]),
                selected_at=datetime.fromisoformat(saved["selected_at"]),
                cache=cache,
            )
        except (KeyError, TypeError, ValueError) as e:
            # pydantic's ValidationError is a ValueError
            logger.warning(f"Ignoring unreadable saved selection: {e}")
            cache.remove(SELECTION_KEY)
            return cls.from_settings(cache)

        logger.info(f"Restored selection {session.coin.symbol} on {session.timeframe.value}")
        return session

    @property
    def exchange_symbol(self) -> str:
        """Exchange pair for the selected coin, e.g. "BTCUSDT"."""
        if is_mapped(self.coin.id):
            return to_exchange_symbol(self.coin.id)
        return to_exchange_symbol(self.coin.symbol)

    def to_dict(self) -> dict[str, Any]:
        return {
            "coin": self.coin.model_dump(mode="json"),
            "timeframe": self.timeframe.value,
            "selected_at": self.selected_at.isoformat(),
        }

    def select(self, coin: CoinRef, timeframe: Optional[Timeframe] = None) -> bool:
        """
        Change the selection. Returns True when the (coin, timeframe) pair
        actually changed.
        """
        timeframe = timeframe or self.timeframe
        changed = coin.id != self.coin.id or timeframe != self.timeframe

        self.coin = coin
        self.timeframe = timeframe
        if changed:
            self.selected_at = datetime.now()
            logger.info(f"Selected {coin.symbol} ({coin.id}) on {timeframe.value}")
            self.save()
        return changed

    def save(self) -> bool:
        """Persist the selection. False when no cache is attached or the write failed."""
        if self.cache is None:
            return False
        return self.cache.set(SELECTION_KEY, self.to_dict(), settings.session_ttl_seconds)


# Singleton instance
_session: Optional[SessionContext] = None


def get_session() -> SessionContext:
    """Get the session singleton, restored from the shared cache when possible."""
    global _session
    if _session is None:
        _session = SessionContext.restore(get_cache())
    return _session


def set_session(session: Optional[SessionContext]) -> None:
    global _session
    _session = session
