"""
Indicator Engine Service Implementation

Turns a normalized Series into an IndicatorBundle: runs every calculation,
applies the degenerate-input policy, derives status labels and formats the
display values. Pure Python/NumPy calculations, no I/O.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import numpy as np

from coinwatch.schemas.market import DataSource, Series
from coinwatch.schemas.indicators import (
    BollingerPosition,
    IndicatorBundle,
    IndicatorName,
    IndicatorResult,
    IndicatorStatus,
)
from coinwatch.services.base import InsufficientDataError
from coinwatch.services.indicators.interface import IndicatorServiceInterface
from coinwatch.services.indicators.calculations import (
    sma,
    ema,
    rsi,
    macd,
    stochastic,
    williams_r,
    bollinger_bands,
    atr,
    cci,
    adx,
    get_last_valid,
)

logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M:%S"

# Neutral defaults reported when a window is not filled
NEUTRAL_RSI = 50.0
NEUTRAL_STOCHASTIC = 50.0
NEUTRAL_WILLIAMS_R = -50.0
NEUTRAL_CCI = 0.0
NEUTRAL_ADX = 25.0


@dataclass(frozen=True)
class IndicatorParams:
    """Windows and thresholds for the indicator set."""

    rsi_period: int = 14
    sma_period: int = 20
    ema_period: int = 50
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    stochastic_period: int = 14
    williams_period: int = 14
    bollinger_period: int = 20
    bollinger_std: float = 2.0
    atr_period: int = 14
    cci_period: int = 20
    adx_period: int = 14

    def min_lengths(self) -> dict[str, int]:
        """Candles each indicator needs for a full (non-fallback) value."""
        return {
            IndicatorName.RSI.value: self.rsi_period + 1,
            IndicatorName.SMA.value: self.sma_period,
            IndicatorName.EMA.value: self.ema_period,
            IndicatorName.MACD.value: self.macd_slow + self.macd_signal,
            IndicatorName.STOCHASTIC.value: self.stochastic_period,
            IndicatorName.WILLIAMS_R.value: self.williams_period,
            IndicatorName.BOLLINGER.value: self.bollinger_period,
            IndicatorName.ATR.value: self.atr_period + 1,
            IndicatorName.CCI.value: self.cci_period,
            IndicatorName.ADX.value: 2 * self.adx_period,
        }

    @property
    def max_window(self) -> int:
        """History needed for every indicator to compute."""
        return max(self.min_lengths().values())

    @property
    def min_length(self) -> int:
        """Below this no indicator computes and the series is unusable."""
        return min(self.min_lengths().values())


# =============================================================================
# STATUS LABELS
# =============================================================================


def oscillator_status(value: float, upper: float, lower: float) -> IndicatorStatus:
    """Overbought above `upper`, oversold below `lower`."""
    if value > upper:
        return IndicatorStatus.OVERBOUGHT
    if value < lower:
        return IndicatorStatus.OVERSOLD
    return IndicatorStatus.NEUTRAL


def average_status(price: float, average: float) -> IndicatorStatus:
    if price > average:
        return IndicatorStatus.ABOVE_AVERAGE
    if price < average:
        return IndicatorStatus.BELOW_AVERAGE
    return IndicatorStatus.NEUTRAL


def adx_status(value: float) -> IndicatorStatus:
    if value > 50:
        return IndicatorStatus.STRONG_TREND
    if value < 20:
        return IndicatorStatus.WEAK_TREND
    return IndicatorStatus.MODERATE_TREND


def atr_status(atr_percent: float) -> IndicatorStatus:
    if atr_percent > 3:
        return IndicatorStatus.HIGH_VOLATILITY
    if atr_percent < 1:
        return IndicatorStatus.LOW_VOLATILITY
    return IndicatorStatus.NORMAL_VOLATILITY


def macd_status(histogram: float) -> IndicatorStatus:
    if histogram > 0:
        return IndicatorStatus.BULLISH
    if histogram < 0:
        return IndicatorStatus.BEARISH
    return IndicatorStatus.NEUTRAL


BOLLINGER_STATUS = {
    BollingerPosition.ABOVE_UPPER: IndicatorStatus.OVERBOUGHT,
    BollingerPosition.BELOW_LOWER: IndicatorStatus.OVERSOLD,
    BollingerPosition.INSIDE: IndicatorStatus.NEUTRAL,
}


def classify_bollinger(close: float, upper: float, lower: float) -> BollingerPosition:
    if close > upper:
        return BollingerPosition.ABOVE_UPPER
    if close < lower:
        return BollingerPosition.BELOW_LOWER
    return BollingerPosition.INSIDE


# =============================================================================
# SERVICE
# =============================================================================


class IndicatorService(IndicatorServiceInterface):
    """
    Indicator Engine Service.

    Calculates technical indicators for one series.
    Each indicator is evaluated independently: a short series degrades the
    indicators whose window is not filled and leaves the others intact.
    """

    def __init__(self, params: Optional[IndicatorParams] = None):
        self.params = params or IndicatorParams()

    @property
    def name(self) -> str:
        return "IndicatorService"

    async def execute(self, input_data: Series) -> IndicatorBundle:
        """Calculate the bundle for a series."""
        return self.compute_bundle(input_data)

    def compute_bundle(
        self,
        series: Series,
        sequence: int = 0,
        data_source: DataSource = DataSource.LIVE,
        computed_at: Optional[datetime] = None,
    ) -> IndicatorBundle:
        """Calculate all indicators for a series."""
        if len(series) < self.params.min_length:
            raise InsufficientDataError(self.name, self.params.min_length, len(series))

        computed_at = computed_at or datetime.now()
        stamp = computed_at.strftime(TIME_FORMAT)

        closes = series.closes
        highs = series.highs
        lows = series.lows

        builders: dict[str, Callable[[], IndicatorResult]] = {
            IndicatorName.RSI.value: lambda: self._rsi(closes, stamp),
            IndicatorName.MACD.value: lambda: self._macd(closes, stamp),
            IndicatorName.SMA.value: lambda: self._sma(closes, stamp),
            IndicatorName.EMA.value: lambda: self._ema(closes, stamp),
            IndicatorName.STOCHASTIC.value: lambda: self._stochastic(highs, lows, closes, stamp),
            IndicatorName.WILLIAMS_R.value: lambda: self._williams_r(highs, lows, closes, stamp),
            IndicatorName.BOLLINGER.value: lambda: self._bollinger(closes, stamp),
            IndicatorName.ATR.value: lambda: self._atr(highs, lows, closes, stamp),
            IndicatorName.CCI.value: lambda: self._cci(highs, lows, closes, stamp),
            IndicatorName.ADX.value: lambda: self._adx(highs, lows, closes, stamp),
        }

        indicators = {name: build() for name, build in builders.items()}

        logger.debug(
            f"Computed {len(indicators)} indicators for {series.symbol} "
            f"{series.timeframe.value} over {len(series)} candles"
        )

        return IndicatorBundle(
            symbol=series.symbol,
            timeframe=series.timeframe,
            computed_at=computed_at,
            data_point_count=len(series),
            indicators=indicators,
            data_source=data_source,
            sequence=sequence,
        )

    # -------------------------------------------------------------------------
    # Per-indicator builders
    # -------------------------------------------------------------------------

    @staticmethod
    def _insufficient(value: str, stamp: str, raw: Optional[float] = None) -> IndicatorResult:
        return IndicatorResult(
            value=value,
            status=IndicatorStatus.INSUFFICIENT_DATA.value,
            time=stamp,
            raw=raw,
        )

    def _rsi(self, closes: np.ndarray, stamp: str) -> IndicatorResult:
        value = get_last_valid(rsi(closes, self.params.rsi_period))
        if value is None:
            return self._insufficient(f"{NEUTRAL_RSI:.1f}", stamp, NEUTRAL_RSI)

        return IndicatorResult(
            value=f"{value:.1f}",
            status=oscillator_status(value, 70, 30).value,
            time=stamp,
            raw=value,
        )

    def _sma(self, closes: np.ndarray, stamp: str) -> IndicatorResult:
        # Shorter series: average of what's available
        value = get_last_valid(sma(closes, self.params.sma_period))
        if value is None:
            value = float(np.mean(closes))

        return IndicatorResult(
            value=f"{value:.2f}",
            status=average_status(float(closes[-1]), value).value,
            time=stamp,
            raw=value,
        )

    def _ema(self, closes: np.ndarray, stamp: str) -> IndicatorResult:
        # Shorter series: falls back to the SMA of what's available
        value = get_last_valid(ema(closes, self.params.ema_period))
        if value is None:
            value = float(np.mean(closes))

        return IndicatorResult(
            value=f"{value:.2f}",
            status=average_status(float(closes[-1]), value).value,
            time=stamp,
            raw=value,
        )

    def _macd(self, closes: np.ndarray, stamp: str) -> IndicatorResult:
        p = self.params
        macd_line, _, histogram = macd(closes, p.macd_fast, p.macd_slow, p.macd_signal)

        line_val = get_last_valid(macd_line)
        if line_val is None:
            return self._insufficient(f"{0.0:.4f}", stamp)

        # Signal line needs its own window on top of the slow EMA
        if len(closes) < p.macd_slow + p.macd_signal:
            return self._insufficient(f"{line_val:.4f}", stamp, line_val)

        hist_val = get_last_valid(histogram)
        return IndicatorResult(
            value=f"{line_val:.4f}",
            status=macd_status(hist_val).value,
            time=stamp,
            raw=line_val,
        )

    def _stochastic(
        self, highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, stamp: str
    ) -> IndicatorResult:
        k_arr, _ = stochastic(highs, lows, closes, self.params.stochastic_period)
        value = get_last_valid(k_arr)
        if value is None:
            return self._insufficient(f"{NEUTRAL_STOCHASTIC:.1f}", stamp, NEUTRAL_STOCHASTIC)

        return IndicatorResult(
            value=f"{value:.1f}",
            status=oscillator_status(value, 80, 20).value,
            time=stamp,
            raw=value,
        )

    def _williams_r(
        self, highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, stamp: str
    ) -> IndicatorResult:
        value = get_last_valid(williams_r(highs, lows, closes, self.params.williams_period))
        if value is None:
            return self._insufficient(f"{NEUTRAL_WILLIAMS_R:.1f}", stamp, NEUTRAL_WILLIAMS_R)

        return IndicatorResult(
            value=f"{value:.1f}",
            status=oscillator_status(value, -20, -80).value,
            time=stamp,
            raw=value,
        )

    def _bollinger(self, closes: np.ndarray, stamp: str) -> IndicatorResult:
        upper, _, lower, _, percent_b = bollinger_bands(
            closes, self.params.bollinger_period, self.params.bollinger_std
        )
        upper_val = get_last_valid(upper)
        lower_val = get_last_valid(lower)
        if upper_val is None or lower_val is None:
            return self._insufficient(IndicatorStatus.INSUFFICIENT_DATA.value, stamp)

        position = classify_bollinger(float(closes[-1]), upper_val, lower_val)
        pct_b = float(percent_b[-1]) if np.isfinite(percent_b[-1]) else None

        return IndicatorResult(
            value=position.value,
            status=BOLLINGER_STATUS[position].value,
            time=stamp,
            raw=pct_b,
        )

    def _atr(
        self, highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, stamp: str
    ) -> IndicatorResult:
        period = self.params.atr_period
        value = get_last_valid(atr(highs, lows, closes, period))
        if value is None:
            return self._insufficient(f"{0.0:.4f}", stamp)

        avg_price = float(np.mean(closes[-period:]))
        atr_pct = (value / avg_price) * 100 if avg_price > 0 else 0.0

        return IndicatorResult(
            value=f"{value:.4f}",
            status=atr_status(atr_pct).value,
            time=stamp,
            raw=value,
        )

    def _cci(
        self, highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, stamp: str
    ) -> IndicatorResult:
        value = get_last_valid(cci(highs, lows, closes, self.params.cci_period))
        if value is None:
            return self._insufficient(f"{NEUTRAL_CCI:.1f}", stamp, NEUTRAL_CCI)

        return IndicatorResult(
            value=f"{value:.1f}",
            status=oscillator_status(value, 100, -100).value,
            time=stamp,
            raw=value,
        )

    def _adx(
        self, highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, stamp: str
    ) -> IndicatorResult:
        adx_arr, _, _ = adx(highs, lows, closes, self.params.adx_period)
        value = get_last_valid(adx_arr)
        if value is None:
            return self._insufficient(f"{NEUTRAL_ADX:.1f}", stamp, NEUTRAL_ADX)

        return IndicatorResult(
            value=f"{value:.1f}",
            status=adx_status(value).value,
            time=stamp,
            raw=value,
        )

    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        return True


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IndicatorService()
    return _service_instance
