"""
Indicator Math

NumPy implementations of the dashboard's technical indicators.
Every function takes float64 arrays and returns arrays aligned with its
input: positions without enough history hold NaN. No I/O, no rounding.
"""

from typing import Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

# Relative size below which a window spread is rounding noise
FLAT_TOLERANCE = 1e-12


def _nan_like(data: np.ndarray) -> np.ndarray:
    return np.full(len(data), np.nan)


def _windows(data: np.ndarray, period: int) -> Optional[np.ndarray]:
    """Trailing windows of `period` values, one per position from period-1 on."""
    if period <= 0 or len(data) < period:
        return None
    return sliding_window_view(data, period)


# =============================================================================
# AVERAGES
# =============================================================================


def sma(data: np.ndarray, period: int) -> np.ndarray:
    """Simple moving average over the trailing `period` values."""
    out = _nan_like(data)
    windows = _windows(data, period)
    if windows is not None:
        out[period - 1 :] = windows.mean(axis=1)
    return out


def _first_valid_index(data: np.ndarray) -> Optional[int]:
    valid = np.flatnonzero(~np.isnan(data))
    return int(valid[0]) if len(valid) > 0 else None


def _recursive_average(data: np.ndarray, period: int, alpha: float) -> np.ndarray:
    """
    prev + alpha * (x - prev), seeded with the SMA of the first `period`
    valid values. Leading NaNs (e.g. a MACD line) are skipped.
    """
    out = _nan_like(data)
    start = _first_valid_index(data)
    if start is None or len(data) - start < period:
        return out

    seed_at = start + period - 1
    prev = float(np.mean(data[start : seed_at + 1]))
    out[seed_at] = prev
    for i in range(seed_at + 1, len(data)):
        prev += alpha * (data[i] - prev)
        out[i] = prev
    return out


def ema(data: np.ndarray, period: int) -> np.ndarray:
    """Exponential moving average, k = 2 / (period + 1)."""
    return _recursive_average(data, period, 2.0 / (period + 1))


def wilder(data: np.ndarray, period: int) -> np.ndarray:
    """Wilder smoothing (RMA), k = 1 / period."""
    return _recursive_average(data, period, 1.0 / period)


# =============================================================================
# OSCILLATORS
# =============================================================================


def rsi(closes: np.ndarray, period: int = 14) -> np.ndarray:
    """
    Relative Strength Index from Wilder-smoothed gains and losses.

    A window with no losses reads 100. First value at index `period`.
    """
    out = _nan_like(closes)
    if len(closes) < period + 1:
        return out

    change = np.diff(closes)
    up = _nan_like(closes)
    down = _nan_like(closes)
    up[1:] = np.clip(change, 0.0, None)
    down[1:] = np.clip(-change, 0.0, None)

    avg_up = wilder(up, period)
    avg_down = wilder(down, period)

    with np.errstate(divide="ignore", invalid="ignore"):
        out = np.where(avg_down == 0, 100.0, 100.0 - 100.0 / (1.0 + avg_up / avg_down))
    out[np.isnan(avg_down)] = np.nan
    return out


def macd(
    closes: np.ndarray,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Fast EMA minus slow EMA, its signal EMA and the histogram between them.

    Returns: (line, signal, histogram)
    """
    line = ema(closes, fast_period) - ema(closes, slow_period)
    signal = ema(line, signal_period)
    return line, signal, line - signal


def stochastic(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    k_period: int = 14,
    d_period: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Stochastic %K and its %D (SMA of %K). A flat range reads 50.

    Returns: (k, d)
    """
    k = _nan_like(closes)
    d = _nan_like(closes)
    high_windows = _windows(highs, k_period)
    if high_windows is None:
        return k, d

    highest = high_windows.max(axis=1)
    lowest = _windows(lows, k_period).min(axis=1)
    span = highest - lowest
    last = closes[k_period - 1 :]

    with np.errstate(divide="ignore", invalid="ignore"):
        k[k_period - 1 :] = np.where(span == 0, 50.0, (last - lowest) / span * 100.0)

    d[k_period - 1 :] = sma(k[k_period - 1 :], d_period)
    return k, d


def williams_r(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14
) -> np.ndarray:
    """Williams %R on a -100..0 scale (%K - 100)."""
    k, _ = stochastic(highs, lows, closes, period)
    return k - 100.0


def cci(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 20
) -> np.ndarray:
    """
    Commodity Channel Index: (TP - SMA(TP)) / (0.015 * mean deviation).

    A window whose mean deviation is zero, up to float rounding relative to
    the window mean, reads 0.
    """
    out = _nan_like(closes)
    typical = (highs + lows + closes) / 3.0
    windows = _windows(typical, period)
    if windows is None:
        return out

    mean = windows.mean(axis=1)
    mean_dev = np.abs(windows - mean[:, None]).mean(axis=1)

    with np.errstate(divide="ignore", invalid="ignore"):
        value = (typical[period - 1 :] - mean) / (0.015 * mean_dev)
    flat = mean_dev <= FLAT_TOLERANCE * np.abs(mean)
    out[period - 1 :] = np.where(flat, 0.0, value)
    return out


# =============================================================================
# VOLATILITY
# =============================================================================


def true_range(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """Greatest of high-low and the gaps to the previous close. Index 0 is NaN."""
    tr = _nan_like(closes)
    if len(closes) < 2:
        return tr

    prev_close = closes[:-1]
    tr[1:] = np.max(
        np.vstack(
            [
                highs[1:] - lows[1:],
                np.abs(highs[1:] - prev_close),
                np.abs(lows[1:] - prev_close),
            ]
        ),
        axis=0,
    )
    return tr


def atr(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14
) -> np.ndarray:
    """Average True Range, Wilder-smoothed. First value at index `period`."""
    return wilder(true_range(highs, lows, closes), period)


def bollinger_bands(
    closes: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    SMA middle band +- `std_dev` population standard deviations.

    Returns: (upper, middle, lower, bandwidth, percent_b)
    """
    middle = sma(closes, period)
    sigma = _nan_like(closes)
    windows = _windows(closes, period)
    if windows is not None:
        sigma[period - 1 :] = windows.std(axis=1)

    upper = middle + std_dev * sigma
    lower = middle - std_dev * sigma

    with np.errstate(divide="ignore", invalid="ignore"):
        bandwidth = (upper - lower) / middle
        percent_b = (closes - lower) / (upper - lower)

    return upper, middle, lower, bandwidth, percent_b


# =============================================================================
# TREND
# =============================================================================


def _directional_index(smoothed_dm: np.ndarray, smoothed_tr: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        di = np.where(smoothed_tr > 0, 100.0 * smoothed_dm / smoothed_tr, 0.0)
    di[np.isnan(smoothed_tr)] = np.nan
    return di


def adx(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Wilder's Average Directional Index.

    +DM/-DM and true range are Wilder-smoothed into +DI/-DI, DX is derived
    from them and ADX is the Wilder average of DX, so the first value needs
    2 * period candles. A market without movement reads 0.

    Returns: (adx, plus_di, minus_di)
    """
    n = len(closes)
    if n < period + 1:
        return _nan_like(closes), _nan_like(closes), _nan_like(closes)

    up = np.diff(highs)
    down = -np.diff(lows)

    plus_dm = _nan_like(closes)
    minus_dm = _nan_like(closes)
    plus_dm[1:] = np.where((up > down) & (up > 0), up, 0.0)
    minus_dm[1:] = np.where((down > up) & (down > 0), down, 0.0)

    smoothed_tr = wilder(true_range(highs, lows, closes), period)
    plus_di = _directional_index(wilder(plus_dm, period), smoothed_tr)
    minus_di = _directional_index(wilder(minus_dm, period), smoothed_tr)

    di_sum = plus_di + minus_di
    with np.errstate(divide="ignore", invalid="ignore"):
        dx = np.where(di_sum > 0, 100.0 * np.abs(plus_di - minus_di) / di_sum, 0.0)
    dx[np.isnan(di_sum)] = np.nan

    return wilder(dx, period), plus_di, minus_di


def get_last_valid(values: np.ndarray) -> Optional[float]:
    """Last finite entry, or None."""
    finite = values[np.isfinite(values)]
    return float(finite[-1]) if finite.size else None
