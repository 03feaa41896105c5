"""Indicator math on hand-checkable inputs."""

import numpy as np
import pytest

from coinwatch.services.indicators.calculations import (
    adx,
    atr,
    bollinger_bands,
    cci,
    ema,
    get_last_valid,
    macd,
    rsi,
    sma,
    stochastic,
    true_range,
    wilder,
    williams_r,
)


def test_sma_of_three_values():
    assert get_last_valid(sma(np.array([10.0, 20.0, 30.0]), 3)) == pytest.approx(20.0)


def test_sma_short_input_is_all_nan():
    assert np.isnan(sma(np.array([1.0, 2.0]), 5)).all()


def test_ema_of_constant_series_is_constant():
    result = ema(np.full(40, 42.0), 10)
    assert np.isnan(result[:9]).all()
    assert np.allclose(result[9:], 42.0)


def test_ema_seeds_after_leading_nans():
    data = np.concatenate([np.full(5, np.nan), np.full(20, 3.0)])
    result = ema(data, 4)
    assert np.isnan(result[:8]).all()
    assert result[8] == pytest.approx(3.0)


def test_wilder_uses_one_over_period():
    data = np.array([1.0, 1.0, 1.0, 4.0])
    result = wilder(data, 3)
    # seed 1.0, then 1.0 + (4.0 - 1.0) / 3
    assert result[3] == pytest.approx(2.0)


def test_rsi_is_bounded():
    rng = np.random.default_rng(7)
    closes = 100 + np.cumsum(rng.normal(0, 1, 300))
    values = rsi(closes, 14)
    finite = values[np.isfinite(values)]
    assert len(finite) == 300 - 14
    assert (finite >= 0).all() and (finite <= 100).all()


def test_rsi_only_gains_is_100():
    assert get_last_valid(rsi(np.arange(100.0, 130.0), 14)) == 100


def test_rsi_only_losses_is_0():
    assert get_last_valid(rsi(np.arange(130.0, 100.0, -1.0), 14)) == pytest.approx(0.0)


def test_rsi_short_input_is_nan():
    assert get_last_valid(rsi(np.arange(14.0), 14)) is None


def test_macd_signal_defined_after_slow_plus_signal():
    closes = np.linspace(100, 140, 40)
    line, signal, hist = macd(closes)
    assert np.isfinite(line[25]) and np.isnan(line[24])
    assert np.isnan(signal[32])
    assert np.isfinite(signal[33])
    assert hist[-1] == pytest.approx(line[-1] - signal[-1])


def test_stochastic_flat_range_is_50():
    flat = np.full(20, 10.0)
    k, _ = stochastic(flat, flat, flat, 14)
    assert get_last_valid(k) == 50.0


def test_stochastic_close_at_high_is_100():
    closes = np.arange(1.0, 21.0)
    k, d = stochastic(closes, closes - 0.5, closes, 14)
    assert get_last_valid(k) == pytest.approx(100.0)
    assert get_last_valid(d) == pytest.approx(100.0)


def test_williams_r_is_k_minus_100():
    rng = np.random.default_rng(3)
    closes = 50 + np.cumsum(rng.normal(0, 1, 60))
    highs, lows = closes + 1, closes - 1
    k, _ = stochastic(highs, lows, closes, 14)
    wr = williams_r(highs, lows, closes, 14)
    assert np.allclose(wr[13:], k[13:] - 100)
    assert (wr[13:] <= 0).all() and (wr[13:] >= -100).all()


@pytest.mark.parametrize("price", [5.0, 0.1, 0.3, 1.1, 67000.17, 0.000123])
def test_cci_flat_series_is_zero(price):
    flat = np.full(30, price)
    assert get_last_valid(cci(flat, flat, flat, 20)) == 0.0


def test_cci_small_price_moves_are_not_flat():
    closes = 0.000123 + np.tile([0.0, 1e-9], 15)
    value = get_last_valid(cci(closes, closes, closes, 20))
    assert value is not None and value != 0.0


def test_true_range_first_value_is_nan():
    closes = np.array([10.0, 11.0, 9.0])
    tr = true_range(closes + 1, closes - 1, closes)
    assert np.isnan(tr[0])
    # gap down: |low - prev close| = |8 - 11|
    assert tr[2] == pytest.approx(3.0)


def test_atr_needs_period_plus_one():
    closes = np.arange(100.0, 115.0)
    assert get_last_valid(atr(closes + 1, closes - 1, closes, 14)) is not None
    assert get_last_valid(atr(closes[:-1] + 1, closes[:-1] - 1, closes[:-1], 14)) is None


def test_atr_of_constant_range():
    closes = np.full(30, 100.0)
    assert get_last_valid(atr(closes + 2, closes - 2, closes, 14)) == pytest.approx(4.0)


def test_bollinger_uses_population_std():
    closes = np.arange(110.0, 130.0)
    upper, middle, lower, _, _ = bollinger_bands(closes, 20, 2.0)
    std = np.std(closes)
    assert middle[-1] == pytest.approx(119.5)
    assert upper[-1] == pytest.approx(119.5 + 2 * std)
    assert lower[-1] == pytest.approx(119.5 - 2 * std)


def test_adx_first_value_at_two_periods():
    closes = np.linspace(100, 160, 40)
    values, plus_di, minus_di = adx(closes + 1, closes - 1, closes, 14)
    assert np.isnan(values[26])
    assert np.isfinite(values[27])
    # a steady uptrend has only positive directional movement
    assert get_last_valid(minus_di) == pytest.approx(0.0)
    assert get_last_valid(values) == pytest.approx(100.0)


def test_adx_flat_market_is_zero():
    flat = np.full(40, 10.0)
    values, _, _ = adx(flat, flat, flat, 14)
    assert get_last_valid(values) == 0.0


def test_get_last_valid_skips_nan_and_inf():
    assert get_last_valid(np.array([1.0, 2.0, np.inf, np.nan])) == 2.0
    assert get_last_valid(np.array([np.nan])) is None
