"""Coin-to-pair mapping and display formatting."""

import pytest

from coinwatch.services.market_data.symbols import is_mapped, to_exchange_symbol
from coinwatch.utils import format_change, format_large_number, format_number


@pytest.mark.parametrize(
    "coin, expected",
    [
        ("bitcoin", "BTCUSDT"),
        ("Ethereum", "ETHUSDT"),
        ("avalanche-2", "AVAXUSDT"),
        ("SOLUSDT", "SOLUSDT"),
        ("pepe", "PEPEUSDT"),
        ("xyz", "XYZUSDT"),
        (" link ", "LINKUSDT"),
    ],
)
def test_to_exchange_symbol(coin, expected):
    assert to_exchange_symbol(coin) == expected


def test_is_mapped():
    assert is_mapped("bitcoin")
    assert not is_mapped("xyz")


def test_format_number():
    assert format_number(67123.456) == "67,123.46"
    assert format_number(1) == "1.00"
    assert format_number(0.5234567) == "0.523457"


@pytest.mark.parametrize(
    "value, expected",
    [
        (2.45e12, "2.45T"),
        (8.72e10, "87.20B"),
        (1_500_000, "1.50M"),
        (2_500, "2.50K"),
        (999, "999.00"),
    ],
)
def test_format_large_number(value, expected):
    assert format_large_number(value) == expected


def test_format_change():
    assert format_change(1.254) == "+1.25%"
    assert format_change(-0.4) == "-0.40%"
    assert format_change(None) is None
