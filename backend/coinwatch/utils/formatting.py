"""
Display formatting for prices and market aggregates.
"""

from typing import Optional


def format_number(num: float) -> str:
    """Prices: thousands separators and 2 decimals, or 6 decimals below 1."""
    if num >= 1:
        return f"{num:,.2f}"
    return f"{num:.6f}"


def format_large_number(num: float) -> str:
    """Compact T/B/M/K notation with 2 decimals."""
    if num >= 1e12:
        return f"{num / 1e12:.2f}T"
    elif num >= 1e9:
        return f"{num / 1e9:.2f}B"
    elif num >= 1e6:
        return f"{num / 1e6:.2f}M"
    elif num >= 1e3:
        return f"{num / 1e3:.2f}K"
    else:
        return f"{num:.2f}"


def format_change(change: Optional[float]) -> Optional[str]:
    """Signed percentage, e.g. +1.25% / -0.40%."""
    if change is None:
        return None
    return f"{'+' if change >= 0 else ''}{change:.2f}%"
