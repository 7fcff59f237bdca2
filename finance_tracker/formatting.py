"""Formatting utilities for currency, percentages and dates in the UI.

Amounts are kept at full precision everywhere else; rounding to two
decimals happens only here, at display time.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Union

Number = Union[float, int]


def format_currency(amount: Number, include_sign: bool = True) -> str:
    """Format a currency amount with thousands separators.

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(-50)
        '-$50.00'
        >>> format_currency(1234.56, include_sign=False)
        '1,234.56'
    """
    formatted = f"{abs(amount):,.2f}"
    prefix = '-' if amount < 0 and round(abs(amount), 2) > 0 else ''
    return f"{prefix}${formatted}" if include_sign else f"{prefix}{formatted}"


def escape_dollar_for_markdown(amount: Number) -> str:
    """Currency text with ``$`` escaped so Streamlit markdown does not read it as LaTeX."""
    return format_currency(amount).replace("$", "\\$")


def format_percent(value: Number, decimals: int = 1) -> str:
    """Format a percentage value (``50`` -> ``'50.0%'``); NaN shows as 0."""
    if value != value:
        value = 0.0
    return f"{value:.{decimals}f}%"


def progress_fraction(percent: Number) -> float:
    """Clamp a percentage into the 0..1 range expected by ``st.progress``."""
    if percent != percent:
        return 0.0
    return min(max(float(percent) / 100, 0.0), 1.0)


def format_date(value: Optional[date], empty: str = '—') -> str:
    if value is None:
        return empty
    return value.strftime('%b %d, %Y')
