"""Utility functions for the finance agent."""

from enum import Enum
from typing import Any


def get_enum_value(value: Any) -> str:
    """
    Get string value from an enum or return as-is if already a string.

    Models use use_enum_values, so fields may hold either form.

    Args:
        value: An enum instance or string

    Returns:
        The string value
    """
    if isinstance(value, Enum):
        return value.value
    return str(value) if value is not None else ""


def format_currency(amount: float, decimals: int = 0, currency: str = "CHF") -> str:
    """
    Format an amount the Swiss way, e.g. CHF 138'000.

    Args:
        amount: Amount to format
        decimals: Digits after the decimal point
        currency: Currency code prefix

    Returns:
        Formatted string
    """
    if amount == float("inf"):
        return f"{currency} ∞"
    return f"{currency} {amount:,.{decimals}f}".replace(",", "'")


def format_percent(rate: float, decimals: int = 1) -> str:
    """Format a decimal fraction as a percentage, e.g. 0.131 -> 13.1%."""
    return f"{rate * 100:.{decimals}f}%"
