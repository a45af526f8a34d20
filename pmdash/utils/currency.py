# pmdash/utils/currency.py
"""
Currency parsing and formatting for the market sizing calculator.

Supported currencies: USD, EUR, GBP, JPY, INR. Formatting follows en-US
conventions (symbol prefix, comma grouping, no decimals).
"""
from __future__ import annotations

import math
import re
from types import MappingProxyType
from typing import Literal

Currency = Literal["USD", "EUR", "GBP", "JPY", "INR"]

CURRENCY_SYMBOLS = MappingProxyType({
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
})

# Largest suffix first so 2.5e12 renders as T rather than 2500.0B
_ABBREVIATIONS = (
    (1e12, "T"),
    (1e9, "B"),
    (1e6, "M"),
    (1e3, "K"),
)

_SUFFIX_MULTIPLIERS = MappingProxyType({
    "k": 1e3,
    "m": 1e6,
    "b": 1e9,
    "t": 1e12,
})

_STRIP_RE = re.compile(r"[$€£¥₹,\s]")
_ABBREVIATED_RE = re.compile(r"^([\d.]+)([kmbt]?)$", re.IGNORECASE)
_FLOAT_PREFIX_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def format_currency(value: float, currency: str = "USD", abbreviated: bool = True) -> str:
    """Render a monetary value, abbreviating thousands and above when asked.

    >>> format_currency(2_500_000)
    '$2.5M'
    >>> format_currency(2_500_000, abbreviated=False)
    '$2,500,000'
    """
    symbol = CURRENCY_SYMBOLS.get(currency, "$")

    if abbreviated and value >= 1000:
        for threshold, suffix in _ABBREVIATIONS:
            if value >= threshold:
                return f"{symbol}{value / threshold:.1f}{suffix}"

    # Whole units, halves rounded away from zero
    whole = math.floor(abs(value) + 0.5)
    sign = "-" if value < 0 and whole != 0 else ""
    return f"{sign}{symbol}{whole:,}"


def _parse_float_prefix(text: str) -> float:
    match = _FLOAT_PREFIX_RE.match(text)
    if not match:
        return 0.0
    return float(match.group(0))


def parse_currency_input(text: str) -> float:
    """Parse a free-text amount such as ``"$1.5M"`` or ``"250,000"``.

    Symbols, commas and whitespace are ignored; a trailing k/m/b/t suffix
    (any case) multiplies the number. Unparseable input yields 0.
    """
    if not text:
        return 0.0
    cleaned = _STRIP_RE.sub("", str(text))

    match = _ABBREVIATED_RE.match(cleaned)
    if match:
        number = _parse_float_prefix(match.group(1))
        suffix = match.group(2).lower()
        return number * _SUFFIX_MULTIPLIERS.get(suffix, 1.0)

    return _parse_float_prefix(cleaned)


__all__ = ["Currency", "CURRENCY_SYMBOLS", "format_currency", "parse_currency_input"]
