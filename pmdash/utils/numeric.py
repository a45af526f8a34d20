# pmdash/utils/numeric.py

from __future__ import annotations

import math
from typing import Optional


def round1(value: float) -> float:
    """Round to one decimal place, half-up on the scaled value.

    Matches the dashboard's display rounding (``floor(x * 10 + 0.5) / 10``)
    rather than Python's banker's rounding.
    """
    return math.floor(value * 10 + 0.5) / 10


def clamp(value: Optional[float], min_value: float, max_value: float) -> float:
    """Clamp a possibly None float into [min_value, max_value]. None -> min_value."""
    if value is None:
        return min_value
    return max(min_value, min(max_value, value))


def is_int_in_range(value: object, low: int, high: int) -> bool:
    """True for whole numbers (int or integral float, not bool) inside [low, high]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return low <= value <= high


__all__ = ["round1", "clamp", "is_int_in_range"]
