# pmdash/services/migrations/scales.py
"""
Breakpoint tables mapping version-1 RICE inputs onto the 1-10 scale.

Each table is a tuple of inclusive upper bounds; a value maps to the
1-based position of the first bound it does not exceed, and to 10 when it
exceeds them all.
"""
from __future__ import annotations

from bisect import bisect_left
from types import MappingProxyType

# Raw number of users reached
REACH_BREAKPOINTS = (10, 50, 100, 500, 1000, 2500, 5000, 10000, 50000)

# Person-months
EFFORT_BREAKPOINTS = (0.25, 0.5, 1, 2, 4, 8, 12, 16, 24)

# Version 1 impact levels: minimal, low, medium, high, massive
IMPACT_EXACT = MappingProxyType({
    0.25: 2,
    0.5: 3,
    1.0: 5,
    2.0: 7,
    3.0: 9,
})

# In-between impact values: (exclusive upper bound, mapped value)
IMPACT_BETWEEN = (
    (0.5, 2),
    (1.0, 4),
    (2.0, 6),
    (3.0, 8),
)


def _map_breakpoints(value: float, breakpoints: tuple) -> int:
    return bisect_left(breakpoints, value) + 1


def map_reach_to_new_scale(old_reach: float) -> int:
    return _map_breakpoints(old_reach, REACH_BREAKPOINTS)


def map_effort_to_new_scale(old_effort: float) -> int:
    return _map_breakpoints(old_effort, EFFORT_BREAKPOINTS)


def map_impact_to_new_scale(old_impact: float) -> int:
    if old_impact in IMPACT_EXACT:
        return IMPACT_EXACT[old_impact]
    if old_impact < 0.25:
        return 1
    if old_impact > 3:
        return 10
    for upper, mapped in IMPACT_BETWEEN:
        if old_impact < upper:
            return mapped
    return 9


__all__ = [
    "REACH_BREAKPOINTS",
    "EFFORT_BREAKPOINTS",
    "IMPACT_EXACT",
    "map_reach_to_new_scale",
    "map_effort_to_new_scale",
    "map_impact_to_new_scale",
]
