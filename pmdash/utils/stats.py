# pmdash/utils/stats.py
"""
Normal-distribution helpers shared by the A/B test engine.
"""
from __future__ import annotations

from typing import Literal

from scipy.stats import norm

TestDirection = Literal["one-tailed", "two-tailed"]


def pnorm(z: float) -> float:
    """Standard normal CDF."""
    return float(norm.cdf(z))


def qnorm(p: float) -> float:
    """Inverse standard normal CDF.

    Raises:
        ValueError: if p is not strictly between 0 and 1
    """
    if p <= 0 or p >= 1:
        raise ValueError(f"Probability must be between 0 and 1, got {p}")
    return float(norm.ppf(p))


def critical_z(alpha: float, direction: TestDirection) -> float:
    """Critical value for a significance level; two-tailed splits alpha across both tails."""
    if direction == "two-tailed":
        return qnorm(1 - alpha / 2)
    return qnorm(1 - alpha)


__all__ = ["TestDirection", "pnorm", "qnorm", "critical_z"]
