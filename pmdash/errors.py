# pmdash/errors.py

from __future__ import annotations


class CalculatorError(ValueError):
    """Base class for hard validation failures raised by the calculators.

    These are input errors, not transient conditions: callers surface the
    message next to the offending form field and never retry.
    """


class InvalidInputError(CalculatorError):
    """Negative inputs, zero effort and similar precondition violations."""


class ConfidenceOutOfRangeError(CalculatorError):
    pass


class MarketSizingError(CalculatorError):
    pass


class RoiInputError(CalculatorError):
    pass


class SampleSizeError(CalculatorError):
    pass


__all__ = [
    "CalculatorError",
    "InvalidInputError",
    "ConfidenceOutOfRangeError",
    "MarketSizingError",
    "RoiInputError",
    "SampleSizeError",
]
