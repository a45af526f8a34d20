# test_scripts/test_numeric.py

from __future__ import annotations

import pytest

from pmdash.utils.numeric import clamp, is_int_in_range, round1


@pytest.mark.parametrize("value,expected", [(0.05, 0.1), (0.04, 0.0), (533.333, 533.3), (2.25, 2.3), (-0.05, 0.0)])
def test_round1_is_half_up(value, expected):
    assert round1(value) == expected


def test_clamp():
    assert clamp(None, 0, 10) == 0
    assert clamp(-5, 0, 10) == 0
    assert clamp(15, 0, 10) == 10
    assert clamp(7.5, 0, 10) == 7.5


@pytest.mark.parametrize(
    "value,expected",
    [(1, True), (10, True), (5.0, True), (0, False), (11, False), (5.5, False), (True, False), ("5", False), (None, False)],
)
def test_is_int_in_range(value, expected):
    assert is_int_in_range(value, 1, 10) is expected
