# test_scripts/test_currency.py

from __future__ import annotations

import pytest

from pmdash.utils.currency import format_currency, parse_currency_input


@pytest.mark.parametrize(
    "value,currency,expected",
    [
        (2_500_000, "USD", "$2.5M"),
        (1_500, "EUR", "€1.5K"),
        (3_200_000_000, "GBP", "£3.2B"),
        (1.2e12, "INR", "₹1.2T"),
        (999, "JPY", "¥999"),
        (999.5, "USD", "$1,000"),
        (-12_345, "USD", "-$12,345"),
    ],
)
def test_format_currency_abbreviated(value, currency, expected):
    assert format_currency(value, currency) == expected


def test_format_currency_full():
    assert format_currency(2_500_000, abbreviated=False) == "$2,500,000"
    assert format_currency(10, "XYZ") == "$10"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("$1.5M", 1_500_000),
        ("250,000", 250_000),
        ("2k", 2_000),
        ("3B", 3e9),
        ("€ 1.2 t", 1.2e12),
        ("12.5 dollars", 12.5),
        ("abc", 0.0),
        ("", 0.0),
    ],
)
def test_parse_currency_input(text, expected):
    assert parse_currency_input(text) == pytest.approx(expected)
