"""
Tests for unit-aware value formatting.
"""

from __future__ import annotations

import re
from decimal import Decimal

import pytest

from advisor.services.ingestion.xbrl.value_formatter import format_value

NUMERIC_SAMPLES = ["0", "1", "12.5", "1234.56", "-98765.4321", "1000000", "0.0001", "3.14159"]


# ============================================================================
# Presentation rules
# ============================================================================

@pytest.mark.parametrize(
    "value, units, expected",
    [
        ("1234.56", "USD", "$1,234.56"),
        ("1000000", "Shares", "1,000,000 shares"),
        ("0.1234", "Pure", "12.34%"),
        ("text", None, "text"),
        ("1234.5", None, "1,234.50"),
        ("1234.5", ["iso4217:EUR"], "1,234.50 EUR"),
        ("15550061000", ["xbrli:shares"], "15,550,061,000 shares"),
        ("0.147", ["xbrli:pure"], "14.70%"),
        ("6.16", ["iso4217:USD", "xbrli:shares"], "$6.16"),
        ("123", [], "123.00"),
        ("-1234567.891", "USD", "$-1,234,567.89"),
        ("1E+3", "USD", "$1,000.00"),
        ("1E+30", None, "1,000,000,000,000,000,000,000,000,000,000.00"),
    ],
)
def test_format_value(value, units, expected):
    assert format_value(value, units) == expected


@pytest.mark.parametrize("value", ["", "n/a", "10-K", "NaN", "Infinity", "1,234", "1_000", "1E+2000000"])
def test_non_numeric_values_pass_through(value):
    assert format_value(value, "USD") == value
    assert format_value(value, None) == value


# ============================================================================
# Laws
# ============================================================================

@pytest.mark.parametrize("value", NUMERIC_SAMPLES)
def test_usd_values_start_with_dollar_and_two_decimals(value):
    formatted = format_value(value, "USD")

    assert formatted.startswith("$")
    assert re.search(r"\.\d{2}$", formatted)


@pytest.mark.parametrize("value", NUMERIC_SAMPLES)
def test_pure_is_percentage_of_ratio(value):
    scaled = str(Decimal(value) * 100)

    assert format_value(value, "Pure") == format_value(scaled, None) + "%"
