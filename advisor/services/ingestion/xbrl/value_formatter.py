"""
value_formatter.py — Human-readable fact values.

Rules, keyed on the local name of the first unit measure (case-insensitive):
    contains "usd"     -> "$1,234.56"
    contains "shares"  -> "1,000,000 shares"   (decimals dropped)
    equals "pure"      -> "12.34%"              (ratio x 100)
    anything else      -> "1,234.56 EUR"
    no unit            -> "1,234.56"

Values that are not a plain finite decimal literal (no digit separators,
magnitude below 10**31) are returned unchanged.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence, Union


MAX_MAGNITUDE = 30


def _parse_decimal(value: str) -> Optional[Decimal]:
    text = value.strip()
    if "_" in text:
        return None
    try:
        number = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    # Grouped fixed-point output grows with the exponent.
    if number and number.adjusted() > MAX_MAGNITUDE:
        return None
    return number


def group_number(number: Decimal) -> str:
    """Two decimal places with `,` thousands separators: 1234.5 -> 1,234.50."""
    return f"{number:,.2f}"


def _first_unit(units: Union[str, Sequence[str], None]) -> Optional[str]:
    if units is None:
        return None
    if isinstance(units, str):
        unit = units
    elif units:
        unit = units[0]
    else:
        return None
    unit = unit.rpartition(":")[2].strip()
    return unit or None


def format_value(value: str, units: Union[str, Sequence[str], None] = None) -> str:
    number = _parse_decimal(value)
    if number is None:
        return value

    unit = _first_unit(units)
    if unit is None:
        return group_number(number)

    key = unit.lower()
    if "usd" in key:
        return "$" + group_number(number)
    if "shares" in key:
        return group_number(number).split(".")[0] + " shares"
    if key == "pure":
        return group_number(number * 100) + "%"
    return f"{group_number(number)} {unit}"
