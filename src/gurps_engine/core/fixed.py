"""Fixed-point helpers over ``decimal.Decimal``.

Every numeric quantity in the engine (points, levels, weights, costs) is a
Decimal so that repeated percentage arithmetic stays exact. These helpers
supply the rounding operations the calculators need.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_DOWN, ROUND_FLOOR, ROUND_HALF_UP, Decimal


Fixed = Decimal

ZERO = Decimal(0)
ONE = Decimal(1)
TWO = Decimal(2)
THREE = Decimal(3)
FOUR = Decimal(4)
FIVE = Decimal(5)
SIX = Decimal(6)
TEN = Decimal(10)
TWELVE = Decimal(12)
TWENTY = Decimal(20)
EIGHTY = Decimal(80)
HUNDRED = Decimal(100)

MIN_LEVEL = Decimal(-(2**53))
"""Sentinel meaning "no level"; compares below every real level."""


def fx(value: int | str | float | Decimal) -> Decimal:
    """Convert a value to Decimal.

    Floats go through ``repr`` so that 0.1 becomes Decimal("0.1").
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def trunc(value: Decimal) -> Decimal:
    """Truncate toward zero."""
    return value.to_integral_value(rounding=ROUND_DOWN)


def floor(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


def ceil(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_CEILING)


def round_half(value: Decimal) -> Decimal:
    """Round to the nearest integer, halves away from zero."""
    return value.to_integral_value(rounding=ROUND_HALF_UP)


def as_int(value: Decimal) -> int:
    """Truncate to a Python int."""
    return int(trunc(value))


def fixed_str(value: Decimal) -> str:
    """Render without exponent or trailing zeros ("1.5", "10", "-0.25")."""
    if value == value.to_integral_value():
        return str(int(value))
    text = format(value.normalize(), "f")
    return text


def with_sign(value: Decimal) -> str:
    """Render with an explicit leading sign for non-negative values."""
    text = fixed_str(value)
    if value >= 0:
        return "+" + text
    return text


__all__ = [
    "Fixed",
    "ZERO",
    "ONE",
    "TWO",
    "THREE",
    "FOUR",
    "FIVE",
    "SIX",
    "TEN",
    "TWELVE",
    "TWENTY",
    "EIGHTY",
    "HUNDRED",
    "MIN_LEVEL",
    "fx",
    "trunc",
    "floor",
    "ceil",
    "round_half",
    "as_int",
    "fixed_str",
    "with_sign",
]
