"""Strength progressions: thrust and swing damage, and basic lift.

Each damage progression maps ST to thrust and swing dice through a closed
formula. Basic lift follows either the Basic Set (ST²/5) or the
Knowing Your Own Strength logarithmic table.

Divisions here truncate toward zero, matching the printed tables for very
low (and even negative) ST.
"""

from __future__ import annotations

from decimal import Decimal

from gurps_engine.core.fixed import FIVE, TEN, ZERO, round_half, trunc
from gurps_engine.engine.dice import Dice
from gurps_engine.models.enums import DamageProgression


def _div(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


def _rem(a: int, b: int) -> int:
    """Remainder with the sign of the dividend."""
    return a - b * _div(a, b)


# =============================================================================
# Basic Set
# =============================================================================


def _basic_thrust(st: int) -> Dice:
    if st < 19:
        return Dice(1, modifier=-(6 - _div(st - 1, 2)))
    value = st - 11
    if st > 50:
        value -= 1
        if st > 79:
            value -= 1 + _div(st - 80, 5)
    return Dice(_div(value, 8) + 1, modifier=_div(_rem(value, 8), 2) - 1)


def _basic_swing(st: int) -> Dice:
    if st < 10:
        return Dice(1, modifier=-(5 - _div(st - 1, 2)))
    if st < 28:
        value = st - 9
        return Dice(_div(value, 4) + 1, modifier=_rem(value, 4) - 1)
    value = st
    if st > 40:
        value -= _div(st - 40, 5)
    if st > 59:
        value += 1
    value += 9
    return Dice(_div(value, 8) + 1, modifier=_div(_rem(value, 8), 2) - 1)


# =============================================================================
# Knowing Your Own Strength
# =============================================================================


def _kyos_thrust(st: int) -> Dice:
    if st < 12:
        return Dice(1, modifier=st - 12)
    return Dice(_div(st - 7, 4), modifier=_rem(st + 1, 4) - 1)


def _kyos_swing(st: int) -> Dice:
    if st < 10:
        return Dice(1, modifier=st - 10)
    return Dice(_div(st - 5, 4), modifier=_rem(st - 1, 4) - 1)


# =============================================================================
# No School Grognard (reduced swing)
# =============================================================================


def _fold_adds(adds: int) -> Dice:
    """Convert surplus adds into dice (+7 -> +2d, +4 -> +1d, +3 -> +1d-1)."""
    dice = 1 + 2 * _div(adds, 7)
    adds = _rem(adds, 7)
    dice += _div(adds, 4)
    adds = _rem(adds, 4)
    if adds == 3:
        dice += 1
        adds = -1
    return Dice(dice, modifier=adds)


def _grognard_thrust(st: int) -> Dice:
    if st < 19:
        return _basic_thrust(st)
    adds = _div(st - 10, 2) - 2
    if _rem(st - 10, 2) == 1:
        adds += 1
    return _fold_adds(adds)


def _grognard_swing(st: int) -> Dice:
    if st < 10:
        return _basic_swing(st)
    return _fold_adds(_div(st - 10, 2))


# =============================================================================
# Public API
# =============================================================================


def thrust(st: int, progression: DamageProgression = DamageProgression.BASIC_SET) -> Dice:
    """Thrust damage for a strength under a progression."""
    match progression:
        case DamageProgression.KNOWING_YOUR_OWN_STRENGTH:
            return _kyos_thrust(st)
        case DamageProgression.NO_SCHOOL_GROGNARD_DAMAGE:
            return _grognard_thrust(st)
        case DamageProgression.THRUST_EQUALS_SWING_MINUS_2:
            return _basic_swing(st).add_modifier(-2)
    return _basic_thrust(st)


def swing(st: int, progression: DamageProgression = DamageProgression.BASIC_SET) -> Dice:
    """Swing damage for a strength under a progression."""
    match progression:
        case DamageProgression.KNOWING_YOUR_OWN_STRENGTH:
            return _kyos_swing(st)
        case DamageProgression.NO_SCHOOL_GROGNARD_DAMAGE:
            return _grognard_swing(st)
    return _basic_swing(st)


def basic_lift_for_st(st: Decimal, progression: DamageProgression = DamageProgression.BASIC_SET) -> Decimal:
    """Basic lift in pounds, truncated to one decimal place.

    Non-decreasing in ST under every progression; zero below ST 1.
    """
    st = trunc(st)
    if st < 1:
        return ZERO
    if progression is DamageProgression.KNOWING_YOUR_OWN_STRENGTH:
        diff = ZERO
        if st > 19:
            diff = trunc(st / TEN) - 1
            st -= diff * TEN
        value = (TEN ** (st / TEN)) * 2
        if st <= 6:
            value = round_half(value * TEN) / TEN
        else:
            value = round_half(value)
        value *= TEN**diff
    else:
        value = st * st / FIVE
    if value >= TEN:
        value = round_half(value)
    return trunc(value * TEN) / TEN


__all__ = [
    "thrust",
    "swing",
    "basic_lift_for_st",
]
