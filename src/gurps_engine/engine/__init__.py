"""Calculation engine for the GURPS character engine.

This module provides the calculators behind the element models: dice,
skill and spell levels, trait costs, equipment value and weight phases,
feature aggregation, expression evaluation and the recalculation driver.

Submodules:
    dice: Dice specs and rolling (d20 library)
    skills: Skill, technique and spell level calculation
    traits: Trait point costs and modifier composition
    equipment: Equipment value and weight phases
    features: Per-kind feature buckets
    text: Expression evaluation and embedded-expression text
    recalc: The entity recalculation driver

Only dice is re-exported here; the other submodules import the element
models and are imported directly.

Example:
    >>> from gurps_engine.engine import Dice, roll
    >>> str(Dice.parse("2d+1"))
    '2d+1'
"""

from __future__ import annotations

# =============================================================================
# Dice
# =============================================================================
from gurps_engine.engine.dice import (
    Dice,
    DiceRoll,
    roll,
)


__all__ = [
    "Dice",
    "DiceRoll",
    "roll",
]
