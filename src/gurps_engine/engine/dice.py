"""GURPS dice values and rolling.

GURPS writes damage as ``2d+1`` (six-sided dice implied), optionally with a
multiplier (``3dx2``). ``Dice`` is an immutable value holding those parts;
rolling is delegated to the d20 library.

Example:
    >>> Dice.parse("2d+1")
    Dice(count=2, sides=6, modifier=1, multiplier=1)
    >>> str(Dice(1, modifier=-2))
    '1d-2'
"""

from __future__ import annotations

import re

from dataclasses import dataclass, replace
from typing import Any

import d20

from gurps_engine.core.exceptions import DiceError
from gurps_engine.core.logging import get_logger


logger = get_logger(__name__)

_DICE_TEXT = re.compile(
    r"^\s*(?P<count>\d*)\s*d\s*(?P<sides>\d*)\s*(?P<modifier>[+-]\s*\d+)?\s*(?:[x*]\s*(?P<multiplier>\d+))?\s*$",
    re.IGNORECASE,
)
_PLAIN_NUMBER = re.compile(r"^\s*[+-]?\d+\s*$")


@dataclass(frozen=True)
class DiceRoll:
    """Outcome of rolling a Dice value.

    Attributes:
        expression: The d20 expression that was rolled.
        total: The final result.
        dice: Individual die results.
    """

    expression: str
    total: int
    dice: list[int]


@dataclass(frozen=True)
class Dice:
    """A GURPS dice specification.

    Attributes:
        count: Number of dice.
        sides: Sides per die.
        modifier: Flat adjustment.
        multiplier: Multiplier applied to the whole roll.
    """

    count: int
    sides: int = 6
    modifier: int = 0
    multiplier: int = 1

    @classmethod
    def parse(cls, text: str) -> Dice:
        """Parse GURPS dice notation.

        Args:
            text: Notation such as "2d+1", "1d6-2", "3dx2", "d" or "4".

        Returns:
            The parsed value.

        Raises:
            DiceError: If the text is not dice notation.
        """
        if _PLAIN_NUMBER.match(text or ""):
            return cls(0, modifier=int(text.strip()))
        match = _DICE_TEXT.match(text or "")
        if match is None:
            raise DiceError("Invalid dice notation", expression=text)
        count = int(match.group("count") or 1)
        sides = int(match.group("sides") or 6)
        modifier = int((match.group("modifier") or "0").replace(" ", ""))
        multiplier = int(match.group("multiplier") or 1)
        if sides < 1 or multiplier < 1:
            raise DiceError("Dice need at least one side and a positive multiplier", expression=text)
        return cls(count, sides, modifier, multiplier)

    def __str__(self) -> str:
        text = ""
        if self.count > 0:
            text = f"{self.count}d"
            if self.sides != 6:
                text += str(self.sides)
        if self.modifier > 0:
            text += f"+{self.modifier}" if text else str(self.modifier)
        elif self.modifier < 0:
            text += str(self.modifier)
        if not text:
            text = "0"
        if self.multiplier != 1:
            text += f"x{self.multiplier}"
        return text

    def add_modifier(self, amount: int) -> Dice:
        return replace(self, modifier=self.modifier + amount)

    def minimum(self) -> int:
        return (self.count + self.modifier) * self.multiplier

    def maximum(self) -> int:
        return (self.count * self.sides + self.modifier) * self.multiplier

    def to_d20_expression(self) -> str:
        """Equivalent expression in d20 syntax ("2d6+1", "(3d6)*2")."""
        if self.count > 0:
            text = f"{self.count}d{self.sides}"
            if self.modifier > 0:
                text += f"+{self.modifier}"
            elif self.modifier < 0:
                text += str(self.modifier)
        else:
            text = str(self.modifier)
        if self.multiplier != 1:
            text = f"({text})*{self.multiplier}"
        return text

    def roll(self) -> DiceRoll:
        """Roll through the d20 library.

        Raises:
            DiceError: If d20 rejects the expression.
        """
        expression = self.to_d20_expression()
        try:
            result = d20.roll(expression)
        except d20.RollError as exc:
            raise DiceError(f"Unable to roll dice: {exc}", expression=expression) from exc
        dice = _extract_dice_values(result.expr)
        logger.debug("Dice rolled", expression=expression, total=result.total)
        return DiceRoll(expression=expression, total=result.total, dice=dice)


def _extract_dice_values(expr: Any) -> list[int]:
    values: list[int] = []

    def visit(node: Any) -> None:
        if isinstance(node, d20.Dice):
            for die in node.values:
                if die.kept:
                    values.append(die.number)
        elif hasattr(node, "children"):
            for child in node.children:
                visit(child)

    visit(expr)
    return values


def roll(text: str) -> DiceRoll:
    """Parse GURPS dice notation and roll it."""
    return Dice.parse(text).roll()


__all__ = [
    "Dice",
    "DiceRoll",
    "roll",
]
