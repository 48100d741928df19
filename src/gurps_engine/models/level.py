"""Result of a skill, technique or spell level calculation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from gurps_engine.core.fixed import MIN_LEVEL, ZERO


@dataclass(frozen=True)
class Level:
    """Resolved level, relative level and explanatory tooltip.

    Calculators always build a new value; a Level is never updated in place.
    ``MIN_LEVEL`` marks an element that cannot be used at all.
    """

    level: Decimal = MIN_LEVEL
    relative_level: Decimal = ZERO
    tooltip: str = ""

    @property
    def usable(self) -> bool:
        return self.level != MIN_LEVEL


NO_LEVEL = Level()


__all__ = ["Level", "NO_LEVEL"]
