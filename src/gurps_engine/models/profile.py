"""Descriptive profile data that the calculators read."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from gurps_engine.core.constants import SIZE_MODIFIER_ID
from gurps_engine.core.fixed import as_int
from gurps_engine.models.enums import BonusLimitation


if TYPE_CHECKING:
    from gurps_engine.models.entity import Entity


class Profile(BaseModel):
    """Character profile.

    Attributes:
        name: Character name.
        player_name: Player name.
        height: Height text.
        weight: Weight text.
        size_modifier: Base size modifier.
        tech_level: The character's tech level text.
        size_modifier_bonus: Size modifier granted by features (calculated).
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    name: str = ""
    player_name: str = ""
    height: str = ""
    weight: str = ""
    size_modifier: int = 0
    tech_level: str = "3"

    size_modifier_bonus: int = Field(default=0, exclude=True)

    @property
    def adjusted_size_modifier(self) -> int:
        return self.size_modifier + self.size_modifier_bonus

    def update(self, entity: Entity) -> None:
        """Refresh feature-driven values after bonuses are aggregated."""
        self.size_modifier_bonus = as_int(
            entity.attribute_bonus_for(SIZE_MODIFIER_ID, BonusLimitation.NONE, None)
        )


__all__ = ["Profile"]
