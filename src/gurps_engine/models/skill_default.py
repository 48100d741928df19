"""Skill defaults: borrowing a level from an attribute or another skill."""

from __future__ import annotations

from collections.abc import Set
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from gurps_engine.core.constants import BLOCK_ID, PARRY_ID, RULE_OF_20, SKILL_ID, TEN_ID
from gurps_engine.core.fixed import FIVE, MIN_LEVEL, THREE, TEN, TWO, ZERO, trunc


if TYPE_CHECKING:
    from gurps_engine.models.entity import Entity


SKILL_BASED_TYPES = frozenset({SKILL_ID, PARRY_ID, BLOCK_ID})


class SkillDefault(BaseModel):
    """A default rule plus the values resolved for it during recalculation.

    Attributes:
        type: An attribute id, ``skill``, ``parry``, ``block`` or ``10``.
        name: Skill name for skill-based defaults.
        specialization: Skill specialization for skill-based defaults.
        modifier: Added to the borrowed level.
        level: Resolved level (calculated, not persisted).
        adj_level: Level actually used once points are folded in (calculated).
        points: Point equivalent of the default (calculated).
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    type: str = "dx"
    name: str = ""
    specialization: str = ""
    modifier: Decimal = ZERO

    level: Decimal = Field(default=ZERO, exclude=True)
    adj_level: Decimal = Field(default=ZERO, exclude=True)
    points: Decimal = Field(default=ZERO, exclude=True)

    @property
    def skill_based(self) -> bool:
        return self.type in SKILL_BASED_TYPES

    def equivalent(self, other: SkillDefault | None) -> bool:
        """Same rule, ignoring resolved values."""
        return (
            other is not None
            and self.type == other.type
            and self.modifier == other.modifier
            and self.name == other.name
            and self.specialization == other.specialization
        )

    def clone_without_level_or_points(self) -> SkillDefault:
        return SkillDefault(
            type=self.type,
            name=self.name,
            specialization=self.specialization,
            modifier=self.modifier,
        )

    def full_name(self, entity: Entity | None) -> str:
        if self.skill_based:
            text = self.name
            if self.specialization:
                text += f" ({self.specialization})"
            if self.type == PARRY_ID:
                text += " Parry"
            elif self.type == BLOCK_ID:
                text += " Block"
            return text
        if self.type == TEN_ID or entity is None:
            return self.type
        return entity.resolve_attribute_name(self.type)

    # -------------------------------------------------------------------------
    # Level Resolution
    # -------------------------------------------------------------------------

    def skill_level(
        self,
        entity: Entity,
        require_points: bool,
        excludes: Set[str] | None,
        rule_of_20: bool,
    ) -> Decimal:
        """Level granted by this default, recalculating candidate skills.

        ``excludes`` holds the names of skills already on the current
        resolution chain; each candidate is resolved with itself added.
        """
        match self.type:
            case "skill" | "parry" | "block":
                best = self._best_skill_level(entity, require_points, excludes, fast=False)
                return self._final_level(self._defense_level(entity, best))
        return self.skill_level_fast(entity, require_points, excludes, rule_of_20)

    def skill_level_fast(
        self,
        entity: Entity,
        require_points: bool,
        excludes: Set[str] | None,
        rule_of_20: bool,
    ) -> Decimal:
        """Level granted by this default using already-resolved skill levels."""
        match self.type:
            case "skill" | "parry" | "block":
                best = self._best_skill_level(entity, require_points, excludes, fast=True)
                return self._final_level(self._defense_level(entity, best))
            case "10":
                return self._final_level(TEN)
        level = entity.resolve_attribute_current(self.type)
        if level != MIN_LEVEL:
            if entity.settings.use_half_stat_defaults:
                level = trunc(level / TWO) + FIVE
            if rule_of_20:
                level = min(level, Decimal(RULE_OF_20))
        return self._final_level(level)

    def _best_skill_level(
        self,
        entity: Entity,
        require_points: bool,
        excludes: Set[str] | None,
        fast: bool,
    ) -> Decimal:
        excludes = frozenset(excludes or ())
        best = MIN_LEVEL
        for skill in entity.skill_named(self.name, self.specialization, require_points, excludes):
            level = skill.level_data.level
            if not fast and level > best:
                level = skill.calculate_level(excludes | {str(skill)}).level
            best = max(best, level)
        return best

    def _defense_level(self, entity: Entity, best: Decimal) -> Decimal:
        if best == MIN_LEVEL or self.type == SKILL_ID:
            return best
        bonus = entity.parry_bonus if self.type == PARRY_ID else entity.block_bonus
        return trunc(best / TWO) + THREE + bonus

    def _final_level(self, level: Decimal) -> Decimal:
        if level != MIN_LEVEL:
            level += self.modifier
        return level


__all__ = ["SkillDefault", "SKILL_BASED_TYPES"]
