"""Spells and ritual magic spells."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import Field, model_validator

from gurps_engine.core.fixed import FOUR, ONE, TWELVE, ZERO, trunc
from gurps_engine.models.enums import Difficulty
from gurps_engine.models.features import Feature
from gurps_engine.models.ids import Kind, new_tid, tid_kind
from gurps_engine.models.level import NO_LEVEL, Level
from gurps_engine.models.node import Node
from gurps_engine.models.prereqs import PrereqList
from gurps_engine.models.skill import AttributeDifficulty
from gurps_engine.models.tooltip import Tooltip
from gurps_engine.models.weapon import Weapon


class Spell(Node):
    """A spell, ritual magic spell or spell container.

    Attributes:
        name: Spell name.
        tech_level: Tech level; None when the spell is not TL-specific.
        difficulty: Controlling attribute and difficulty.
        points: Points spent.
        colleges: Colleges the spell belongs to.
        power_source: Power source ("Arcane", "Divine").
        ritual_skill_name: Base skill of a ritual magic spell.
        ritual_prereq_count: Number of prerequisite spells, a penalty for
            ritual magic.
        features: Features granted by the spell.
        prereq: Prerequisite tree.
        tags: Category tags.
        replacements: Nameable replacements for ``@key@`` placeholders.
        weapons: Attacks granted by the spell.
        level_data: Resolved level (calculated).
        unsatisfied_reason: Why prerequisites fail (calculated).
    """

    LEAF_KIND = Kind.SPELL
    CONTAINER_KIND = Kind.SPELL_CONTAINER

    children: list[Spell] | None = None
    name: str = ""
    tech_level: str | None = None
    notes: str = ""
    difficulty: AttributeDifficulty = Field(
        default_factory=lambda: AttributeDifficulty(attribute="iq", difficulty=Difficulty.HARD)
    )
    points: Decimal = ZERO
    colleges: list[str] = Field(default_factory=list)
    power_source: str = ""
    ritual_skill_name: str = ""
    ritual_prereq_count: int = 0
    features: list[Feature] = Field(default_factory=list)
    prereq: PrereqList | None = None
    tags: list[str] = Field(default_factory=list)
    replacements: dict[str, str] = Field(default_factory=dict)
    weapons: list[Weapon] = Field(default_factory=list)

    level_data: Level = Field(default=NO_LEVEL, exclude=True)
    unsatisfied_reason: str = Field(default="", exclude=True)

    @classmethod
    def new_ritual_magic(cls, **data: Any) -> Spell:
        return cls(id=new_tid(Kind.RITUAL_MAGIC_SPELL), **data)

    @model_validator(mode="after")
    def link_weapons(self) -> Spell:
        for weapon in self.weapons:
            weapon.set_owner(self)
        return self

    @property
    def is_ritual_magic(self) -> bool:
        return tid_kind(self.id) == Kind.RITUAL_MAGIC_SPELL

    def __str__(self) -> str:
        text = self.name
        if not self.container and self.tech_level is not None:
            text += f"/TL{self.tech_level}"
        return text

    def set_owning_entity(self, entity: Any) -> None:
        super().set_owning_entity(entity)
        for weapon in self.weapons:
            weapon.set_owner(self)

    # -------------------------------------------------------------------------
    # Points and Levels
    # -------------------------------------------------------------------------

    def adjusted_points(self, tooltip: Tooltip | None = None) -> Decimal:
        """Points spent plus point bonuses, never negative."""
        if self.container:
            return sum((child.adjusted_points(None) for child in self.node_children()), ZERO)
        points = self.points
        entity = self.owning_entity
        if entity is not None:
            points += entity.spell_point_bonus_for(
                self.name, self.power_source, self.colleges, self.tags, tooltip
            )
        return max(points, ZERO)

    def calculate_level(self) -> Level:
        from gurps_engine.engine.skills import calculate_ritual_magic_spell_level, calculate_spell_level

        if self.container:
            return NO_LEVEL
        entity = self.owning_entity
        if self.is_ritual_magic:
            return calculate_ritual_magic_spell_level(
                entity,
                self.name,
                self.power_source,
                self.ritual_skill_name,
                self.ritual_prereq_count,
                self.colleges,
                self.tags,
                self.difficulty.difficulty,
                self.adjusted_points(None),
            )
        return calculate_spell_level(
            entity,
            self.name,
            self.power_source,
            self.colleges,
            self.tags,
            self.difficulty.attribute,
            self.difficulty.difficulty,
            self.adjusted_points(None),
        )

    def update_level(self) -> bool:
        """Recompute the stored level; True if it changed."""
        saved = self.level_data
        self.level_data = self.calculate_level()
        return saved != self.level_data

    def ritual_magic_satisfied(self, tooltip: Tooltip | None, prefix: str) -> bool:
        """A ritual magic spell needs its ritual skill in one of its colleges."""
        if not self.is_ritual_magic:
            return True
        entity = self.owning_entity
        if not self.colleges:
            if tooltip is not None:
                tooltip.write(prefix)
                tooltip.write("Must be assigned to a college")
            return False
        if entity is None:
            return False
        for college in self.colleges:
            if entity.best_skill_named(self.ritual_skill_name, college, False, None) is not None:
                return True
        if entity.best_skill_named(self.ritual_skill_name, "", False, None) is not None:
            return True
        if tooltip is not None:
            tooltip.write(prefix)
            tooltip.write("Requires a skill named ")
            tooltip.write(
                " or ".join(f"{self.ritual_skill_name} ({college})" for college in self.colleges)
            )
        return False

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def _step_limit(self) -> Decimal:
        if self.difficulty.difficulty is Difficulty.WILDCARD:
            return TWELVE
        return FOUR

    def increment_spell_level(self) -> None:
        """Add the fewest whole points that raise the level."""
        if self.container:
            return
        base_points = trunc(self.points) + ONE
        max_points = base_points + self._step_limit()
        old_level = self.calculate_level().level
        points = base_points
        while points < max_points:
            self.points = points
            if self.calculate_level().level > old_level:
                break
            points += ONE

    def decrement_spell_level(self) -> None:
        """Remove points until the level drops, then strip surplus points."""
        if self.container or self.points <= ZERO:
            return
        base_points = trunc(self.points)
        min_points = max(base_points - self._step_limit(), ZERO)
        old_level = self.calculate_level().level
        points = base_points
        while points >= min_points:
            self.points = points
            if self.calculate_level().level < old_level:
                break
            points -= ONE
        if self.points > ZERO:
            old_level = self.calculate_level().level
            while self.points > ZERO:
                self.points = max(self.points - ONE, ZERO)
                if self.calculate_level().level != old_level:
                    self.points += ONE
                    break


Spell.model_rebuild()


__all__ = ["Spell"]
