"""Skills and techniques.

A skill's level comes from its controlling attribute, difficulty and
points, or from the best of its defaults when that is higher. A technique
is a skill whose base level comes from a single default, usually another
skill, capped by an optional limit.

Skills also carry the editing operations a sheet offers: raising or lowering
a level by whole steps, and swapping which of two mutually-defaulting
skills holds the points.
"""

from __future__ import annotations

from collections.abc import Set
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gurps_engine.core.fixed import FOUR, MIN_LEVEL, ONE, TWELVE, TWO, ZERO, trunc
from gurps_engine.models.enums import Difficulty
from gurps_engine.models.features import Feature
from gurps_engine.models.ids import Kind, new_tid, tid_kind
from gurps_engine.models.level import NO_LEVEL, Level
from gurps_engine.models.node import Node, traverse
from gurps_engine.models.prereqs import PrereqList
from gurps_engine.models.skill_default import SkillDefault
from gurps_engine.models.tooltip import Tooltip
from gurps_engine.models.weapon import Weapon


class AttributeDifficulty(BaseModel):
    """Controlling attribute and difficulty of a skill or spell."""

    model_config = ConfigDict(extra="ignore")

    attribute: str = "dx"
    difficulty: Difficulty = Difficulty.AVERAGE

    def __str__(self) -> str:
        return f"{self.attribute.upper()}/{self.difficulty.value.upper()}"


class Skill(Node):
    """A skill, technique or skill container.

    Attributes:
        name: Skill name.
        specialization: Specialization, if any.
        tech_level: Tech level; None when the skill is not TL-specific.
        difficulty: Controlling attribute and difficulty.
        points: Points spent.
        defaults: Alternative ways to obtain a level.
        technique_default: Base default of a technique.
        technique_limit_modifier: Cap over the technique's base level.
        encumbrance_penalty_multiplier: Multiple of the encumbrance penalty
            applied to the level (0 to 9).
        features: Features granted by the skill.
        prereq: Prerequisite tree.
        tags: Category tags.
        replacements: Nameable replacements for ``@key@`` placeholders.
        weapons: Attacks granted by the skill.
        level_data: Resolved level (calculated).
        defaulted_from: Default currently in use (calculated).
        unsatisfied_reason: Why prerequisites fail (calculated).
    """

    LEAF_KIND = Kind.SKILL
    CONTAINER_KIND = Kind.SKILL_CONTAINER

    children: list[Skill] | None = None
    name: str = ""
    specialization: str = ""
    tech_level: str | None = None
    notes: str = ""
    difficulty: AttributeDifficulty = Field(default_factory=AttributeDifficulty)
    points: Decimal = ZERO
    defaults: list[SkillDefault] = Field(default_factory=list)
    technique_default: SkillDefault | None = None
    technique_limit_modifier: Decimal | None = None
    encumbrance_penalty_multiplier: int = Field(default=0, ge=0, le=9)
    features: list[Feature] = Field(default_factory=list)
    prereq: PrereqList | None = None
    tags: list[str] = Field(default_factory=list)
    replacements: dict[str, str] = Field(default_factory=dict)
    weapons: list[Weapon] = Field(default_factory=list)

    level_data: Level = Field(default=NO_LEVEL, exclude=True)
    defaulted_from: SkillDefault | None = Field(default=None, exclude=True)
    unsatisfied_reason: str = Field(default="", exclude=True)

    @classmethod
    def new_technique(cls, **data: Any) -> Skill:
        """Create a technique; it needs a ``technique_default``."""
        data.setdefault("technique_default", SkillDefault())
        return cls(id=new_tid(Kind.TECHNIQUE), **data)

    @model_validator(mode="after")
    def link_weapons(self) -> Skill:
        for weapon in self.weapons:
            weapon.set_owner(self)
        return self

    @property
    def is_technique(self) -> bool:
        return tid_kind(self.id) == Kind.TECHNIQUE

    def __str__(self) -> str:
        text = self.name
        if not self.container:
            if self.tech_level is not None:
                text += f"/TL{self.tech_level}"
            if self.specialization:
                text += f" ({self.specialization})"
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
            points += entity.skill_point_bonus_for(self.name, self.specialization, self.tags, tooltip)
        return max(points, ZERO)

    def calculate_level(self, excludes: Set[str] | None = None) -> Level:
        """Compute (without storing) the current level."""
        from gurps_engine.engine.skills import calculate_skill_level, calculate_technique_level

        if self.container:
            return NO_LEVEL
        entity = self.owning_entity
        points = self.adjusted_points(None)
        if self.is_technique:
            return calculate_technique_level(
                entity,
                self.name,
                self.specialization,
                self.tags,
                self.technique_default or SkillDefault(),
                self.difficulty.difficulty,
                points,
                True,
                self.technique_limit_modifier,
                frozenset(excludes or ()) | {str(self)},
            )
        return calculate_skill_level(
            entity,
            self.name,
            self.specialization,
            self.tags,
            self.defaulted_from,
            self.difficulty.attribute,
            self.difficulty.difficulty,
            points,
            Decimal(self.encumbrance_penalty_multiplier),
        )

    def update_level(self) -> bool:
        """Re-pick the default and recompute the level.

        Returns:
            True if the stored level changed.
        """
        saved = self.level_data
        self.defaulted_from = self.best_default_with_points(None)
        self.level_data = self.calculate_level()
        return saved != self.level_data

    def adjusted_relative_level(self) -> Decimal:
        if self.container:
            return MIN_LEVEL
        if self.owning_entity is not None and self.level_data.level > ZERO:
            if self.is_technique and self.technique_default is not None:
                return self.level_data.relative_level + self.technique_default.modifier
            return self.level_data.relative_level
        return MIN_LEVEL

    # -------------------------------------------------------------------------
    # Defaults
    # -------------------------------------------------------------------------

    def best_default_with_points(self, excluded: SkillDefault | None) -> SkillDefault | None:
        """Best default, with its point equivalent filled in.

        Level at the attribute's baseline is worth 1 point, one over is
        worth 2, and each further level 4 more. A default below baseline
        carries negative points.
        """
        if self.is_technique:
            return None
        best = self.best_default(excluded)
        entity = self.owning_entity
        if best is not None and entity is not None:
            baseline = trunc(
                entity.resolve_attribute_current(self.difficulty.attribute)
                + self.difficulty.difficulty.base_relative_level
            )
            level = trunc(best.level)
            best.adj_level = level
            if level == baseline:
                best.points = ONE
            elif level == baseline + ONE:
                best.points = TWO
            elif level > baseline + ONE:
                best.points = FOUR * (level - (baseline + ONE))
            else:
                best.points = -max(level, ZERO)
        return best

    def best_default(self, excluded: SkillDefault | None) -> SkillDefault | None:
        entity = self.owning_entity
        if entity is None or not self.defaults:
            return None
        excludes = frozenset({str(self)})
        best_def: SkillDefault | None = None
        best = MIN_LEVEL
        for one in self.resolve_to_specific_defaults():
            if one.equivalent(excluded) or self.in_default_chain(one, set()):
                continue
            level = self._calc_skill_default_level(one, excludes)
            if best < level:
                best = level
                best_def = one.clone_without_level_or_points()
                best_def.level = level
        return best_def

    def _calc_skill_default_level(self, one: SkillDefault, excludes: Set[str]) -> Decimal:
        entity = self.owning_entity
        level = one.skill_level(entity, True, excludes, not self.is_technique)
        if one.skill_based and entity.best_skill_named(one.name, one.specialization, True, excludes) is not None:
            level -= entity.skill_bonus_for(one.name, one.specialization, self.tags, None)
        return level

    def in_default_chain(self, one: SkillDefault | None, looked_at: set[str]) -> bool:
        """True if following ``one`` eventually leads back to this skill."""
        entity = self.owning_entity
        if entity is None or one is None or not one.skill_based:
            return False
        for skill in entity.skill_named(one.name, one.specialization, True, None):
            if skill is self:
                return True
            if skill.id not in looked_at:
                looked_at.add(skill.id)
                if self.in_default_chain(skill.defaulted_from, looked_at):
                    return True
        return False

    def resolve_to_specific_defaults(self) -> list[SkillDefault]:
        """Expand skill defaults to one per matching skill instance."""
        entity = self.owning_entity
        result: list[SkillDefault] = []
        for one in self.defaults:
            if entity is None or not one.skill_based:
                result.append(one)
                continue
            for skill in entity.skill_named(one.name, one.specialization, True, frozenset({str(self)})):
                local = one.clone_without_level_or_points()
                local.specialization = skill.specialization
                result.append(local)
        return result

    def default_skill(self) -> Skill | None:
        """The skill this one currently draws its level from."""
        entity = self.owning_entity
        if entity is None:
            return None
        if self.is_technique:
            return entity.base_skill(self.technique_default, True)
        return entity.base_skill(self.defaulted_from, True)

    def has_default_to(self, other: Skill) -> bool:
        for one in self.resolve_to_specific_defaults():
            if (
                one.skill_based
                and one.name == other.name
                and (not one.specialization or one.specialization == other.specialization)
            ):
                return True
        return False

    def can_swap_defaults(self) -> bool:
        return not self.is_technique and not self.container and self.adjusted_points(None) > ZERO

    def can_swap_defaults_with(self, other: Skill | None) -> bool:
        return other is not None and self.can_swap_defaults() and other.has_default_to(self)

    def best_swappable_skill(self) -> Skill | None:
        entity = self.owning_entity
        if entity is None:
            return None
        best: Skill | None = None

        def consider(other: Skill) -> bool:
            nonlocal best
            if self is other.default_skill() and other.can_swap_defaults_with(self):
                if best is None or best.calculate_level().level < other.calculate_level().level:
                    best = other
            return False

        traverse(consider, True, True, *entity.skills)
        return best

    def swap_defaults(self) -> None:
        """Switch to the best default other than the one currently in use."""
        base = self.default_skill()
        self.defaulted_from = self.best_default_with_points(self.defaulted_from)
        self.level_data = self.calculate_level()
        if base is not None:
            base.update_level()

    # -------------------------------------------------------------------------
    # Techniques
    # -------------------------------------------------------------------------

    def technique_satisfied(self, tooltip: Tooltip | None, prefix: str) -> bool:
        """A technique needs its base skill, with at least one point."""
        entity = self.owning_entity
        if not self.is_technique or self.technique_default is None or not self.technique_default.skill_based:
            return True
        if entity is None:
            return False
        skill = entity.best_skill_named(
            self.technique_default.name, self.technique_default.specialization, False, None
        )
        satisfied = skill is not None and (skill.is_technique or skill.points > ZERO)
        if not satisfied and tooltip is not None:
            tooltip.write(prefix)
            if skill is None:
                tooltip.write("Requires a skill named ")
            else:
                tooltip.write("Requires at least 1 point in the skill named ")
            tooltip.write(self.technique_default.full_name(entity))
        return satisfied

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def _step_limit(self) -> Decimal:
        if self.difficulty.difficulty is Difficulty.WILDCARD:
            return TWELVE
        return FOUR

    def increment_skill_level(self) -> None:
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

    def decrement_skill_level(self) -> None:
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


Skill.model_rebuild()


__all__ = [
    "AttributeDifficulty",
    "Skill",
]
