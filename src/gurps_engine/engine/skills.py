"""Skill, technique and spell level calculators.

Each calculator is a function of explicit inputs that returns a fresh
``Level``. The entity argument is consulted only for attribute values and
bonus lookups, never for settings. A missing entity yields ``NO_LEVEL``.

Points convert to relative levels through the GURPS staircase: one point
buys the difficulty's base level, two or three points one more, and every
further four points one more again.
"""

from __future__ import annotations

from collections.abc import Set
from decimal import Decimal
from typing import TYPE_CHECKING

from gurps_engine.core.fixed import FOUR, MIN_LEVEL, ONE, SIX, THREE, ZERO, trunc, with_sign
from gurps_engine.core.logging import get_logger
from gurps_engine.models.enums import Difficulty
from gurps_engine.models.level import NO_LEVEL, Level
from gurps_engine.models.skill_default import SkillDefault
from gurps_engine.models.tooltip import Tooltip


if TYPE_CHECKING:
    from gurps_engine.models.entity import Entity


logger = get_logger(__name__)


def _staircase(points: Decimal) -> Decimal | None:
    """Relative level gained over the base level, or None below one point."""
    if points == ONE:
        return ZERO
    if ZERO < points < FOUR:
        return ONE
    if points >= FOUR:
        return ONE + trunc(points / FOUR)
    return None


# =============================================================================
# Skills
# =============================================================================


def calculate_skill_level(
    entity: Entity | None,
    name: str,
    specialization: str,
    tags: list[str],
    default: SkillDefault | None,
    attribute: str,
    difficulty: Difficulty,
    points: Decimal,
    encumbrance_penalty_multiplier: Decimal,
) -> Level:
    """Level of a regular skill.

    Args:
        entity: Owner supplying attribute values and bonuses.
        name: Skill name, for bonus matching.
        specialization: Skill specialization, for bonus matching.
        tags: Skill tags, for bonus matching.
        default: The default currently in use, with its resolved level
            and point equivalent, or None.
        attribute: Controlling attribute id.
        difficulty: Skill difficulty.
        points: Points spent, after point bonuses.
        encumbrance_penalty_multiplier: Multiple of the encumbrance penalty
            applied to the final level.

    Returns:
        The resolved level; ``MIN_LEVEL`` when the skill cannot be used.
    """
    if entity is None:
        return NO_LEVEL
    tooltip = Tooltip()
    relative_level = difficulty.base_relative_level
    level = entity.resolve_attribute_current(attribute)
    if level != MIN_LEVEL:
        if difficulty is Difficulty.WILDCARD:
            points = points / THREE
        elif default is not None and default.points > ZERO:
            points += default.points
        points = trunc(points)
        step = _staircase(points)
        if step is not None:
            relative_level += step
        elif difficulty is not Difficulty.WILDCARD and default is not None and default.points < ZERO:
            relative_level = default.adj_level - level
        else:
            level = MIN_LEVEL
            relative_level = ZERO
        if level != MIN_LEVEL:
            level += relative_level
            if difficulty is not Difficulty.WILDCARD and default is not None and level < default.adj_level:
                level = default.adj_level
            bonus = entity.skill_bonus_for(name, specialization, tags, tooltip)
            level += bonus
            relative_level += bonus
            penalty = entity.encumbrance_level(True).penalty * encumbrance_penalty_multiplier
            level += penalty
            if penalty != ZERO:
                tooltip.write(f"\nEncumbrance [{with_sign(penalty)}]")
    return Level(level=level, relative_level=relative_level, tooltip=str(tooltip))


def calculate_technique_level(
    entity: Entity | None,
    name: str,
    specialization: str,
    tags: list[str],
    default: SkillDefault,
    difficulty: Difficulty,
    points: Decimal,
    require_points: bool,
    limit_modifier: Decimal | None,
    excludes: Set[str] | None = None,
) -> Level:
    """Level of a technique (or of one ritual magic college pass).

    The technique's default supplies the base level. ``excludes`` carries the
    names already on the resolution chain; the base skill is resolved with
    itself added, so a technique chain that loops back terminates.
    """
    if entity is None:
        return NO_LEVEL
    tooltip = Tooltip()
    relative_level = ZERO
    level = MIN_LEVEL
    excludes = frozenset(excludes or ())
    if default.skill_based:
        base = entity.best_skill_named(default.name, default.specialization, require_points, excludes)
        if base is not None:
            level = base.calculate_level(excludes | {str(base)}).level
    else:
        level = default.skill_level_fast(entity, True, None, False)
        if level != MIN_LEVEL:
            level -= default.modifier
    if level != MIN_LEVEL:
        base_level = level
        level += default.modifier
        if difficulty is Difficulty.HARD:
            points -= ONE
        if points > ZERO:
            relative_level = points
        bonus = entity.skill_bonus_for(name, specialization, tags, tooltip)
        relative_level += bonus
        level += relative_level
        if limit_modifier is not None:
            maximum = base_level + limit_modifier
            if level > maximum:
                relative_level -= level - maximum
                level = maximum
    return Level(level=level, relative_level=relative_level, tooltip=str(tooltip))


# =============================================================================
# Spells
# =============================================================================


def calculate_spell_level(
    entity: Entity | None,
    name: str,
    power_source: str,
    colleges: list[str],
    tags: list[str],
    attribute: str,
    difficulty: Difficulty,
    points: Decimal,
) -> Level:
    """Level of a regular spell: the skill staircase without defaults."""
    if entity is None:
        return NO_LEVEL
    tooltip = Tooltip()
    relative_level = difficulty.base_relative_level
    points = trunc(points)
    level = entity.resolve_attribute_current(attribute)
    if difficulty is Difficulty.WILDCARD:
        points = trunc(points / THREE)
    step = _staircase(points)
    if step is None:
        level = MIN_LEVEL
        relative_level = ZERO
    else:
        relative_level += step
    if level != MIN_LEVEL:
        relative_level += entity.spell_bonus_for(name, power_source, colleges, tags, tooltip)
        relative_level = trunc(relative_level)
        level += relative_level
    return Level(level=level, relative_level=relative_level, tooltip=str(tooltip))


def _ritual_level_for_college(
    entity: Entity,
    name: str,
    college: str,
    ritual_skill_name: str,
    ritual_prereq_count: int,
    tags: list[str],
    difficulty: Difficulty,
    points: Decimal,
) -> Level:
    default = SkillDefault(
        type="skill",
        name=ritual_skill_name if college else "",
        specialization=college,
        modifier=Decimal(-ritual_prereq_count),
    )
    level = calculate_technique_level(
        entity, name, college, tags, default, difficulty, points, False, ZERO
    )
    # The technique calculator adds the default modifier to the level only.
    level = Level(level.level, level.relative_level + default.modifier, level.tooltip)
    fallback_default = SkillDefault(
        type="skill",
        name=default.name,
        specialization="",
        modifier=default.modifier - SIX,
    )
    fallback = calculate_technique_level(
        entity, name, college, tags, fallback_default, difficulty, points, False, ZERO
    )
    fallback = Level(fallback.level, fallback.relative_level + fallback_default.modifier, fallback.tooltip)
    if level.level >= fallback.level:
        return level
    return fallback


def calculate_ritual_magic_spell_level(
    entity: Entity | None,
    name: str,
    power_source: str,
    ritual_skill_name: str,
    ritual_prereq_count: int,
    colleges: list[str],
    tags: list[str],
    difficulty: Difficulty,
    points: Decimal,
) -> Level:
    """Level of a ritual magic spell.

    Each college is tried as a technique of the ritual skill specialized in
    that college, with the unspecialized skill at -6 as a fallback; the best
    college wins and spell bonuses are layered on top.
    """
    if entity is None:
        return NO_LEVEL
    if not colleges:
        best = _ritual_level_for_college(
            entity, name, "", ritual_skill_name, ritual_prereq_count, tags, difficulty, points
        )
    else:
        best = NO_LEVEL
        for college in colleges:
            possible = _ritual_level_for_college(
                entity, name, college, ritual_skill_name, ritual_prereq_count, tags, difficulty, points
            )
            if best.level < possible.level:
                best = possible
    tooltip = Tooltip(best.tooltip)
    levels = trunc(entity.spell_bonus_for(name, power_source, colleges, tags, tooltip))
    level = best.level
    if level != MIN_LEVEL:
        level += levels
    return Level(level=level, relative_level=best.relative_level + levels, tooltip=str(tooltip))


__all__ = [
    "calculate_skill_level",
    "calculate_technique_level",
    "calculate_spell_level",
    "calculate_ritual_magic_spell_level",
]
