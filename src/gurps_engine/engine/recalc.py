"""Entity recalculation driver.

Skill and spell levels depend on feature bonuses, and some bonuses depend on
skill levels, so one pass is not enough. The driver re-links ownership,
resets every per-pass cache, then alternates feature aggregation,
prerequisite evaluation and level updates until no level changes or the
iteration cap is reached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from gurps_engine.core.config import RecalcSettings, get_settings
from gurps_engine.core.constants import (
    BLOCK_ID,
    DODGE_ID,
    EQUIPMENT_PENALTY,
    EQUIPMENT_PENALTY_WITH_TL,
    PARRY_ID,
    PREREQ_NOT_MET,
    PREREQ_PREFIX,
    STRENGTH_ID,
)
from gurps_engine.core.fixed import ZERO, trunc
from gurps_engine.core.logging import entity_context, get_logger
from gurps_engine.engine.features import FeatureBuckets
from gurps_engine.models.criteria import string_is
from gurps_engine.models.enums import BonusLimitation, Encumbrance, SpellMatch
from gurps_engine.models.equipment import Equipment
from gurps_engine.models.features import SkillBonus, SpellBonus
from gurps_engine.models.node import collect, traverse
from gurps_engine.models.skill import Skill
from gurps_engine.models.spell import Spell
from gurps_engine.models.tooltip import Tooltip
from gurps_engine.models.trait import Trait


if TYPE_CHECKING:
    from gurps_engine.models.entity import Entity


logger = get_logger(__name__)


# =============================================================================
# Per-Recalculation Scratch
# =============================================================================


@dataclass
class RecalcScratch:
    """State scoped to one ``recalculate()`` call.

    A fresh scratch replaces the previous one at the start of every
    recalculation. ``discard_caches`` empties the memoized values between
    passes; the feature buckets are replaced by each feature pass.
    """

    features: FeatureBuckets = field(default_factory=FeatureBuckets)
    variable_cache: dict[str, str] = field(default_factory=dict)
    variable_exclusions: set[str] = field(default_factory=set)
    basic_lift: Decimal | None = None
    encumbrance: dict[bool, Encumbrance] = field(default_factory=dict)

    def discard_caches(self) -> None:
        self.variable_cache.clear()
        self.variable_exclusions.clear()
        self.basic_lift = None
        self.encumbrance.clear()


# =============================================================================
# Driver
# =============================================================================


class Recalculator:
    """Runs the recalculation state machine for one entity.

    Args:
        entity: The entity to recalculate.
        settings: Iteration cap and diagnostics; defaults to the
            application settings.
    """

    def __init__(self, entity: Entity, settings: RecalcSettings | None = None) -> None:
        self.entity = entity
        self.settings = settings or get_settings().recalc

    def run(self) -> bool:
        """Recalculate the entity.

        Returns:
            True if levels settled before the iteration cap.
        """
        entity = self.entity
        with entity_context(entity.id):
            entity.attach()
            scratch = entity.reset_scratch()
            self.update_levels()

            converged = False
            iterations = 0
            changed_skills: list[str] = []
            changed_spells: list[str] = []
            for iteration in range(1, self.settings.max_iterations + 1):
                iterations = iteration
                self.process_features()
                self.process_prereqs()
                scratch.discard_caches()
                changed_skills = self.update_skills()
                changed_spells = self.update_spells()
                logger.debug(
                    "Recalculation pass complete",
                    iteration=iteration,
                    changed_skills=len(changed_skills),
                    changed_spells=len(changed_spells),
                )
                if not changed_skills and not changed_spells:
                    converged = True
                    break

            if not converged and self.settings.warn_on_non_convergence:
                logger.warning(
                    "Recalculation did not converge",
                    iterations=iterations,
                    changed_skills=changed_skills,
                    changed_spells=changed_spells,
                )
            entity.last_recalc_converged = converged
            entity.last_recalc_iterations = iterations
            return converged

    # -------------------------------------------------------------------------
    # Levels
    # -------------------------------------------------------------------------

    def update_skills(self) -> list[str]:
        """Update every skill level; returns the names that changed."""
        return [str(skill) for skill in collect(False, True, *self.entity.skills) if skill.update_level()]

    def update_spells(self) -> list[str]:
        return [str(spell) for spell in collect(False, True, *self.entity.spells) if spell.update_level()]

    def update_levels(self) -> None:
        self.update_skills()
        self.update_spells()

    # -------------------------------------------------------------------------
    # Features
    # -------------------------------------------------------------------------

    def process_features(self) -> FeatureBuckets:
        """Rebuild the feature buckets and the values derived from them."""
        entity = self.entity
        buckets = FeatureBuckets()
        entity.scratch.features = buckets

        def add_trait(trait: Trait) -> bool:
            levels = max(trait.levels, ZERO) if trait.is_leveled else ZERO
            if not trait.container:
                buckets.add_all(trait.features, trait, None, levels)
            buckets.add_all(trait.cr_features(), trait, None, levels)
            for mod in collect(True, True, *trait.modifiers):
                buckets.add_all(mod.features, trait, mod, mod.current_level)
            return False

        def add_skill(skill: Skill) -> bool:
            buckets.add_all(skill.features, skill, None, skill.level_data.level)
            return False

        def add_spell(spell: Spell) -> bool:
            buckets.add_all(spell.features, spell, None, spell.level_data.level)
            return False

        def add_equipment(item: Equipment) -> bool:
            if not item.equipped or item.quantity <= ZERO:
                return False
            buckets.add_all(item.features, item, None, ZERO)
            for mod in collect(True, True, *item.modifiers):
                buckets.add_all(mod.features, item, mod, ZERO)
            return False

        traverse(add_trait, True, False, *entity.traits)
        traverse(add_skill, False, True, *entity.skills)
        traverse(add_spell, False, True, *entity.spells)
        traverse(add_equipment, False, False, *entity.carried_equipment)

        self._apply_derived_bonuses(buckets)
        return buckets

    def _apply_derived_bonuses(self, buckets: FeatureBuckets) -> None:
        entity = self.entity
        entity.lifting_strength_bonus = trunc(
            buckets.attribute_bonus_for(STRENGTH_ID, BonusLimitation.LIFTING_ONLY, None)
        )
        entity.striking_strength_bonus = trunc(
            buckets.attribute_bonus_for(STRENGTH_ID, BonusLimitation.STRIKING_ONLY, None)
        )
        entity.throwing_strength_bonus = trunc(
            buckets.attribute_bonus_for(STRENGTH_ID, BonusLimitation.THROWING_ONLY, None)
        )
        for attr in entity.attributes.values():
            definition = attr.attribute_def()
            if definition is None:
                attr.bonus = ZERO
                attr.cost_reduction = ZERO
                continue
            bonus = buckets.attribute_bonus_for(attr.attr_id, BonusLimitation.NONE, None)
            if not definition.type.allows_decimal:
                bonus = trunc(bonus)
            attr.bonus = bonus
            attr.cost_reduction = buckets.cost_reduction_for(attr.attr_id)
        entity.profile.update(entity)

        if DODGE_ID in entity.attributes:
            entity.dodge_bonus = ZERO
            entity.dodge_bonus_tooltip = ""
        else:
            tooltip = Tooltip()
            entity.dodge_bonus = trunc(buckets.attribute_bonus_for(DODGE_ID, BonusLimitation.NONE, tooltip))
            entity.dodge_bonus_tooltip = str(tooltip)
        tooltip = Tooltip()
        entity.parry_bonus = trunc(buckets.attribute_bonus_for(PARRY_ID, BonusLimitation.NONE, tooltip))
        entity.parry_bonus_tooltip = str(tooltip)
        tooltip = Tooltip()
        entity.block_bonus = trunc(buckets.attribute_bonus_for(BLOCK_ID, BonusLimitation.NONE, tooltip))
        entity.block_bonus_tooltip = str(tooltip)

    # -------------------------------------------------------------------------
    # Prerequisites
    # -------------------------------------------------------------------------

    def process_prereqs(self) -> None:
        """Evaluate every prerequisite tree and record unmet reasons.

        A skill or spell missing required equipment gets a penalty bonus added
        to the current buckets.
        """
        entity = self.entity
        buckets = entity.scratch.features

        def check_trait(trait: Trait) -> bool:
            trait.unsatisfied_reason = ""
            if not trait.container and trait.prereq is not None:
                tooltip = Tooltip()
                if not trait.prereq.satisfied(entity, trait, tooltip, PREREQ_PREFIX):
                    trait.unsatisfied_reason = PREREQ_NOT_MET + str(tooltip)
            return False

        def check_skill(skill: Skill) -> bool:
            skill.unsatisfied_reason = ""
            if skill.container:
                return False
            tooltip = Tooltip()
            satisfied = True
            if skill.prereq is not None:
                satisfied = skill.prereq.satisfied(entity, skill, tooltip, PREREQ_PREFIX)
                if skill.prereq.has_equipment_penalty(entity, skill):
                    penalty = SkillBonus(
                        name=string_is(skill.name),
                        specialization=string_is(skill.specialization),
                        amount=Decimal(EQUIPMENT_PENALTY_WITH_TL if skill.tech_level else EQUIPMENT_PENALTY),
                    )
                    buckets.add(penalty, skill, None, ZERO)
            if satisfied and skill.is_technique:
                satisfied = skill.technique_satisfied(tooltip, PREREQ_PREFIX)
            if not satisfied:
                skill.unsatisfied_reason = PREREQ_NOT_MET + str(tooltip)
            return False

        def check_spell(spell: Spell) -> bool:
            spell.unsatisfied_reason = ""
            if spell.container:
                return False
            tooltip = Tooltip()
            satisfied = True
            if spell.prereq is not None:
                satisfied = spell.prereq.satisfied(entity, spell, tooltip, PREREQ_PREFIX)
                if spell.prereq.has_equipment_penalty(entity, spell):
                    penalty = SpellBonus(
                        match=SpellMatch.SPELL_NAME,
                        name=string_is(spell.name),
                        amount=Decimal(EQUIPMENT_PENALTY_WITH_TL if spell.tech_level else EQUIPMENT_PENALTY),
                    )
                    buckets.add(penalty, spell, None, ZERO)
            if satisfied and spell.is_ritual_magic:
                satisfied = spell.ritual_magic_satisfied(tooltip, PREREQ_PREFIX)
            if not satisfied:
                spell.unsatisfied_reason = PREREQ_NOT_MET + str(tooltip)
            return False

        def check_equipment(item: Equipment) -> bool:
            item.unsatisfied_reason = ""
            if item.prereq is not None:
                tooltip = Tooltip()
                if not item.prereq.satisfied(entity, item, tooltip, PREREQ_PREFIX):
                    item.unsatisfied_reason = PREREQ_NOT_MET + str(tooltip)
            return False

        traverse(check_trait, True, False, *entity.traits)
        traverse(check_skill, False, False, *entity.skills)
        traverse(check_spell, False, False, *entity.spells)
        traverse(check_equipment, False, False, *entity.carried_equipment)


__all__ = ["RecalcScratch", "Recalculator"]
