"""Per-kind feature buckets rebuilt on every recalculation pass.

The buckets own nothing: they hold references to the features of the
entity's elements, after each bonus has been stamped with its owner and the
level it scales by. Lookups take plain inputs (names, tags, a relative skill
level) so they stay independent of the entity that filled them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Set
from decimal import Decimal
from typing import Any

from gurps_engine.core.constants import ALL_LOCATIONS_ID, MAX_COST_REDUCTION
from gurps_engine.core.fixed import ZERO
from gurps_engine.core.logging import get_logger
from gurps_engine.models.enums import BonusLimitation, SkillSelection, WeaponBonusType, WeaponSelection
from gurps_engine.models.equipment import Equipment
from gurps_engine.models.features import (
    AttributeBonus,
    ConditionalModifierBonus,
    ContainedWeightReduction,
    CostReduction,
    DRBonus,
    ReactionBonus,
    SkillBonus,
    SkillPointBonus,
    SpellBonus,
    SpellPointBonus,
    WeaponBonus,
    prepare_bonus,
)
from gurps_engine.models.tooltip import Tooltip


logger = get_logger(__name__)


class FeatureBuckets:
    """Features of one entity, sorted by kind.

    Attributes:
        attribute_bonuses: Bonuses to attributes and pseudo-attributes.
        cost_reductions: Attribute cost reductions.
        dr_bonuses: DR bonuses, with "this armor" bonuses already expanded.
        skill_bonuses: Skill level bonuses.
        skill_point_bonuses: Skill point bonuses.
        spell_bonuses: Spell level bonuses.
        spell_point_bonuses: Spell point bonuses.
        weapon_bonuses: Weapon property bonuses.
        reaction_bonuses: Reaction modifiers.
        conditional_modifiers: Conditional modifiers.
    """

    def __init__(self) -> None:
        self.attribute_bonuses: list[AttributeBonus] = []
        self.cost_reductions: list[CostReduction] = []
        self.dr_bonuses: list[DRBonus] = []
        self.skill_bonuses: list[SkillBonus] = []
        self.skill_point_bonuses: list[SkillPointBonus] = []
        self.spell_bonuses: list[SpellBonus] = []
        self.spell_point_bonuses: list[SpellPointBonus] = []
        self.weapon_bonuses: list[WeaponBonus] = []
        self.reaction_bonuses: list[ReactionBonus] = []
        self.conditional_modifiers: list[ConditionalModifierBonus] = []

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def add(self, feature: Any, owner: Any, sub_owner: Any, level: Decimal) -> None:
        """Stamp a feature with its owner and level and file it by kind.

        Unknown feature objects are logged and skipped.
        """
        prepare_bonus(feature, owner, sub_owner, level)
        match feature:
            case AttributeBonus():
                self.attribute_bonuses.append(feature)
            case CostReduction():
                self.cost_reductions.append(feature)
            case DRBonus():
                if not feature.locations and isinstance(owner, Equipment):
                    self._add_this_armor_dr(feature, owner)
                else:
                    self.dr_bonuses.append(feature)
            case SkillBonus():
                self.skill_bonuses.append(feature)
            case SkillPointBonus():
                self.skill_point_bonuses.append(feature)
            case SpellBonus():
                self.spell_bonuses.append(feature)
            case SpellPointBonus():
                self.spell_point_bonuses.append(feature)
            case WeaponBonus():
                self.weapon_bonuses.append(feature)
            case ReactionBonus():
                self.reaction_bonuses.append(feature)
            case ConditionalModifierBonus():
                self.conditional_modifiers.append(feature)
            case ContainedWeightReduction():
                pass
            case _:
                logger.warning(
                    "Skipping unknown feature",
                    feature_type=type(feature).__name__,
                    owner=str(owner),
                )

    def add_all(self, features: Iterable[Any], owner: Any, sub_owner: Any, level: Decimal) -> None:
        for feature in features:
            self.add(feature, owner, sub_owner, level)

    def _add_this_armor_dr(self, bonus: DRBonus, owner: Equipment) -> None:
        """Expand a DR bonus without locations over the owner's armor locations.

        Each sibling DR bonus sharing the specialization contributes its own
        location set; any remaining locations covered by other siblings are
        gathered into one more bonus.
        """
        all_locations: set[str] = set()
        matching: set[str] = set()
        for sibling in owner.features:
            if not isinstance(sibling, DRBonus) or not sibling.locations:
                continue
            all_locations.update(sibling.locations)
            if sibling.specialization == bonus.specialization:
                matching.update(sibling.locations)
                self.dr_bonuses.append(self._copy_dr(bonus, list(sibling.locations)))
        leftover = all_locations - matching
        if leftover:
            self.dr_bonuses.append(self._copy_dr(bonus, sorted(leftover)))

    @staticmethod
    def _copy_dr(bonus: DRBonus, locations: list[str]) -> DRBonus:
        copy = bonus.model_copy(update={"locations": locations})
        copy.set_owner(bonus.owner, bonus.sub_owner)
        copy.set_level(bonus.owner_level)
        return copy

    # -------------------------------------------------------------------------
    # Attributes and DR
    # -------------------------------------------------------------------------

    def attribute_bonus_for(
        self,
        attr_id: str,
        limitation: BonusLimitation,
        tooltip: Tooltip | None,
    ) -> Decimal:
        total = ZERO
        for bonus in self.attribute_bonuses:
            if bonus.attribute == attr_id and bonus.actual_limitation() is limitation:
                total += bonus.adjusted_amount
                bonus.add_to_tooltip(tooltip)
        return total

    def cost_reduction_for(self, attr_id: str) -> Decimal:
        """Summed cost reduction percent, clamped to 0..80."""
        total = sum((one.percentage for one in self.cost_reductions if one.attribute == attr_id), ZERO)
        return min(max(total, ZERO), Decimal(MAX_COST_REDUCTION))

    def add_dr_bonuses_for(
        self,
        location_id: str,
        is_top_level: bool,
        tooltip: Tooltip | None,
        dr_map: dict[str, Decimal] | None = None,
    ) -> dict[str, Decimal]:
        """Add DR at a location into ``dr_map``, keyed by lower-cased specialization.

        "all" matches only top-level locations.
        """
        if dr_map is None:
            dr_map = {}
        wanted = location_id.lower()
        for bonus in self.dr_bonuses:
            for location in bonus.locations:
                lowered = location.lower()
                if (lowered == ALL_LOCATIONS_ID and is_top_level) or lowered == wanted:
                    key = bonus.normalized_specialization().lower()
                    dr_map[key] = dr_map.get(key, ZERO) + bonus.adjusted_amount
                    bonus.add_to_tooltip(tooltip)
                    break
        return dr_map

    # -------------------------------------------------------------------------
    # Skills and Spells
    # -------------------------------------------------------------------------

    def skill_bonus_for(
        self,
        name: str,
        specialization: str,
        tags: list[str],
        tooltip: Tooltip | None,
    ) -> Decimal:
        total = ZERO
        for bonus in self.skill_bonuses:
            if bonus.selection_type is not SkillSelection.SKILLS_WITH_NAME:
                continue
            replacements = bonus.replacements
            if (
                bonus.name.matches(replacements, name)
                and bonus.specialization.matches(replacements, specialization)
                and bonus.tags.matches_list(replacements, *tags)
            ):
                total += bonus.adjusted_amount
                bonus.add_to_tooltip(tooltip)
        return total

    def skill_point_bonus_for(
        self,
        name: str,
        specialization: str,
        tags: list[str],
        tooltip: Tooltip | None,
    ) -> Decimal:
        total = ZERO
        for bonus in self.skill_point_bonuses:
            replacements = bonus.replacements
            if (
                bonus.name.matches(replacements, name)
                and bonus.specialization.matches(replacements, specialization)
                and bonus.tags.matches_list(replacements, *tags)
            ):
                total += bonus.adjusted_amount
                bonus.add_to_tooltip(tooltip)
        return total

    @staticmethod
    def _spell_total(
        bonuses: Iterable[SpellBonus | SpellPointBonus],
        name: str,
        power_source: str,
        colleges: list[str],
        tags: list[str],
        tooltip: Tooltip | None,
    ) -> Decimal:
        total = ZERO
        for bonus in bonuses:
            if not bonus.tags.matches_list(bonus.replacements, *tags):
                continue
            if bonus.matches_for_type(bonus.match, name, power_source, colleges):
                total += bonus.adjusted_amount
                bonus.add_to_tooltip(tooltip)
        return total

    def spell_bonus_for(
        self,
        name: str,
        power_source: str,
        colleges: list[str],
        tags: list[str],
        tooltip: Tooltip | None,
    ) -> Decimal:
        return self._spell_total(self.spell_bonuses, name, power_source, colleges, tags, tooltip)

    def spell_point_bonus_for(
        self,
        name: str,
        power_source: str,
        colleges: list[str],
        tags: list[str],
        tooltip: Tooltip | None,
    ) -> Decimal:
        return self._spell_total(self.spell_point_bonuses, name, power_source, colleges, tags, tooltip)

    # -------------------------------------------------------------------------
    # Weapons
    # -------------------------------------------------------------------------

    def named_weapon_skill_bonuses_for(
        self,
        name: str,
        usage: str,
        tags: list[str],
        tooltip: Tooltip | None,
    ) -> list[SkillBonus]:
        """Skill bonuses that select weapons by name and usage."""
        found: list[SkillBonus] = []
        for bonus in self.skill_bonuses:
            if bonus.selection_type is not SkillSelection.WEAPONS_WITH_NAME:
                continue
            replacements = bonus.replacements
            if (
                bonus.name.matches(replacements, name)
                and bonus.specialization.matches(replacements, usage)
                and bonus.tags.matches_list(replacements, *tags)
            ):
                found.append(bonus)
                bonus.add_to_tooltip(tooltip)
        return found

    def add_weapon_with_skill_bonuses_for(
        self,
        name: str,
        specialization: str,
        tags: list[str],
        relative_level: Decimal,
        dice_count: int,
        tooltip: Tooltip | None,
        found: dict[int, WeaponBonus],
        bonus_types: Set[WeaponBonusType],
    ) -> None:
        """Collect weapon bonuses that select weapons by their required skill."""

        def selects(bonus: WeaponBonus) -> bool:
            replacements = bonus.replacements
            return (
                bonus.selection_type is WeaponSelection.WITH_REQUIRED_SKILL
                and bonus.name.matches(replacements, name)
                and bonus.specialization.matches(replacements, specialization)
                and bonus.level.matches(relative_level)
                and bonus.tags.matches_list(replacements, *tags)
            )

        self._collect_weapon_bonuses(selects, dice_count, tooltip, found, bonus_types)

    def add_named_weapon_bonuses_for(
        self,
        name: str,
        usage: str,
        tags: list[str],
        dice_count: int,
        tooltip: Tooltip | None,
        found: dict[int, WeaponBonus],
        bonus_types: Set[WeaponBonusType],
    ) -> None:
        """Collect weapon bonuses that select weapons by name and usage."""

        def selects(bonus: WeaponBonus) -> bool:
            replacements = bonus.replacements
            return (
                bonus.selection_type is WeaponSelection.WITH_NAME
                and bonus.name.matches(replacements, name)
                and bonus.specialization.matches(replacements, usage)
                and bonus.tags.matches_list(replacements, *tags)
            )

        self._collect_weapon_bonuses(selects, dice_count, tooltip, found, bonus_types)

    def _collect_weapon_bonuses(
        self,
        selects: Callable[[WeaponBonus], bool],
        dice_count: int,
        tooltip: Tooltip | None,
        found: dict[int, WeaponBonus],
        bonus_types: Set[WeaponBonusType],
    ) -> None:
        for bonus in self.weapon_bonuses:
            if bonus.bonus_type not in bonus_types or not selects(bonus):
                continue
            if id(bonus) in found:
                continue
            found[id(bonus)] = bonus
            saved = bonus.owner_level
            if bonus.bonus_type.scales_with_dice:
                bonus.set_level(Decimal(dice_count))
            bonus.add_to_tooltip(tooltip)
            bonus.set_level(saved)


__all__ = ["FeatureBuckets"]
