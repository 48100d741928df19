"""Enumeration types shared by the GURPS data model.

Every enum is a StrEnum (or IntEnum where ordering matters) so that values
serialize to the same strings the persisted data uses.
"""

from __future__ import annotations

import re

from decimal import Decimal
from enum import IntEnum, StrEnum


# =============================================================================
# Skills
# =============================================================================


class Difficulty(StrEnum):
    """Skill and spell difficulty."""

    EASY = "e"
    AVERAGE = "a"
    HARD = "h"
    VERY_HARD = "vh"
    WILDCARD = "w"

    @property
    def base_relative_level(self) -> Decimal:
        """Relative level granted by a single point."""
        return _BASE_RELATIVE_LEVELS[self]


_BASE_RELATIVE_LEVELS = {
    Difficulty.EASY: Decimal(0),
    Difficulty.AVERAGE: Decimal(-1),
    Difficulty.HARD: Decimal(-2),
    Difficulty.VERY_HARD: Decimal(-3),
    Difficulty.WILDCARD: Decimal(-3),
}


class Encumbrance(IntEnum):
    """Carried-weight tiers, ordered from lightest to heaviest."""

    NONE = 0
    LIGHT = 1
    MEDIUM = 2
    HEAVY = 3
    EXTRA_HEAVY = 4

    @property
    def penalty(self) -> Decimal:
        """Move/dodge/skill penalty at this tier (0 to -4)."""
        return Decimal(-int(self))

    @property
    def weight_multiplier(self) -> Decimal:
        """Multiple of basic lift that can be carried at this tier."""
        return _ENCUMBRANCE_MULTIPLIERS[self]


_ENCUMBRANCE_MULTIPLIERS = {
    Encumbrance.NONE: Decimal(1),
    Encumbrance.LIGHT: Decimal(2),
    Encumbrance.MEDIUM: Decimal(3),
    Encumbrance.HEAVY: Decimal(6),
    Encumbrance.EXTRA_HEAVY: Decimal(10),
}

LAST_ENCUMBRANCE = Encumbrance.EXTRA_HEAVY


class DamageProgression(StrEnum):
    """Strength to damage and basic lift progression rules."""

    BASIC_SET = "basic_set"
    KNOWING_YOUR_OWN_STRENGTH = "knowing_your_own_strength"
    NO_SCHOOL_GROGNARD_DAMAGE = "no_school_grognard_damage"
    THRUST_EQUALS_SWING_MINUS_2 = "thrust_equals_swing_minus_2"


class WeightUnit(StrEnum):
    """Units for reporting weights. Weights are stored in pounds."""

    POUND = "lb"
    OUNCE = "oz"
    KILOGRAM = "kg"
    GRAM = "g"

    @property
    def pounds(self) -> Decimal:
        """How many pounds one of this unit weighs."""
        return _POUNDS_PER_UNIT[self]

    def to_pounds(self, amount: Decimal) -> Decimal:
        return amount * self.pounds

    def from_pounds(self, pounds: Decimal) -> Decimal:
        return pounds / self.pounds


_POUNDS_PER_UNIT = {
    WeightUnit.POUND: Decimal(1),
    WeightUnit.OUNCE: Decimal("0.0625"),
    WeightUnit.KILOGRAM: Decimal(2),
    WeightUnit.GRAM: Decimal("0.002"),
}

_WEIGHT_TEXT = re.compile(r"^\s*([+-]?\d*\.?\d+)\s*([a-z]*)\s*$", re.IGNORECASE)


def parse_weight(text: str, default_units: WeightUnit = WeightUnit.POUND) -> Decimal:
    """Parse "12", "1.5 kg" or "8 oz" into pounds.

    Unparseable text yields zero; an unknown or missing unit falls back to
    ``default_units``.
    """
    match = _WEIGHT_TEXT.match(text.replace(",", ""))
    if match is None:
        return Decimal(0)
    amount = Decimal(match.group(1))
    unit_text = match.group(2).lower()
    if unit_text in ("lbs", "pound", "pounds"):
        unit_text = "lb"
    try:
        units = WeightUnit(unit_text) if unit_text else default_units
    except ValueError:
        units = default_units
    return units.to_pounds(amount)


# =============================================================================
# Criteria
# =============================================================================


class StringCompare(StrEnum):
    """Text comparison used by feature and prerequisite criteria."""

    ANY = "any"
    IS = "is"
    IS_NOT = "is_not"
    CONTAINS = "contains"
    DOES_NOT_CONTAIN = "does_not_contain"
    STARTS_WITH = "starts_with"
    DOES_NOT_START_WITH = "does_not_start_with"
    ENDS_WITH = "ends_with"
    DOES_NOT_END_WITH = "does_not_end_with"

    @property
    def negated(self) -> bool:
        return self in (
            StringCompare.IS_NOT,
            StringCompare.DOES_NOT_CONTAIN,
            StringCompare.DOES_NOT_START_WITH,
            StringCompare.DOES_NOT_END_WITH,
        )


class NumericCompare(StrEnum):
    """Numeric comparison used by criteria."""

    ANY = "any"
    IS = "is"
    IS_NOT = "is_not"
    AT_LEAST = "at_least"
    AT_MOST = "at_most"


# =============================================================================
# Features
# =============================================================================


class BonusLimitation(StrEnum):
    """Restricts an attribute bonus to one use of the attribute."""

    NONE = "none"
    STRIKING_ONLY = "striking_only"
    LIFTING_ONLY = "lifting_only"
    THROWING_ONLY = "throwing_only"


class SkillSelection(StrEnum):
    """What a skill bonus targets."""

    SKILLS_WITH_NAME = "skills_with_name"
    WEAPONS_WITH_NAME = "weapons_with_name"
    THIS_WEAPON = "this_weapon"


class WeaponSelection(StrEnum):
    """What a weapon bonus targets."""

    WITH_REQUIRED_SKILL = "weapons_with_required_skill"
    WITH_NAME = "weapons_with_name"
    THIS_WEAPON = "this_weapon"


class SpellMatch(StrEnum):
    """How a spell bonus selects spells."""

    ALL_COLLEGES = "all_colleges"
    COLLEGE_NAME = "college_name"
    POWER_SOURCE_NAME = "power_source_name"
    SPELL_NAME = "spell_name"


class WeaponBonusType(StrEnum):
    """Weapon property a weapon bonus adjusts."""

    DAMAGE = "weapon_bonus"
    ACCURACY = "weapon_acc_bonus"
    SCOPE_ACCURACY = "weapon_scope_acc_bonus"
    DRAWN = "weapon_drawn_bonus"
    EFFECTIVE_ST = "weapon_eff_st_bonus"
    MINIMUM_ST = "weapon_min_st_bonus"
    MINIMUM_REACH = "weapon_min_reach_bonus"
    MAXIMUM_REACH = "weapon_max_reach_bonus"
    HALF_DAMAGE_RANGE = "weapon_half_damage_range_bonus"
    MINIMUM_RANGE = "weapon_min_range_bonus"
    MAXIMUM_RANGE = "weapon_max_range_bonus"
    RECOIL = "weapon_recoil_bonus"
    BULK = "weapon_bulk_bonus"
    PARRY = "weapon_parry_bonus"
    BLOCK = "weapon_block_bonus"
    ROF_MODE_1_SHOTS = "weapon_rof_mode_1_shots_bonus"
    ROF_MODE_1_SECONDARY = "weapon_rof_mode_1_secondary_bonus"
    ROF_MODE_2_SHOTS = "weapon_rof_mode_2_shots_bonus"
    ROF_MODE_2_SECONDARY = "weapon_rof_mode_2_secondary_bonus"
    NON_CHAMBER_SHOTS = "weapon_non_chamber_shots_bonus"
    SWITCH = "weapon_switch"

    @property
    def scales_with_dice(self) -> bool:
        """Damage bonuses level by die count rather than trait level."""
        return self is WeaponBonusType.DAMAGE


# =============================================================================
# Traits
# =============================================================================


class ContainerType(StrEnum):
    """Kind of trait container."""

    GROUP = "group"
    ALTERNATIVE_ABILITIES = "alternative_abilities"
    ANCESTRY = "ancestry"
    ATTRIBUTES = "attributes"
    META_TRAIT = "meta_trait"


class SelfControlRoll(IntEnum):
    """Self-control roll for mental disadvantages."""

    NONE = 0
    CR6 = 6
    CR9 = 9
    CR12 = 12
    CR15 = 15

    @property
    def multiplier(self) -> Decimal:
        """Cost multiplier applied to the trait."""
        return _CR_MULTIPLIERS[self]

    @property
    def index(self) -> int:
        """Severity from 0 (none) to 4 (resists on 6 or less)."""
        return _CR_INDEXES[self]


_CR_MULTIPLIERS = {
    SelfControlRoll.NONE: Decimal(1),
    SelfControlRoll.CR6: Decimal(2),
    SelfControlRoll.CR9: Decimal("1.5"),
    SelfControlRoll.CR12: Decimal(1),
    SelfControlRoll.CR15: Decimal("0.5"),
}

_CR_INDEXES = {
    SelfControlRoll.NONE: 0,
    SelfControlRoll.CR15: 1,
    SelfControlRoll.CR12: 2,
    SelfControlRoll.CR9: 3,
    SelfControlRoll.CR6: 4,
}


class SelfControlAdjustment(StrEnum):
    """Extra consequence attached to a self-control roll."""

    NONE = "none"
    ACTION_PENALTY = "action_penalty"
    REACTION_PENALTY = "reaction_penalty"
    FRIGHT_CHECK_PENALTY = "fright_check_penalty"
    FRIGHT_CHECK_BONUS = "fright_check_bonus"
    MINOR_COST_OF_LIVING_INCREASE = "minor_cost_of_living_increase"
    MAJOR_COST_OF_LIVING_INCREASE = "major_cost_of_living_increase"


class ModifierCostType(StrEnum):
    """How a trait modifier's cost is expressed."""

    PERCENTAGE = "percentage"
    POINTS = "points"
    MULTIPLIER = "multiplier"


class ModifierAffects(StrEnum):
    """Which part of a leveled trait's cost a modifier applies to."""

    TOTAL = "total"
    BASE_ONLY = "base_only"
    LEVELS_ONLY = "levels_only"


# =============================================================================
# Equipment
# =============================================================================


class EquipmentCostType(StrEnum):
    """Phase in which an equipment modifier adjusts value."""

    ORIGINAL = "to_original_cost"
    BASE = "to_base_cost"
    FINAL_BASE = "to_final_base_cost"
    FINAL = "to_final_cost"


class EquipmentWeightType(StrEnum):
    """Phase in which an equipment modifier adjusts weight."""

    ORIGINAL = "to_original_weight"
    BASE = "to_base_weight"
    FINAL_BASE = "to_final_base_weight"
    FINAL = "to_final_weight"


# =============================================================================
# Attributes
# =============================================================================


class AttributeType(StrEnum):
    """Kind of attribute definition."""

    INTEGER = "integer"
    INTEGER_REF = "integer_ref"
    DECIMAL = "decimal"
    DECIMAL_REF = "decimal_ref"
    POOL = "pool"
    PRIMARY_SEPARATOR = "primary_separator"
    SECONDARY_SEPARATOR = "secondary_separator"
    POOL_SEPARATOR = "pool_separator"

    @property
    def is_separator(self) -> bool:
        return self in (
            AttributeType.PRIMARY_SEPARATOR,
            AttributeType.SECONDARY_SEPARATOR,
            AttributeType.POOL_SEPARATOR,
        )

    @property
    def allows_decimal(self) -> bool:
        return self in (AttributeType.DECIMAL, AttributeType.DECIMAL_REF)


class ThresholdOp(StrEnum):
    """Effect that applies while a pool is at or below a threshold."""

    HALVE_MOVE = "halve_move"
    HALVE_DODGE = "halve_dodge"
    HALVE_ST = "halve_st"


__all__ = [
    "Difficulty",
    "Encumbrance",
    "LAST_ENCUMBRANCE",
    "DamageProgression",
    "WeightUnit",
    "parse_weight",
    "StringCompare",
    "NumericCompare",
    "BonusLimitation",
    "SkillSelection",
    "WeaponSelection",
    "SpellMatch",
    "WeaponBonusType",
    "ContainerType",
    "SelfControlRoll",
    "SelfControlAdjustment",
    "ModifierCostType",
    "ModifierAffects",
    "EquipmentCostType",
    "EquipmentWeightType",
    "AttributeType",
    "ThresholdOp",
]
