"""Feature variants attached to traits, skills, equipment and modifiers.

Features form a closed set discriminated on ``type``. The "bonus" variants
carry an amount that may scale with the owner's level, plus transient owner
and level references assigned fresh on every recalculation pass. Those
references live in private attributes, so they never reach serialized data
or the state hash.

Example:
    >>> bonus = AttributeBonus(attribute="st", amount=1, per_level=True)
    >>> bonus.set_level(Decimal(3))
    >>> bonus.adjusted_amount
    Decimal('3')
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from gurps_engine.core.constants import ALL_LOCATIONS_ID, STRENGTH_ID
from gurps_engine.core.fixed import HUNDRED, ZERO, fixed_str, with_sign
from gurps_engine.models.criteria import NumericCriteria, StringCriteria, extract_nameables
from gurps_engine.models.enums import (
    BonusLimitation,
    SkillSelection,
    SpellMatch,
    WeaponBonusType,
    WeaponSelection,
    WeightUnit,
    parse_weight,
)
from gurps_engine.models.tooltip import Tooltip


# =============================================================================
# Bonus Base
# =============================================================================


class Bonus(BaseModel):
    """Shared shape of every leveled bonus.

    Attributes:
        amount: Base amount of the bonus.
        per_level: Multiply ``amount`` by the owner's level when True.
    """

    model_config = ConfigDict(extra="ignore")

    amount: Decimal = ZERO
    per_level: bool = False

    _owner: Any = PrivateAttr(default=None)
    _sub_owner: Any = PrivateAttr(default=None)
    _level: Decimal = PrivateAttr(default=ZERO)

    @property
    def owner(self) -> Any:
        return self._owner

    @property
    def sub_owner(self) -> Any:
        return self._sub_owner

    @property
    def owner_level(self) -> Decimal:
        """Level of the owning element, set during aggregation."""
        return self._level

    def set_owner(self, owner: Any, sub_owner: Any = None) -> None:
        self._owner = owner
        self._sub_owner = sub_owner

    def set_level(self, level: Decimal) -> None:
        self._level = level

    @property
    def adjusted_amount(self) -> Decimal:
        """Amount after per-level scaling."""
        if self.per_level:
            return self.amount * self._level
        return self.amount

    @property
    def replacements(self) -> Mapping[str, str]:
        """Nameable replacements of the owning element, if any."""
        return getattr(self._owner, "replacements", None) or {}

    def owner_description(self) -> str:
        if self._owner is None:
            return "Unknown"
        text = str(self._owner)
        if self._sub_owner is not None:
            text = f"{text} ({self._sub_owner})"
        return text

    def add_to_tooltip(self, tooltip: Tooltip | None) -> None:
        """Write ``"\\n<owner> [+N]"`` (with the per-level amount if any)."""
        if tooltip is None:
            return
        text = f"\n{self.owner_description()} [{with_sign(self.adjusted_amount)}"
        if self.per_level:
            text += f" ({with_sign(self.amount)} per level)"
        tooltip.write(text + "]")


# =============================================================================
# Attribute and Reaction Bonuses
# =============================================================================


class AttributeBonus(Bonus):
    """Adds to an attribute, optionally limited to one use of it."""

    type: Literal["attribute_bonus"] = "attribute_bonus"
    attribute: str = STRENGTH_ID
    limitation: BonusLimitation = BonusLimitation.NONE

    def actual_limitation(self) -> BonusLimitation:
        if self.attribute == STRENGTH_ID:
            return self.limitation
        return BonusLimitation.NONE


class ConditionalModifierBonus(Bonus):
    """A situational modifier listed on the sheet, not applied to any value."""

    type: Literal["conditional_modifier"] = "conditional_modifier"
    situation: str = "triggering condition"


class ReactionBonus(Bonus):
    """A reaction modifier listed on the sheet per situation."""

    type: Literal["reaction_bonus"] = "reaction_bonus"
    situation: str = "from others"


class DRBonus(Bonus):
    """Adds damage resistance at hit locations.

    An empty ``locations`` list means "wherever the owning armor covers"
    and is expanded during aggregation.
    """

    type: Literal["dr_bonus"] = "dr_bonus"
    locations: list[str] = Field(default_factory=list)
    specialization: str = ALL_LOCATIONS_ID

    def normalized_specialization(self) -> str:
        spec = self.specialization.strip()
        if not spec or spec.lower() == ALL_LOCATIONS_ID:
            return ALL_LOCATIONS_ID
        return spec


# =============================================================================
# Skill and Spell Bonuses
# =============================================================================


class SkillBonus(Bonus):
    """Adds to skill levels, or to the skill level of matching weapons."""

    type: Literal["skill_bonus"] = "skill_bonus"
    selection_type: SkillSelection = SkillSelection.SKILLS_WITH_NAME
    name: StringCriteria = Field(default_factory=StringCriteria)
    specialization: StringCriteria = Field(default_factory=StringCriteria)
    tags: StringCriteria = Field(default_factory=StringCriteria)

    def nameable_keys(self) -> set[str]:
        return (
            extract_nameables(self.name.qualifier)
            | extract_nameables(self.specialization.qualifier)
            | extract_nameables(self.tags.qualifier)
        )


class SkillPointBonus(Bonus):
    """Adds points to matching skills."""

    type: Literal["skill_point_bonus"] = "skill_point_bonus"
    name: StringCriteria = Field(default_factory=StringCriteria)
    specialization: StringCriteria = Field(default_factory=StringCriteria)
    tags: StringCriteria = Field(default_factory=StringCriteria)


class SpellBonus(Bonus):
    """Adds to spell levels selected by college, power source or name."""

    type: Literal["spell_bonus"] = "spell_bonus"
    match: SpellMatch = SpellMatch.ALL_COLLEGES
    name: StringCriteria = Field(default_factory=StringCriteria)
    tags: StringCriteria = Field(default_factory=StringCriteria)

    def matches_for_type(
        self,
        kind: SpellMatch,
        name: str,
        power_source: str,
        colleges: list[str],
    ) -> bool:
        if self.match is not kind:
            return False
        return spell_match(kind, self.name, self.replacements, name, power_source, colleges)


class SpellPointBonus(Bonus):
    """Adds points to spells selected by college, power source or name."""

    type: Literal["spell_point_bonus"] = "spell_point_bonus"
    match: SpellMatch = SpellMatch.ALL_COLLEGES
    name: StringCriteria = Field(default_factory=StringCriteria)
    tags: StringCriteria = Field(default_factory=StringCriteria)

    def matches_for_type(
        self,
        kind: SpellMatch,
        name: str,
        power_source: str,
        colleges: list[str],
    ) -> bool:
        if self.match is not kind:
            return False
        return spell_match(kind, self.name, self.replacements, name, power_source, colleges)


def spell_match(
    kind: SpellMatch,
    criteria: StringCriteria,
    replacements: Mapping[str, str],
    name: str,
    power_source: str,
    colleges: list[str],
) -> bool:
    """Apply a spell bonus's name criteria the way its match type asks."""
    match kind:
        case SpellMatch.ALL_COLLEGES:
            return True
        case SpellMatch.SPELL_NAME:
            return criteria.matches(replacements, name)
        case SpellMatch.POWER_SOURCE_NAME:
            return criteria.matches(replacements, power_source)
        case SpellMatch.COLLEGE_NAME:
            return criteria.matches_list(replacements, *colleges)
    return False


# =============================================================================
# Weapon Bonuses
# =============================================================================


WeaponBonusTypeName = Literal[
    "weapon_bonus",
    "weapon_acc_bonus",
    "weapon_scope_acc_bonus",
    "weapon_drawn_bonus",
    "weapon_eff_st_bonus",
    "weapon_min_st_bonus",
    "weapon_min_reach_bonus",
    "weapon_max_reach_bonus",
    "weapon_half_damage_range_bonus",
    "weapon_min_range_bonus",
    "weapon_max_range_bonus",
    "weapon_recoil_bonus",
    "weapon_bulk_bonus",
    "weapon_parry_bonus",
    "weapon_block_bonus",
    "weapon_rof_mode_1_shots_bonus",
    "weapon_rof_mode_1_secondary_bonus",
    "weapon_rof_mode_2_shots_bonus",
    "weapon_rof_mode_2_secondary_bonus",
    "weapon_non_chamber_shots_bonus",
    "weapon_switch",
]


class WeaponBonus(Bonus):
    """Adjusts one property of matching weapons.

    Attributes:
        type: The weapon property adjusted; see ``WeaponBonusType``.
        selection_type: How weapons are selected.
        name: Skill name (required-skill selection) or weapon name.
        specialization: Skill specialization or weapon usage.
        level: Relative skill level criteria (required-skill selection).
        usage: Weapon usage criteria (name selection).
        tags: Tag criteria.
        switch_value: New value for ``weapon_switch`` bonuses.
        percent: Treat the amount as a percentage adjustment.
    """

    type: WeaponBonusTypeName = "weapon_bonus"
    selection_type: WeaponSelection = WeaponSelection.WITH_REQUIRED_SKILL
    name: StringCriteria = Field(default_factory=StringCriteria)
    specialization: StringCriteria = Field(default_factory=StringCriteria)
    level: NumericCriteria = Field(default_factory=NumericCriteria)
    usage: StringCriteria = Field(default_factory=StringCriteria)
    tags: StringCriteria = Field(default_factory=StringCriteria)
    switch_value: bool = False
    percent: bool = False

    @property
    def bonus_type(self) -> WeaponBonusType:
        return WeaponBonusType(self.type)

    def add_to_tooltip(self, tooltip: Tooltip | None) -> None:
        if tooltip is None:
            return
        if self.bonus_type is WeaponBonusType.SWITCH:
            tooltip.write(f"\n{self.owner_description()} [{str(self.switch_value).lower()}]")
            return
        if not self.percent:
            super().add_to_tooltip(tooltip)
            return
        text = f"\n{self.owner_description()} [{with_sign(self.adjusted_amount)}%"
        if self.per_level:
            text += f" ({with_sign(self.amount)}% per level)"
        tooltip.write(text + "]")


# =============================================================================
# Non-Bonus Features
# =============================================================================


class CostReduction(BaseModel):
    """Reduces the point cost of an attribute by a percentage."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["cost_reduction"] = "cost_reduction"
    attribute: str = STRENGTH_ID
    percentage: Decimal = Field(default=Decimal(40), ge=0, le=HUNDRED)


class ContainedWeightReduction(BaseModel):
    """Reduces the weight of a container's contents.

    ``reduction`` is either a percentage ("50%") or a fixed weight ("5 lb").
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["contained_weight_reduction"] = "contained_weight_reduction"
    reduction: str = "0%"

    @property
    def is_percentage_reduction(self) -> bool:
        return self.reduction.strip().endswith("%")

    def percentage_reduction(self) -> Decimal:
        if not self.is_percentage_reduction:
            return ZERO
        try:
            return Decimal(self.reduction.strip()[:-1].strip() or "0")
        except ArithmeticError:
            return ZERO

    def fixed_reduction(self, default_units: WeightUnit = WeightUnit.POUND) -> Decimal:
        """Fixed reduction in pounds (zero for a percentage reduction)."""
        if self.is_percentage_reduction:
            return ZERO
        return parse_weight(self.reduction, default_units)

    def describe(self) -> str:
        if self.is_percentage_reduction:
            return f"{fixed_str(self.percentage_reduction())}%"
        return self.reduction.strip()


# =============================================================================
# Union
# =============================================================================


Feature = Annotated[
    Union[
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
    ],
    Field(discriminator="type"),
]
"""Any feature; pydantic selects the variant from ``type``."""


def is_bonus(feature: object) -> bool:
    return isinstance(feature, Bonus)


def prepare_bonus(feature: object, owner: Any, sub_owner: Any, level: Decimal) -> None:
    """Assign transient owner and level data to a bonus (no-op otherwise)."""
    if isinstance(feature, Bonus):
        feature.set_owner(owner, sub_owner)
        feature.set_level(level)


__all__ = [
    "Bonus",
    "AttributeBonus",
    "ConditionalModifierBonus",
    "ReactionBonus",
    "DRBonus",
    "SkillBonus",
    "SkillPointBonus",
    "SpellBonus",
    "SpellPointBonus",
    "WeaponBonus",
    "WeaponBonusTypeName",
    "CostReduction",
    "ContainedWeightReduction",
    "Feature",
    "is_bonus",
    "prepare_bonus",
    "spell_match",
]
