"""Equipment, equipment modifiers and their cost/weight adjustment text.

Modifier adjustments are short strings such as "+5", "x2", "+10%",
"-0.2 CF", "x3/4" or "+1 lb". Each modifier phase accepts only some
adjustment types; text of another type is reinterpreted as the closest type
the phase allows, the way a sheet editor would.
"""

from __future__ import annotations

import re

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

from pydantic import Field, model_validator

from gurps_engine.core.fixed import HUNDRED, ONE, ZERO, fixed_str
from gurps_engine.models.enums import EquipmentCostType, EquipmentWeightType, WeightUnit, parse_weight
from gurps_engine.models.features import Feature
from gurps_engine.models.ids import Kind
from gurps_engine.models.node import Node
from gurps_engine.models.prereqs import PrereqList
from gurps_engine.models.weapon import Weapon


# =============================================================================
# Adjustment Text
# =============================================================================


class ValueAdjustmentType(StrEnum):
    """Kind of value adjustment."""

    ADDITION = "+"
    PERCENTAGE = "%"
    MULTIPLIER = "x"
    COST_FACTOR = "cf"


class WeightAdjustmentType(StrEnum):
    """Kind of weight adjustment."""

    ADDITION = "+"
    PERCENTAGE_ADDER = "%"
    PERCENTAGE_MULTIPLIER = "x%"
    MULTIPLIER = "x"


@dataclass(frozen=True)
class ValueAdjustment:
    """A parsed value adjustment."""

    type: ValueAdjustmentType
    amount: Decimal


@dataclass(frozen=True)
class WeightAdjustment:
    """A parsed weight adjustment.

    Multipliers keep their fraction so "x2/3" stays exact. Additions carry
    the units they were written in (or the default units).
    """

    type: WeightAdjustmentType
    numerator: Decimal
    denominator: Decimal = ONE
    units: WeightUnit = WeightUnit.POUND

    @property
    def value(self) -> Decimal:
        return self.numerator / self.denominator

    def pounds(self) -> Decimal:
        return self.units.to_pounds(self.value)


_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)")
_FRACTION = re.compile(r"([+-]?(?:\d+\.?\d*|\.\d+))\s*(?:/\s*(\d+\.?\d*))?")
_UNITS = re.compile(r"([a-z]+)\s*$")


def _leading_number(text: str) -> Decimal:
    match = _NUMBER.search(text)
    if match is None:
        return ZERO
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return ZERO


def _value_type_of(text: str) -> ValueAdjustmentType:
    if text.endswith("cf"):
        return ValueAdjustmentType.COST_FACTOR
    if text.endswith("%"):
        return ValueAdjustmentType.PERCENTAGE
    if text.startswith("x") or text.endswith("x"):
        return ValueAdjustmentType.MULTIPLIER
    return ValueAdjustmentType.ADDITION


def parse_value_adjustment(text: str, cost_type: EquipmentCostType) -> ValueAdjustment:
    """Parse a value adjustment as the given phase interprets it.

    The base phase accepts only multipliers and cost factors; the other
    phases accept everything except cost factors.
    """
    cleaned = text.strip().lower()
    kind = _value_type_of(cleaned)
    if cost_type is EquipmentCostType.BASE:
        if kind is not ValueAdjustmentType.MULTIPLIER:
            kind = ValueAdjustmentType.COST_FACTOR
    elif kind is ValueAdjustmentType.COST_FACTOR:
        kind = ValueAdjustmentType.ADDITION
    amount = _leading_number(cleaned)
    if kind is ValueAdjustmentType.MULTIPLIER and amount <= ZERO:
        amount = ONE
    return ValueAdjustment(kind, amount)


def _weight_type_of(text: str) -> WeightAdjustmentType:
    if text.endswith("%"):
        if text.startswith("x"):
            return WeightAdjustmentType.PERCENTAGE_MULTIPLIER
        return WeightAdjustmentType.PERCENTAGE_ADDER
    if text.startswith("x") or text.endswith("x"):
        return WeightAdjustmentType.MULTIPLIER
    return WeightAdjustmentType.ADDITION


def parse_weight_adjustment(
    text: str,
    weight_type: EquipmentWeightType,
    default_units: WeightUnit = WeightUnit.POUND,
) -> WeightAdjustment:
    """Parse a weight adjustment as the given phase interprets it.

    The original phase accepts additions and percentage adders; the later
    phases turn percentage adders into percentage multipliers.
    """
    cleaned = text.strip().lower()
    kind = _weight_type_of(cleaned)
    if weight_type is EquipmentWeightType.ORIGINAL:
        if kind not in (WeightAdjustmentType.ADDITION, WeightAdjustmentType.PERCENTAGE_ADDER):
            kind = WeightAdjustmentType.ADDITION
    elif kind is WeightAdjustmentType.PERCENTAGE_ADDER:
        kind = WeightAdjustmentType.PERCENTAGE_MULTIPLIER

    numerator = ZERO
    denominator = ONE
    match = _FRACTION.search(cleaned)
    if match is not None:
        numerator = Decimal(match.group(1))
        if match.group(2):
            denominator = Decimal(match.group(2))
            if denominator == ZERO:
                denominator = ONE
    if kind is WeightAdjustmentType.MULTIPLIER and numerator <= ZERO:
        numerator, denominator = ONE, ONE
    elif kind is WeightAdjustmentType.PERCENTAGE_MULTIPLIER and numerator <= ZERO:
        numerator, denominator = HUNDRED, ONE

    units = default_units
    if kind is WeightAdjustmentType.ADDITION:
        unit_match = _UNITS.search(cleaned)
        if unit_match is not None:
            units = _weight_unit(unit_match.group(1), default_units)
    return WeightAdjustment(kind, numerator, denominator, units)


def _weight_unit(text: str, default_units: WeightUnit) -> WeightUnit:
    if text in ("lbs", "pound", "pounds"):
        return WeightUnit.POUND
    try:
        return WeightUnit(text)
    except ValueError:
        return default_units


# =============================================================================
# Equipment Modifiers
# =============================================================================


class EquipmentModifier(Node):
    """Adjusts an item's value and weight, and may grant features.

    Attributes:
        name: Display name.
        tags: Category tags.
        disabled: Ignored when True.
        cost_type: Phase in which ``cost`` applies.
        cost: Value adjustment text.
        weight_type: Phase in which ``weight`` applies.
        weight: Weight adjustment text.
        tech_level: Tech level text.
        features: Features granted while enabled.
    """

    LEAF_KIND = Kind.EQUIPMENT_MODIFIER
    CONTAINER_KIND = Kind.EQUIPMENT_MODIFIER_CONTAINER

    children: list[EquipmentModifier] | None = None
    name: str = ""
    tags: list[str] = Field(default_factory=list)
    disabled: bool = False
    cost_type: EquipmentCostType = EquipmentCostType.ORIGINAL
    cost: str = ""
    weight_type: EquipmentWeightType = EquipmentWeightType.ORIGINAL
    weight: str = ""
    tech_level: str = ""
    features: list[Feature] = Field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return not self.disabled or self.container

    def value_adjustment(self) -> ValueAdjustment:
        return parse_value_adjustment(self.cost, self.cost_type)

    def weight_adjustment(self, default_units: WeightUnit = WeightUnit.POUND) -> WeightAdjustment:
        return parse_weight_adjustment(self.weight, self.weight_type, default_units)

    def __str__(self) -> str:
        return self.name


# =============================================================================
# Equipment
# =============================================================================


class Equipment(Node):
    """An item or container of items.

    Attributes:
        name: Display name.
        quantity: Number carried; zero or less contributes nothing.
        value: Unit value before modifiers.
        weight: Unit weight in pounds before modifiers.
        weight_ignored_for_skills: Weight is not counted for encumbrance
            while equipped.
        equipped: Whether the item is in use; unequipped items grant no
            features.
        tech_level: Tech level text.
        legality_class: Legality class text.
        uses: Remaining uses.
        max_uses: Maximum uses.
        features: Features granted while equipped.
        modifiers: Modifier forest.
        prereq: Prerequisite tree.
        tags: Category tags.
        replacements: Nameable replacements for ``@key@`` placeholders.
        weapons: Attacks the item offers.
        unsatisfied_reason: Why prerequisites fail (calculated).
    """

    LEAF_KIND = Kind.EQUIPMENT
    CONTAINER_KIND = Kind.EQUIPMENT_CONTAINER

    children: list[Equipment] | None = None
    name: str = ""
    notes: str = ""
    quantity: Decimal = ONE
    value: Decimal = ZERO
    weight: Decimal = ZERO
    weight_ignored_for_skills: bool = False
    equipped: bool = True
    tech_level: str = ""
    legality_class: str = "4"
    uses: int = 0
    max_uses: int = 0
    features: list[Feature] = Field(default_factory=list)
    modifiers: list[EquipmentModifier] = Field(default_factory=list)
    prereq: PrereqList | None = None
    tags: list[str] = Field(default_factory=list)
    replacements: dict[str, str] = Field(default_factory=dict)
    weapons: list[Weapon] = Field(default_factory=list)

    unsatisfied_reason: str = Field(default="", exclude=True)

    @model_validator(mode="after")
    def link_weapons(self) -> Equipment:
        for weapon in self.weapons:
            weapon.set_owner(self)
        return self

    def __str__(self) -> str:
        return self.name

    def set_owning_entity(self, entity: Any) -> None:
        super().set_owning_entity(entity)
        for mod in self.modifiers:
            mod.set_owning_entity(entity)
        for weapon in self.weapons:
            weapon.set_owner(self)

    def _default_units(self) -> WeightUnit:
        entity = self.owning_entity
        if entity is None:
            return WeightUnit.POUND
        return entity.weight_unit()

    # -------------------------------------------------------------------------
    # Value
    # -------------------------------------------------------------------------

    def adjusted_value(self) -> Decimal:
        """Unit value after modifiers."""
        from gurps_engine.engine.equipment import value_adjusted_for_modifiers

        return value_adjusted_for_modifiers(self.value, self.modifiers)

    def extended_value(self) -> Decimal:
        """Value of the whole stack, contents included."""
        if self.quantity <= ZERO:
            return ZERO
        value = self.adjusted_value()
        for child in self.node_children():
            value += child.extended_value()
        return value * self.quantity

    # -------------------------------------------------------------------------
    # Weight
    # -------------------------------------------------------------------------

    @property
    def ignored_for_skills(self) -> bool:
        return self.weight_ignored_for_skills and self.equipped

    def adjusted_weight(self, for_skills: bool = False, units: WeightUnit | None = None) -> Decimal:
        """Unit weight in pounds after modifiers."""
        from gurps_engine.engine.equipment import weight_adjusted_for_modifiers

        if for_skills and self.ignored_for_skills:
            return ZERO
        return weight_adjusted_for_modifiers(self.weight, self.modifiers, units or self._default_units())

    def extended_weight(self, for_skills: bool = False, units: WeightUnit | None = None) -> Decimal:
        """Weight of the whole stack in pounds, contents included."""
        from gurps_engine.engine.equipment import extended_weight_adjusted_for_modifiers

        return extended_weight_adjusted_for_modifiers(
            units or self._default_units(),
            self.quantity,
            self.weight,
            self.modifiers,
            self.features,
            self.node_children(),
            for_skills,
            self.ignored_for_skills,
        )

    def weight_description(self) -> str:
        units = self._default_units()
        return f"{fixed_str(units.from_pounds(self.extended_weight(False, units)))} {units.value}"


EquipmentModifier.model_rebuild()
Equipment.model_rebuild()


__all__ = [
    "ValueAdjustmentType",
    "WeightAdjustmentType",
    "ValueAdjustment",
    "WeightAdjustment",
    "parse_value_adjustment",
    "parse_weight_adjustment",
    "EquipmentModifier",
    "Equipment",
]
