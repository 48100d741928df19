"""Equipment value and weight phases.

Modifiers adjust an item in four ordered phases. Value runs original cost,
base cost (cost factors), final base cost, then final cost. Weight runs the
same four phases with weight adjustments. Only enabled modifiers take part.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING

from gurps_engine.core.fixed import HUNDRED, ONE, ZERO
from gurps_engine.models.enums import EquipmentCostType, EquipmentWeightType, WeightUnit
from gurps_engine.models.equipment import (
    EquipmentModifier,
    ValueAdjustmentType,
    WeightAdjustmentType,
)
from gurps_engine.models.features import ContainedWeightReduction
from gurps_engine.models.node import collect


if TYPE_CHECKING:
    from gurps_engine.models.equipment import Equipment


MAX_COST_FACTOR_REDUCTION = Decimal("-0.8")


def _enabled_modifiers(modifiers: Sequence[EquipmentModifier]) -> list[EquipmentModifier]:
    return collect(True, True, *modifiers)


# =============================================================================
# Value
# =============================================================================


def _value_step(cost_type: EquipmentCostType, value: Decimal, modifiers: list[EquipmentModifier]) -> Decimal:
    """Apply one non-cost-factor phase.

    Multipliers compound in order, additions sum, and percentages apply to
    the phase's starting value.
    """
    additions = ZERO
    percentages = ZERO
    cost = value
    for mod in modifiers:
        if mod.cost_type is not cost_type:
            continue
        adjustment = mod.value_adjustment()
        match adjustment.type:
            case ValueAdjustmentType.ADDITION:
                additions += adjustment.amount
            case ValueAdjustmentType.PERCENTAGE:
                percentages += adjustment.amount
            case ValueAdjustmentType.MULTIPLIER:
                cost *= adjustment.amount
    cost += additions
    if percentages != ZERO:
        cost += value * (percentages / HUNDRED)
    return cost


def value_adjusted_for_modifiers(value: Decimal, modifiers: Sequence[EquipmentModifier]) -> Decimal:
    """Run the four value phases; the result is never negative."""
    enabled = _enabled_modifiers(modifiers)
    cost = _value_step(EquipmentCostType.ORIGINAL, value, enabled)

    cf = ZERO
    for mod in enabled:
        if mod.cost_type is not EquipmentCostType.BASE:
            continue
        adjustment = mod.value_adjustment()
        cf += adjustment.amount
        if adjustment.type is ValueAdjustmentType.MULTIPLIER:
            cf -= ONE
    if cf != ZERO:
        cost *= max(cf, MAX_COST_FACTOR_REDUCTION) + ONE

    cost = _value_step(EquipmentCostType.FINAL_BASE, cost, enabled)
    cost = _value_step(EquipmentCostType.FINAL, cost, enabled)
    return max(cost, ZERO)


# =============================================================================
# Weight
# =============================================================================


def _weight_step(
    weight_type: EquipmentWeightType,
    weight: Decimal,
    units: WeightUnit,
    modifiers: list[EquipmentModifier],
) -> Decimal:
    total = ZERO
    for mod in modifiers:
        if mod.weight_type is not weight_type:
            continue
        adjustment = mod.weight_adjustment(units)
        match adjustment.type:
            case WeightAdjustmentType.ADDITION:
                total += adjustment.pounds()
            case WeightAdjustmentType.PERCENTAGE_MULTIPLIER:
                weight = weight * adjustment.numerator / (adjustment.denominator * HUNDRED)
            case WeightAdjustmentType.MULTIPLIER:
                weight = weight * adjustment.numerator / adjustment.denominator
    return weight + total


def weight_adjusted_for_modifiers(
    weight: Decimal,
    modifiers: Sequence[EquipmentModifier],
    units: WeightUnit = WeightUnit.POUND,
) -> Decimal:
    """Run the four weight phases; the result is never negative."""
    enabled = _enabled_modifiers(modifiers)
    percentages = ZERO
    adjusted = weight
    for mod in enabled:
        if mod.weight_type is not EquipmentWeightType.ORIGINAL:
            continue
        adjustment = mod.weight_adjustment(units)
        if adjustment.type is WeightAdjustmentType.ADDITION:
            adjusted += adjustment.pounds()
        else:
            percentages += adjustment.value
    if percentages != ZERO:
        adjusted += weight * (percentages / HUNDRED)

    adjusted = _weight_step(EquipmentWeightType.BASE, adjusted, units, enabled)
    adjusted = _weight_step(EquipmentWeightType.FINAL_BASE, adjusted, units, enabled)
    adjusted = _weight_step(EquipmentWeightType.FINAL, adjusted, units, enabled)
    return max(adjusted, ZERO)


def _weight_reductions(
    features: Iterable[object],
    modifiers: list[EquipmentModifier],
    units: WeightUnit,
) -> tuple[Decimal, Decimal]:
    percentage = ZERO
    fixed = ZERO
    sources: list[object] = list(features)
    for mod in modifiers:
        sources.extend(mod.features)
    for feature in sources:
        if not isinstance(feature, ContainedWeightReduction):
            continue
        if feature.is_percentage_reduction:
            percentage += feature.percentage_reduction()
        else:
            fixed += feature.fixed_reduction(units)
    return percentage, fixed


def extended_weight_adjusted_for_modifiers(
    units: WeightUnit,
    quantity: Decimal,
    base_weight: Decimal,
    modifiers: Sequence[EquipmentModifier],
    features: Iterable[object],
    children: Sequence[Equipment],
    for_skills: bool,
    weight_ignored_for_skills: bool,
) -> Decimal:
    """Weight of a stack of items including its (reduced) contents.

    Contained weight reductions from the item and its enabled modifiers sum.
    A total percentage of 100 or more removes the contents' weight; otherwise
    the percentage applies first and fixed reductions after, never taking the
    contents below zero.
    """
    if quantity <= ZERO:
        return ZERO
    enabled = _enabled_modifiers(modifiers)
    base = ZERO
    if not for_skills or not weight_ignored_for_skills:
        base = weight_adjusted_for_modifiers(base_weight, modifiers, units)
    if children:
        contained = sum((child.extended_weight(for_skills, units) for child in children), ZERO)
        percentage, fixed = _weight_reductions(features, enabled, units)
        if percentage >= HUNDRED:
            contained = ZERO
        elif percentage > ZERO:
            contained -= contained * percentage / HUNDRED
        base += max(contained - fixed, ZERO)
    return base * quantity


__all__ = [
    "MAX_COST_FACTOR_REDUCTION",
    "value_adjusted_for_modifiers",
    "weight_adjusted_for_modifiers",
    "extended_weight_adjusted_for_modifiers",
]
