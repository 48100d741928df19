"""Trait point calculator.

Turns base points, levels and enabled modifiers into a final cost.
Percentage modifiers are split into enhancement and limitation totals,
separately for the base cost and the per-level cost; point modifiers add to
one of the two; multiplier modifiers scale the result. Sheets choose between
additive and multiplicative composition of the percentages.

Example:
    >>> trait = Trait(name="Striking ST", base_points=Decimal(0),
    ...               points_per_level=Decimal(5), levels=Decimal(2), can_level=True)
    >>> trait_adjusted_points(trait)
    Decimal('10')
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from gurps_engine.core.constants import ALTERNATIVE_ABILITY_PERCENT, MAX_LIMITATION
from gurps_engine.core.fixed import HUNDRED, ZERO, ceil, floor
from gurps_engine.core.logging import get_logger
from gurps_engine.models.enums import ContainerType, ModifierAffects, ModifierCostType, SelfControlRoll
from gurps_engine.models.trait import Trait, TraitModifier


logger = get_logger(__name__)

_LIMITATION_FLOOR = Decimal(MAX_LIMITATION)


def apply_rounding(value: Decimal, round_cost_down: bool) -> Decimal:
    """Round a cost to an integer in the trait's direction."""
    if round_cost_down:
        return floor(value)
    return ceil(value)


def modify_points(points: Decimal, modifier: Decimal) -> Decimal:
    """Apply a percentage to a cost."""
    return points + points * modifier / HUNDRED


def adjusted_points(
    base_points: Decimal,
    levels: Decimal,
    points_per_level: Decimal,
    cr: SelfControlRoll,
    modifiers: Iterable[TraitModifier],
    round_cost_down: bool,
    multiplicative: bool,
) -> Decimal:
    """Final cost of a single (non-container) trait.

    Args:
        base_points: Cost before levels and modifiers.
        levels: Purchased levels (zero when not leveled).
        points_per_level: Cost of each level.
        cr: Self-control roll, which contributes the starting multiplier.
        modifiers: Enabled leaf modifiers to apply.
        round_cost_down: Rounding direction of the final cost.
        multiplicative: Compose enhancements and limitations sequentially.

    Returns:
        The rounded cost.
    """
    base_enh = ZERO
    base_lim = ZERO
    level_enh = ZERO
    level_lim = ZERO
    multiplier = cr.multiplier
    for mod in modifiers:
        mod_value = mod.cost_modifier()
        match mod.cost_type:
            case ModifierCostType.PERCENTAGE:
                match mod.affects:
                    case ModifierAffects.TOTAL:
                        if mod_value < ZERO:
                            base_lim += mod_value
                            level_lim += mod_value
                        else:
                            base_enh += mod_value
                            level_enh += mod_value
                    case ModifierAffects.BASE_ONLY:
                        if mod_value < ZERO:
                            base_lim += mod_value
                        else:
                            base_enh += mod_value
                    case ModifierAffects.LEVELS_ONLY:
                        if mod_value < ZERO:
                            level_lim += mod_value
                        else:
                            level_enh += mod_value
            case ModifierCostType.POINTS:
                if mod.affects is ModifierAffects.LEVELS_ONLY:
                    points_per_level += mod_value
                else:
                    base_points += mod_value
            case ModifierCostType.MULTIPLIER:
                multiplier *= mod_value

    modified_base = base_points
    leveled_points = points_per_level * levels
    if base_enh != ZERO or base_lim != ZERO or level_enh != ZERO or level_lim != ZERO:
        if multiplicative:
            if base_enh == level_enh and base_lim == level_lim:
                modified_base = modify_points(
                    modify_points(modified_base + leveled_points, base_enh),
                    max(base_lim, _LIMITATION_FLOOR),
                )
            else:
                modified_base = modify_points(
                    modify_points(modified_base, base_enh), max(base_lim, _LIMITATION_FLOOR)
                ) + modify_points(modify_points(leveled_points, level_enh), max(level_lim, _LIMITATION_FLOOR))
        else:
            base_mod = max(base_enh + base_lim, _LIMITATION_FLOOR)
            level_mod = max(level_enh + level_lim, _LIMITATION_FLOOR)
            if base_mod == level_mod:
                modified_base = modify_points(modified_base + leveled_points, base_mod)
            else:
                modified_base = modify_points(modified_base, base_mod) + modify_points(leveled_points, level_mod)
    else:
        modified_base += leveled_points
    return apply_rounding(modified_base * multiplier, round_cost_down)


def alternative_abilities_points(values: list[Decimal], round_cost_down: bool) -> Decimal:
    """Full price for the most expensive child, a fifth for the rest.

    Only the first child at the maximum pays full price, and only when that
    maximum is above zero; otherwise every child pays a fifth.
    """
    full_index = -1
    highest = ZERO
    for index, value in enumerate(values):
        if value > highest:
            highest = value
            full_index = index
    total = ZERO
    for index, value in enumerate(values):
        if index == full_index:
            total += value
        else:
            total += apply_rounding(value * Decimal(ALTERNATIVE_ABILITY_PERCENT) / HUNDRED, round_cost_down)
    return total


def trait_adjusted_points(trait: Trait) -> Decimal:
    """Cost of a trait or container, honoring the sheet's modifier policy."""
    if not trait.enabled:
        return ZERO
    if not trait.container:
        entity = trait.owning_entity
        multiplicative = entity is not None and entity.settings.use_multiplicative_modifiers
        levels = trait.levels if trait.is_leveled else ZERO
        return adjusted_points(
            trait.base_points,
            levels,
            trait.points_per_level,
            trait.cr,
            trait.all_modifiers(),
            trait.round_cost_down,
            multiplicative,
        )
    children = trait.node_children()
    if trait.container_type is ContainerType.ALTERNATIVE_ABILITIES:
        values = [trait_adjusted_points(child) for child in children]
        return alternative_abilities_points(values, trait.round_cost_down)
    return sum((trait_adjusted_points(child) for child in children), ZERO)


__all__ = [
    "apply_rounding",
    "modify_points",
    "adjusted_points",
    "alternative_abilities_points",
    "trait_adjusted_points",
]
