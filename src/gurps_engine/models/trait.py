"""Traits (advantages, disadvantages, quirks) and their modifiers.

A trait's cost comes from its base points, purchased levels and enabled
modifiers; the composition rules live in ``gurps_engine.engine.traits``.
Containers group traits and decide how their children's costs combine.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import Field, model_validator

from gurps_engine.core.fixed import FIVE, ZERO, fixed_str
from gurps_engine.models.criteria import StringCriteria, string_is
from gurps_engine.models.enums import (
    ContainerType,
    ModifierAffects,
    ModifierCostType,
    SelfControlAdjustment,
    SelfControlRoll,
)
from gurps_engine.models.features import Feature, SkillBonus
from gurps_engine.models.ids import Kind
from gurps_engine.models.node import Node, collect
from gurps_engine.models.prereqs import PrereqList
from gurps_engine.models.weapon import Weapon


# =============================================================================
# Self-Control Rolls
# =============================================================================


_MAJOR_COST_OF_LIVING = {
    SelfControlRoll.CR6: Decimal(80),
    SelfControlRoll.CR9: Decimal(40),
    SelfControlRoll.CR12: Decimal(20),
    SelfControlRoll.CR15: Decimal(10),
}


def self_control_adjustment(adj: SelfControlAdjustment, cr: SelfControlRoll) -> Decimal:
    """Signed amount an adjustment carries at a given self-control roll.

    Penalties are negative; cost of living increases are percentages.
    """
    if cr is SelfControlRoll.NONE:
        return ZERO
    index = Decimal(cr.index)
    match adj:
        case (
            SelfControlAdjustment.ACTION_PENALTY
            | SelfControlAdjustment.REACTION_PENALTY
            | SelfControlAdjustment.FRIGHT_CHECK_PENALTY
        ):
            return -index
        case SelfControlAdjustment.FRIGHT_CHECK_BONUS:
            return index
        case SelfControlAdjustment.MINOR_COST_OF_LIVING_INCREASE:
            return index * FIVE
        case SelfControlAdjustment.MAJOR_COST_OF_LIVING_INCREASE:
            return _MAJOR_COST_OF_LIVING[cr]
    return ZERO


def self_control_description(adj: SelfControlAdjustment, cr: SelfControlRoll) -> str:
    if cr is SelfControlRoll.NONE or adj is SelfControlAdjustment.NONE:
        return ""
    amount = self_control_adjustment(adj, cr)
    label = adj.value.replace("_", " ")
    if adj in (
        SelfControlAdjustment.MINOR_COST_OF_LIVING_INCREASE,
        SelfControlAdjustment.MAJOR_COST_OF_LIVING_INCREASE,
    ):
        return f"{fixed_str(amount)}% {label}"
    return f"{fixed_str(amount)} {label}"


def self_control_features(adj: SelfControlAdjustment, cr: SelfControlRoll) -> list[Any]:
    """Features synthesized by a self-control adjustment.

    Only a major cost of living increase turns into a feature: a penalty to
    Merchant equal to the roll's severity.
    """
    if adj is not SelfControlAdjustment.MAJOR_COST_OF_LIVING_INCREASE or cr is SelfControlRoll.NONE:
        return []
    return [
        SkillBonus(
            name=string_is("Merchant"),
            specialization=StringCriteria(),
            amount=Decimal(-cr.index),
        )
    ]


# =============================================================================
# Trait Modifiers
# =============================================================================


class TraitModifier(Node):
    """Enhancement or limitation applied to a trait.

    Attributes:
        name: Display name.
        tags: Category tags.
        disabled: Excluded from costs and features when True.
        cost_type: How ``cost`` is interpreted.
        affects: Which part of a leveled trait the cost applies to.
        cost: Percentage, points or multiplier.
        levels: Purchased levels of a leveled percentage modifier.
        features: Features granted while the modifier is enabled.
        replacements: Nameable replacements for ``@key@`` placeholders.
    """

    LEAF_KIND = Kind.TRAIT_MODIFIER
    CONTAINER_KIND = Kind.TRAIT_MODIFIER_CONTAINER

    children: list[TraitModifier] | None = None
    name: str = ""
    tags: list[str] = Field(default_factory=list)
    disabled: bool = False
    cost_type: ModifierCostType = ModifierCostType.PERCENTAGE
    affects: ModifierAffects = ModifierAffects.TOTAL
    cost: Decimal = ZERO
    levels: Decimal = ZERO
    features: list[Feature] = Field(default_factory=list)
    replacements: dict[str, str] = Field(default_factory=dict)

    @property
    def enabled(self) -> bool:
        return not self.disabled or self.container

    @property
    def has_levels(self) -> bool:
        return not self.container and self.cost_type is ModifierCostType.PERCENTAGE and self.levels > ZERO

    @property
    def current_level(self) -> Decimal:
        if self.disabled or not self.has_levels:
            return ZERO
        return self.levels

    def cost_modifier(self) -> Decimal:
        """Cost scaled by levels, when the modifier is leveled."""
        if self.levels > ZERO:
            return self.cost * self.levels
        return self.cost

    def cost_description(self) -> str:
        match self.cost_type:
            case ModifierCostType.PERCENTAGE:
                return f"{'+' if self.cost_modifier() >= 0 else ''}{fixed_str(self.cost_modifier())}%"
            case ModifierCostType.POINTS:
                return f"{'+' if self.cost >= 0 else ''}{fixed_str(self.cost)}"
        return f"x{fixed_str(self.cost)}"

    def __str__(self) -> str:
        if self.has_levels:
            return f"{self.name} {fixed_str(self.levels)}"
        return self.name


# =============================================================================
# Traits
# =============================================================================


class Trait(Node):
    """An advantage, disadvantage, quirk or trait container.

    Attributes:
        name: Display name.
        tags: Category tags.
        disabled: Excluded (with its subtree) from costs and features.
        base_points: Cost before levels and modifiers.
        levels: Purchased levels, for leveled traits.
        points_per_level: Cost of each level.
        round_cost_down: Round fractional costs down instead of up.
        can_level: Whether the trait takes levels.
        cr: Self-control roll.
        cr_adj: Consequence attached to the self-control roll.
        features: Features granted while enabled.
        modifiers: Modifier forest.
        prereq: Prerequisite tree.
        container_type: How a container combines its children.
        replacements: Nameable replacements for ``@key@`` placeholders.
        weapons: Attacks granted by the trait.
        unsatisfied_reason: Why prerequisites fail (calculated).
    """

    LEAF_KIND = Kind.TRAIT
    CONTAINER_KIND = Kind.TRAIT_CONTAINER

    children: list[Trait] | None = None
    name: str = ""
    notes: str = ""
    tags: list[str] = Field(default_factory=list)
    disabled: bool = False
    base_points: Decimal = ZERO
    levels: Decimal = ZERO
    points_per_level: Decimal = ZERO
    round_cost_down: bool = False
    can_level: bool = False
    cr: SelfControlRoll = SelfControlRoll.NONE
    cr_adj: SelfControlAdjustment = SelfControlAdjustment.NONE
    features: list[Feature] = Field(default_factory=list)
    modifiers: list[TraitModifier] = Field(default_factory=list)
    prereq: PrereqList | None = None
    container_type: ContainerType = ContainerType.GROUP
    replacements: dict[str, str] = Field(default_factory=dict)
    weapons: list[Weapon] = Field(default_factory=list)

    unsatisfied_reason: str = Field(default="", exclude=True)

    @model_validator(mode="after")
    def link_weapons(self) -> Trait:
        for weapon in self.weapons:
            weapon.set_owner(self)
        return self

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        """False if this trait or any ancestor is disabled."""
        node: Trait | None = self
        while node is not None:
            if node.disabled:
                return False
            node = node.parent
        return True

    @property
    def is_leveled(self) -> bool:
        return self.can_level and not self.container

    @property
    def current_level(self) -> Decimal:
        if self.enabled and self.is_leveled:
            return self.levels
        return ZERO

    def all_modifiers(self) -> list[TraitModifier]:
        """Enabled leaf modifiers of this trait and of every ancestor."""
        found: list[TraitModifier] = []
        node: Trait | None = self
        while node is not None:
            found.extend(collect(True, True, *node.modifiers))
            node = node.parent
        return found

    def cr_features(self) -> list[Any]:
        return self_control_features(self.cr_adj, self.cr)

    def __str__(self) -> str:
        if self.is_leveled:
            return f"{self.name} {fixed_str(self.levels)}"
        return self.name

    # -------------------------------------------------------------------------
    # Points
    # -------------------------------------------------------------------------

    def adjusted_points(self) -> Decimal:
        """Final cost after levels, modifiers and self-control roll."""
        from gurps_engine.engine.traits import trait_adjusted_points

        return trait_adjusted_points(self)

    # -------------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------------

    def set_owning_entity(self, entity: Any) -> None:
        super().set_owning_entity(entity)
        for mod in self.modifiers:
            mod.set_owning_entity(entity)
        for weapon in self.weapons:
            weapon.set_owner(self)


TraitModifier.model_rebuild()
Trait.model_rebuild()


__all__ = [
    "Trait",
    "TraitModifier",
    "self_control_adjustment",
    "self_control_description",
    "self_control_features",
]
