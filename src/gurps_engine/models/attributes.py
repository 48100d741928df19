"""Attribute definitions and per-entity attribute values.

A definition describes an attribute (its base expression, cost and, for
pools, the thresholds that hamper the character). An ``Attribute`` holds the
entity's purchased adjustment plus the bonus and cost reduction that
recalculation assigns to it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from gurps_engine.core.constants import (
    BASIC_MOVE_ID,
    BASIC_SPEED_ID,
    DEXTERITY_ID,
    FATIGUE_POINTS_ID,
    HEALTH_ID,
    HIT_POINTS_ID,
    INTELLIGENCE_ID,
    MAX_COST_REDUCTION,
    PERCEPTION_ID,
    STRENGTH_ID,
    WILL_ID,
)
from gurps_engine.core.fixed import HUNDRED, MIN_LEVEL, ZERO, ceil, trunc
from gurps_engine.models.enums import AttributeType, DamageProgression, ThresholdOp


if TYPE_CHECKING:
    from gurps_engine.models.entity import Entity


# =============================================================================
# Definitions
# =============================================================================


class PoolThreshold(BaseModel):
    """A named state a pool enters once its current value drops low enough."""

    model_config = ConfigDict(extra="ignore")

    state: str
    expression: str
    explanation: str = ""
    ops: list[ThresholdOp] = Field(default_factory=list)

    def threshold(self, entity: Entity | None) -> Decimal:
        """Evaluate the threshold expression (truncated to an integer)."""
        if entity is None:
            return ZERO
        return trunc(entity.evaluate_number(self.expression))

    def has_op(self, op: ThresholdOp) -> bool:
        return op in self.ops


class AttributeDef(BaseModel):
    """Definition of one attribute.

    Attributes:
        id: Identifier used for lookups and ``$id`` variable references.
        type: Storage and display type.
        name: Short name ("ST").
        full_name: Long name ("Strength").
        base: Base value expression ("10", "$iq", "($dx+$ht)/4").
        cost_per_point: Points per level of adjustment.
        cost_adj_percent_per_sm: Cost reduction percent per point of SM.
        thresholds: Pool thresholds, most severe first.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    type: AttributeType = AttributeType.INTEGER
    name: str = ""
    full_name: str = ""
    base: str = "10"
    cost_per_point: Decimal = ZERO
    cost_adj_percent_per_sm: Decimal = ZERO
    thresholds: list[PoolThreshold] = Field(default_factory=list)

    @property
    def is_pool(self) -> bool:
        return self.type is AttributeType.POOL

    @property
    def is_separator(self) -> bool:
        return self.type.is_separator

    @property
    def costs_points(self) -> bool:
        return self.type in (AttributeType.INTEGER, AttributeType.DECIMAL, AttributeType.POOL)

    def base_value(self, entity: Entity | None) -> Decimal:
        """Evaluate the base expression against the entity's variables."""
        if entity is None:
            try:
                return Decimal(self.base.strip() or "0")
            except ArithmeticError:
                return ZERO
        value = entity.evaluate_number(self.base)
        if not self.type.allows_decimal:
            value = trunc(value)
        return value

    def compute_cost(
        self,
        entity: Entity | None,
        value: Decimal,
        cost_reduction: Decimal,
        size_modifier: int,
    ) -> Decimal:
        """Point cost of ``value`` levels after reductions, rounded up."""
        if not self.costs_points:
            return ZERO
        cost = value * self.cost_per_point
        if size_modifier > 0 and self.cost_adj_percent_per_sm > ZERO:
            kyos = (
                entity is not None
                and entity.settings.damage_progression is DamageProgression.KNOWING_YOUR_OWN_STRENGTH
            )
            if not (self.id == HIT_POINTS_ID and kyos):
                cost_reduction += Decimal(size_modifier) * self.cost_adj_percent_per_sm
        if cost_reduction > ZERO:
            cost_reduction = min(cost_reduction, Decimal(MAX_COST_REDUCTION))
            cost = cost * (HUNDRED - cost_reduction) / HUNDRED
        return ceil(cost)


# =============================================================================
# Attribute Values
# =============================================================================


class Attribute(BaseModel):
    """An entity's value for one attribute definition.

    Attributes:
        attr_id: Definition identifier.
        adj: Purchased adjustment over the base.
        damage: Damage taken, for pools.
        bonus: Total feature bonus (calculated).
        cost_reduction: Total cost reduction percent (calculated).
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    attr_id: str
    adj: Decimal = ZERO
    damage: Decimal = ZERO

    bonus: Decimal = Field(default=ZERO, exclude=True)
    cost_reduction: Decimal = Field(default=ZERO, exclude=True)

    _entity: Entity | None = PrivateAttr(default=None)

    def set_owning_entity(self, entity: Entity | None) -> None:
        self._entity = entity

    def attribute_def(self) -> AttributeDef | None:
        if self._entity is None:
            return None
        return self._entity.settings.attribute_def(self.attr_id)

    @property
    def maximum(self) -> Decimal:
        definition = self.attribute_def()
        if definition is None:
            return ZERO
        value = definition.base_value(self._entity) + self.adj + self.bonus
        if not definition.type.allows_decimal:
            value = trunc(value)
        return value

    @property
    def current(self) -> Decimal:
        definition = self.attribute_def()
        if definition is None:
            return MIN_LEVEL
        maximum = self.maximum
        if definition.is_pool:
            return maximum - self.damage
        return maximum

    @property
    def points(self) -> Decimal:
        definition = self.attribute_def()
        if definition is None:
            return ZERO
        size_modifier = 0
        if self._entity is not None:
            size_modifier = self._entity.profile.adjusted_size_modifier
        return definition.compute_cost(self._entity, self.adj, self.cost_reduction, size_modifier)

    def current_threshold(self) -> PoolThreshold | None:
        """The most severe threshold the pool has reached, if any."""
        definition = self.attribute_def()
        if definition is None or not definition.is_pool:
            return None
        current = self.current
        for threshold in definition.thresholds:
            if current <= threshold.threshold(self._entity):
                return threshold
        return None


def count_threshold_op_met(op: ThresholdOp, attributes: dict[str, Attribute]) -> int:
    """Number of pools currently in a threshold carrying ``op``."""
    total = 0
    for attribute in attributes.values():
        threshold = attribute.current_threshold()
        if threshold is not None and threshold.has_op(op):
            total += 1
    return total


def is_threshold_op_met(op: ThresholdOp, attributes: dict[str, Attribute]) -> bool:
    return count_threshold_op_met(op, attributes) > 0


# =============================================================================
# Standard Set
# =============================================================================


def _hit_point_thresholds() -> list[PoolThreshold]:
    hampered = [ThresholdOp.HALVE_MOVE, ThresholdOp.HALVE_DODGE]
    thresholds = [PoolThreshold(state="Dead", expression="-5*$hp", ops=list(hampered))]
    for index in range(4, 0, -1):
        thresholds.append(
            PoolThreshold(
                state=f"Dying #{index}",
                expression=f"-{index}*$hp",
                explanation="Roll vs. HT to avoid death",
                ops=list(hampered),
            )
        )
    thresholds.extend(
        [
            PoolThreshold(
                state="Collapse",
                expression="0",
                explanation="Roll vs. HT every turn to remain conscious",
                ops=list(hampered),
            ),
            PoolThreshold(state="Reeling", expression="round($hp/3)", ops=list(hampered)),
            PoolThreshold(state="Wounded", expression="$hp-1"),
            PoolThreshold(state="Healthy", expression="$hp"),
        ]
    )
    return thresholds


def _fatigue_point_thresholds() -> list[PoolThreshold]:
    hampered = [ThresholdOp.HALVE_MOVE, ThresholdOp.HALVE_DODGE, ThresholdOp.HALVE_ST]
    return [
        PoolThreshold(state="Unconscious", expression="-$fp", ops=list(hampered)),
        PoolThreshold(
            state="Collapse",
            expression="0",
            explanation="Roll vs. Will to do anything besides talk or rest",
            ops=list(hampered),
        ),
        PoolThreshold(state="Tired", expression="round($fp/3)", ops=list(hampered)),
        PoolThreshold(state="Tiring", expression="$fp-1"),
        PoolThreshold(state="Rested", expression="$fp"),
    ]


def default_attribute_defs() -> list[AttributeDef]:
    """The standard GURPS attribute set, in display order."""
    return [
        AttributeDef(
            id=STRENGTH_ID,
            name="ST",
            full_name="Strength",
            base="10",
            cost_per_point=Decimal(10),
            cost_adj_percent_per_sm=Decimal(10),
        ),
        AttributeDef(id=DEXTERITY_ID, name="DX", full_name="Dexterity", base="10", cost_per_point=Decimal(20)),
        AttributeDef(id=INTELLIGENCE_ID, name="IQ", full_name="Intelligence", base="10", cost_per_point=Decimal(20)),
        AttributeDef(id=HEALTH_ID, name="HT", full_name="Health", base="10", cost_per_point=Decimal(10)),
        AttributeDef(id=WILL_ID, name="Will", base="$iq", cost_per_point=Decimal(5)),
        AttributeDef(id=PERCEPTION_ID, name="Per", full_name="Perception", base="$iq", cost_per_point=Decimal(5)),
        AttributeDef(
            id=BASIC_SPEED_ID,
            type=AttributeType.DECIMAL,
            name="Basic Speed",
            base="($dx+$ht)/4",
            cost_per_point=Decimal(20),
        ),
        AttributeDef(
            id=BASIC_MOVE_ID,
            name="Basic Move",
            base="floor($basic_speed)",
            cost_per_point=Decimal(5),
        ),
        AttributeDef(
            id=FATIGUE_POINTS_ID,
            type=AttributeType.POOL,
            name="FP",
            full_name="Fatigue Points",
            base="$ht",
            cost_per_point=Decimal(3),
            thresholds=_fatigue_point_thresholds(),
        ),
        AttributeDef(
            id=HIT_POINTS_ID,
            type=AttributeType.POOL,
            name="HP",
            full_name="Hit Points",
            base="$st",
            cost_per_point=Decimal(2),
            cost_adj_percent_per_sm=Decimal(10),
            thresholds=_hit_point_thresholds(),
        ),
    ]


def attributes_for(defs: list[AttributeDef]) -> dict[str, Attribute]:
    """Fresh, unadjusted attribute values for every non-separator definition."""
    return {one.id: Attribute(attr_id=one.id) for one in defs if not one.is_separator}


__all__ = [
    "PoolThreshold",
    "AttributeDef",
    "Attribute",
    "count_threshold_op_met",
    "is_threshold_op_met",
    "default_attribute_defs",
    "attributes_for",
]
