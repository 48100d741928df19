"""Tests for trait point calculation."""

from __future__ import annotations

from decimal import Decimal

import pytest

from gurps_engine.engine.traits import adjusted_points, alternative_abilities_points
from gurps_engine.models import (
    ContainerType,
    ModifierAffects,
    ModifierCostType,
    SelfControlAdjustment,
    SelfControlRoll,
    Trait,
    TraitModifier,
)
from gurps_engine.models.trait import self_control_adjustment, self_control_description


def _mod(cost: int | str, **data: object) -> TraitModifier:
    return TraitModifier(name="Mod", cost=Decimal(cost), **data)


class TestAdjustedPoints:
    """Tests for the single-trait cost formula."""

    def test_no_modifiers(self) -> None:
        """Test base plus levels with nothing applied."""
        points = adjusted_points(
            Decimal(5), Decimal(3), Decimal(2), SelfControlRoll.NONE, [], False, False
        )
        assert points == Decimal(11)

    def test_additive_percentages(self) -> None:
        """Test that additive composition sums enhancements and limitations."""
        mods = [_mod(50), _mod(-20)]
        points = adjusted_points(Decimal(10), Decimal(0), Decimal(0), SelfControlRoll.NONE, mods, False, False)
        assert points == Decimal(13)

    def test_multiplicative_percentages(self) -> None:
        """Test that multiplicative composition applies enhancements then limitations."""
        mods = [_mod(50), _mod(-20)]
        points = adjusted_points(Decimal(10), Decimal(0), Decimal(0), SelfControlRoll.NONE, mods, False, True)
        assert points == Decimal(12)

    def test_limitations_floor_at_minus_eighty(self) -> None:
        """Test that limitations never reduce a cost below a fifth."""
        mods = [_mod(-60), _mod(-40)]
        points = adjusted_points(Decimal(10), Decimal(0), Decimal(0), SelfControlRoll.NONE, mods, False, False)
        assert points == Decimal(2)

    def test_levels_only_enhancement(self) -> None:
        """Test that a levels-only enhancement leaves the base price alone."""
        mods = [_mod(100, affects=ModifierAffects.LEVELS_ONLY)]
        points = adjusted_points(Decimal(5), Decimal(2), Decimal(5), SelfControlRoll.NONE, mods, False, False)
        assert points == Decimal(25)

    def test_point_and_multiplier_modifiers(self) -> None:
        """Test flat point additions and cost multipliers."""
        mods = [
            _mod(3, cost_type=ModifierCostType.POINTS),
            _mod(2, cost_type=ModifierCostType.MULTIPLIER),
        ]
        points = adjusted_points(Decimal(10), Decimal(0), Decimal(0), SelfControlRoll.NONE, mods, False, False)
        assert points == Decimal(26)

    def test_leveled_modifier_scales_cost(self) -> None:
        """Test that a leveled percentage modifier multiplies its cost by its levels."""
        mods = [_mod(10, levels=Decimal(3))]
        points = adjusted_points(Decimal(10), Decimal(0), Decimal(0), SelfControlRoll.NONE, mods, False, False)
        assert points == Decimal(13)

    @pytest.mark.parametrize(
        "cr,expected",
        [
            (SelfControlRoll.NONE, Decimal(-10)),
            (SelfControlRoll.CR6, Decimal(-20)),
            (SelfControlRoll.CR9, Decimal(-15)),
            (SelfControlRoll.CR12, Decimal(-10)),
            (SelfControlRoll.CR15, Decimal(-5)),
        ],
    )
    def test_self_control_multiplier(self, cr: SelfControlRoll, expected: Decimal) -> None:
        """Test the self-control roll cost multiplier."""
        points = adjusted_points(Decimal(-10), Decimal(0), Decimal(0), cr, [], False, False)
        assert points == expected

    @pytest.mark.parametrize("round_down,expected", [(False, Decimal(8)), (True, Decimal(7))])
    def test_rounding_direction(self, round_down: bool, expected: Decimal) -> None:
        """Test that fractional costs round in the trait's direction."""
        points = adjusted_points(
            Decimal(5), Decimal(0), Decimal(0), SelfControlRoll.NONE, [_mod(50)], round_down, False
        )
        assert points == expected


class TestAlternativeAbilities:
    """Tests for alternative ability pricing."""

    @pytest.mark.parametrize("round_down,expected", [(False, Decimal(13)), (True, Decimal(11))])
    def test_one_full_price_rest_a_fifth(self, round_down: bool, expected: Decimal) -> None:
        """Test the most expensive child pays full price and the rest a fifth."""
        values = [Decimal(10), Decimal(6), Decimal(4)]
        assert alternative_abilities_points(values, round_down) == expected

    def test_only_first_maximum_full_price(self) -> None:
        """Test that ties at the maximum still pay full price once."""
        values = [Decimal(10), Decimal(10)]
        assert alternative_abilities_points(values, False) == Decimal(12)

    def test_all_negative_children_pay_a_fifth(self) -> None:
        """Test that no child pays full price when none costs more than zero."""
        values = [Decimal(-10), Decimal(-5)]
        assert alternative_abilities_points(values, False) == Decimal(-3)

    def test_full_price_only_above_zero(self) -> None:
        """Test that a positive child pays full price alongside negative ones."""
        values = [Decimal(-10), Decimal(5)]
        assert alternative_abilities_points(values, False) == Decimal(3)

    def test_empty(self) -> None:
        """Test that an empty container costs nothing."""
        assert alternative_abilities_points([], False) == Decimal(0)

    def test_container_uses_alternative_pricing(self) -> None:
        """Test that an alternative abilities container applies the rule."""
        group = Trait.new_container(name="Powers", container_type=ContainerType.ALTERNATIVE_ABILITIES)
        group.set_children(
            [
                Trait(name="Blast", base_points=Decimal(10)),
                Trait(name="Shield", base_points=Decimal(6)),
                Trait(name="Flight", base_points=Decimal(4)),
            ]
        )
        assert group.adjusted_points() == Decimal(13)


class TestTraitAdjustedPoints:
    """Tests for costing traits in their trees."""

    def test_disabled_trait_costs_nothing(self) -> None:
        """Test that disabled traits contribute zero."""
        trait = Trait(name="Luck", base_points=Decimal(15), disabled=True)
        assert trait.adjusted_points() == Decimal(0)

    def test_group_sums_children(self) -> None:
        """Test that a group container adds up its children."""
        group = Trait.new_container(name="Advantages")
        group.set_children([Trait(base_points=Decimal(15)), Trait(base_points=Decimal(5))])
        assert group.adjusted_points() == Decimal(20)

    def test_ancestor_modifiers_apply(self) -> None:
        """Test that a container's modifiers reach its children."""
        group = Trait.new_container(name="Innate", modifiers=[_mod(50)])
        child = Trait(name="Claws", base_points=Decimal(10))
        group.set_children([child])
        assert child.adjusted_points() == Decimal(15)

    def test_disabled_modifier_ignored(self) -> None:
        """Test that disabled modifiers do not change the cost."""
        trait = Trait(base_points=Decimal(10), modifiers=[_mod(50, disabled=True)])
        assert trait.adjusted_points() == Decimal(10)

    def test_leveled_only_when_can_level(self) -> None:
        """Test that levels count only on traits that take levels."""
        leveled = Trait(can_level=True, levels=Decimal(2), points_per_level=Decimal(5))
        unleveled = Trait(can_level=False, levels=Decimal(2), points_per_level=Decimal(5))
        assert leveled.adjusted_points() == Decimal(10)
        assert unleveled.adjusted_points() == Decimal(0)


class TestSelfControl:
    """Tests for self-control roll adjustments."""

    @pytest.mark.parametrize(
        "adj,cr,expected",
        [
            (SelfControlAdjustment.REACTION_PENALTY, SelfControlRoll.CR12, Decimal(-2)),
            (SelfControlAdjustment.FRIGHT_CHECK_BONUS, SelfControlRoll.CR6, Decimal(4)),
            (SelfControlAdjustment.MINOR_COST_OF_LIVING_INCREASE, SelfControlRoll.CR9, Decimal(15)),
            (SelfControlAdjustment.MAJOR_COST_OF_LIVING_INCREASE, SelfControlRoll.CR15, Decimal(10)),
            (SelfControlAdjustment.ACTION_PENALTY, SelfControlRoll.NONE, Decimal(0)),
        ],
    )
    def test_adjustment_amounts(
        self, adj: SelfControlAdjustment, cr: SelfControlRoll, expected: Decimal
    ) -> None:
        """Test the signed amount per adjustment and roll."""
        assert self_control_adjustment(adj, cr) == expected

    def test_description(self) -> None:
        """Test human-readable adjustment text."""
        text = self_control_description(SelfControlAdjustment.REACTION_PENALTY, SelfControlRoll.CR12)
        assert text == "-2 reaction penalty"

    def test_major_cost_of_living_penalizes_merchant(self) -> None:
        """Test that a major cost of living increase yields a Merchant penalty."""
        trait = Trait(
            name="Compulsive Spending",
            cr=SelfControlRoll.CR9,
            cr_adj=SelfControlAdjustment.MAJOR_COST_OF_LIVING_INCREASE,
        )
        features = trait.cr_features()
        assert len(features) == 1
        assert features[0].amount == Decimal(-3)
