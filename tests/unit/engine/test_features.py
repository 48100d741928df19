"""Tests for feature aggregation and bonus lookups."""

from __future__ import annotations

from decimal import Decimal

from structlog.testing import capture_logs

from gurps_engine.engine.features import FeatureBuckets
from gurps_engine.models import (
    AttributeBonus,
    BonusLimitation,
    CostReduction,
    DRBonus,
    Equipment,
    NumericCompare,
    NumericCriteria,
    SkillBonus,
    SkillSelection,
    SpellBonus,
    SpellMatch,
    StringCompare,
    StringCriteria,
    Tooltip,
    Trait,
    WeaponBonus,
    WeaponBonusType,
    WeaponSelection,
    string_is,
)


class TestAttributeBonuses:
    """Tests for attribute bonus totals."""

    def test_limitations_kept_apart(self) -> None:
        """Test that limited ST bonuses only count for their limitation."""
        owner = Trait(name="Strong")
        buckets = FeatureBuckets()
        buckets.add_all(
            [
                AttributeBonus(attribute="st", amount=Decimal(2)),
                AttributeBonus(attribute="st", amount=Decimal(3), limitation=BonusLimitation.STRIKING_ONLY),
            ],
            owner,
            None,
            Decimal(0),
        )

        assert buckets.attribute_bonus_for("st", BonusLimitation.NONE, None) == Decimal(2)
        assert buckets.attribute_bonus_for("st", BonusLimitation.STRIKING_ONLY, None) == Decimal(3)
        assert buckets.attribute_bonus_for("st", BonusLimitation.LIFTING_ONLY, None) == Decimal(0)

    def test_limitation_ignored_off_strength(self) -> None:
        """Test that limitations only apply to ST."""
        buckets = FeatureBuckets()
        buckets.add(
            AttributeBonus(attribute="dx", amount=Decimal(1), limitation=BonusLimitation.STRIKING_ONLY),
            Trait(name="Nimble"),
            None,
            Decimal(0),
        )

        assert buckets.attribute_bonus_for("dx", BonusLimitation.NONE, None) == Decimal(1)

    def test_per_level_scaling_and_tooltip(self) -> None:
        """Test that per-level bonuses scale by the owner's level."""
        buckets = FeatureBuckets()
        buckets.add(
            AttributeBonus(attribute="st", amount=Decimal(1), per_level=True),
            Trait(name="Lifting ST"),
            None,
            Decimal(3),
        )
        tooltip = Tooltip()

        total = buckets.attribute_bonus_for("st", BonusLimitation.NONE, tooltip)

        assert total == Decimal(3)
        assert str(tooltip) == "\nLifting ST [+3 (+1 per level)]"


class TestCostReductions:
    """Tests for attribute cost reductions."""

    def test_reductions_sum(self) -> None:
        """Test that reductions for the same attribute add up."""
        buckets = FeatureBuckets()
        buckets.add_all(
            [CostReduction(attribute="st", percentage=Decimal(20)), CostReduction(attribute="st", percentage=Decimal(10))],
            Trait(name="Size"),
            None,
            Decimal(0),
        )

        assert buckets.cost_reduction_for("st") == Decimal(30)
        assert buckets.cost_reduction_for("dx") == Decimal(0)

    def test_reductions_capped_at_eighty(self) -> None:
        """Test that the total never exceeds 80 percent."""
        buckets = FeatureBuckets()
        buckets.add_all(
            [CostReduction(attribute="st", percentage=Decimal(50)), CostReduction(attribute="st", percentage=Decimal(50))],
            Trait(name="Size"),
            None,
            Decimal(0),
        )

        assert buckets.cost_reduction_for("st") == Decimal(80)


class TestDRBonuses:
    """Tests for DR aggregation by location."""

    def test_this_armor_expands_over_sibling_locations(self) -> None:
        """Test that a location-less DR bonus covers its armor's locations."""
        armor = Equipment(
            name="Leather Jacket",
            features=[
                DRBonus(locations=["torso"], amount=Decimal(3)),
                DRBonus(locations=["skull"], specialization="burning", amount=Decimal(1)),
                DRBonus(amount=Decimal(2)),
            ],
        )
        buckets = FeatureBuckets()
        buckets.add_all(armor.features, armor, None, Decimal(0))

        assert buckets.add_dr_bonuses_for("torso", True, None) == {"all": Decimal(5)}
        assert buckets.add_dr_bonuses_for("skull", False, None) == {
            "burning": Decimal(1),
            "all": Decimal(2),
        }

    def test_all_matches_only_top_level(self) -> None:
        """Test that "all" DR reaches top-level locations only."""
        buckets = FeatureBuckets()
        buckets.add(DRBonus(locations=["all"], amount=Decimal(1)), Trait(name="Tough Skin"), None, Decimal(0))

        assert buckets.add_dr_bonuses_for("torso", True, None) == {"all": Decimal(1)}
        assert buckets.add_dr_bonuses_for("eye", False, None) == {}

    def test_location_less_bonus_off_armor_not_expanded(self) -> None:
        """Test that only equipment expands a DR bonus without locations."""
        owner = Trait(
            name="Hardened Skin",
            features=[
                DRBonus(locations=["torso"], amount=Decimal(3)),
                DRBonus(amount=Decimal(2)),
            ],
        )
        buckets = FeatureBuckets()
        buckets.add_all(owner.features, owner, None, Decimal(0))

        assert len(buckets.dr_bonuses) == 2
        assert buckets.add_dr_bonuses_for("torso", True, None) == {"all": Decimal(3)}


class TestSkillAndSpellBonuses:
    """Tests for skill and spell bonus matching."""

    def test_skill_bonus_matches_name_and_tags(self) -> None:
        """Test name, specialization and tag criteria together."""
        buckets = FeatureBuckets()
        buckets.add(
            SkillBonus(
                name=StringCriteria(compare=StringCompare.STARTS_WITH, qualifier="guns"),
                tags=string_is("combat"),
                amount=Decimal(1),
            ),
            Trait(name="Gunslinger"),
            None,
            Decimal(0),
        )

        assert buckets.skill_bonus_for("Guns", "Pistol", ["Combat"], None) == Decimal(1)
        assert buckets.skill_bonus_for("Guns", "Pistol", ["Social"], None) == Decimal(0)
        assert buckets.skill_bonus_for("Bow", "", ["Combat"], None) == Decimal(0)

    def test_spell_bonus_by_college(self) -> None:
        """Test that college bonuses match any listed college."""
        buckets = FeatureBuckets()
        buckets.add(
            SpellBonus(match=SpellMatch.COLLEGE_NAME, name=string_is("fire"), amount=Decimal(2)),
            Trait(name="Magery (Fire)"),
            None,
            Decimal(0),
        )

        assert buckets.spell_bonus_for("Fireball", "", ["Air", "Fire"], [], None) == Decimal(2)
        assert buckets.spell_bonus_for("Light", "", ["Light and Darkness"], [], None) == Decimal(0)


class TestWeaponBonuses:
    """Tests for weapon bonus selection."""

    def test_named_weapon_skill_bonuses(self) -> None:
        """Test that only weapon-name skill bonuses select weapons."""
        owner = Trait(name="Weapon Bond")
        by_weapon = SkillBonus(
            selection_type=SkillSelection.WEAPONS_WITH_NAME,
            name=string_is("Broadsword"),
            specialization=string_is("Swung"),
            amount=Decimal(2),
        )
        buckets = FeatureBuckets()
        buckets.add_all([by_weapon, SkillBonus(name=string_is("Broadsword"), amount=Decimal(1))], owner, None, Decimal(0))
        tooltip = Tooltip()

        assert buckets.named_weapon_skill_bonuses_for("Broadsword", "Swung", [], tooltip) == [by_weapon]
        assert buckets.named_weapon_skill_bonuses_for("Broadsword", "Thrust", [], None) == []
        assert str(tooltip) == "\nWeapon Bond [+2]"

    def test_required_skill_level_criteria(self) -> None:
        """Test that required-skill bonuses honor the relative level criteria."""
        bonus = WeaponBonus(
            name=string_is("Broadsword"),
            level=NumericCriteria(compare=NumericCompare.AT_LEAST, qualifier=Decimal(2)),
            amount=Decimal(1),
        )
        buckets = FeatureBuckets()
        buckets.add(bonus, Trait(name="Weapon Master"), None, Decimal(0))
        types = frozenset({WeaponBonusType.DAMAGE})

        low: dict[int, WeaponBonus] = {}
        buckets.add_weapon_with_skill_bonuses_for("Broadsword", "", [], Decimal(1), 2, None, low, types)
        high: dict[int, WeaponBonus] = {}
        buckets.add_weapon_with_skill_bonuses_for("Broadsword", "", [], Decimal(3), 2, None, high, types)

        assert low == {}
        assert high == {id(bonus): bonus}

    def test_damage_bonus_tooltip_scales_with_dice(self) -> None:
        """Test that per-level damage bonuses describe the per-die total and keep their level."""
        bonus = WeaponBonus(
            selection_type=WeaponSelection.WITH_NAME,
            name=string_is("Broadsword"),
            amount=Decimal(1),
            per_level=True,
        )
        buckets = FeatureBuckets()
        buckets.add(bonus, Trait(name="Weapon Master"), None, Decimal(4))
        found: dict[int, WeaponBonus] = {}
        tooltip = Tooltip()

        buckets.add_named_weapon_bonuses_for(
            "Broadsword", "Swung", [], 3, tooltip, found, frozenset({WeaponBonusType.DAMAGE})
        )
        buckets.add_named_weapon_bonuses_for(
            "Broadsword", "Swung", [], 3, None, found, frozenset({WeaponBonusType.DAMAGE})
        )

        assert list(found.values()) == [bonus]
        assert str(tooltip) == "\nWeapon Master [+3 (+1 per level)]"
        assert bonus.owner_level == Decimal(4)

    def test_other_bonus_types_filtered(self) -> None:
        """Test that only the requested weapon bonus types are collected."""
        buckets = FeatureBuckets()
        buckets.add(
            WeaponBonus(type="weapon_parry_bonus", selection_type=WeaponSelection.WITH_NAME, amount=Decimal(1)),
            Trait(name="Defensive Grip"),
            None,
            Decimal(0),
        )
        found: dict[int, WeaponBonus] = {}

        buckets.add_named_weapon_bonuses_for("Broadsword", "", [], 1, None, found, frozenset({WeaponBonusType.DAMAGE}))

        assert found == {}


class TestUnknownFeatures:
    """Tests for features the buckets do not recognize."""

    def test_unknown_feature_logged_and_skipped(self) -> None:
        """Test that an unknown feature produces a warning and no bonus."""
        buckets = FeatureBuckets()

        with capture_logs() as logs:
            buckets.add(object(), Trait(name="Odd"), None, Decimal(0))

        assert any(entry["event"] == "Skipping unknown feature" for entry in logs)
        assert buckets.attribute_bonuses == []
