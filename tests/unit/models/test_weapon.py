"""Tests for weapon skill, damage and parry resolution."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

import pytest

from gurps_engine.engine.dice import Dice
from gurps_engine.models import (
    AttributeBonus,
    BonusLimitation,
    Entity,
    Equipment,
    Skill,
    SkillBonus,
    SkillDefault,
    SkillSelection,
    Trait,
    Weapon,
    WeaponBonus,
    WeaponDamage,
    WeaponSelection,
    string_is,
)
from gurps_engine.models.weapon import WeaponStrength, _add_dice, _adjust_dice_for_percent


def _sword(damage: WeaponDamage | None = None, **data: object) -> Equipment:
    data.setdefault("parry", "0")
    weapon = Weapon(
        usage="Swung",
        damage=damage or WeaponDamage(type="cut", st=WeaponStrength.SWING, base="+1"),
        defaults=[
            SkillDefault(type="skill", name="Broadsword"),
            SkillDefault(type="dx", modifier=Decimal(-5)),
        ],
        **data,
    )
    return Equipment(name="Broadsword", weapons=[weapon])


class TestWeaponSkillLevel:
    """Tests for the level a weapon is used at."""

    def test_best_default(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test that the best default sets the level."""
        sword = _sword()
        make_entity(skills=[broadsword], carried_equipment=[sword])

        assert sword.weapons[0].skill_level() == Decimal(11)

    def test_attribute_default_without_skill(self, make_entity: Callable[..., Entity]) -> None:
        """Test that an attribute default applies when no skill is known."""
        sword = _sword()
        make_entity(carried_equipment=[sword])

        assert sword.weapons[0].skill_level() == Decimal(5)

    def test_minimum_strength_shortfall(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test that each point of missing ST costs one level."""
        sword = _sword(strength="13")
        make_entity(skills=[broadsword], carried_equipment=[sword])

        assert sword.weapons[0].skill_level() == Decimal(8)

    def test_named_weapon_skill_bonus(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test that a skill bonus selecting the weapon by name applies."""
        trait = Trait(
            name="Weapon Bond",
            features=[
                SkillBonus(
                    selection_type=SkillSelection.WEAPONS_WITH_NAME,
                    name=string_is("Broadsword"),
                    amount=Decimal(2),
                )
            ],
        )
        sword = _sword()
        make_entity(traits=[trait], skills=[broadsword], carried_equipment=[sword])

        assert sword.weapons[0].skill_level() == Decimal(13)
        assert broadsword.level_data.level == Decimal(11)

    def test_this_weapon_skill_bonus(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test that the owner's own weapon skill bonus applies to its weapons."""
        sword = _sword()
        sword.features = [SkillBonus(selection_type=SkillSelection.THIS_WEAPON, amount=Decimal(1))]
        make_entity(skills=[broadsword], carried_equipment=[sword])

        assert sword.weapons[0].skill_level() == Decimal(12)

    def test_no_defaults_no_level(self, make_entity: Callable[..., Entity]) -> None:
        """Test that a weapon nobody can use has level zero."""
        sword = Equipment(name="Relic", weapons=[Weapon(parry="0")])
        make_entity(carried_equipment=[sword])

        assert sword.weapons[0].skill_level() == Decimal(0)
        assert sword.weapons[0].resolved_parry() == "No"


class TestWeaponDamage:
    """Tests for resolved damage text."""

    def test_swing_from_strength(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test swing damage at ST 10 plus the weapon's adds."""
        sword = _sword()
        make_entity(skills=[broadsword], carried_equipment=[sword])

        assert sword.weapons[0].resolved_damage() == "1d+1 cut"

    def test_thrust_follows_strength_bonus(
        self,
        make_entity: Callable[..., Entity],
        leveled_st_trait: Callable[..., Trait],
    ) -> None:
        """Test that thrust damage tracks raised ST."""
        sword = _sword(WeaponDamage(type="imp", st=WeaponStrength.THRUST))
        make_entity(traits=[leveled_st_trait(3)], carried_equipment=[sword])

        assert sword.weapons[0].resolved_damage() == "1d imp"

    def test_striking_strength_counts(self, make_entity: Callable[..., Entity]) -> None:
        """Test that striking-only ST raises weapon damage."""
        trait = Trait(
            name="Striking ST",
            features=[AttributeBonus(attribute="st", amount=Decimal(3), limitation=BonusLimitation.STRIKING_ONLY)],
        )
        sword = _sword(WeaponDamage(type="cr", st=WeaponStrength.SWING))
        make_entity(traits=[trait], carried_equipment=[sword])

        assert sword.weapons[0].resolved_damage() == "2d-1 cr"

    def test_required_skill_damage_bonus(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test a per-die damage bonus selected by the weapon's skill."""
        trait = Trait(
            name="Weapon Master",
            features=[
                WeaponBonus(
                    selection_type=WeaponSelection.WITH_REQUIRED_SKILL,
                    name=string_is("Broadsword"),
                    amount=Decimal(1),
                    per_level=True,
                )
            ],
        )
        sword = _sword(WeaponDamage(type="cut", st=WeaponStrength.SWING, base="1d"))
        make_entity(traits=[trait], skills=[broadsword], carried_equipment=[sword])

        assert sword.weapons[0].resolved_damage() == "2d+2 cut"

    def test_required_skill_bonus_needs_skill(self, make_entity: Callable[..., Entity]) -> None:
        """Test that a skill-selected damage bonus is skipped without the skill."""
        trait = Trait(
            name="Weapon Master",
            features=[WeaponBonus(name=string_is("Broadsword"), amount=Decimal(2))],
        )
        sword = _sword()
        make_entity(traits=[trait], carried_equipment=[sword])

        assert sword.weapons[0].resolved_damage() == "1d+1 cut"

    def test_percent_damage_bonus(self, make_entity: Callable[..., Entity]) -> None:
        """Test that a percentage bonus rescales the dice."""
        trait = Trait(
            name="Mighty Blows",
            features=[
                WeaponBonus(
                    selection_type=WeaponSelection.WITH_NAME,
                    name=string_is("Broadsword"),
                    amount=Decimal(50),
                    percent=True,
                )
            ],
        )
        sword = _sword(WeaponDamage(type="cut", st=WeaponStrength.SWING, base="1d"))
        make_entity(traits=[trait], carried_equipment=[sword])

        assert sword.weapons[0].resolved_damage() == "3d cut"

    def test_unowned_weapon_describes_damage(self) -> None:
        """Test the raw damage text when no character wields the weapon."""
        weapon = Weapon(damage=WeaponDamage(type="cut", st=WeaponStrength.SWING, base="+2"))

        assert weapon.resolved_damage() == "sw +2 cut"


class TestWeaponParry:
    """Tests for resolved parry text."""

    def test_parry_from_skill(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test half the skill plus three."""
        sword = _sword()
        make_entity(skills=[broadsword], carried_equipment=[sword])

        assert sword.weapons[0].resolved_parry() == "8"

    def test_parry_modifier_and_bonus(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test the weapon's parry modifier, fencing flag and parry bonuses."""
        trait = Trait(name="Combat Reflexes", features=[AttributeBonus(attribute="parry", amount=Decimal(1))])
        sword = _sword(parry="-1F")
        make_entity(traits=[trait], skills=[broadsword], carried_equipment=[sword])

        assert sword.weapons[0].resolved_parry() == "8F"

    def test_no_parry(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test that a weapon without parry text stays blank."""
        sword = _sword(parry="")
        make_entity(skills=[broadsword], carried_equipment=[sword])

        assert sword.weapons[0].resolved_parry() == ""


class TestDiceArithmetic:
    """Tests for combining and scaling damage dice."""

    @pytest.mark.parametrize(
        "left,right,expected",
        [
            (Dice(0, modifier=2), Dice(1, modifier=-2), Dice(1)),
            (Dice(1, modifier=1), Dice(2, modifier=-1), Dice(3)),
            (Dice(1), Dice(1, sides=4), Dice(2, sides=4, modifier=1)),
        ],
    )
    def test_add_dice(self, left: Dice, right: Dice, expected: Dice) -> None:
        """Test adding dice, collapsing mixed sizes to the smaller die."""
        assert _add_dice(left, right) == expected

    @pytest.mark.parametrize(
        "dice,percent,expected",
        [
            (Dice(2), Decimal(50), Dice(3)),
            (Dice(1, modifier=2), Decimal(-50), Dice(0, modifier=3)),
            (Dice(4), Decimal(0), Dice(4)),
        ],
    )
    def test_adjust_for_percent(self, dice: Dice, percent: Decimal, expected: Dice) -> None:
        """Test that percentages rescale the average roll into dice and adds."""
        assert _adjust_dice_for_percent(dice, percent) == expected
