"""Tests for the recalculation driver."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

import structlog
from structlog.testing import capture_logs

from gurps_engine.core.config import RecalcSettings
from gurps_engine.core.constants import PREREQ_NOT_MET
from gurps_engine.engine.recalc import RecalcScratch, Recalculator
from gurps_engine.models import (
    Attribute,
    AttributeBonus,
    AttributeDifficulty,
    AttributePrereq,
    BonusLimitation,
    Difficulty,
    Entity,
    Equipment,
    EquippedEquipmentPrereq,
    NumericCompare,
    NumericCriteria,
    PrereqList,
    Skill,
    SkillBonus,
    Trait,
    string_is,
)


def _lockpicking(**data: object) -> Skill:
    return Skill(
        name="Lockpicking",
        points=Decimal(1),
        difficulty=AttributeDifficulty(attribute="dx", difficulty=Difficulty.EASY),
        prereq=PrereqList(prereqs=[EquippedEquipmentPrereq(name=string_is("Lockpicks"))]),
        **data,
    )


def _runaway_skill() -> Skill:
    """A skill whose bonus scales with its own level, so levels never settle."""
    return Skill(
        name="Bootstrap",
        points=Decimal(1),
        difficulty=AttributeDifficulty(attribute="dx", difficulty=Difficulty.EASY),
        features=[SkillBonus(name=string_is("Bootstrap"), amount=Decimal(1), per_level=True)],
    )


class TestConvergence:
    """Tests for the iteration loop."""

    def test_simple_entity_converges(self, make_entity: Callable[..., Entity], broadsword: Skill) -> None:
        """Test that a plain entity settles and records it."""
        entity = make_entity(skills=[broadsword])

        assert entity.last_recalc_converged is True
        assert 1 <= entity.last_recalc_iterations <= 5

    def test_cap_reached_logs_warning(self, make_entity: Callable[..., Entity]) -> None:
        """Test that hitting the cap is logged and recorded."""
        entity = make_entity(skills=[_runaway_skill()])

        with capture_logs() as logs:
            converged = entity.recalculate(RecalcSettings(max_iterations=3))

        assert converged is False
        assert entity.last_recalc_converged is False
        assert entity.last_recalc_iterations == 3
        warnings = [entry for entry in logs if entry["event"] == "Recalculation did not converge"]
        assert len(warnings) == 1
        assert warnings[0]["changed_skills"] == ["Bootstrap"]

    def test_cap_reached_quietly(self, make_entity: Callable[..., Entity]) -> None:
        """Test that the warning can be switched off."""
        entity = make_entity(skills=[_runaway_skill()])

        with capture_logs() as logs:
            converged = entity.recalculate(RecalcSettings(max_iterations=2, warn_on_non_convergence=False))

        assert converged is False
        assert not [entry for entry in logs if entry["log_level"] == "warning"]

    def test_entity_context_unbound_after_run(self, entity: Entity) -> None:
        """Test that the entity id is only bound while recalculating."""
        Recalculator(entity).run()

        assert "entity_id" not in structlog.contextvars.get_contextvars()

    def test_scratch_replaced_each_run(self, entity: Entity) -> None:
        """Test that every recalculation starts from a fresh scratch."""
        before = entity.scratch
        entity.recalculate()

        assert isinstance(entity.scratch, RecalcScratch)
        assert entity.scratch is not before


class TestDerivedBonuses:
    """Tests for values derived from the feature buckets."""

    def test_strength_variants(self, make_entity: Callable[..., Entity]) -> None:
        """Test that limited ST bonuses land in their own caches."""
        trait = Trait(
            name="Strong Arms",
            features=[
                AttributeBonus(attribute="st", amount=Decimal(2), limitation=BonusLimitation.STRIKING_ONLY),
                AttributeBonus(attribute="st", amount=Decimal(4), limitation=BonusLimitation.LIFTING_ONLY),
            ],
        )
        entity = make_entity(traits=[trait])

        assert entity.striking_strength_bonus == Decimal(2)
        assert entity.lifting_strength_bonus == Decimal(4)
        assert entity.throwing_strength_bonus == Decimal(0)
        assert entity.resolve_attribute_current("st") == Decimal(10)

    def test_defense_bonuses(self, make_entity: Callable[..., Entity]) -> None:
        """Test dodge and parry bonuses with tooltips."""
        trait = Trait(
            name="Combat Reflexes",
            features=[
                AttributeBonus(attribute="dodge", amount=Decimal(1)),
                AttributeBonus(attribute="parry", amount=Decimal(1)),
            ],
        )
        entity = make_entity(traits=[trait])

        assert entity.dodge_bonus == Decimal(1)
        assert entity.parry_bonus == Decimal(1)
        assert "Combat Reflexes" in entity.parry_bonus_tooltip

    def test_unequipped_items_grant_nothing(self, make_entity: Callable[..., Entity]) -> None:
        """Test that only equipped items contribute features."""
        ring = Equipment(
            name="Ring of Might",
            equipped=False,
            features=[AttributeBonus(attribute="st", amount=Decimal(2))],
        )
        entity = make_entity(carried_equipment=[ring])

        assert entity.resolve_attribute_current("st") == Decimal(10)

        ring.equipped = True
        entity.recalculate()

        assert entity.resolve_attribute_current("st") == Decimal(12)

    def test_undefined_attribute_bonus_cleared(self, make_entity: Callable[..., Entity]) -> None:
        """Test that an attribute without a definition loses stale bonuses."""
        entity = make_entity(attributes={"luck": Attribute(attr_id="luck")})
        luck = entity.attributes["luck"]
        luck.bonus = Decimal(3)
        luck.cost_reduction = Decimal(20)

        entity.recalculate()

        assert luck.bonus == Decimal(0)
        assert luck.cost_reduction == Decimal(0)


class TestPrerequisites:
    """Tests for prerequisite evaluation during recalculation."""

    def test_missing_equipment_penalizes_skill(self, make_entity: Callable[..., Entity]) -> None:
        """Test that missing equipment costs -5 without failing the skill."""
        skill = _lockpicking()
        make_entity(skills=[skill])

        assert skill.level_data.level == Decimal(5)
        assert skill.unsatisfied_reason == ""

    def test_missing_equipment_penalty_with_tech_level(self, make_entity: Callable[..., Entity]) -> None:
        """Test that tech-level skills take -10 for missing equipment."""
        skill = _lockpicking(tech_level="3")
        make_entity(skills=[skill])

        assert skill.level_data.level == Decimal(0)

    def test_equipped_item_removes_penalty(self, make_entity: Callable[..., Entity]) -> None:
        """Test that carrying the equipped item lifts the penalty."""
        skill = _lockpicking()
        make_entity(skills=[skill], carried_equipment=[Equipment(name="Lockpicks")])

        assert skill.level_data.level == Decimal(10)

    def test_unequipped_item_does_not_count(self, make_entity: Callable[..., Entity]) -> None:
        """Test that an unequipped item still leaves the penalty."""
        skill = _lockpicking()
        make_entity(skills=[skill], carried_equipment=[Equipment(name="Lockpicks", equipped=False)])

        assert skill.level_data.level == Decimal(5)

    def test_unmet_trait_prereq_records_reason(self, make_entity: Callable[..., Entity]) -> None:
        """Test that unmet prerequisites produce a reason string."""
        trait = Trait(
            name="Weapon Master",
            prereq=PrereqList(
                prereqs=[
                    AttributePrereq(
                        which="dx",
                        qualifier=NumericCriteria(compare=NumericCompare.AT_LEAST, qualifier=Decimal(14)),
                    )
                ]
            ),
        )
        make_entity(traits=[trait])

        assert trait.unsatisfied_reason.startswith(PREREQ_NOT_MET)
        assert "Has DX which at least 14" in trait.unsatisfied_reason

    def test_met_prereq_clears_reason(self, make_entity: Callable[..., Entity]) -> None:
        """Test that satisfied prerequisites leave no reason."""
        trait = Trait(
            name="Weapon Master",
            prereq=PrereqList(prereqs=[AttributePrereq(which="dx")]),
        )
        make_entity(traits=[trait])

        assert trait.unsatisfied_reason == ""
