"""Integration tests for whole-character recalculation.

Tests the complete flow: build a character, recalculate, persist, reload,
and apply templates.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

import pytest

from gurps_engine.models import (
    BonusLimitation,
    DamageProgression,
    Entity,
    Equipment,
    Skill,
    Template,
    Trait,
)


class TestStrengthFlow:
    """Test that trait bonuses flow through to derived strength values."""

    def test_leveled_strength(self, make_entity: Callable[..., Entity], leveled_st_trait: Callable[..., Trait]) -> None:
        """Three levels of Extra ST raise every ST-derived value."""
        entity = make_entity(traits=[leveled_st_trait(3)])

        assert entity.resolve_attribute_current("st") == Decimal(13)
        assert entity.resolve_attribute_current("hp") == Decimal(13)
        assert entity.basic_lift() == Decimal(34)
        assert str(entity.thrust()) == "1d"
        assert str(entity.swing()) == "2d-1"

    def test_striking_only_strength(
        self,
        make_entity: Callable[..., Entity],
        leveled_st_trait: Callable[..., Trait],
    ) -> None:
        """Striking ST raises damage but leaves ST and lift alone."""
        entity = make_entity(traits=[leveled_st_trait(3, limitation=BonusLimitation.STRIKING_ONLY)])

        assert entity.resolve_attribute_current("st") == Decimal(10)
        assert entity.striking_strength_bonus == Decimal(3)
        assert entity.basic_lift() == Decimal(20)
        assert str(entity.swing()) == "2d-1"

    def test_removing_trait_restores_values(
        self,
        make_entity: Callable[..., Entity],
        leveled_st_trait: Callable[..., Trait],
    ) -> None:
        """Recalculating after an edit drops stale bonuses."""
        entity = make_entity(traits=[leveled_st_trait(3)])

        entity.traits = []
        entity.recalculate()

        assert entity.resolve_attribute_current("st") == Decimal(10)
        assert entity.basic_lift() == Decimal(20)


class TestRecalculationStability:
    """Test that repeated recalculation is stable."""

    def test_idempotent(
        self,
        make_entity: Callable[..., Entity],
        leveled_st_trait: Callable[..., Trait],
        broadsword: Skill,
        backpack: Equipment,
    ) -> None:
        """A second recalculation changes neither levels nor source data."""
        entity = make_entity(traits=[leveled_st_trait(2)], skills=[broadsword], carried_equipment=[backpack])
        level = broadsword.level_data.level
        digest = entity.state_hash()

        assert entity.recalculate() is True

        assert broadsword.level_data.level == level
        assert entity.state_hash() == digest


class TestPersistenceFlow:
    """Test saving and loading characters."""

    @pytest.fixture
    def built(
        self,
        make_entity: Callable[..., Entity],
        leveled_st_trait: Callable[..., Trait],
        broadsword: Skill,
        backpack: Equipment,
    ) -> Entity:
        """A character with one element of each kind."""
        built = make_entity(traits=[leveled_st_trait(3)], skills=[broadsword], carried_equipment=[backpack])
        built.profile.name = "Dai Blackthorn"
        return built

    def test_dict_round_trip(self, built: Entity) -> None:
        """Loading dumped data restores source data and derived values."""
        loaded = Entity.load(built.to_data())

        assert loaded.profile.name == "Dai Blackthorn"
        assert loaded.resolve_attribute_current("st") == Decimal(13)
        assert loaded.skills[0].level_data.level == built.skills[0].level_data.level
        assert loaded.weight_carried(False) == Decimal(13)
        assert loaded.state_hash() == built.state_hash()

    def test_json_round_trip(self, built: Entity) -> None:
        """Loading from a JSON document behaves like loading a dict."""
        loaded = Entity.load(built.model_dump_json())

        assert loaded.id == built.id
        assert loaded.carried_equipment[0].node_children()[0].owning_entity is loaded

    def test_calculated_values_not_stored(self, built: Entity) -> None:
        """Dumped data carries no calculated fields."""
        data = built.to_data()

        assert "level_data" not in data["skills"][0]
        assert "striking_strength_bonus" not in data


class TestTemplateFlow:
    """Test applying templates to characters."""

    def test_apply_template(
        self,
        entity: Entity,
        leveled_st_trait: Callable[..., Trait],
        broadsword: Skill,
    ) -> None:
        """Applied elements are copies and are recalculated on the character."""
        template = Template(traits=[leveled_st_trait(1)], skills=[broadsword])

        template.apply_to(entity)

        assert entity.resolve_attribute_current("st") == Decimal(11)
        assert entity.skills[0] is not template.skills[0]
        assert entity.skills[0].owning_entity is entity
        assert template.skills[0].owning_entity is None


class TestConfiguredDefaults:
    """Test that application settings seed new characters."""

    def test_env_selects_progression(self, mock_env_vars: dict[str, str]) -> None:
        """A new character picks up the configured damage progression."""
        created = Entity.create()

        assert created.settings.damage_progression is DamageProgression.KNOWING_YOUR_OWN_STRENGTH
        assert created.basic_lift() == Decimal(20)
