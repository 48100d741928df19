"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the GURPS character engine test suite.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest

from gurps_engine.models import (
    AttributeBonus,
    Entity,
    Equipment,
    SheetSettings,
    Skill,
    SkillDefault,
    Trait,
)


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from gurps_engine.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "GURPS_ENGINE_DEBUG": "true",
        "GURPS_ENGINE_RECALC_MAX_ITERATIONS": "7",
        "GURPS_ENGINE_SHEET_DAMAGE_PROGRESSION": "knowing_your_own_strength",
        "GURPS_ENGINE_LOG_LEVEL": "DEBUG",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Entity Fixtures
# =============================================================================


@pytest.fixture
def entity() -> Entity:
    """Provide a freshly recalculated entity with the standard attributes."""
    return Entity.create(settings=SheetSettings())


@pytest.fixture
def make_entity() -> Callable[..., Entity]:
    """Provide a builder that attaches elements and recalculates.

    Returns:
        A function accepting entity fields and returning a recalculated entity.
    """

    def build(**data: Any) -> Entity:
        data.setdefault("settings", SheetSettings())
        created = Entity(**data)
        created.recalculate()
        return created

    return build


# =============================================================================
# Element Fixtures
# =============================================================================


@pytest.fixture
def leveled_st_trait() -> Callable[..., Trait]:
    """Provide a builder for a leveled trait granting ST per level."""

    def build(levels: int = 3, **bonus: Any) -> Trait:
        return Trait(
            name="Extra ST",
            can_level=True,
            levels=Decimal(levels),
            points_per_level=Decimal(10),
            features=[AttributeBonus(attribute="st", amount=Decimal(1), per_level=True, **bonus)],
        )

    return build


@pytest.fixture
def broadsword() -> Skill:
    """Provide an average DX skill with 4 points and two defaults."""
    return Skill(
        name="Broadsword",
        points=Decimal(4),
        defaults=[
            SkillDefault(type="dx", modifier=Decimal(-5)),
            SkillDefault(type="skill", name="Shortsword", modifier=Decimal(-2)),
        ],
    )


@pytest.fixture
def backpack() -> Equipment:
    """Provide a container holding 10 lb of contents."""
    pack = Equipment.new_container(name="Backpack", weight=Decimal(3))
    pack.set_children(
        [
            Equipment(name="Rope", weight=Decimal(6)),
            Equipment(name="Rations", quantity=Decimal(4), weight=Decimal(1)),
        ]
    )
    return pack
