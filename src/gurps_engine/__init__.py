"""gurps-engine - GURPS 4th Edition character-sheet recalculation.

An entity owns attributes and forests of traits, skills, spells, equipment
and notes. Elements grant features (bonuses, cost reductions, weight
reductions) and carry prerequisites. ``Entity.recalculate()`` aggregates
the features, evaluates prerequisites and iterates skill and spell levels
to a fixed point, after which every derived value is current.

Example:
    >>> from gurps_engine import Entity, Skill, configure_logging
    >>> configure_logging()
    >>> entity = Entity.create()
    >>> entity.skills.append(Skill(name="Broadsword", points=4))
    >>> entity.recalculate()
    >>> entity.skills[0].level_data.level
    Decimal('11')

Modules:
    core: Configuration, logging, exceptions and fixed-point helpers.
    models: Pydantic V2 element models and the entity aggregate.
    engine: Calculators, feature aggregation and the recalculation driver.
"""

from __future__ import annotations

# Core
from gurps_engine.core.config import Settings, get_settings
from gurps_engine.core.exceptions import GurpsEngineError
from gurps_engine.core.logging import configure_logging, get_logger

# Models
from gurps_engine.models import (
    Attribute,
    AttributeBonus,
    Entity,
    Equipment,
    EquipmentModifier,
    Note,
    PointsRecord,
    SheetSettings,
    Skill,
    SkillDefault,
    Spell,
    Template,
    Trait,
    TraitModifier,
)

# Engine
from gurps_engine.engine.dice import Dice, roll
from gurps_engine.engine.recalc import Recalculator


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "GurpsEngineError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "Attribute",
    "AttributeBonus",
    "Entity",
    "Equipment",
    "EquipmentModifier",
    "Note",
    "PointsRecord",
    "SheetSettings",
    "Skill",
    "SkillDefault",
    "Spell",
    "Template",
    "Trait",
    "TraitModifier",
    # Engine
    "Dice",
    "roll",
    "Recalculator",
]
