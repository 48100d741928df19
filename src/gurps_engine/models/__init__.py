"""Pydantic V2 schemas for the GURPS character engine.

This module provides the element model layer: the entity aggregate, the
tree-structured game elements it owns, and the features and prerequisites
those elements carry. Values marked as calculated are excluded from
serialization and rebuilt by ``Entity.recalculate()``.

Submodules:
    enums: Enumeration types (Difficulty, Encumbrance, WeightUnit, etc.)
    node: Generic tree node and traversal
    features: Bonuses and other features elements grant
    prereqs: Prerequisite trees
    trait, skill, spell, equipment, note: Game elements
    entity: The character aggregate and templates

Example:
    >>> from gurps_engine.models import Entity, Trait, AttributeBonus
    >>> entity = Entity.create()
    >>> entity.traits.append(
    ...     Trait(name="Lifting ST", can_level=True, levels=3,
    ...           features=[AttributeBonus(attribute="st", amount=1, per_level=True)])
    ... )
    >>> entity.recalculate()
"""

from __future__ import annotations

# =============================================================================
# Enumerations and Identifiers
# =============================================================================
from gurps_engine.models.enums import (
    LAST_ENCUMBRANCE,
    AttributeType,
    BonusLimitation,
    ContainerType,
    DamageProgression,
    Difficulty,
    Encumbrance,
    EquipmentCostType,
    EquipmentWeightType,
    ModifierAffects,
    ModifierCostType,
    NumericCompare,
    SelfControlAdjustment,
    SelfControlRoll,
    SkillSelection,
    SpellMatch,
    StringCompare,
    ThresholdOp,
    WeaponBonusType,
    WeaponSelection,
    WeightUnit,
)
from gurps_engine.models.ids import Kind, new_tid

# =============================================================================
# Building Blocks
# =============================================================================
from gurps_engine.models.criteria import NumericCriteria, StringCriteria, string_is
from gurps_engine.models.level import NO_LEVEL, Level
from gurps_engine.models.node import Node, collect, traverse
from gurps_engine.models.tooltip import Tooltip

# =============================================================================
# Features and Prerequisites
# =============================================================================
from gurps_engine.models.features import (
    AttributeBonus,
    ConditionalModifierBonus,
    ContainedWeightReduction,
    CostReduction,
    DRBonus,
    ReactionBonus,
    SkillBonus,
    SkillPointBonus,
    SpellBonus,
    SpellPointBonus,
    WeaponBonus,
)
from gurps_engine.models.prereqs import (
    AttributePrereq,
    EquippedEquipmentPrereq,
    PrereqList,
    SkillPrereq,
    SpellPrereq,
    TraitPrereq,
)

# =============================================================================
# Attributes and Settings
# =============================================================================
from gurps_engine.models.attributes import Attribute, AttributeDef, PoolThreshold
from gurps_engine.models.settings import BodyType, HitLocation, SheetSettings

# =============================================================================
# Game Elements
# =============================================================================
from gurps_engine.models.equipment import Equipment, EquipmentModifier
from gurps_engine.models.note import Note
from gurps_engine.models.skill import AttributeDifficulty, Skill
from gurps_engine.models.skill_default import SkillDefault
from gurps_engine.models.spell import Spell
from gurps_engine.models.trait import Trait, TraitModifier
from gurps_engine.models.weapon import Weapon, WeaponDamage

# =============================================================================
# Aggregates
# =============================================================================
from gurps_engine.models.conditional import ConditionalModifier
from gurps_engine.models.entity import Entity, Template, TraitPoints
from gurps_engine.models.points import PointsRecord
from gurps_engine.models.profile import Profile


__all__ = [
    # Enumerations
    "AttributeType",
    "BonusLimitation",
    "ContainerType",
    "DamageProgression",
    "Difficulty",
    "Encumbrance",
    "EquipmentCostType",
    "EquipmentWeightType",
    "LAST_ENCUMBRANCE",
    "ModifierAffects",
    "ModifierCostType",
    "NumericCompare",
    "SelfControlAdjustment",
    "SelfControlRoll",
    "SkillSelection",
    "SpellMatch",
    "StringCompare",
    "ThresholdOp",
    "WeaponBonusType",
    "WeaponSelection",
    "WeightUnit",
    "Kind",
    "new_tid",
    # Building blocks
    "NumericCriteria",
    "StringCriteria",
    "string_is",
    "Level",
    "NO_LEVEL",
    "Node",
    "collect",
    "traverse",
    "Tooltip",
    # Features
    "AttributeBonus",
    "ConditionalModifierBonus",
    "ContainedWeightReduction",
    "CostReduction",
    "DRBonus",
    "ReactionBonus",
    "SkillBonus",
    "SkillPointBonus",
    "SpellBonus",
    "SpellPointBonus",
    "WeaponBonus",
    # Prerequisites
    "AttributePrereq",
    "EquippedEquipmentPrereq",
    "PrereqList",
    "SkillPrereq",
    "SpellPrereq",
    "TraitPrereq",
    # Attributes and settings
    "Attribute",
    "AttributeDef",
    "PoolThreshold",
    "BodyType",
    "HitLocation",
    "SheetSettings",
    # Game elements
    "Equipment",
    "EquipmentModifier",
    "Note",
    "AttributeDifficulty",
    "Skill",
    "SkillDefault",
    "Spell",
    "Trait",
    "TraitModifier",
    "Weapon",
    "WeaponDamage",
    # Aggregates
    "ConditionalModifier",
    "Entity",
    "Template",
    "TraitPoints",
    "PointsRecord",
    "Profile",
]
