"""The character aggregate and the template aggregate.

An ``Entity`` owns its settings, attributes and element forests, and answers
every lookup the calculators make: attribute values, variables, skills by
name, and feature bonuses. Values derived from features (strength variants,
defense bonuses, attribute bonuses) are caches rebuilt by ``recalculate()``.

Example:
    >>> entity = Entity.create()
    >>> entity.traits.append(Trait(name="Lifting ST", ...))
    >>> entity.recalculate()
    >>> entity.basic_lift()
"""

from __future__ import annotations

import hashlib

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from gurps_engine.core.config import RecalcSettings, get_settings
from gurps_engine.core.constants import (
    BASIC_MOVE_ID,
    BASIC_SPEED_ID,
    CURRENT_DATA_VERSION,
    MINIMUM_DATA_VERSION,
    RECONCILIATION_REASON,
    SIZE_MODIFIER_ID,
    STRENGTH_ID,
)
from gurps_engine.core.exceptions import DataVersionError
from gurps_engine.core.fixed import (
    MIN_LEVEL,
    ONE,
    THREE,
    TEN,
    TWELVE,
    TWO,
    ZERO,
    as_int,
    ceil,
    fixed_str,
    trunc,
)
from gurps_engine.core.logging import get_logger
from gurps_engine.engine.dice import Dice
from gurps_engine.engine.text import evaluate_number
from gurps_engine.models.attributes import Attribute, AttributeDef, attributes_for, count_threshold_op_met
from gurps_engine.models.conditional import ConditionalModifier
from gurps_engine.models.enums import (
    LAST_ENCUMBRANCE,
    BonusLimitation,
    ContainerType,
    Encumbrance,
    SelfControlAdjustment,
    SelfControlRoll,
    ThresholdOp,
    WeaponBonusType,
    WeightUnit,
)
from gurps_engine.models.equipment import Equipment
from gurps_engine.models.features import ConditionalModifierBonus, ReactionBonus, WeaponBonus
from gurps_engine.models.ids import Kind, new_tid
from gurps_engine.models.node import collect, traverse
from gurps_engine.models.note import Note
from gurps_engine.models.points import PointsRecord, sort_records, total_of
from gurps_engine.models.profile import Profile
from gurps_engine.models import progression
from gurps_engine.models.settings import SheetSettings
from gurps_engine.models.skill import Skill
from gurps_engine.models.skill_default import SkillDefault
from gurps_engine.models.spell import Spell
from gurps_engine.models.tooltip import Tooltip
from gurps_engine.models.trait import Trait, TraitModifier, self_control_adjustment


if TYPE_CHECKING:
    from gurps_engine.engine.features import FeatureBuckets
    from gurps_engine.engine.recalc import RecalcScratch


logger = get_logger(__name__)

# Lift multiples of basic lift.
EIGHT = Decimal(8)
FIFTEEN = Decimal(15)
TWENTY_FOUR = Decimal(24)
FIFTY = Decimal(50)


# =============================================================================
# Data Owner Boundary
# =============================================================================


class DataOwner(Protocol):
    """An aggregate root that hosts element trees."""

    def owning_entity(self) -> Entity | None: ...

    def source_matcher(self) -> SourceMatcher: ...

    def weight_unit(self) -> WeightUnit: ...


class SourceMatcher:
    """Matches elements to the library entries they were copied from.

    Library sources are not tracked by this engine, so nothing matches.
    """

    def match(self, element: Any) -> str | None:
        return None


def _now() -> datetime:
    return datetime.now(UTC)


class TraitPoints(BaseModel):
    """Trait point breakdown."""

    model_config = ConfigDict(frozen=True)

    advantages: Decimal = ZERO
    disadvantages: Decimal = ZERO
    ancestry: Decimal = ZERO
    quirks: Decimal = ZERO
    attributes: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.advantages + self.disadvantages + self.ancestry + self.quirks + self.attributes


def _trait_points(trait: Trait) -> TraitPoints:
    """Route one trait's cost into the breakdown buckets."""
    if not trait.enabled:
        return TraitPoints()
    if trait.container:
        match trait.container_type:
            case ContainerType.GROUP:
                totals = [_trait_points(child) for child in trait.node_children()]
                return TraitPoints(
                    advantages=sum((one.advantages for one in totals), ZERO),
                    disadvantages=sum((one.disadvantages for one in totals), ZERO),
                    ancestry=sum((one.ancestry for one in totals), ZERO),
                    quirks=sum((one.quirks for one in totals), ZERO),
                    attributes=sum((one.attributes for one in totals), ZERO),
                )
            case ContainerType.ANCESTRY:
                return TraitPoints(ancestry=trait.adjusted_points())
            case ContainerType.ATTRIBUTES:
                return TraitPoints(attributes=trait.adjusted_points())
    points = trait.adjusted_points()
    if points == -ONE:
        return TraitPoints(quirks=points)
    if points > ZERO:
        return TraitPoints(advantages=points)
    if points < ZERO:
        return TraitPoints(disadvantages=points)
    return TraitPoints()


# =============================================================================
# Entity
# =============================================================================


class Entity(BaseModel):
    """A GURPS character.

    Attributes:
        id: Entity identifier.
        version: Data version the entity was stored with.
        total_points: Total points granted; kept equal to the ledger sum.
        points_record: Points ledger, newest first.
        profile: Descriptive profile.
        settings: Rule toggles and tables for this sheet.
        attributes: Attribute values keyed by definition id.
        traits: Trait forest.
        skills: Skill and technique forest.
        spells: Spell forest.
        carried_equipment: Equipment carried.
        other_equipment: Equipment owned but not carried.
        notes: Note forest.
        created_on: Creation time (UTC).
        modified_on: Last modification time (UTC); not part of the hash.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    id: str = Field(default_factory=lambda: new_tid(Kind.ENTITY))
    version: int = CURRENT_DATA_VERSION
    total_points: Decimal = ZERO
    points_record: list[PointsRecord] = Field(default_factory=list)
    profile: Profile = Field(default_factory=Profile)
    settings: SheetSettings = Field(default_factory=SheetSettings)
    attributes: dict[str, Attribute] = Field(default_factory=dict)
    traits: list[Trait] = Field(default_factory=list)
    skills: list[Skill] = Field(default_factory=list)
    spells: list[Spell] = Field(default_factory=list)
    carried_equipment: list[Equipment] = Field(default_factory=list)
    other_equipment: list[Equipment] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    created_on: datetime = Field(default_factory=_now)
    modified_on: datetime = Field(default_factory=_now)

    lifting_strength_bonus: Decimal = Field(default=ZERO, exclude=True)
    striking_strength_bonus: Decimal = Field(default=ZERO, exclude=True)
    throwing_strength_bonus: Decimal = Field(default=ZERO, exclude=True)
    dodge_bonus: Decimal = Field(default=ZERO, exclude=True)
    dodge_bonus_tooltip: str = Field(default="", exclude=True)
    parry_bonus: Decimal = Field(default=ZERO, exclude=True)
    parry_bonus_tooltip: str = Field(default="", exclude=True)
    block_bonus: Decimal = Field(default=ZERO, exclude=True)
    block_bonus_tooltip: str = Field(default="", exclude=True)
    last_recalc_converged: bool = Field(default=True, exclude=True)
    last_recalc_iterations: int = Field(default=0, exclude=True)

    _scratch: RecalcScratch | None = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        self.reset_scratch()
        for attr_id, attr in attributes_for(self.settings.attributes).items():
            self.attributes.setdefault(attr_id, attr)
        self.attach()

    # -------------------------------------------------------------------------
    # Construction and Persistence
    # -------------------------------------------------------------------------

    @classmethod
    def create(cls, settings: SheetSettings | None = None, **data: Any) -> Entity:
        """A new, recalculated entity seeded from the application defaults."""
        if settings is None:
            settings = SheetSettings.from_defaults(get_settings().sheet)
        entity = cls(settings=settings, **data)
        entity.recalculate()
        return entity

    @classmethod
    def load(cls, data: dict[str, Any] | str | bytes) -> Entity:
        """Validate stored data, reconcile the points ledger and recalculate.

        Raises:
            DataVersionError: If the stored version is unsupported.
        """
        if isinstance(data, dict):
            cls.check_version(int(data.get("version", CURRENT_DATA_VERSION)))
            entity = cls.model_validate(data)
        else:
            entity = cls.model_validate_json(data)
            cls.check_version(entity.version)
        entity.version = CURRENT_DATA_VERSION
        entity.reconcile_points_record()
        entity.recalculate()
        return entity

    def to_data(self) -> dict[str, Any]:
        """Source data only, JSON-compatible."""
        return self.model_dump(mode="json")

    @staticmethod
    def check_version(version: int) -> None:
        if version < MINIMUM_DATA_VERSION:
            raise DataVersionError(
                "Data is too old to be loaded",
                version=version,
                minimum=MINIMUM_DATA_VERSION,
                maximum=CURRENT_DATA_VERSION,
            )
        if version > CURRENT_DATA_VERSION:
            raise DataVersionError(
                "Data is too new to be loaded",
                version=version,
                minimum=MINIMUM_DATA_VERSION,
                maximum=CURRENT_DATA_VERSION,
            )

    def hash_into(self, hasher: Any) -> None:
        """Feed the source data, minus the modification time, to ``hasher``."""
        hasher.update(self.model_dump_json(exclude={"modified_on"}).encode("utf-8"))

    def state_hash(self) -> str:
        hasher = hashlib.sha256()
        self.hash_into(hasher)
        return hasher.hexdigest()

    def touch(self) -> None:
        self.modified_on = _now()

    # -------------------------------------------------------------------------
    # Data Owner
    # -------------------------------------------------------------------------

    def owning_entity(self) -> Entity | None:
        return self

    def source_matcher(self) -> SourceMatcher:
        return SourceMatcher()

    def weight_unit(self) -> WeightUnit:
        return self.settings.default_weight_units

    def attach(self) -> None:
        """Re-link every element to this entity (idempotent)."""
        for attr in self.attributes.values():
            attr.set_owning_entity(self)
        for forest in (self.traits, self.skills, self.spells, self.carried_equipment, self.other_equipment, self.notes):
            for node in forest:
                node.set_parent(None)
                node.set_owning_entity(self)

    # -------------------------------------------------------------------------
    # Recalculation
    # -------------------------------------------------------------------------

    @property
    def scratch(self) -> RecalcScratch:
        return self._scratch

    @property
    def features(self) -> FeatureBuckets:
        return self._scratch.features

    def reset_scratch(self) -> RecalcScratch:
        from gurps_engine.engine.recalc import RecalcScratch

        self._scratch = RecalcScratch()
        return self._scratch

    def recalculate(self, settings: RecalcSettings | None = None) -> bool:
        """Bring every derived value up to date.

        Returns:
            True if levels settled within the iteration cap.
        """
        from gurps_engine.engine.recalc import Recalculator

        return Recalculator(self, settings).run()

    # -------------------------------------------------------------------------
    # Points
    # -------------------------------------------------------------------------

    def set_points_record(self, records: list[PointsRecord]) -> None:
        """Replace the ledger; the total follows the ledger."""
        self.points_record = sort_records(records)
        self.total_points = total_of(self.points_record)

    def reconcile_points_record(self) -> None:
        """Add a reconciliation entry when the ledger disagrees with the total."""
        difference = self.total_points - total_of(self.points_record)
        if difference != ZERO:
            logger.info(
                "Reconciling points ledger",
                entity_id=self.id,
                total=fixed_str(self.total_points),
                difference=fixed_str(difference),
            )
            records = [*self.points_record, PointsRecord(points=difference, reason=RECONCILIATION_REASON)]
            self.set_points_record(records)

    def attribute_points(self) -> Decimal:
        return sum((attr.points for attr in self.attributes.values()), ZERO)

    def trait_points(self) -> TraitPoints:
        totals = [_trait_points(trait) for trait in self.traits]
        return TraitPoints(
            advantages=sum((one.advantages for one in totals), ZERO),
            disadvantages=sum((one.disadvantages for one in totals), ZERO),
            ancestry=sum((one.ancestry for one in totals), ZERO),
            quirks=sum((one.quirks for one in totals), ZERO),
            attributes=sum((one.attributes for one in totals), ZERO),
        )

    def skill_points(self) -> Decimal:
        return sum((skill.points for skill in collect(False, True, *self.skills)), ZERO)

    def spell_points(self) -> Decimal:
        return sum((spell.points for spell in collect(False, True, *self.spells)), ZERO)

    def spent_points(self) -> Decimal:
        return self.attribute_points() + self.trait_points().total + self.skill_points() + self.spell_points()

    def unspent_points(self) -> Decimal:
        return self.total_points - self.spent_points()

    def reported_total_points(self) -> Decimal:
        """Total shown on the sheet; only spent points when the sheet excludes unspent ones."""
        if self.settings.exclude_unspent_points_from_total:
            return self.spent_points()
        return self.total_points

    # -------------------------------------------------------------------------
    # Attributes and Variables
    # -------------------------------------------------------------------------

    def resolve_attribute_def(self, attr_id: str) -> AttributeDef | None:
        return self.settings.attribute_def(attr_id)

    def resolve_attribute(self, attr_id: str) -> Attribute | None:
        return self.attributes.get(attr_id)

    def resolve_attribute_current(self, attr_id: str) -> Decimal:
        attr = self.attributes.get(attr_id)
        if attr is None:
            return MIN_LEVEL
        return attr.current

    def resolve_attribute_name(self, attr_id: str) -> str:
        definition = self.resolve_attribute_def(attr_id)
        if definition is None:
            return "<unknown>"
        return definition.name

    def resolve_variable(self, name: str) -> str:
        """Text value of ``$name``; "" when unknown or self-referential.

        ``sm`` is the adjusted size modifier. Pools resolve to their maximum,
        or to their current value with a ``.current`` suffix.
        """
        scratch = self._scratch
        if name in scratch.variable_exclusions:
            logger.warning("Variable resolves through itself", variable=f"${name}")
            return ""
        cached = scratch.variable_cache.get(name)
        if cached is not None:
            return cached
        scratch.variable_exclusions.add(name)
        try:
            result = self._resolve_variable_uncached(name)
        finally:
            scratch.variable_exclusions.discard(name)
        if result:
            scratch.variable_cache[name] = result
        return result

    def _resolve_variable_uncached(self, name: str) -> str:
        if name == SIZE_MODIFIER_ID:
            return str(self.profile.adjusted_size_modifier)
        attr_id, _, part = name.partition(".")
        attr = self.attributes.get(attr_id)
        definition = attr.attribute_def() if attr is not None else None
        if attr is None or definition is None:
            logger.warning("No such variable", variable=f"${name}")
            return ""
        if part:
            if not definition.is_pool:
                logger.warning("No such variable", variable=f"${name}")
                return ""
            match part:
                case "current":
                    return fixed_str(attr.current)
                case "maximum":
                    return fixed_str(attr.maximum)
            logger.warning("No such variable", variable=f"${name}")
            return ""
        return fixed_str(attr.maximum)

    def evaluate_number(self, expression: str) -> Decimal:
        return evaluate_number(self, expression)

    # -------------------------------------------------------------------------
    # Strength, Lift and Movement
    # -------------------------------------------------------------------------

    @property
    def strength_or_zero(self) -> Decimal:
        return max(self.resolve_attribute_current(STRENGTH_ID), ZERO)

    def thrust_for(self, st: int) -> Dice:
        return progression.thrust(st, self.settings.damage_progression)

    def swing_for(self, st: int) -> Dice:
        return progression.swing(st, self.settings.damage_progression)

    def thrust(self) -> Dice:
        return self.thrust_for(as_int(self.strength_or_zero + self.striking_strength_bonus))

    def swing(self) -> Dice:
        return self.swing_for(as_int(self.strength_or_zero + self.striking_strength_bonus))

    def basic_lift_for_st(self, st: Decimal) -> Decimal:
        """Basic lift, with ST halved (rounded up) while a pool halves ST."""
        if count_threshold_op_met(ThresholdOp.HALVE_ST, self.attributes) > 0:
            st = ceil(st / TWO)
        return progression.basic_lift_for_st(st, self.settings.damage_progression)

    def basic_lift(self) -> Decimal:
        scratch = self._scratch
        if scratch.basic_lift is None:
            scratch.basic_lift = self.basic_lift_for_st(self.strength_or_zero + self.lifting_strength_bonus)
        return scratch.basic_lift

    def one_handed_lift(self) -> Decimal:
        return self.basic_lift() * TWO

    def two_handed_lift(self) -> Decimal:
        return self.basic_lift() * EIGHT

    def shove_and_knock_over(self) -> Decimal:
        return self.basic_lift() * TWELVE

    def running_shove_and_knock_over(self) -> Decimal:
        return self.basic_lift() * TWENTY_FOUR

    def carry_on_back(self) -> Decimal:
        return self.basic_lift() * FIFTEEN

    def shift_slightly(self) -> Decimal:
        return self.basic_lift() * FIFTY

    def maximum_carry(self, encumbrance: Encumbrance) -> Decimal:
        return trunc(self.basic_lift() * encumbrance.weight_multiplier)

    def _halving_divisor(self, op: ThresholdOp) -> int:
        return 2 * min(count_threshold_op_met(op, self.attributes), 2)

    def move(self, encumbrance: Encumbrance) -> int:
        initial = max(self.resolve_attribute_current(BASIC_MOVE_ID), ZERO)
        divisor = self._halving_divisor(ThresholdOp.HALVE_MOVE)
        if divisor > 0:
            initial = ceil(initial / Decimal(divisor))
        move = trunc(initial * (TEN + TWO * encumbrance.penalty) / TEN)
        if move < ONE:
            return 1 if initial > ZERO else 0
        return as_int(move)

    def dodge(self, encumbrance: Encumbrance) -> int:
        dodge = THREE + self.dodge_bonus + max(self.resolve_attribute_current(BASIC_SPEED_ID), ZERO)
        divisor = self._halving_divisor(ThresholdOp.HALVE_DODGE)
        if divisor > 0:
            dodge = ceil(dodge / Decimal(divisor))
        return max(as_int(dodge + encumbrance.penalty), 1)

    # -------------------------------------------------------------------------
    # Weight and Wealth
    # -------------------------------------------------------------------------

    def weight_carried(self, for_skills: bool) -> Decimal:
        units = self.weight_unit()
        return sum((item.extended_weight(for_skills, units) for item in self.carried_equipment), ZERO)

    def encumbrance_level(self, for_skills: bool) -> Encumbrance:
        scratch = self._scratch
        cached = scratch.encumbrance.get(for_skills)
        if cached is not None:
            return cached
        carried = self.weight_carried(for_skills)
        level = LAST_ENCUMBRANCE
        for one in Encumbrance:
            if carried <= self.maximum_carry(one):
                level = one
                break
        scratch.encumbrance[for_skills] = level
        return level

    def wealth_carried(self) -> Decimal:
        return sum((item.extended_value() for item in self.carried_equipment), ZERO)

    def wealth_not_carried(self) -> Decimal:
        return sum((item.extended_value() for item in self.other_equipment), ZERO)

    # -------------------------------------------------------------------------
    # Skills
    # -------------------------------------------------------------------------

    def skill_named(
        self,
        name: str,
        specialization: str,
        require_points: bool,
        excludes: frozenset[str] | set[str] | None,
    ) -> list[Skill]:
        """Skills with this name (and specialization, if given).

        Skills whose display name is in ``excludes`` are skipped. With
        ``require_points``, only techniques and skills with points qualify.
        """
        wanted = name.lower()
        wanted_spec = specialization.lower()
        found: list[Skill] = []
        for skill in collect(False, True, *self.skills):
            if excludes and str(skill) in excludes:
                continue
            if require_points and not skill.is_technique and skill.adjusted_points(None) <= ZERO:
                continue
            if skill.name.lower() != wanted:
                continue
            if wanted_spec and skill.specialization.lower() != wanted_spec:
                continue
            found.append(skill)
        return found

    def best_skill_named(
        self,
        name: str,
        specialization: str,
        require_points: bool,
        excludes: frozenset[str] | set[str] | None,
    ) -> Skill | None:
        best: Skill | None = None
        best_level = MIN_LEVEL
        for skill in self.skill_named(name, specialization, require_points, excludes):
            level = skill.calculate_level(excludes).level
            if best is None or best_level < level:
                best = skill
                best_level = level
        return best

    def base_skill(self, default: SkillDefault | None, require_points: bool) -> Skill | None:
        if default is None or not default.skill_based:
            return None
        return self.best_skill_named(default.name, default.specialization, require_points, None)

    # -------------------------------------------------------------------------
    # Bonus Lookups
    # -------------------------------------------------------------------------

    def attribute_bonus_for(self, attr_id: str, limitation: BonusLimitation, tooltip: Tooltip | None) -> Decimal:
        return self.features.attribute_bonus_for(attr_id, limitation, tooltip)

    def cost_reduction_for(self, attr_id: str) -> Decimal:
        return self.features.cost_reduction_for(attr_id)

    def dr_for(self, location_id: str, tooltip: Tooltip | None) -> dict[str, Decimal]:
        """DR at a hit location keyed by lower-cased specialization."""
        body = self.settings.body_type
        return self.features.add_dr_bonuses_for(location_id, body.is_top_level_location(location_id), tooltip)

    def skill_bonus_for(self, name: str, specialization: str, tags: list[str], tooltip: Tooltip | None) -> Decimal:
        return self.features.skill_bonus_for(name, specialization, tags, tooltip)

    def skill_point_bonus_for(
        self, name: str, specialization: str, tags: list[str], tooltip: Tooltip | None
    ) -> Decimal:
        return self.features.skill_point_bonus_for(name, specialization, tags, tooltip)

    def spell_bonus_for(
        self,
        name: str,
        power_source: str,
        colleges: list[str],
        tags: list[str],
        tooltip: Tooltip | None,
    ) -> Decimal:
        return self.features.spell_bonus_for(name, power_source, colleges, tags, tooltip)

    def spell_point_bonus_for(
        self,
        name: str,
        power_source: str,
        colleges: list[str],
        tags: list[str],
        tooltip: Tooltip | None,
    ) -> Decimal:
        return self.features.spell_point_bonus_for(name, power_source, colleges, tags, tooltip)

    def named_weapon_skill_bonuses_for(self, name: str, usage: str, tags: list[str], tooltip: Tooltip | None) -> list[Any]:
        return self.features.named_weapon_skill_bonuses_for(name, usage, tags, tooltip)

    def add_weapon_with_skill_bonuses_for(
        self,
        name: str,
        specialization: str,
        tags: list[str],
        dice_count: int,
        tooltip: Tooltip | None,
        found: dict[int, WeaponBonus],
        bonus_types: frozenset[WeaponBonusType],
    ) -> None:
        """Weapon bonuses keyed on the best relative level of the named skill."""
        relative_level = MIN_LEVEL
        for skill in self.skill_named(name, specialization, True, None):
            relative_level = max(relative_level, skill.level_data.relative_level)
        self.features.add_weapon_with_skill_bonuses_for(
            name, specialization, tags, relative_level, dice_count, tooltip, found, bonus_types
        )

    def add_named_weapon_bonuses_for(
        self,
        name: str,
        usage: str,
        tags: list[str],
        dice_count: int,
        tooltip: Tooltip | None,
        found: dict[int, WeaponBonus],
        bonus_types: frozenset[WeaponBonusType],
    ) -> None:
        self.features.add_named_weapon_bonuses_for(name, usage, tags, dice_count, tooltip, found, bonus_types)

    # -------------------------------------------------------------------------
    # Reactions and Conditional Modifiers
    # -------------------------------------------------------------------------

    def reactions(self) -> list[ConditionalModifier]:
        """Reaction modifiers per situation, sorted by situation."""
        found: dict[str, ConditionalModifier] = {}
        self._gather_situational(ReactionBonus, found)

        def self_control(trait: Trait) -> bool:
            if trait.cr is not SelfControlRoll.NONE and trait.cr_adj is SelfControlAdjustment.REACTION_PENALTY:
                situation = f"from others when {trait} is triggered"
                amount = self_control_adjustment(trait.cr_adj, trait.cr)
                _add_situational(found, situation, f"from trait {trait}", amount)
            return False

        traverse(self_control, True, False, *self.traits)
        return sorted(found.values(), key=lambda one: one.situation)

    def conditional_modifiers(self) -> list[ConditionalModifier]:
        found: dict[str, ConditionalModifier] = {}
        self._gather_situational(ConditionalModifierBonus, found)
        return sorted(found.values(), key=lambda one: one.situation)

    def _gather_situational(
        self,
        kind: type[ReactionBonus] | type[ConditionalModifierBonus],
        found: dict[str, ConditionalModifier],
    ) -> None:
        def from_features(source: str, features: list[Any]) -> None:
            for feature in features:
                if isinstance(feature, kind):
                    _add_situational(found, feature.situation, source, feature.adjusted_amount)

        def from_trait(trait: Trait) -> bool:
            source = f"from trait {trait}"
            if not trait.container:
                from_features(source, trait.features)
            mod: TraitModifier
            for mod in collect(True, True, *trait.modifiers):
                from_features(source, mod.features)
            return False

        def from_equipment(item: Equipment) -> bool:
            if item.equipped and item.quantity > ZERO:
                source = f"from equipment {item.name}"
                from_features(source, item.features)
                for mod in collect(True, True, *item.modifiers):
                    from_features(source, mod.features)
            return False

        def from_skill(skill: Skill) -> bool:
            from_features(f"from skill {skill}", skill.features)
            return False

        traverse(from_trait, True, False, *self.traits)
        traverse(from_equipment, False, False, *self.carried_equipment)
        traverse(from_skill, False, True, *self.skills)


def _add_situational(found: dict[str, ConditionalModifier], situation: str, source: str, amount: Decimal) -> None:
    entry = found.get(situation)
    if entry is None:
        entry = ConditionalModifier(situation=situation)
        found[situation] = entry
    entry.add(source, amount)


# =============================================================================
# Template
# =============================================================================


class Template(BaseModel):
    """A reusable bundle of elements that is not a character.

    Elements attached to a template have no owning entity, so their
    calculations fall back to entity-free results.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    id: str = Field(default_factory=lambda: new_tid(Kind.TEMPLATE))
    version: int = CURRENT_DATA_VERSION
    traits: list[Trait] = Field(default_factory=list)
    skills: list[Skill] = Field(default_factory=list)
    spells: list[Spell] = Field(default_factory=list)
    equipment: list[Equipment] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    default_weight_units: WeightUnit = WeightUnit.POUND

    def model_post_init(self, __context: Any) -> None:
        self.attach()

    def owning_entity(self) -> Entity | None:
        return None

    def source_matcher(self) -> SourceMatcher:
        return SourceMatcher()

    def weight_unit(self) -> WeightUnit:
        return self.default_weight_units

    def attach(self) -> None:
        for forest in (self.traits, self.skills, self.spells, self.equipment, self.notes):
            for node in forest:
                node.set_parent(None)
                node.set_owning_entity(None)

    def apply_to(self, entity: Entity) -> None:
        """Copy the template's elements onto an entity and recalculate."""
        entity.traits.extend(one.model_copy(deep=True) for one in self.traits)
        entity.skills.extend(one.model_copy(deep=True) for one in self.skills)
        entity.spells.extend(one.model_copy(deep=True) for one in self.spells)
        entity.carried_equipment.extend(one.model_copy(deep=True) for one in self.equipment)
        entity.notes.extend(one.model_copy(deep=True) for one in self.notes)
        entity.recalculate()


__all__ = [
    "DataOwner",
    "SourceMatcher",
    "TraitPoints",
    "Entity",
    "Template",
]
