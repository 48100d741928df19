"""Prerequisite trees evaluated against an entity.

The recalculation driver only depends on the ``Prereq`` protocol: a tree
answers whether it is satisfied (explaining failures into a tooltip) and
whether an unmet equipment requirement should turn into a skill penalty
instead of a failure. The bundled node types cover the common GURPS cases;
callers may plug in their own objects implementing the protocol.
"""

from __future__ import annotations

import re

from decimal import Decimal
from typing import TYPE_CHECKING, Annotated, Any, Literal, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from gurps_engine.core.constants import STRENGTH_ID
from gurps_engine.core.fixed import ONE, ZERO
from gurps_engine.models.criteria import NumericCriteria, StringCriteria
from gurps_engine.models.enums import NumericCompare, StringCompare
from gurps_engine.models.node import traverse
from gurps_engine.models.tooltip import Tooltip


if TYPE_CHECKING:
    from gurps_engine.models.entity import Entity


_LEADING_INT = re.compile(r"^\s*(-?\d+)")


def extract_tech_level(text: str) -> Decimal:
    """Leading integer of a tech level string ("8^" -> 8), else 0."""
    match = _LEADING_INT.match(text or "")
    return Decimal(match.group(1)) if match else ZERO


@runtime_checkable
class Prereq(Protocol):
    """Anything the driver can evaluate as a prerequisite."""

    def satisfied(
        self,
        entity: Entity,
        exclude: Any,
        tooltip: Tooltip | None,
        prefix: str,
    ) -> bool: ...

    def has_equipment_penalty(self, entity: Entity, exclude: Any) -> bool: ...


def _has_text(has: bool) -> str:
    return "Has" if has else "Does not have"


# =============================================================================
# Leaf Prerequisites
# =============================================================================


class TraitPrereq(BaseModel):
    """Requires (or forbids) a trait matching name and level criteria."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["trait_prereq"] = "trait_prereq"
    has: bool = True
    name: StringCriteria = Field(default_factory=StringCriteria)
    level: NumericCriteria = Field(default_factory=NumericCriteria)

    def satisfied(
        self,
        entity: Entity,
        exclude: Any,
        tooltip: Tooltip | None,
        prefix: str,
    ) -> bool:
        found = False

        def check(trait: Any) -> bool:
            nonlocal found
            if trait is exclude or not self.name.matches(None, trait.name):
                return False
            found = self.level.matches(trait.current_level)
            return found

        traverse(check, True, False, *entity.traits)
        if not self.has:
            found = not found
        if not found and tooltip is not None:
            tooltip.write(f"{prefix}{_has_text(self.has)} a trait whose name {self.name.describe()}")
            if self.level.compare is not NumericCompare.ANY:
                tooltip.write(f" and level {self.level.describe()}")
        return found

    def has_equipment_penalty(self, entity: Entity, exclude: Any) -> bool:
        return False


class AttributePrereq(BaseModel):
    """Requires an attribute (optionally combined with a second) to qualify."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["attribute_prereq"] = "attribute_prereq"
    has: bool = True
    which: str = STRENGTH_ID
    combined_with: str = ""
    qualifier: NumericCriteria = Field(
        default_factory=lambda: NumericCriteria(compare=NumericCompare.AT_LEAST, qualifier=Decimal(10))
    )

    def satisfied(
        self,
        entity: Entity,
        exclude: Any,
        tooltip: Tooltip | None,
        prefix: str,
    ) -> bool:
        value = entity.resolve_attribute_current(self.which)
        if self.combined_with:
            value += entity.resolve_attribute_current(self.combined_with)
        ok = self.qualifier.matches(value)
        if not self.has:
            ok = not ok
        if not ok and tooltip is not None:
            text = f"{prefix}{_has_text(self.has)} {entity.resolve_attribute_name(self.which)}"
            if self.combined_with:
                text += f"+{entity.resolve_attribute_name(self.combined_with)}"
            tooltip.write(f"{text} which {self.qualifier.describe()}")
        return ok

    def has_equipment_penalty(self, entity: Entity, exclude: Any) -> bool:
        return False


class SkillPrereq(BaseModel):
    """Requires a skill matching name, specialization and level criteria.

    When the element being checked is itself tech-level specific, only
    skills at the same tech level count.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["skill_prereq"] = "skill_prereq"
    has: bool = True
    name: StringCriteria = Field(default_factory=StringCriteria)
    specialization: StringCriteria = Field(default_factory=StringCriteria)
    level: NumericCriteria = Field(default_factory=NumericCriteria)

    def satisfied(
        self,
        entity: Entity,
        exclude: Any,
        tooltip: Tooltip | None,
        prefix: str,
    ) -> bool:
        tech_level = getattr(exclude, "tech_level", None)
        found = False

        def check(skill: Any) -> bool:
            nonlocal found
            if skill is exclude:
                return False
            if not (
                self.name.matches(None, skill.name)
                and self.specialization.matches(None, skill.specialization)
            ):
                return False
            found = self.level.matches(skill.level_data.level)
            if found and tech_level is not None and skill.tech_level is not None:
                found = tech_level == skill.tech_level
            return found

        traverse(check, False, True, *entity.skills)
        if not self.has:
            found = not found
        if not found and tooltip is not None:
            text = f"{prefix}{_has_text(self.has)} a skill whose name {self.name.describe()}"
            if self.specialization.compare is not StringCompare.ANY:
                text += f", specialization {self.specialization.describe()},"
            if tech_level is None:
                text += f" and level {self.level.describe()}"
            else:
                text += f" level {self.level.describe()} and tech level matches"
            tooltip.write(text)
        return found

    def has_equipment_penalty(self, entity: Entity, exclude: Any) -> bool:
        return False


SpellPrereqType = Literal["name", "tag", "college", "college_count", "any"]


class SpellPrereq(BaseModel):
    """Requires a number of spells (with points) matching a criterion.

    ``sub_type`` picks what ``qualifier`` is compared against; for
    ``college_count`` the number of distinct colleges is compared against
    ``quantity`` instead.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["spell_prereq"] = "spell_prereq"
    has: bool = True
    sub_type: SpellPrereqType = "name"
    qualifier: StringCriteria = Field(default_factory=StringCriteria)
    quantity: NumericCriteria = Field(
        default_factory=lambda: NumericCriteria(compare=NumericCompare.AT_LEAST, qualifier=ONE)
    )

    def satisfied(
        self,
        entity: Entity,
        exclude: Any,
        tooltip: Tooltip | None,
        prefix: str,
    ) -> bool:
        tech_level = getattr(exclude, "tech_level", None)
        colleges: set[str] = set()
        count = 0

        def check(spell: Any) -> bool:
            nonlocal count
            if spell is exclude or spell.points <= ZERO:
                return False
            if tech_level is not None and spell.tech_level is not None and tech_level != spell.tech_level:
                return False
            match self.sub_type:
                case "name":
                    if self.qualifier.matches(None, spell.name):
                        count += 1
                case "tag":
                    if self.qualifier.matches_list(None, *spell.tags):
                        count += 1
                case "college":
                    if self.qualifier.matches_list(None, *spell.colleges):
                        count += 1
                case "college_count":
                    colleges.update(spell.colleges)
                case "any":
                    count += 1
            return False

        traverse(check, False, True, *entity.spells)
        if self.sub_type == "college_count":
            count = len(colleges)
        ok = self.quantity.matches(Decimal(count))
        if not self.has:
            ok = not ok
        if not ok and tooltip is not None:
            noun = "spell" if self.quantity.qualifier == ONE else "spells"
            amount = self.quantity.describe()
            match self.sub_type:
                case "name":
                    text = f"{amount} {noun} whose name {self.qualifier.describe()}"
                case "tag":
                    text = f"{amount} {noun} with a tag that {self.qualifier.describe()}"
                case "college":
                    text = f"{amount} {noun} whose college {self.qualifier.describe()}"
                case "college_count":
                    text = f"a college count which {self.quantity.describe()}"
                case _:
                    text = f"{amount} {noun} of any kind"
            tooltip.write(f"{prefix}{_has_text(self.has)} {text}")
        return ok

    def has_equipment_penalty(self, entity: Entity, exclude: Any) -> bool:
        return False


class EquippedEquipmentPrereq(BaseModel):
    """Requires an equipped item by name.

    An unmet requirement does not fail the element; it reports an equipment
    penalty that the driver turns into a skill or spell penalty.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["equipped_equipment"] = "equipped_equipment"
    name: StringCriteria = Field(default_factory=StringCriteria)

    def _found(self, entity: Entity, exclude: Any) -> bool:
        def check(item: Any) -> bool:
            return (
                item is not exclude
                and item.equipped
                and item.quantity > ZERO
                and self.name.matches(None, item.name)
            )

        return traverse(check, False, False, *entity.carried_equipment)

    def satisfied(
        self,
        entity: Entity,
        exclude: Any,
        tooltip: Tooltip | None,
        prefix: str,
    ) -> bool:
        if not self._found(entity, exclude) and tooltip is not None:
            tooltip.write(f"{prefix}Has equipment which is equipped and whose name {self.name.describe()}")
        return True

    def has_equipment_penalty(self, entity: Entity, exclude: Any) -> bool:
        return not self._found(entity, exclude)


# =============================================================================
# Prerequisite List
# =============================================================================


class PrereqList(BaseModel):
    """Combines child prerequisites with "all of" or "any of" logic.

    Attributes:
        all: Require every child (True) or at least one (False).
        when_tl: Only applies when the entity's tech level matches.
        prereqs: Child prerequisites, possibly nested lists.
    """

    model_config = ConfigDict(extra="ignore")

    type: Literal["prereq_list"] = "prereq_list"
    all: bool = True
    when_tl: NumericCriteria = Field(default_factory=NumericCriteria)
    prereqs: list[PrereqNode] = Field(default_factory=list)

    def _applies(self, entity: Entity) -> bool:
        if self.when_tl.compare is NumericCompare.ANY:
            return True
        return self.when_tl.matches(extract_tech_level(entity.profile.tech_level))

    def satisfied(
        self,
        entity: Entity,
        exclude: Any,
        tooltip: Tooltip | None,
        prefix: str,
    ) -> bool:
        if not self._applies(entity):
            return True
        local = Tooltip() if tooltip is not None else None
        count = 0
        for prereq in self.prereqs:
            if prereq.satisfied(entity, exclude, local, prefix):
                count += 1
        ok = count == len(self.prereqs) or (not self.all and count > 0)
        if not ok and tooltip is not None and local is not None:
            tooltip.write(f"{prefix}Requires {'all' if self.all else 'at least one'} of:")
            tooltip.write(str(local))
        return ok

    def has_equipment_penalty(self, entity: Entity, exclude: Any) -> bool:
        if not self._applies(entity):
            return False
        return any(prereq.has_equipment_penalty(entity, exclude) for prereq in self.prereqs)


PrereqNode = Annotated[
    Union[
        PrereqList,
        TraitPrereq,
        AttributePrereq,
        SkillPrereq,
        SpellPrereq,
        EquippedEquipmentPrereq,
    ],
    Field(discriminator="type"),
]

PrereqList.model_rebuild()


__all__ = [
    "Prereq",
    "PrereqList",
    "PrereqNode",
    "TraitPrereq",
    "AttributePrereq",
    "SkillPrereq",
    "SpellPrereq",
    "EquippedEquipmentPrereq",
    "extract_tech_level",
]
