"""Weapons carried by traits, skills and equipment.

A weapon resolves its skill level from its defaults plus weapon-targeted
skill bonuses, and its damage from the wielder's thrust or swing plus the
damage bonuses that select it.
"""

from __future__ import annotations

import re

from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from gurps_engine.core.exceptions import DiceError
from gurps_engine.core.fixed import HUNDRED, MIN_LEVEL, THREE, TWO, ZERO, as_int, round_half, trunc, with_sign
from gurps_engine.core.logging import get_logger
from gurps_engine.engine.dice import Dice
from gurps_engine.models.enums import SkillSelection, WeaponBonusType, WeaponSelection
from gurps_engine.models.features import SkillBonus, WeaponBonus
from gurps_engine.models.node import traverse
from gurps_engine.models.skill_default import SkillDefault
from gurps_engine.models.tooltip import Tooltip


if TYPE_CHECKING:
    from gurps_engine.models.entity import Entity


logger = get_logger(__name__)

_LEADING_INT = re.compile(r"^\s*(\d+)")
_SIGNED_INT = re.compile(r"^\s*([+-]?\d+)")

DAMAGE_BONUS_TYPES = frozenset({WeaponBonusType.DAMAGE})


class WeaponStrength(StrEnum):
    """Strength-based damage a weapon adds to its base dice."""

    NONE = "none"
    THRUST = "thr"
    LEVELED_THRUST = "thr_leveled"
    SWING = "sw"
    LEVELED_SWING = "sw_leveled"


class WeaponDamage(BaseModel):
    """Damage description.

    Attributes:
        type: Damage type text ("cut", "cr", "imp").
        st: Strength-based component.
        base: Extra dice in GURPS notation ("1d", "+2").
        modifier_per_die: Added once per die of the final damage.
    """

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    st: WeaponStrength = WeaponStrength.NONE
    base: str = ""
    modifier_per_die: Decimal = ZERO

    def base_dice(self) -> Dice:
        if not self.base.strip():
            return Dice(0)
        try:
            return Dice.parse(self.base)
        except DiceError:
            logger.warning("Ignoring invalid weapon damage dice", base=self.base)
            return Dice(0)


class Weapon(BaseModel):
    """A melee or ranged attack option of its owning element.

    Attributes:
        melee: Melee (True) or ranged (False).
        usage: Usage label ("Swung", "Thrust"), matched by usage criteria.
        damage: Damage description.
        strength: Minimum strength text ("10", "12†").
        parry: Parry text; an "F" marks fencing weapons.
        defaults: Skills and attributes the weapon can be used with.
    """

    model_config = ConfigDict(extra="ignore")

    melee: bool = True
    usage: str = ""
    damage: WeaponDamage = Field(default_factory=WeaponDamage)
    strength: str = ""
    parry: str = ""
    defaults: list[SkillDefault] = Field(default_factory=list)

    _owner: Any = PrivateAttr(default=None)

    def set_owner(self, owner: Any) -> None:
        self._owner = owner

    @property
    def owner(self) -> Any:
        return self._owner

    def __str__(self) -> str:
        return str(self._owner) if self._owner is not None else ""

    def entity(self) -> Entity | None:
        if self._owner is None:
            return None
        return self._owner.owning_entity

    def owner_tags(self) -> list[str]:
        return list(getattr(self._owner, "tags", []) or [])

    def resolved_minimum_strength(self) -> Decimal:
        match = _LEADING_INT.match(self.strength)
        return Decimal(match.group(1)) if match else ZERO

    # -------------------------------------------------------------------------
    # Skill Level
    # -------------------------------------------------------------------------

    def skill_level(self, tooltip: Tooltip | None = None) -> Decimal:
        """Best default level plus weapon adjustments, never below zero."""
        entity = self.entity()
        if entity is None:
            return ZERO
        primary = Tooltip() if tooltip is not None else None
        adj = self._skill_level_base_adjustment(entity, primary) + self._skill_level_post_adjustment(entity, primary)
        best = MIN_LEVEL
        for one in self.defaults:
            level = one.skill_level_fast(entity, False, None, True)
            if level != MIN_LEVEL:
                best = max(best, level + adj)
        if best == MIN_LEVEL:
            return ZERO
        if tooltip is not None and primary is not None and not primary.is_empty:
            if not tooltip.is_empty:
                tooltip.write("\n")
            tooltip.write(str(primary))
        return max(best, ZERO)

    def _skill_level_base_adjustment(self, entity: Entity, tooltip: Tooltip | None) -> Decimal:
        adj = ZERO
        shortfall = self.resolved_minimum_strength() - (entity.strength_or_zero + entity.striking_strength_bonus)
        if shortfall > ZERO:
            adj -= shortfall
        for bonus in entity.named_weapon_skill_bonuses_for(str(self), self.usage, self.owner_tags(), tooltip):
            adj += bonus.adjusted_amount
        for feature in self._owner_features():
            adj += self._this_weapon_skill_bonus(feature, tooltip)
        return adj

    def _skill_level_post_adjustment(self, entity: Entity, tooltip: Tooltip | None) -> Decimal:
        if self.melee and "F" in self.parry:
            penalty = entity.encumbrance_level(True).penalty
            if penalty != ZERO and tooltip is not None:
                tooltip.write(f"\nEncumbrance [{with_sign(penalty)}]")
            return penalty
        return ZERO

    def _this_weapon_skill_bonus(self, feature: Any, tooltip: Tooltip | None) -> Decimal:
        if (
            isinstance(feature, SkillBonus)
            and feature.selection_type is SkillSelection.THIS_WEAPON
            and feature.specialization.matches(feature.replacements, self.usage)
        ):
            feature.add_to_tooltip(tooltip)
            return feature.adjusted_amount
        return ZERO

    def _owner_features(self) -> list[Any]:
        """Features of the owner and of its enabled modifiers."""
        if self._owner is None:
            return []
        features = list(getattr(self._owner, "features", []) or [])

        def gather(mod: Any) -> bool:
            features.extend(mod.features)
            return False

        traverse(gather, True, True, *(getattr(self._owner, "modifiers", None) or []))
        return features

    # -------------------------------------------------------------------------
    # Damage
    # -------------------------------------------------------------------------

    def resolved_damage(self, tooltip: Tooltip | None = None) -> str:
        """Damage text after strength, leveling and damage bonuses."""
        entity = self.entity()
        if entity is None:
            return self._unresolved_damage()
        st = entity.strength_or_zero + entity.striking_strength_bonus
        max_st = self.resolved_minimum_strength() * THREE
        if ZERO < max_st < st:
            st = max_st
        base = self.damage.base_dice()
        trait_levels = self._trait_levels()
        if trait_levels is not None:
            base = _multiply_dice(trait_levels, base)
        int_st = as_int(st)
        match self.damage.st:
            case WeaponStrength.THRUST:
                base = _add_dice(base, entity.thrust_for(int_st))
            case WeaponStrength.LEVELED_THRUST:
                base = _add_dice(base, _multiply_dice(trait_levels or 1, entity.thrust_for(int_st)))
            case WeaponStrength.SWING:
                base = _add_dice(base, entity.swing_for(int_st))
            case WeaponStrength.LEVELED_SWING:
                base = _add_dice(base, _multiply_dice(trait_levels or 1, entity.swing_for(int_st)))

        found: dict[int, WeaponBonus] = {}
        tags = self.owner_tags()
        best_default = self._best_skill_default(entity)
        if best_default is not None:
            entity.add_weapon_with_skill_bonuses_for(
                best_default.name,
                best_default.specialization,
                tags,
                base.count,
                tooltip,
                found,
                DAMAGE_BONUS_TYPES,
            )
        entity.add_named_weapon_bonuses_for(
            str(self), self.usage, tags, base.count, tooltip, found, DAMAGE_BONUS_TYPES
        )
        for feature in self._owner_features():
            self._extract_damage_bonus(feature, found, base.count, tooltip)

        percent = ZERO
        modifier = base.modifier
        for bonus in found.values():
            if bonus.percent:
                percent += bonus.amount
            else:
                amount = bonus.amount
                if bonus.per_level:
                    amount *= Decimal(base.count)
                modifier += as_int(amount)
        if self.damage.modifier_per_die != ZERO:
            modifier += as_int(self.damage.modifier_per_die * Decimal(base.count))
        base = Dice(base.count, base.sides, modifier, base.multiplier)
        if percent != ZERO:
            base = _adjust_dice_for_percent(base, percent)

        text = str(base) if base.count != 0 or base.modifier != 0 else ""
        if self.damage.type.strip():
            text = f"{text} {self.damage.type}".strip()
        return text

    def _unresolved_damage(self) -> str:
        parts = []
        if self.damage.st is not WeaponStrength.NONE:
            parts.append(str(self.damage.st))
        if self.damage.base.strip():
            parts.append(self.damage.base.strip())
        if self.damage.type.strip():
            parts.append(self.damage.type.strip())
        return " ".join(parts)

    def _trait_levels(self) -> int | None:
        if getattr(self._owner, "is_leveled", False):
            return as_int(self._owner.levels)
        return None

    def _best_skill_default(self, entity: Entity) -> SkillDefault | None:
        best_default = None
        best = MIN_LEVEL
        for one in self.defaults:
            if one.skill_based:
                level = one.skill_level_fast(entity, False, None, True)
                if level > best:
                    best = level
                    best_default = one
        return best_default

    def _extract_damage_bonus(
        self,
        feature: Any,
        found: dict[int, WeaponBonus],
        dice_count: int,
        tooltip: Tooltip | None,
    ) -> None:
        if not isinstance(feature, WeaponBonus) or feature.bonus_type not in DAMAGE_BONUS_TYPES:
            return
        saved = feature.owner_level
        feature.set_level(Decimal(dice_count))
        match feature.selection_type:
            case WeaponSelection.THIS_WEAPON:
                selected = feature.specialization.matches(feature.replacements, self.usage)
            case WeaponSelection.WITH_NAME:
                selected = (
                    feature.name.matches(feature.replacements, str(self))
                    and feature.specialization.matches(feature.replacements, self.usage)
                    and feature.tags.matches_list(feature.replacements, *self.owner_tags())
                )
            case _:
                selected = False
        if selected and id(feature) not in found:
            found[id(feature)] = feature
            feature.add_to_tooltip(tooltip)
        feature.set_level(saved)

    def resolved_parry(self) -> str:
        """Parry level text: half the weapon skill plus 3 plus the parry bonus."""
        entity = self.entity()
        if entity is None or not self.parry.strip():
            return self.parry
        match = _SIGNED_INT.match(self.parry)
        modifier = Decimal(match.group(1)) if match else ZERO
        level = self.skill_level()
        if level <= ZERO:
            return "No"
        value = trunc(level / TWO) + THREE + modifier + entity.parry_bonus
        suffix = "".join(ch for ch in self.parry if ch.isalpha() and ch.upper() == ch)
        return f"{int(value)}{suffix}"


def _multiply_dice(multiplier: int, dice: Dice) -> Dice:
    return Dice(
        dice.count * multiplier,
        dice.sides,
        dice.modifier * multiplier,
        dice.multiplier * multiplier if dice.multiplier != 1 else 1,
    )


def _add_dice(left: Dice, right: Dice) -> Dice:
    """Sum two dice; mixed die sizes collapse to the smaller size by average."""
    if left.count == 0:
        return Dice(right.count, right.sides, right.modifier + left.modifier, right.multiplier)
    if right.count == 0:
        return Dice(left.count, left.sides, left.modifier + right.modifier, left.multiplier)
    if left.sides != right.sides:
        sides = min(left.sides, right.sides)
        average = Decimal(sides + 1) / TWO
        both = Decimal(left.count * (left.sides + 1)) / TWO * left.multiplier
        both += Decimal(right.count * (right.sides + 1)) / TWO * right.multiplier
        return Dice(
            as_int(both / average),
            sides,
            as_int(round_half(both % average)) + left.modifier + right.modifier,
        )
    return Dice(
        left.count + right.count,
        left.sides,
        left.modifier + right.modifier,
        left.multiplier + right.multiplier - 1,
    )


def _adjust_dice_for_percent(dice: Dice, percent: Decimal) -> Dice:
    """Scale the average roll by a percentage, refolding into dice and adds."""
    count = Decimal(dice.count)
    modifier = Decimal(dice.modifier)
    per_die = Decimal(dice.sides + 1) / TWO
    average = per_die * count + modifier
    modifier = modifier * (HUNDRED + percent) / HUNDRED
    if average < ZERO:
        count = max(count * (HUNDRED + percent) / HUNDRED, ZERO)
    else:
        average = average * (HUNDRED + percent) / HUNDRED - modifier
        count = max(trunc(average / per_die), ZERO)
        modifier += round_half(average - count * per_die)
    return Dice(as_int(count), dice.sides, as_int(modifier), dice.multiplier)


__all__ = [
    "WeaponStrength",
    "WeaponDamage",
    "Weapon",
    "DAMAGE_BONUS_TYPES",
]
