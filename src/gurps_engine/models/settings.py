"""Per-sheet settings: rule toggles, attribute table and body type.

These are read-only inputs to the calculators. A sheet starts from the
application-level ``SheetDefaultsSettings`` and may diverge afterwards.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from gurps_engine.core.config import SheetDefaultsSettings
from gurps_engine.models.attributes import AttributeDef, default_attribute_defs
from gurps_engine.models.enums import DamageProgression, WeightUnit


# =============================================================================
# Body Type
# =============================================================================


class HitLocation(BaseModel):
    """A hit location, optionally subdivided by its own body table."""

    model_config = ConfigDict(extra="ignore")

    id: str
    choice_name: str = ""
    table_name: str = ""
    slots: int = 0
    hit_penalty: int = 0
    dr_bonus: int = 0
    sub_table: BodyType | None = None


class BodyType(BaseModel):
    """A hit location table."""

    model_config = ConfigDict(extra="ignore")

    name: str = "Humanoid"
    roll: str = "3d"
    locations: list[HitLocation] = Field(default_factory=list)

    def is_top_level_location(self, location_id: str) -> bool:
        """True only for ids in this table, not in any sub-table."""
        wanted = location_id.lower()
        return any(one.id.lower() == wanted for one in self.locations)

    def all_location_ids(self) -> list[str]:
        """Every location id, sub-tables included, depth-first."""
        result: list[str] = []
        for one in self.locations:
            result.append(one.id)
            if one.sub_table is not None:
                result.extend(one.sub_table.all_location_ids())
        return result


HitLocation.model_rebuild()


def _humanoid_location(
    location_id: str,
    name: str,
    slots: int,
    hit_penalty: int,
    dr_bonus: int = 0,
) -> HitLocation:
    return HitLocation(
        id=location_id,
        choice_name=name,
        table_name=name,
        slots=slots,
        hit_penalty=hit_penalty,
        dr_bonus=dr_bonus,
    )


def humanoid_body_type() -> BodyType:
    """The standard humanoid hit location table."""
    return BodyType(
        name="Humanoid",
        roll="3d",
        locations=[
            _humanoid_location("eye", "Eyes", 0, -9),
            _humanoid_location("skull", "Skull", 2, -7, dr_bonus=2),
            _humanoid_location("face", "Face", 1, -5),
            _humanoid_location("leg", "Leg", 2, -2),
            _humanoid_location("arm", "Arm", 1, -2),
            _humanoid_location("torso", "Torso", 2, 0),
            _humanoid_location("groin", "Groin", 1, -3),
            _humanoid_location("hand", "Hand", 1, -4),
            _humanoid_location("foot", "Foot", 1, -4),
            _humanoid_location("neck", "Neck", 2, -5),
            _humanoid_location("vitals", "Vitals", 0, -3),
        ],
    )


# =============================================================================
# Sheet Settings
# =============================================================================


class SheetSettings(BaseModel):
    """Rule toggles and tables for one sheet.

    Attributes:
        damage_progression: Strength to damage and lift progression.
        default_weight_units: Units for weights entered without a unit.
        use_multiplicative_modifiers: Compose trait enhancements and
            limitations multiplicatively.
        use_half_stat_defaults: Attribute defaults use half the attribute + 5.
        exclude_unspent_points_from_total: Reporting toggle for the total.
        attributes: Attribute definition table, in display order.
        body_type: Hit location table.
    """

    model_config = ConfigDict(extra="ignore")

    damage_progression: DamageProgression = DamageProgression.BASIC_SET
    default_weight_units: WeightUnit = WeightUnit.POUND
    use_multiplicative_modifiers: bool = False
    use_half_stat_defaults: bool = False
    exclude_unspent_points_from_total: bool = False
    attributes: list[AttributeDef] = Field(default_factory=default_attribute_defs)
    body_type: BodyType = Field(default_factory=humanoid_body_type)

    @classmethod
    def from_defaults(cls, defaults: SheetDefaultsSettings) -> SheetSettings:
        """Build sheet settings seeded from application defaults."""
        return cls(
            damage_progression=DamageProgression(defaults.damage_progression),
            default_weight_units=WeightUnit(defaults.default_weight_units),
            use_multiplicative_modifiers=defaults.use_multiplicative_modifiers,
            use_half_stat_defaults=defaults.use_half_stat_defaults,
            exclude_unspent_points_from_total=defaults.exclude_unspent_points_from_total,
        )

    def attribute_def(self, attr_id: str) -> AttributeDef | None:
        for one in self.attributes:
            if one.id == attr_id:
                return one
        return None


__all__ = [
    "HitLocation",
    "BodyType",
    "humanoid_body_type",
    "SheetSettings",
]
