"""Kind-typed local identifiers.

A TID is a single kind character followed by 32 hex digits. The kind
character names the element type; an upper-case kind marks a container, so
"is a container" is always derived from the identifier rather than stored.
"""

from __future__ import annotations

from enum import StrEnum
from uuid import uuid4

from gurps_engine.core.exceptions import ValidationError


TID_BODY_LENGTH = 32


class Kind(StrEnum):
    """Identifier kind characters."""

    ENTITY = "A"
    TRAIT = "t"
    TRAIT_CONTAINER = "T"
    TRAIT_MODIFIER = "m"
    TRAIT_MODIFIER_CONTAINER = "M"
    SKILL = "s"
    SKILL_CONTAINER = "S"
    TECHNIQUE = "q"
    SPELL = "p"
    SPELL_CONTAINER = "P"
    RITUAL_MAGIC_SPELL = "r"
    EQUIPMENT = "e"
    EQUIPMENT_CONTAINER = "E"
    EQUIPMENT_MODIFIER = "f"
    EQUIPMENT_MODIFIER_CONTAINER = "F"
    NOTE = "n"
    NOTE_CONTAINER = "N"
    TEMPLATE = "B"


def new_tid(kind: Kind | str) -> str:
    """Mint a fresh identifier of the given kind."""
    return f"{kind}{uuid4().hex}"


def tid_kind(tid: str) -> str:
    """Return the kind character of an identifier ("" if empty)."""
    return tid[:1]


def is_container_kind(kind: str) -> bool:
    """Upper-case kinds other than the aggregate roots are containers."""
    return kind.isupper() and kind not in (Kind.ENTITY, Kind.TEMPLATE)


def is_container_tid(tid: str) -> bool:
    return is_container_kind(tid_kind(tid))


def validate_tid(tid: str, *kinds: Kind | str) -> str:
    """Check an identifier's shape and, optionally, its kind.

    Args:
        tid: The identifier to check.
        *kinds: Acceptable kinds; any kind is accepted when none are given.

    Returns:
        The identifier, unchanged.

    Raises:
        ValidationError: If the identifier is malformed or of another kind.
    """
    if len(tid) != TID_BODY_LENGTH + 1:
        raise ValidationError("Malformed identifier", field_name="id", invalid_value=tid)
    if kinds and tid_kind(tid) not in {str(k) for k in kinds}:
        raise ValidationError(
            "Identifier has the wrong kind",
            field_name="id",
            invalid_value=tid,
            details={"expected": sorted(str(k) for k in kinds)},
        )
    return tid


def container_variant(kind: Kind) -> Kind:
    """Return the container kind paired with a leaf kind."""
    return Kind(str(kind).upper())


__all__ = [
    "Kind",
    "new_tid",
    "tid_kind",
    "is_container_kind",
    "is_container_tid",
    "validate_tid",
    "container_variant",
]
