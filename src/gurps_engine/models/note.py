"""Free-text notes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gurps_engine.models.ids import Kind
from gurps_engine.models.node import Node


if TYPE_CHECKING:
    from gurps_engine.engine.text import TextResolver


class Note(Node):
    """A note or note container; text may embed ``||expr||`` expressions."""

    LEAF_KIND = Kind.NOTE
    CONTAINER_KIND = Kind.NOTE_CONTAINER

    children: list[Note] | None = None
    text: str = ""

    def __str__(self) -> str:
        return self.text

    def resolved_text(self, resolver: TextResolver) -> str:
        return resolver.resolve_text(self.owning_entity, self, self.text)


Note.model_rebuild()


__all__ = ["Note"]
