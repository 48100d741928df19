"""Generic tree node shared by every game-element kind, plus traversal.

Children are owned; the parent link and the owning-entity link are
non-owning back-references held in private attributes. They are never
serialized and are rebuilt whenever a tree is attached to an owner.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, ClassVar, Self, TypeVar

from pydantic import BaseModel, ConfigDict, PrivateAttr

from gurps_engine.core.exceptions import ValidationError
from gurps_engine.models.ids import Kind, is_container_tid, new_tid


if TYPE_CHECKING:
    from gurps_engine.models.entity import Entity


class Node(BaseModel):
    """Base for traits, skills, spells, equipment and their modifiers.

    Attributes:
        id: Kind-typed identifier; its kind decides ``container``.
        children: Owned child nodes, present only on containers.
        open: Expanded/collapsed flag, meaningful only on containers.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    LEAF_KIND: ClassVar[Kind]
    CONTAINER_KIND: ClassVar[Kind | None] = None

    id: str = ""
    children: list[Any] | None = None
    open: bool = False

    _parent: Node | None = PrivateAttr(default=None)
    _entity: Entity | None = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        if not self.id:
            self.id = new_tid(self.LEAF_KIND)
        self.clear_unused_fields_for_type()
        for child in self.children or []:
            child._parent = self

    @classmethod
    def new_container(cls, **data: Any) -> Self:
        """Create a container of this node's kind."""
        if cls.CONTAINER_KIND is None:
            raise ValidationError(f"{cls.__name__} has no container kind", field_name="id")
        data.setdefault("children", [])
        return cls(id=new_tid(cls.CONTAINER_KIND), **data)

    # -------------------------------------------------------------------------
    # Shape
    # -------------------------------------------------------------------------

    @property
    def container(self) -> bool:
        return is_container_tid(self.id)

    @property
    def enabled(self) -> bool:
        return True

    @property
    def parent(self) -> Self | None:
        return self._parent  # type: ignore[return-value]

    @property
    def depth(self) -> int:
        count = 0
        node = self._parent
        while node is not None:
            count += 1
            node = node._parent
        return count

    def node_children(self) -> list[Self]:
        return list(self.children or [])

    def clear_unused_fields_for_type(self) -> None:
        """Drop container-only data from non-container nodes."""
        if not self.container:
            if self.children is not None:
                self.children = None
            if self.open:
                self.open = False

    def set_parent(self, parent: Self | None) -> None:
        self._parent = parent

    def set_children(self, children: Iterable[Self] | None) -> None:
        """Replace the child list, re-linking every child to this node."""
        if not self.container:
            self.children = None
            return
        self.children = list(children or [])
        for child in self.children:
            child._parent = self

    # -------------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------------

    @property
    def owning_entity(self) -> Entity | None:
        return self._entity

    def set_owning_entity(self, entity: Entity | None) -> None:
        """Attach this subtree to an entity (idempotent)."""
        self._entity = entity
        for child in self.children or []:
            child._parent = self
            child.set_owning_entity(entity)


N = TypeVar("N", bound=Node)


def traverse(
    visit: Callable[[N], bool],
    only_enabled: bool,
    exclude_containers: bool,
    *roots: N,
) -> bool:
    """Walk forests of nodes depth-first, pre-order.

    Args:
        visit: Called per node; returning True aborts the whole walk.
        only_enabled: Skip disabled nodes together with their subtrees.
        exclude_containers: Do not pass containers to ``visit``, but still
            descend into their children.
        *roots: The root nodes to walk, in order.

    Returns:
        True if ``visit`` aborted the walk.
    """
    for node in roots:
        if only_enabled and not node.enabled:
            continue
        if not (exclude_containers and node.container) and visit(node):
            return True
        if node.container and traverse(
            visit, only_enabled, exclude_containers, *node.node_children()
        ):
            return True
    return False


def collect(
    only_enabled: bool,
    exclude_containers: bool,
    *roots: N,
) -> list[N]:
    """Return every node ``traverse`` would visit, in visit order."""
    found: list[N] = []

    def gather(node: N) -> bool:
        found.append(node)
        return False

    traverse(gather, only_enabled, exclude_containers, *roots)
    return found


__all__ = [
    "Node",
    "traverse",
    "collect",
]
