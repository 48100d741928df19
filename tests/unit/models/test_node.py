"""Tests for tree nodes, identifiers and traversal."""

from __future__ import annotations

import pytest

from gurps_engine.core.exceptions import ValidationError
from gurps_engine.models import Kind, Note, Skill, Trait, TraitModifier, collect, traverse
from gurps_engine.models.ids import container_variant, is_container_tid, tid_kind, validate_tid


class TestIdentifiers:
    """Tests for kind-typed identifiers."""

    def test_new_leaf_has_leaf_kind(self) -> None:
        """Test that a new trait gets a trait identifier."""
        trait = Trait(name="Luck")

        assert tid_kind(trait.id) == Kind.TRAIT
        assert trait.container is False
        assert len(trait.id) == 33

    def test_container_derived_from_kind(self) -> None:
        """Test that containers are recognized from the identifier alone."""
        group = Trait.new_container(name="Advantages")

        assert tid_kind(group.id) == Kind.TRAIT_CONTAINER
        assert group.container is True
        assert is_container_tid(group.id)

    def test_entity_and_template_kinds_are_not_containers(self) -> None:
        """Test that aggregate root kinds never read as containers."""
        assert not is_container_tid(f"{Kind.ENTITY}{'0' * 32}")
        assert not is_container_tid(f"{Kind.TEMPLATE}{'0' * 32}")

    def test_container_variant(self) -> None:
        """Test the leaf to container kind mapping."""
        assert container_variant(Kind.SKILL) == Kind.SKILL_CONTAINER

    def test_validate_rejects_wrong_kind(self) -> None:
        """Test validation of identifier kinds."""
        skill = Skill(name="Stealth")

        assert validate_tid(skill.id, Kind.SKILL) == skill.id
        with pytest.raises(ValidationError):
            validate_tid(skill.id, Kind.TRAIT)
        with pytest.raises(ValidationError):
            validate_tid("s123")

    def test_leaf_drops_children(self) -> None:
        """Test that leaf nodes never keep container-only data."""
        note = Note(text="hello", children=[Note(text="child")], open=True)

        assert note.children is None
        assert note.open is False


class TestTraverse:
    """Tests for depth-first traversal."""

    @pytest.fixture
    def forest(self) -> list[Trait]:
        """Build a group containing a disabled subtree and an enabled leaf."""
        disabled_group = Trait.new_container(name="Disabled Group", disabled=True)
        disabled_group.set_children([Trait(name="Hidden")])
        group = Trait.new_container(name="Group")
        group.set_children([disabled_group, Trait(name="Visible")])
        return [group, Trait(name="Root Leaf")]

    def test_pre_order_visits_everything(self, forest: list[Trait]) -> None:
        """Test that all nodes are visited, parents before children."""
        names = [node.name for node in collect(False, False, *forest)]

        assert names == ["Group", "Disabled Group", "Hidden", "Visible", "Root Leaf"]

    def test_only_enabled_skips_disabled_subtrees(self, forest: list[Trait]) -> None:
        """Test that a disabled container hides its whole subtree."""
        names = [node.name for node in collect(True, False, *forest)]

        assert names == ["Group", "Visible", "Root Leaf"]

    def test_exclude_containers_still_descends(self, forest: list[Trait]) -> None:
        """Test that containers are skipped but their children are not."""
        names = [node.name for node in collect(False, True, *forest)]

        assert names == ["Hidden", "Visible", "Root Leaf"]

    def test_visit_can_abort(self, forest: list[Trait]) -> None:
        """Test that returning True stops the walk and reports it."""
        seen: list[str] = []

        def visit(node: Trait) -> bool:
            seen.append(node.name)
            return node.name == "Hidden"

        assert traverse(visit, False, False, *forest) is True
        assert seen == ["Group", "Disabled Group", "Hidden"]

    def test_disabled_modifier_leaf_skipped(self) -> None:
        """Test that disabled modifiers are skipped but their containers are not."""
        group = TraitModifier.new_container(name="Options", disabled=True)
        group.set_children([TraitModifier(name="Off", disabled=True), TraitModifier(name="On")])

        names = [mod.name for mod in collect(True, True, group)]

        assert names == ["On"]


class TestParentLinks:
    """Tests for non-owning parent links."""

    def test_children_link_to_parent(self) -> None:
        """Test that children know their container and depth."""
        group = Skill.new_container(name="Combat")
        child = Skill(name="Brawling")
        group.set_children([child])

        assert child.parent is group
        assert child.depth == 1
        assert group.depth == 0

    def test_children_not_serialized_with_links(self) -> None:
        """Test that dumping a tree keeps only owned data."""
        group = Skill.new_container(name="Combat")
        group.set_children([Skill(name="Brawling")])

        data = group.model_dump()

        assert data["children"][0]["name"] == "Brawling"
        assert "_parent" not in data["children"][0]
        assert "level_data" not in data["children"][0]
