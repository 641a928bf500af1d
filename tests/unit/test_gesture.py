"""Tests for drag gestures over the rendered tree."""

import pytest

from project_tree.core.dnd.expansion import ExpansionState
from project_tree.core.dnd.gesture import DragSession, MoveInstruction, TreeLayout, apply_drop
from project_tree.core.dnd.resolver import (
    DropZoneResolver,
    FolderHeaderTarget,
    GapTarget,
    RowTarget,
)
from project_tree.core.tree.store import TreeStore

# Collapsed layout with 28px rows and 6px gaps:
#   [0, 6) gap root:0   [6, 34) Work     [34, 40) gap root:1
#   [40, 68) Personal   [68, 74) gap root:2
#   [74, 102) Loose     [102, 108) gap root:3


@pytest.fixture
def session(store: TreeStore) -> DragSession:
    resolver = DropZoneResolver(store.tree, ExpansionState())
    return DragSession(resolver, TreeLayout(resolver.targets))


def test_layout_hit_test(store: TreeStore) -> None:
    layout = TreeLayout(DropZoneResolver(store.tree, ExpansionState()).targets)
    assert layout.height == 108
    assert layout.hit_test(3) == GapTarget(None, 0, 0)
    assert layout.hit_test(20) == FolderHeaderTarget("n1", 0)
    assert layout.hit_test(36) == GapTarget(None, 1, 0)
    assert layout.hit_test(80) == RowTarget("n6", 0)
    assert layout.hit_test(107) == GapTarget(None, 3, 0)
    assert layout.hit_test(108) is None
    assert layout.hit_test(-1) is None


def test_layout_node_at(store: TreeStore) -> None:
    layout = TreeLayout(DropZoneResolver(store.tree, ExpansionState()).targets)
    assert layout.node_at(20) == "n1"
    assert layout.node_at(80) == "n6"
    assert layout.node_at(3) is None


def test_short_press_is_a_click(session: DragSession) -> None:
    assert session.pointer_down(10, 80) == "n6"
    assert session.pointer_move(11, 81) is None
    assert not session.active
    assert session.pointer_up(11, 81) is None


def test_drag_to_gap(session: DragSession, store: TreeStore) -> None:
    session.pointer_down(10, 80)
    assert session.pointer_move(10, 3) == GapTarget(None, 0, 0)
    assert session.active
    instruction = session.pointer_up(10, 3)
    assert instruction == MoveInstruction("n6", None, 0)

    assert apply_drop(store, instruction)
    assert store.tree.root_ids == ("n6", "n1", "n3")


def test_drag_onto_folder_header_places_first(session: DragSession, store: TreeStore) -> None:
    session.pointer_down(10, 80)
    session.pointer_move(10, 20)
    assert session.hover_level == 1
    instruction = session.pointer_up(10, 20)
    assert instruction == MoveInstruction("n6", "n1", 0)

    apply_drop(store, instruction)
    assert store.tree.items["n1"].children == ("n6", "n2")


def test_drop_on_project_row_does_nothing(session: DragSession) -> None:
    session.pointer_down(10, 50)
    session.pointer_move(10, 80)
    assert session.pointer_up(10, 80) is None


def test_drop_outside_tree_does_nothing(session: DragSession) -> None:
    session.pointer_down(10, 80)
    session.pointer_move(10, 500)
    assert session.hover_target is None
    assert session.pointer_up(10, 500) is None


def test_drop_folder_onto_itself_is_rejected(session: DragSession) -> None:
    session.pointer_down(10, 50)
    session.pointer_move(10, 60)
    assert session.pointer_up(10, 60) is None


def test_press_on_gap_starts_nothing(session: DragSession) -> None:
    assert session.pointer_down(10, 3) is None
    assert session.pointer_move(10, 80) is None
    assert session.pointer_up(10, 80) is None


def test_cancel_resets_session(session: DragSession) -> None:
    session.pointer_down(10, 80)
    session.pointer_move(10, 3)
    session.cancel()
    assert session.dragged_id is None
    assert not session.active
    assert session.pointer_up(10, 3) is None


def test_apply_drop_ignores_invalid_moves(store: TreeStore) -> None:
    before = store.tree
    assert not apply_drop(store, None)
    assert not apply_drop(store, MoveInstruction("n2", "n6", 0))
    assert not apply_drop(store, MoveInstruction("n3", "n4", 0))
    assert not apply_drop(store, MoveInstruction("gone", None, 0))
    assert store.tree is before
