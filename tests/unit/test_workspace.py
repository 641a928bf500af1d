"""Tests for Workspace wiring: persistence, expansion, drag and drop, sync."""

from pathlib import Path

import pytest

from project_tree.core.dnd.gesture import MoveInstruction
from project_tree.core.tree.seed import seed_tree
from project_tree.workspace import Workspace
from tests.unit.fakes import FailingStorage, FakeClock, FakeRemoteStore, MemoryStorage


def test_starts_from_seed_and_persists_commits(
    workspace: Workspace, storage: MemoryStorage
) -> None:
    assert workspace.store.tree == seed_tree()
    node_id = workspace.store.add_folder("Later")
    assert node_id in storage.items["projectsState"]["items"]


def test_reload_restores_last_commit(storage: MemoryStorage, clock: FakeClock) -> None:
    first = Workspace(storage, clock=clock)
    first.store.move_node("project-1", "folder-3", 0)

    second = Workspace(storage, clock=clock)
    assert second.store.tree == first.store.tree


@pytest.mark.asyncio
async def test_open_uses_sqlite_under_data_dir(tmp_path: Path) -> None:
    ws = Workspace.open(tmp_path)
    node_id = ws.store.add_project("On disk")
    await ws.close()

    reopened = Workspace.open(tmp_path)
    assert reopened.store.get(node_id).name == "On disk"
    await reopened.close()


def test_storage_failure_keeps_tree_usable(clock: FakeClock) -> None:
    ws = Workspace(FailingStorage(), clock=clock)
    ws.store.rename_node("project-1", "Still works")
    assert ws.store.get("project-1").name == "Still works"
    assert ws.status.last_error == "quota exceeded"


def test_toggle_folder_persists_expansion(workspace: Workspace, storage: MemoryStorage) -> None:
    assert workspace.toggle_folder("folder-1") is True
    assert storage.items["expandedFolders"] == {"folder-1": True}
    assert workspace.toggle_folder("project-1") is False


def test_expand_all(workspace: Workspace) -> None:
    workspace.expand_all()
    assert all(workspace.expansion.is_expanded(f) for f in ("folder-1", "folder-2", "folder-3"))


def test_deleting_folder_forgets_expansion(workspace: Workspace, storage: MemoryStorage) -> None:
    workspace.expand_all()
    workspace.store.delete_node("folder-2")
    assert storage.items["expandedFolders"] == {"folder-1": True}


def test_drag_folder_to_end_of_root(workspace: Workspace) -> None:
    # Collapsed seed: gap, Getting Started, gap, My Projects, gap (6px gaps, 28px rows)
    session = workspace.drag_session()
    session.pointer_down(5, 20)
    session.pointer_move(5, 70)
    instruction = session.pointer_up(5, 70)

    assert instruction == MoveInstruction("folder-1", None, 2)
    assert workspace.drop(instruction)
    assert workspace.store.tree.root_ids == ("folder-2", "folder-1")


def test_drop_into_expanded_folder(workspace: Workspace) -> None:
    workspace.toggle_folder("folder-1")
    resolver = workspace.drop_resolver()
    instruction = resolver.resolve_id("dropzone:folder-1:1", "project-3")
    assert instruction is not None
    assert workspace.drop(MoveInstruction("project-3", instruction.parent_id, instruction.index))
    children = workspace.store.tree.items["folder-1"].children
    assert children == ("project-1", "project-3", "project-2")


def test_drop_none_is_noop(workspace: Workspace) -> None:
    before = workspace.store.tree
    assert not workspace.drop(None)
    assert workspace.store.tree is before


@pytest.mark.asyncio
async def test_commits_sync_when_signed_in(storage: MemoryStorage, clock: FakeClock) -> None:
    remote = FakeRemoteStore()
    ws = Workspace(storage, remote, signed_in=True, clock=clock)
    assert ws.sync is not None

    clock.now = 500
    ws.store.rename_node("project-2", "Synced")
    await ws.sync.flush()
    await ws.close()

    record = remote.record_for("project-2")
    assert record is not None
    assert record.data["name"] == "Synced"
    assert ws.status.leaf_state("project-2") == "saved"


def test_without_remote_there_is_no_sync(workspace: Workspace) -> None:
    assert workspace.sync is None
    workspace.set_signed_in(True)
