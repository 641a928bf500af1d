"""Per-project component lists, committed through the tree store."""

from typing import Any

from project_tree.core.tree.store import TreeStore
from project_tree.models.node import Component


class ComponentDataStore:
    """Maps a project to its ordered list of opaque component payloads.

    Every change goes through ``TreeStore.set_components`` so it is persisted,
    stamped and broadcast like any other tree mutation.
    """

    def __init__(self, store: TreeStore) -> None:
        self._store = store

    def components(self, project_id: str) -> tuple[Component, ...]:
        return self._store.get_leaf(project_id).components

    def assign_component(self, project_id: str, component_type: str, payload: Any = None) -> int:
        """Append a component to a project; returns its index."""
        current = self.components(project_id)
        new = Component(type=component_type, payload=payload if payload is not None else {})
        self._store.set_components(project_id, (*current, new), touched=len(current))
        return len(current)

    def remove_component(self, project_id: str, index: int) -> Component:
        current = list(self.components(project_id))
        _check_index(project_id, index, len(current))
        removed = current.pop(index)
        self._store.set_components(project_id, tuple(current))
        return removed

    def update_component(self, project_id: str, index: int, payload: Any) -> Component:
        """Replace one component's payload; returns the updated component."""
        current = list(self.components(project_id))
        _check_index(project_id, index, len(current))
        current[index] = Component(type=current[index].type, payload=payload)
        self._store.set_components(project_id, tuple(current), touched=index)
        return self.components(project_id)[index]


def _check_index(project_id: str, index: int, length: int) -> None:
    if not 0 <= index < length:
        msg = f"Component index {index} out of range for project {project_id!r}"
        raise IndexError(msg)
