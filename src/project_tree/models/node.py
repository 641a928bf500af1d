"""Domain models for the project tree."""

from dataclasses import dataclass, field
from typing import Any, Literal

NodeKind = Literal["folder", "leaf"]

FOLDER: NodeKind = "folder"
LEAF: NodeKind = "leaf"


@dataclass(frozen=True)
class Component:
    """An opaque payload attached to a project, e.g. an editor or chat."""

    type: str
    payload: Any = None
    last_modified: int | None = None


@dataclass(frozen=True)
class Node:
    """A folder or leaf project in the workspace tree."""

    id: str
    name: str
    parent_id: str | None
    kind: NodeKind
    children: tuple[str, ...] = ()
    components: tuple[Component, ...] = ()
    last_modified: int | None = None

    @property
    def is_folder(self) -> bool:
        return self.kind == FOLDER

    @property
    def is_leaf(self) -> bool:
        return self.kind == LEAF


@dataclass(frozen=True)
class Tree:
    """Immutable tree state. Replaced wholesale on every commit."""

    items: dict[str, Node] = field(default_factory=dict)
    root_ids: tuple[str, ...] = ()

    def siblings(self, parent_id: str | None) -> tuple[str, ...]:
        """Ordering list that holds children of ``parent_id`` (root list for None)."""
        if parent_id is None:
            return self.root_ids
        return self.items[parent_id].children


@dataclass(frozen=True)
class RemoteRecord:
    """Remote mirror of a leaf snapshot."""

    remote_id: str
    local_id: str
    data: dict[str, Any]
    last_modified: int
