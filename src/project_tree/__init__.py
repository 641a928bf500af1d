"""Hierarchical project tree with drag-and-drop ordering and remote sync."""

from project_tree.core.dnd.resolver import DropZoneResolver
from project_tree.core.persistence.gateway import PersistenceGateway
from project_tree.core.sync.engine import SyncEngine
from project_tree.core.tree.components import ComponentDataStore
from project_tree.core.tree.store import TreeStore
from project_tree.workspace import Workspace

__all__ = [
    "ComponentDataStore",
    "DropZoneResolver",
    "PersistenceGateway",
    "SyncEngine",
    "TreeStore",
    "Workspace",
]
