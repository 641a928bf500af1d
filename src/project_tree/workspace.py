"""Application root: owns the tree store and wires its collaborators."""

from collections.abc import Callable
from pathlib import Path

from loguru import logger

from project_tree.config import DATABASE_NAME
from project_tree.core.dnd.expansion import ExpansionState
from project_tree.core.dnd.gesture import DragSession, MoveInstruction, TreeLayout, apply_drop
from project_tree.core.dnd.resolver import DropZoneResolver
from project_tree.core.persistence.gateway import PersistenceGateway
from project_tree.core.persistence.sqlite_storage import SqliteStorage
from project_tree.core.sync.engine import SyncEngine
from project_tree.core.tree.components import ComponentDataStore
from project_tree.core.tree.store import TreeChange, TreeStore, now_ms
from project_tree.protocols import RemoteStoreProtocol, StorageProtocol
from project_tree.status import StatusSignal


class Workspace:
    """Single source of truth for one workspace, injected into consumers.

    Commit path: TreeStore mutation -> PersistenceGateway.snapshot ->
    SyncEngine scheduling for the affected projects (when a remote is given).
    """

    def __init__(
        self,
        storage: StorageProtocol,
        remote: RemoteStoreProtocol | None = None,
        *,
        signed_in: bool = False,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.storage = storage
        self.status = StatusSignal()
        self.gateway = PersistenceGateway(storage, self.status)
        self.store = TreeStore(self.gateway.load(), gateway=self.gateway, clock=clock)
        self.components = ComponentDataStore(self.store)
        self.expansion = ExpansionState(self.gateway.load_expansion())
        self.sync: SyncEngine | None = None
        if remote is not None:
            self.sync = SyncEngine(self.store, remote, self.status, signed_in=signed_in)
        self.store.subscribe(self._forget_removed_folders)

    @classmethod
    def open(
        cls,
        data_dir: Path,
        remote: RemoteStoreProtocol | None = None,
        *,
        signed_in: bool = False,
    ) -> "Workspace":
        """Open (or create) the workspace stored under data_dir."""
        storage = SqliteStorage(data_dir / DATABASE_NAME)
        logger.debug("Opened workspace at {}", data_dir)
        return cls(storage, remote, signed_in=signed_in)

    # --- Folder expansion ---

    def toggle_folder(self, folder_id: str) -> bool:
        if not self.store.get(folder_id).is_folder:
            return False
        expanded = self.expansion.toggle(folder_id)
        self.gateway.save_expansion(self.expansion.to_dict())
        return expanded

    def expand_all(self) -> None:
        for node in self.store.tree.items.values():
            if node.is_folder:
                self.expansion.set_expanded(node.id, True)
        self.gateway.save_expansion(self.expansion.to_dict())

    # --- Drag and drop ---

    def drop_resolver(self) -> DropZoneResolver:
        """Resolver for the tree as currently rendered."""
        return DropZoneResolver(self.store.tree, self.expansion)

    def drag_session(self, *, row_height: float = 28.0, gap_height: float = 6.0) -> DragSession:
        resolver = self.drop_resolver()
        layout = TreeLayout(resolver.targets, row_height=row_height, gap_height=gap_height)
        return DragSession(resolver, layout)

    def drop(self, instruction: MoveInstruction | None) -> bool:
        return apply_drop(self.store, instruction)

    # --- Session ---

    def set_signed_in(self, signed_in: bool) -> None:
        if self.sync is not None:
            self.sync.set_signed_in(signed_in)

    async def close(self) -> None:
        if self.sync is not None:
            await self.sync.close()
        close = getattr(self.storage, "close", None)
        if close is not None:
            close()

    def _forget_removed_folders(self, change: TreeChange) -> None:
        if not change.removed_ids:
            return
        self.expansion.prune(frozenset(change.tree.items))
        self.gateway.save_expansion(self.expansion.to_dict())
