"""Durable local snapshots of the whole tree."""

from typing import Any

from loguru import logger

from project_tree.config import EXPANSION_STATE_KEY, TREE_STATE_KEY
from project_tree.core.tree.seed import seed_tree
from project_tree.core.tree.serialize import dump_tree, parse_tree
from project_tree.core.tree.validate import check_invariants
from project_tree.errors import PersistenceError
from project_tree.models.node import Tree
from project_tree.protocols import StorageProtocol
from project_tree.status import StatusSignal

_STORAGE_ERRORS = (PersistenceError, OSError, ValueError, TypeError)


class PersistenceGateway:
    """Write the whole tree after each commit; reload it at startup.

    Failures are reported on the status signal and never raised, so the
    in-memory tree keeps working without durable storage.
    """

    def __init__(self, storage: StorageProtocol, status: StatusSignal | None = None) -> None:
        self._storage = storage
        self._status = status if status is not None else StatusSignal()
        self._reported: str | None = None

    def snapshot(self, tree: Tree) -> bool:
        """Replace the stored snapshot with ``tree``. Returns False on failure."""
        try:
            self._storage.set_item(TREE_STATE_KEY, dump_tree(tree))
        except _STORAGE_ERRORS as e:
            logger.warning("Failed to persist tree snapshot: {}", e)
            self._report(_as_persistence_error(e))
            return False
        if self._reported is not None and self._status.last_error == self._reported:
            self._status.clear_error()
        self._reported = None
        return True

    def load(self) -> Tree:
        """Return the last snapshot, or the seeded workspace if there is none."""
        try:
            raw = self._storage.get_item(TREE_STATE_KEY)
        except _STORAGE_ERRORS as e:
            logger.warning("Failed to load tree snapshot, using defaults: {}", e)
            self._report(_as_persistence_error(e))
            return seed_tree()

        if raw is None:
            logger.debug("No stored snapshot, seeding default workspace")
            return seed_tree()

        try:
            tree = parse_tree(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Stored snapshot is malformed, using defaults: {}", e)
            self._report(PersistenceError(f"Malformed snapshot: {e}"))
            return seed_tree()

        problems = check_invariants(tree)
        if problems:
            logger.warning("Stored snapshot is inconsistent ({}), using defaults", problems[0])
            self._report(PersistenceError(f"Inconsistent snapshot: {problems[0]}"))
            return seed_tree()

        logger.debug("Loaded snapshot with {} nodes", len(tree.items))
        return tree

    def save_expansion(self, expanded: dict[str, bool]) -> bool:
        try:
            self._storage.set_item(EXPANSION_STATE_KEY, dict(expanded))
        except _STORAGE_ERRORS as e:
            logger.warning("Failed to persist folder expansion state: {}", e)
            self._report(_as_persistence_error(e))
            return False
        return True

    def load_expansion(self) -> dict[str, bool]:
        try:
            raw: Any = self._storage.get_item(EXPANSION_STATE_KEY)
        except _STORAGE_ERRORS as e:
            logger.warning("Failed to load folder expansion state: {}", e)
            self._report(_as_persistence_error(e))
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): bool(v) for k, v in raw.items()}

    def _report(self, error: PersistenceError) -> None:
        self._reported = str(error)
        self._status.record_error(error)


def _as_persistence_error(e: Exception) -> PersistenceError:
    if isinstance(e, PersistenceError):
        return e
    return PersistenceError(str(e))
