"""Authoritative in-memory project tree.

All mutations build a new ``Tree`` and replace the current one in a single
assignment, so no intermediate state is ever observable. Structural errors are
raised before anything is replaced.
"""

import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from loguru import logger

from project_tree.core.persistence.gateway import PersistenceGateway
from project_tree.core.tree.navigation import descendants, is_descendant, leaf_descendants
from project_tree.errors import CycleError, InvalidParent, NotFound
from project_tree.models.node import FOLDER, LEAF, Component, Node, NodeKind, Tree


def now_ms() -> int:
    return int(time.time() * 1000)


def new_node_id() -> str:
    return secrets.token_urlsafe(16)


@dataclass(frozen=True)
class TreeChange:
    """Notification sent to subscribers after each commit."""

    operation: str
    node_id: str | None
    tree: Tree
    affected_leaves: tuple[str, ...] = ()
    removed_ids: tuple[str, ...] = ()


Listener = Callable[[TreeChange], None]


def _clamp(index: int | None, length: int) -> int:
    if index is None:
        return length
    return max(0, min(index, length))


class TreeStore:
    """Owns the tree; the only writer of its invariants."""

    def __init__(
        self,
        tree: Tree | None = None,
        *,
        gateway: PersistenceGateway | None = None,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = new_node_id,
    ) -> None:
        self._tree = tree if tree is not None else Tree()
        self._gateway = gateway
        self._clock = clock
        self._id_factory = id_factory
        self._listeners: list[Listener] = []

    # --- Queries ---

    @property
    def tree(self) -> Tree:
        return self._tree

    def get(self, node_id: str) -> Node:
        node = self._tree.items.get(node_id)
        if node is None:
            msg = f"Node {node_id!r} not found"
            raise NotFound(msg)
        return node

    def children_of(self, parent_id: str | None) -> list[Node]:
        if parent_id is not None:
            self.get(parent_id)
        return [self._tree.items[i] for i in self._tree.siblings(parent_id)]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # --- Mutations ---

    def add_node(
        self,
        kind: NodeKind,
        name: str,
        parent_id: str | None = None,
        index: int | None = None,
    ) -> str:
        """Create a folder or leaf under parent_id (None = root) and return its id."""
        if kind not in (FOLDER, LEAF):
            msg = f"unexpected node kind: {kind!r}"
            raise ValueError(msg)
        tree = self._tree
        self._require_parent(parent_id)

        node_id = self._id_factory()
        while node_id in tree.items:
            node_id = self._id_factory()

        node = Node(
            id=node_id,
            name=name,
            parent_id=parent_id,
            kind=kind,
            last_modified=self._clock() if kind == LEAF else None,
        )
        items = dict(tree.items)
        items[node_id] = node
        items, root_ids = self._insert(items, list(tree.root_ids), parent_id, node_id, index)

        affected = (node_id,) if kind == LEAF else ()
        self._commit(Tree(items, root_ids), "add", node_id, affected_leaves=affected)
        logger.debug("Added {} {!r} ({}) under {}", kind, name, node_id, parent_id or "root")
        return node_id

    def add_folder(self, name: str, parent_id: str | None = None, index: int | None = None) -> str:
        return self.add_node(FOLDER, name, parent_id, index)

    def add_project(self, name: str, parent_id: str | None = None, index: int | None = None) -> str:
        return self.add_node(LEAF, name, parent_id, index)

    def move_node(self, node_id: str, new_parent_id: str | None, index: int | None = None) -> None:
        """Reparent and/or reorder a node.

        The index is interpreted against the target list after the node has been
        detached from its current position, and clamped to ``[0, len]``.
        """
        tree = self._tree
        node = self.get(node_id)
        if new_parent_id == node_id or (
            new_parent_id is not None and is_descendant(tree, new_parent_id, node_id)
        ):
            msg = f"Cannot move {node_id!r} into itself or its descendant {new_parent_id!r}"
            raise CycleError(msg)
        self._require_parent(new_parent_id)

        items, root_ids = self._detach(dict(tree.items), list(tree.root_ids), node)
        items, root_ids = self._insert(items, root_ids, new_parent_id, node_id, index)

        moved = replace(node, parent_id=new_parent_id)
        if node.is_leaf and node.parent_id != new_parent_id:
            moved = replace(moved, last_modified=self._stamp(node))
        items[node_id] = moved

        new_tree = Tree(items, root_ids)
        affected = tuple(leaf_descendants(new_tree, node_id))
        self._commit(new_tree, "move", node_id, affected_leaves=affected)
        logger.debug("Moved {} to {} at {}", node_id, new_parent_id or "root", index)

    def delete_node(self, node_id: str) -> list[str]:
        """Delete a node and everything below it. Returns the removed ids."""
        tree = self._tree
        node = self.get(node_id)
        removed = [node_id, *descendants(tree, node_id)]

        items, root_ids = self._detach(dict(tree.items), list(tree.root_ids), node)
        for removed_id in removed:
            items.pop(removed_id, None)

        self._commit(Tree(items, root_ids), "delete", node_id, removed_ids=tuple(removed))
        logger.debug("Deleted {} ({} nodes)", node_id, len(removed))
        return removed

    def rename_node(self, node_id: str, name: str) -> None:
        node = self.get(node_id)
        renamed = replace(node, name=name)
        if node.is_leaf:
            renamed = replace(renamed, last_modified=self._stamp(node))
        items = dict(self._tree.items)
        items[node_id] = renamed
        affected = (node_id,) if node.is_leaf else ()
        self._commit(Tree(items, self._tree.root_ids), "rename", node_id, affected_leaves=affected)

    def set_components(
        self, node_id: str, components: tuple[Component, ...], *, touched: int | None = None
    ) -> None:
        """Replace a leaf's component list and stamp its modification time.

        ``touched`` is the index of the component whose payload changed; it gets
        the same stamp as the leaf.
        """
        node = self.get_leaf(node_id)
        stamp = self._stamp(node)
        if touched is not None:
            stamped = list(components)
            stamped[touched] = replace(stamped[touched], last_modified=stamp)
            components = tuple(stamped)
        items = dict(self._tree.items)
        items[node_id] = replace(node, components=components, last_modified=stamp)
        self._commit(
            Tree(items, self._tree.root_ids), "components", node_id, affected_leaves=(node_id,)
        )

    def apply_remote(
        self,
        node_id: str,
        *,
        name: str,
        components: tuple[Component, ...],
        remote_modified: int,
        expected_modified: int | None,
    ) -> bool:
        """Overwrite a leaf with remote content if it has not changed meanwhile.

        Compare-and-set on ``last_modified``: returns False, leaving the tree
        untouched, when the leaf is gone or its timestamp differs from
        ``expected_modified``. Structure (parent, position) stays local.
        """
        node = self._tree.items.get(node_id)
        if node is None or not node.is_leaf or node.last_modified != expected_modified:
            return False
        items = dict(self._tree.items)
        items[node_id] = replace(
            node, name=name, components=components, last_modified=remote_modified
        )
        self._commit(Tree(items, self._tree.root_ids), "remote", node_id)
        return True

    def get_leaf(self, node_id: str) -> Node:
        node = self._tree.items.get(node_id)
        if node is None or not node.is_leaf:
            msg = f"Project {node_id!r} not found"
            raise NotFound(msg)
        return node

    # --- Internals ---

    def _require_parent(self, parent_id: str | None) -> None:
        if parent_id is None:
            return
        parent = self._tree.items.get(parent_id)
        if parent is None or not parent.is_folder:
            msg = f"Parent {parent_id!r} is not an existing folder"
            raise InvalidParent(msg)

    def _stamp(self, node: Node) -> int:
        # Never go backwards, even if the clock does or a remote stamp is ahead.
        return max(self._clock(), (node.last_modified or 0) + 1)

    @staticmethod
    def _detach(
        items: dict[str, Node], root_ids: list[str], node: Node
    ) -> tuple[dict[str, Node], tuple[str, ...]]:
        if node.parent_id is None:
            return items, tuple(i for i in root_ids if i != node.id)
        parent = items.get(node.parent_id)
        if parent is not None:
            items[parent.id] = replace(
                parent, children=tuple(c for c in parent.children if c != node.id)
            )
        return items, tuple(root_ids)

    @staticmethod
    def _insert(
        items: dict[str, Node],
        root_ids: list[str] | tuple[str, ...],
        parent_id: str | None,
        node_id: str,
        index: int | None,
    ) -> tuple[dict[str, Node], tuple[str, ...]]:
        if parent_id is None:
            target = list(root_ids)
            target.insert(_clamp(index, len(target)), node_id)
            return items, tuple(target)
        parent = items[parent_id]
        children = list(parent.children)
        children.insert(_clamp(index, len(children)), node_id)
        items[parent_id] = replace(parent, children=tuple(children))
        return items, tuple(root_ids)

    def _commit(
        self,
        new_tree: Tree,
        operation: str,
        node_id: str | None,
        *,
        affected_leaves: tuple[str, ...] = (),
        removed_ids: tuple[str, ...] = (),
    ) -> None:
        self._tree = new_tree
        if self._gateway is not None:
            self._gateway.snapshot(new_tree)

        change = TreeChange(operation, node_id, new_tree, affected_leaves, removed_ids)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Tree change listener failed for {} {}", operation, node_id)
