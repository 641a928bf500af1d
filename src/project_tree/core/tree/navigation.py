"""Tree navigation: ancestors, descendants, outlines."""

from collections.abc import Iterator

from project_tree.models.node import Node, Tree


def ancestors(tree: Tree, node_id: str) -> list[str]:
    """Return ancestor ids of a node, nearest parent first.

    Stops after len(items) steps so a corrupted (cyclic) tree cannot hang.
    """
    result: list[str] = []
    node = tree.items.get(node_id)
    steps = 0
    while node is not None and node.parent_id is not None and steps <= len(tree.items):
        result.append(node.parent_id)
        node = tree.items.get(node.parent_id)
        steps += 1
    return result


def is_descendant(tree: Tree, node_id: str, ancestor_id: str) -> bool:
    """True if ancestor_id is a strict ancestor of node_id."""
    return ancestor_id in ancestors(tree, node_id)


def descendants(tree: Tree, node_id: str) -> list[str]:
    """Return all transitive descendant ids of a node (excluding the node).

    Explicit worklist; no recursion.
    """
    result: list[str] = []
    seen = {node_id}
    todo = list(tree.items[node_id].children) if node_id in tree.items else []
    while todo:
        child_id = todo.pop()
        if child_id in seen:
            continue
        seen.add(child_id)
        result.append(child_id)
        child = tree.items.get(child_id)
        if child is not None:
            todo.extend(child.children)
    return result


def leaf_descendants(tree: Tree, node_id: str) -> list[str]:
    """The node itself if it is a leaf, otherwise all leaves underneath it."""
    node = tree.items.get(node_id)
    if node is None:
        return []
    if node.is_leaf:
        return [node_id]
    return [d for d in descendants(tree, node_id) if tree.items[d].is_leaf]


def depth(tree: Tree, node_id: str) -> int:
    return len(ancestors(tree, node_id))


def iter_preorder(tree: Tree) -> Iterator[tuple[Node, int]]:
    """Walk all nodes in display order, yielding (node, depth)."""
    todo: list[tuple[str, int]] = [(node_id, 0) for node_id in tree.root_ids]
    while todo:
        node_id, level = todo.pop(0)
        node = tree.items[node_id]
        yield node, level
        todo = [(child_id, level + 1) for child_id in node.children] + todo


def leaf_ids(tree: Tree) -> list[str]:
    return [node.id for node, _level in iter_preorder(tree) if node.is_leaf]


def recent_projects(tree: Tree, limit: int | None = None) -> list[Node]:
    """Leaves ordered by last modification, newest first."""
    leaves = [node for node in tree.items.values() if node.is_leaf]
    leaves.sort(key=lambda n: n.last_modified or 0, reverse=True)
    return leaves if limit is None else leaves[:limit]


def render_tree(tree: Tree, *, show_ids: bool = False) -> str:
    """Render the tree as an indented text outline."""
    lines: list[str] = []
    for node, level in iter_preorder(tree):
        marker = "+" if node.is_folder else "-"
        line = "  " * level + f"{marker} {node.name}"
        if show_ids:
            line += f"  [id={node.id}]"
        lines.append(line)
    return "\n".join(lines)
