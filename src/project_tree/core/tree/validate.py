"""Structural invariant checks for a tree."""

from project_tree.models.node import Tree


def check_invariants(tree: Tree) -> list[str]:
    """Return a list of invariant violations; empty if the tree is valid."""
    problems: list[str] = []
    referenced: dict[str, int] = {}

    def _check_list(owner: str, ids: tuple[str, ...]) -> None:
        if len(set(ids)) != len(ids):
            problems.append(f"duplicate ids in ordering list of {owner}")
        for child_id in ids:
            referenced[child_id] = referenced.get(child_id, 0) + 1
            if child_id not in tree.items:
                problems.append(f"{owner} references missing id {child_id!r}")

    _check_list("root", tree.root_ids)
    for node_id, node in tree.items.items():
        if node.id != node_id:
            problems.append(f"item key {node_id!r} holds node {node.id!r}")
        if node.children and not node.is_folder:
            problems.append(f"leaf {node_id!r} has children")
        _check_list(repr(node_id), node.children)

    for node_id, node in tree.items.items():
        count = referenced.get(node_id, 0)
        if count != 1:
            problems.append(f"node {node_id!r} referenced {count} times")
        if node.parent_id is None:
            if node_id not in tree.root_ids:
                problems.append(f"root node {node_id!r} missing from rootIds")
            continue
        parent = tree.items.get(node.parent_id)
        if parent is None or not parent.is_folder:
            problems.append(f"node {node_id!r} has invalid parent {node.parent_id!r}")
        elif node_id not in parent.children:
            problems.append(f"parent {node.parent_id!r} does not list child {node_id!r}")

        # Bounded ancestor walk; a chain longer than the tree means a cycle.
        steps = 0
        cursor = node
        while cursor is not None and cursor.parent_id is not None:
            steps += 1
            if steps > len(tree.items):
                problems.append(f"cycle through node {node_id!r}")
                break
            cursor = tree.items.get(cursor.parent_id)

    return problems
