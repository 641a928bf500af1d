"""Convert trees and leaf snapshots to and from their JSON shapes."""

import json
from typing import Any

from project_tree.models.node import FOLDER, LEAF, Component, Node, NodeKind, Tree

# Older snapshots tag leaves as "project" under a "type" key.
_LEGACY_KINDS: dict[str, NodeKind] = {"folder": FOLDER, "project": LEAF, "leaf": LEAF}


def canonical_json(value: Any) -> str:
    """Serialize value so that equal structures always give equal strings."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def dump_component(component: Component) -> dict[str, Any]:
    out: dict[str, Any] = {"type": component.type, "payload": component.payload}
    if component.last_modified is not None:
        out["lastModified"] = component.last_modified
    return out


def parse_component(data: dict[str, Any]) -> Component:
    if "type" not in data:
        msg = f"component without type: {data!r}"
        raise ValueError(msg)
    payload = data["payload"] if "payload" in data else data.get("data")
    return Component(
        type=str(data["type"]),
        payload=payload,
        last_modified=data.get("lastModified"),
    )


def dump_node(node: Node) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "parentId": node.parent_id,
        "kind": node.kind,
    }
    if node.is_folder:
        out["children"] = list(node.children)
    else:
        out["componentList"] = [dump_component(c) for c in node.components]
        if node.last_modified is not None:
            out["lastModified"] = node.last_modified
    return out


def parse_node(data: dict[str, Any]) -> Node:
    raw_kind = data.get("kind", data.get("type"))
    kind = _LEGACY_KINDS.get(str(raw_kind))
    if kind is None:
        msg = f"unexpected node kind: {raw_kind!r}"
        raise ValueError(msg)

    raw_components = data.get("componentList", data.get("components")) or []
    return Node(
        id=str(data["id"]),
        name=str(data.get("name", "")),
        parent_id=data.get("parentId"),
        kind=kind,
        children=tuple(data.get("children") or ()) if kind == FOLDER else (),
        components=tuple(parse_component(c) for c in raw_components) if kind == LEAF else (),
        last_modified=data.get("lastModified") if kind == LEAF else None,
    )


def dump_tree(tree: Tree) -> dict[str, Any]:
    """Serialize the whole tree (persistence snapshot shape)."""
    return {
        "items": {node_id: dump_node(node) for node_id, node in tree.items.items()},
        "rootIds": list(tree.root_ids),
    }


def parse_tree(data: Any) -> Tree:
    """Parse a persisted snapshot. Raises ValueError on malformed input."""
    if not isinstance(data, dict) or not isinstance(data.get("items"), dict):
        msg = "snapshot has no items map"
        raise ValueError(msg)
    if not isinstance(data.get("rootIds"), list):
        msg = "snapshot has no rootIds list"
        raise ValueError(msg)

    items: dict[str, Node] = {}
    for key, raw in data["items"].items():
        node = parse_node(raw)
        if node.id != key:
            msg = f"item key {key!r} does not match node id {node.id!r}"
            raise ValueError(msg)
        items[key] = node
    return Tree(items=items, root_ids=tuple(data["rootIds"]))


def leaf_snapshot(node: Node) -> dict[str, Any]:
    """The sync unit of a leaf: everything a remote record mirrors."""
    return {
        "id": node.id,
        "name": node.name,
        "parentId": node.parent_id,
        "kind": node.kind,
        "componentList": [dump_component(c) for c in node.components],
    }


def components_from_snapshot(data: dict[str, Any]) -> tuple[Component, ...]:
    raw = data.get("componentList", data.get("components")) or []
    return tuple(parse_component(c) for c in raw)
