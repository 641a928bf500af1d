"""Comparing leaf snapshots and locating their remote records."""

from typing import Any

from loguru import logger

from project_tree.core.tree.serialize import canonical_json
from project_tree.models.node import RemoteRecord


def same_snapshot(a: dict[str, Any], b: dict[str, Any]) -> bool:
    """Structural equality, independent of key order."""
    return canonical_json(a) == canonical_json(b)


def find_record(records: list[RemoteRecord], local_id: str) -> RemoteRecord | None:
    """Return the record mirroring ``local_id``; the newest one if there are several."""
    matches = [r for r in records if r.local_id == local_id]
    if not matches:
        return None
    if len(matches) > 1:
        logger.debug("{} remote records for {}, using the newest", len(matches), local_id)
    return max(matches, key=lambda r: r.last_modified)
