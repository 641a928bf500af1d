"""Turn drop targets on the rendered tree into move instructions."""

from dataclasses import dataclass

from project_tree.core.dnd.expansion import ExpansionState
from project_tree.core.tree.navigation import is_descendant
from project_tree.models.node import Tree

_ZONE_PREFIX = "dropzone:"
_ROOT_TOKEN = "root"


@dataclass(frozen=True)
class GapTarget:
    """Insertion point between siblings: ``index`` in ``[0, child_count]``."""

    parent_id: str | None
    index: int
    level: int = 0

    @property
    def zone_id(self) -> str:
        return f"{_ZONE_PREFIX}{self.parent_id or _ROOT_TOKEN}:{self.index}"


@dataclass(frozen=True)
class FolderHeaderTarget:
    """A visible folder's own row. Dropping here puts the item first inside it."""

    folder_id: str
    level: int = 0


@dataclass(frozen=True)
class RowTarget:
    """A visible project row. Not a drop target."""

    node_id: str
    level: int = 0


DropTarget = GapTarget | FolderHeaderTarget | RowTarget


@dataclass(frozen=True)
class DropInstruction:
    parent_id: str | None
    index: int


def parse_zone_id(zone_id: str) -> GapTarget | None:
    """Parse ``dropzone:{parent|root}:{index}``; None if it is not a zone id."""
    if not zone_id.startswith(_ZONE_PREFIX):
        return None
    parent, sep, index_str = zone_id[len(_ZONE_PREFIX) :].rpartition(":")
    if not sep or not index_str.isdigit():
        return None
    return GapTarget(None if parent == _ROOT_TOKEN else parent, int(index_str))


def visible_targets(tree: Tree, expansion: ExpansionState) -> list[DropTarget]:
    """All targets of the rendered tree in display order.

    A gap precedes every row and one closes every list. Collapsed folders
    contribute their header only.
    """
    out: list[DropTarget] = []
    # (parent_id, next index in that parent's list, display level)
    stack: list[tuple[str | None, int, int]] = [(None, 0, 0)]
    while stack:
        parent_id, i, level = stack.pop()
        ids = tree.siblings(parent_id)
        out.append(GapTarget(parent_id, i, level))
        if i >= len(ids):
            continue
        stack.append((parent_id, i + 1, level))
        node = tree.items[ids[i]]
        if node.is_folder:
            out.append(FolderHeaderTarget(node.id, level))
            if expansion.is_expanded(node.id):
                stack.append((node.id, 0, level + 1))
        else:
            out.append(RowTarget(node.id, level))
    return out


class DropZoneResolver:
    """Resolve drop targets against the currently rendered tree.

    Anything that is not a visible gap or a visible folder header resolves to
    None, as does an instruction that would put a folder inside itself.
    """

    def __init__(self, tree: Tree, expansion: ExpansionState) -> None:
        self.tree = tree
        self.expansion = expansion
        self.targets = visible_targets(tree, expansion)
        self._gaps = {(t.parent_id, t.index) for t in self.targets if isinstance(t, GapTarget)}
        self._headers = {t.folder_id for t in self.targets if isinstance(t, FolderHeaderTarget)}

    def resolve(
        self, target: DropTarget | None, dragged_id: str | None = None
    ) -> DropInstruction | None:
        instruction: DropInstruction | None = None
        if isinstance(target, GapTarget):
            if (target.parent_id, target.index) in self._gaps:
                instruction = DropInstruction(target.parent_id, target.index)
        elif isinstance(target, FolderHeaderTarget):
            if target.folder_id in self._headers:
                instruction = DropInstruction(target.folder_id, 0)

        if instruction is None or dragged_id is None:
            return instruction
        if instruction.parent_id is not None and (
            instruction.parent_id == dragged_id
            or is_descendant(self.tree, instruction.parent_id, dragged_id)
        ):
            return None
        return instruction

    def resolve_id(
        self, over_id: str | None, dragged_id: str | None = None
    ) -> DropInstruction | None:
        """Resolve a rendered element id: a zone id or a node id."""
        if not over_id:
            return None
        gap = parse_zone_id(over_id)
        if gap is not None:
            return self.resolve(gap, dragged_id)
        node = self.tree.items.get(over_id)
        if node is not None and node.is_folder:
            return self.resolve(FolderHeaderTarget(node.id), dragged_id)
        return None
