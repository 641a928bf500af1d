"""Pointer drag gestures over the rendered tree."""

import math
from dataclasses import dataclass

from loguru import logger

from project_tree.config import DRAG_ACTIVATION_DISTANCE
from project_tree.core.dnd.resolver import (
    DropTarget,
    DropZoneResolver,
    FolderHeaderTarget,
    GapTarget,
    RowTarget,
)
from project_tree.core.tree.store import TreeStore
from project_tree.errors import CycleError, InvalidParent, NotFound


@dataclass(frozen=True)
class Band:
    """Vertical slice of the rendered tree occupied by one target."""

    top: float
    bottom: float
    target: DropTarget


@dataclass(frozen=True)
class MoveInstruction:
    node_id: str
    parent_id: str | None
    index: int


class TreeLayout:
    """Stack targets vertically: gaps are thin bands between rows."""

    def __init__(
        self, targets: list[DropTarget], *, row_height: float = 28.0, gap_height: float = 6.0
    ) -> None:
        self.bands: list[Band] = []
        y = 0.0
        for target in targets:
            height = gap_height if isinstance(target, GapTarget) else row_height
            self.bands.append(Band(y, y + height, target))
            y += height
        self.height = y

    def hit_test(self, y: float) -> DropTarget | None:
        """Target under a vertical position, or None outside the tree."""
        lo, hi = 0, len(self.bands)
        while lo < hi:
            mid = (lo + hi) // 2
            band = self.bands[mid]
            if y < band.top:
                hi = mid
            elif y >= band.bottom:
                lo = mid + 1
            else:
                return band.target
        return None

    def node_at(self, y: float) -> str | None:
        target = self.hit_test(y)
        if isinstance(target, FolderHeaderTarget):
            return target.folder_id
        if isinstance(target, RowTarget):
            return target.node_id
        return None


class DragSession:
    """Track one press-move-release gesture.

    A press becomes a drag only after the pointer travels the activation
    distance; releasing before that is a click and never moves anything.
    """

    def __init__(
        self,
        resolver: DropZoneResolver,
        layout: TreeLayout,
        *,
        activation_distance: float = DRAG_ACTIVATION_DISTANCE,
    ) -> None:
        self._resolver = resolver
        self._layout = layout
        self._activation_distance = activation_distance
        self._origin: tuple[float, float] | None = None
        self.dragged_id: str | None = None
        self.active = False
        self.hover_target: DropTarget | None = None
        self.hover_level = 0

    def pointer_down(self, x: float, y: float) -> str | None:
        """Start a press on the row under the pointer; returns its node id."""
        self.cancel()
        node_id = self._layout.node_at(y)
        if node_id is not None:
            self._origin = (x, y)
            self.dragged_id = node_id
        return node_id

    def pointer_move(self, x: float, y: float) -> DropTarget | None:
        if self._origin is None:
            return None
        if not self.active:
            if math.dist(self._origin, (x, y)) < self._activation_distance:
                return None
            self.active = True
            logger.debug("Drag started on {}", self.dragged_id)

        self.hover_target = self._layout.hit_test(y)
        self.hover_level = _display_level(self.hover_target)
        return self.hover_target

    def pointer_up(self, x: float, y: float) -> MoveInstruction | None:
        """Finish the gesture; returns the move to apply, if any."""
        dragged_id, active = self.dragged_id, self.active
        if active:
            self.pointer_move(x, y)
        target = self.hover_target
        self.cancel()
        if not active or dragged_id is None:
            return None

        instruction = self._resolver.resolve(target, dragged_id)
        if instruction is None:
            logger.debug("Drop of {} ignored: no valid target", dragged_id)
            return None
        return MoveInstruction(dragged_id, instruction.parent_id, instruction.index)

    def cancel(self) -> None:
        self._origin = None
        self.dragged_id = None
        self.active = False
        self.hover_target = None
        self.hover_level = 0


def _display_level(target: DropTarget | None) -> int:
    if target is None:
        return 0
    if isinstance(target, FolderHeaderTarget):
        return target.level + 1
    return target.level


def apply_drop(store: TreeStore, instruction: MoveInstruction | None) -> bool:
    """Apply a resolved drop. Structural violations are ignored, not raised."""
    if instruction is None:
        return False
    try:
        store.move_node(instruction.node_id, instruction.parent_id, instruction.index)
    except (CycleError, InvalidParent, NotFound) as e:
        logger.debug("Drop rejected: {}", e)
        return False
    return True
