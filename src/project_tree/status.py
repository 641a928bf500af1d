"""Process-wide status signal for persistence and sync outcomes."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from loguru import logger

LeafState = Literal["syncing", "saved", "error"]

SYNCING: LeafState = "syncing"
SAVED: LeafState = "saved"
ERROR: LeafState = "error"


@dataclass(frozen=True)
class StatusEvent:
    """Single status update, broadcast to listeners."""

    leaf_id: str | None
    state: LeafState | None
    error: str | None = None


StatusListener = Callable[[StatusEvent], None]


class StatusSignal:
    """Collects non-fatal failures and per-project sync state for display.

    Nothing recorded here ever unwinds tree state.
    """

    def __init__(self) -> None:
        self._leaf_states: dict[str, LeafState] = {}
        self._leaf_errors: dict[str, str] = {}
        self.last_error: str | None = None
        self._listeners: list[StatusListener] = []

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def leaf_state(self, leaf_id: str) -> LeafState | None:
        return self._leaf_states.get(leaf_id)

    def leaf_error(self, leaf_id: str) -> str | None:
        return self._leaf_errors.get(leaf_id)

    def set_leaf(self, leaf_id: str, state: LeafState, error: str | None = None) -> None:
        self._leaf_states[leaf_id] = state
        if error is None:
            self._leaf_errors.pop(leaf_id, None)
        else:
            self._leaf_errors[leaf_id] = error
            self.last_error = error
        self._emit(StatusEvent(leaf_id, state, error))

    def forget_leaf(self, leaf_id: str) -> None:
        self._leaf_states.pop(leaf_id, None)
        self._leaf_errors.pop(leaf_id, None)

    def record_error(self, error: Exception | str) -> None:
        """Record a workspace-level failure (e.g. local storage I/O)."""
        self.last_error = str(error)
        self._emit(StatusEvent(None, None, self.last_error))

    def clear_error(self) -> None:
        if self.last_error is not None:
            self.last_error = None
            self._emit(StatusEvent(None, None, None))

    def _emit(self, event: StatusEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Status listener failed")
