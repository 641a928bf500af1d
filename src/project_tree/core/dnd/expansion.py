"""Folder expand/collapse state for the rendered tree."""


class ExpansionState:
    """Which folders are expanded. Folders default to collapsed."""

    def __init__(self, expanded: dict[str, bool] | None = None) -> None:
        self._expanded: dict[str, bool] = dict(expanded or {})

    def is_expanded(self, folder_id: str) -> bool:
        return self._expanded.get(folder_id, False)

    def set_expanded(self, folder_id: str, expanded: bool) -> None:
        self._expanded[folder_id] = expanded

    def toggle(self, folder_id: str) -> bool:
        """Flip a folder's state; returns the new state."""
        self._expanded[folder_id] = not self.is_expanded(folder_id)
        return self._expanded[folder_id]

    def prune(self, known_ids: set[str] | frozenset[str]) -> None:
        """Forget folders that no longer exist."""
        self._expanded = {k: v for k, v in self._expanded.items() if k in known_ids}

    def to_dict(self) -> dict[str, bool]:
        return dict(self._expanded)
