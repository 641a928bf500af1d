"""Configuration constants for project-tree."""

import os
from pathlib import Path

# Directory with the local snapshot database. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/project-tree").expanduser(),
    Path("~/.project-tree").expanduser(),
]

# Used when none of DATA_DIRECTORIES exists yet.
DEFAULT_DATA_DIRECTORY: Path = DATA_DIRECTORIES[0]

DATABASE_NAME: str = "workspace.db"

# Remote API token location. First file found is used.
API_TOKEN_FILES: list[Path] = [
    Path("~/.config/project-tree-token.txt").expanduser(),
    Path("~/.config/secret/project-tree-token.txt").expanduser(),
]

REMOTE_BASE_URL: str = os.environ.get("PROJECT_TREE_REMOTE_URL", "https://api.basic.tech")
REMOTE_PROJECT_ID: str | None = os.environ.get("PROJECT_TREE_REMOTE_PROJECT")
REMOTE_COLLECTION: str = "projects"
REMOTE_TIMEOUT: float = 30.0

# Seconds between list-all polls for realtime subscriptions.
REALTIME_POLL_INTERVAL: float = 5.0

# Storage keys inside the local value store.
TREE_STATE_KEY: str = "projectsState"
EXPANSION_STATE_KEY: str = "expandedFolders"

# Pointer travel (px) before a press turns into a drag.
DRAG_ACTIVATION_DISTANCE: float = 4.0


def resolve_data_directory() -> Path:
    """Return the data directory: env override, first existing candidate, or the default."""
    env_dir = os.environ.get("PROJECT_TREE_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DEFAULT_DATA_DIRECTORY
