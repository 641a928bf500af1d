"""Error taxonomy for the project tree."""


class ProjectTreeError(Exception):
    """Base class for all project tree errors."""


class NotFound(ProjectTreeError):
    """Operation on an id that does not exist (or is not of the expected kind)."""


class InvalidParent(ProjectTreeError):
    """Add/move target is missing or is not a folder."""


class CycleError(ProjectTreeError):
    """Move would make a node its own ancestor."""


class PersistenceError(ProjectTreeError):
    """Local snapshot storage failed."""


class SyncError(ProjectTreeError):
    """Remote record store request failed."""
