"""Protocols for dependency injection in the project tree."""

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

from project_tree.models.node import RemoteRecord


@runtime_checkable
class StorageProtocol(Protocol):
    """Protocol for single-key value stores used by the persistence gateway."""

    def get_item(self, key: str) -> Any | None:
        """Return the stored JSON value for key, or None if not stored."""
        ...

    def set_item(self, key: str, value: Any) -> None:
        """Replace the stored value for key."""
        ...


@runtime_checkable
class RemoteStoreProtocol(Protocol):
    """Protocol for remote record collections."""

    async def list_all(self) -> list[RemoteRecord]:
        """Return every record in the collection."""
        ...

    async def create(self, local_id: str, data: dict[str, Any], last_modified: int) -> RemoteRecord:
        """Create a record and return it with its remote id."""
        ...

    async def update(
        self, remote_id: str, local_id: str, data: dict[str, Any], last_modified: int
    ) -> RemoteRecord:
        """Replace the record with the given remote id."""
        ...

    def subscribe(self, local_id: str) -> AsyncIterator[RemoteRecord]:
        """Yield the record for local_id each time it changes remotely."""
        ...
