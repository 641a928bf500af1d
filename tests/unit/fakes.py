"""Fake implementations for testing the project tree."""

import asyncio
import copy
from collections.abc import AsyncIterator
from typing import Any

from project_tree.errors import PersistenceError
from project_tree.models.node import RemoteRecord


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = 100) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class SequentialIds:
    """Id factory yielding n1, n2, ..."""

    def __init__(self, prefix: str = "n") -> None:
        self.prefix = prefix
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"{self.prefix}{self.count}"


class MemoryStorage:
    """In-memory fake for SqliteStorage.

    Values are deep-copied in and out so callers cannot alias stored state.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.items: dict[str, Any] = copy.deepcopy(initial or {})
        self.writes: list[str] = []

    def get_item(self, key: str) -> Any | None:
        return copy.deepcopy(self.items.get(key))

    def set_item(self, key: str, value: Any) -> None:
        self.writes.append(key)
        self.items[key] = copy.deepcopy(value)


class FailingStorage(MemoryStorage):
    """Storage whose reads and/or writes raise PersistenceError."""

    def __init__(self, *, fail_reads: bool = False, fail_writes: bool = True) -> None:
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    def get_item(self, key: str) -> Any | None:
        if self.fail_reads:
            msg = "disk unavailable"
            raise PersistenceError(msg)
        return super().get_item(key)

    def set_item(self, key: str, value: Any) -> None:
        if self.fail_writes:
            msg = "quota exceeded"
            raise PersistenceError(msg)
        super().set_item(key, value)


class FakeRemoteStore:
    """In-memory fake for HttpRecordStore.

    Records all calls for assertions. ``list_gate`` holds ``list_all`` open
    until the test sets it, which lets tests interleave local edits with an
    in-flight fetch. ``fail_with`` makes every request raise.
    """

    def __init__(self) -> None:
        self.records: dict[str, RemoteRecord] = {}
        self.calls: list[tuple[str, ...]] = []
        self.fail_with: Exception | None = None
        self.list_gate: asyncio.Event | None = None
        self.list_started: asyncio.Event | None = None
        self._next_id = 0
        self._queues: dict[str, asyncio.Queue[RemoteRecord]] = {}

    def seed(self, local_id: str, data: dict[str, Any], last_modified: int) -> RemoteRecord:
        """Put a record in place without recording a call."""
        record = RemoteRecord(self._new_id(), local_id, copy.deepcopy(data), last_modified)
        self.records[record.remote_id] = record
        return record

    def record_for(self, local_id: str) -> RemoteRecord | None:
        for record in self.records.values():
            if record.local_id == local_id:
                return record
        return None

    def writes(self) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] in ("create", "update")]

    async def list_all(self) -> list[RemoteRecord]:
        self.calls.append(("list",))
        if self.list_started is not None:
            self.list_started.set()
        if self.list_gate is not None:
            await self.list_gate.wait()
        self._maybe_fail()
        return list(self.records.values())

    async def create(self, local_id: str, data: dict[str, Any], last_modified: int) -> RemoteRecord:
        self.calls.append(("create", local_id))
        self._maybe_fail()
        record = RemoteRecord(self._new_id(), local_id, copy.deepcopy(data), last_modified)
        self.records[record.remote_id] = record
        return record

    async def update(
        self, remote_id: str, local_id: str, data: dict[str, Any], last_modified: int
    ) -> RemoteRecord:
        self.calls.append(("update", local_id))
        self._maybe_fail()
        record = RemoteRecord(remote_id, local_id, copy.deepcopy(data), last_modified)
        self.records[remote_id] = record
        return record

    def push_remote(self, local_id: str, data: dict[str, Any], last_modified: int) -> RemoteRecord:
        """Simulate another client writing a record; notifies subscribers."""
        existing = self.record_for(local_id)
        remote_id = existing.remote_id if existing is not None else self._new_id()
        record = RemoteRecord(remote_id, local_id, copy.deepcopy(data), last_modified)
        self.records[remote_id] = record
        self._queue(local_id).put_nowait(record)
        return record

    async def subscribe(self, local_id: str) -> AsyncIterator[RemoteRecord]:
        self.calls.append(("subscribe", local_id))
        queue = self._queue(local_id)
        while True:
            yield await queue.get()

    def _queue(self, local_id: str) -> "asyncio.Queue[RemoteRecord]":
        if local_id not in self._queues:
            self._queues[local_id] = asyncio.Queue()
        return self._queues[local_id]

    def _new_id(self) -> str:
        self._next_id += 1
        return f"rec-{self._next_id}"

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
