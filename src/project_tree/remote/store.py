"""Async adapter over the blocking record API."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

from loguru import logger

from project_tree.config import REALTIME_POLL_INTERVAL
from project_tree.core.sync.snapshot import find_record
from project_tree.errors import SyncError
from project_tree.models.node import RemoteRecord
from project_tree.remote.api import RecordApi


class HttpRecordStore:
    """Remote store for the sync engine.

    Requests run in worker threads so they never block the event loop.
    Change subscriptions poll the collection.
    """

    def __init__(self, api: RecordApi, *, poll_interval: float = REALTIME_POLL_INTERVAL) -> None:
        self._api = api
        self._poll_interval = poll_interval

    async def list_all(self) -> list[RemoteRecord]:
        return await asyncio.to_thread(self._api.list_all)

    async def create(self, local_id: str, data: dict[str, Any], last_modified: int) -> RemoteRecord:
        return await asyncio.to_thread(self._api.create, local_id, data, last_modified)

    async def update(
        self, remote_id: str, local_id: str, data: dict[str, Any], last_modified: int
    ) -> RemoteRecord:
        return await asyncio.to_thread(self._api.update, remote_id, local_id, data, last_modified)

    async def subscribe(self, local_id: str) -> AsyncIterator[RemoteRecord]:
        """Yield the record for local_id whenever its lastModified changes.

        Poll failures are logged and retried on the next interval.
        """
        last_seen: int | None = None
        while True:
            try:
                record = find_record(await self.list_all(), local_id)
            except SyncError as e:
                logger.warning("Polling for {} failed: {}", local_id, e)
                record = None
            if record is not None and record.last_modified != last_seen:
                last_seen = record.last_modified
                yield record
            await asyncio.sleep(self._poll_interval)
