"""Per-project synchronization with a remote record store.

Local commits are synchronous and always win the race to the in-memory tree.
Remote reconciliation runs afterwards in one supervised asyncio task per
project and applies remote content only through the tree store's
compare-and-set on ``last_modified``, so a slow response can never overwrite
a newer local edit.

Conflict policy is last-modified-wins; ties favor the local copy.
"""

import asyncio
from typing import Any

from loguru import logger

from project_tree.core.sync.snapshot import find_record, same_snapshot
from project_tree.core.tree.navigation import leaf_ids
from project_tree.core.tree.serialize import components_from_snapshot, leaf_snapshot
from project_tree.core.tree.store import TreeChange, TreeStore
from project_tree.errors import NotFound
from project_tree.models.node import RemoteRecord
from project_tree.protocols import RemoteStoreProtocol
from project_tree.status import ERROR, SAVED, SYNCING, StatusSignal

Snapshot = dict[str, Any]


class SyncEngine:
    """Keep each project's remote record in step with the local tree."""

    def __init__(
        self,
        store: TreeStore,
        remote: RemoteStoreProtocol,
        status: StatusSignal | None = None,
        *,
        signed_in: bool = False,
    ) -> None:
        self._store = store
        self._remote = remote
        self._status = status if status is not None else StatusSignal()
        self._signed_in = signed_in

        self._pending: set[str] = set()
        self._failed: set[str] = set()
        self._workers: dict[str, asyncio.Task[None]] = {}
        self._watchers: dict[str, asyncio.Task[None]] = {}
        self._unsubscribe = store.subscribe(self._on_change)

    # --- Session ---

    @property
    def active(self) -> bool:
        return self._signed_in

    def set_signed_in(self, signed_in: bool) -> None:
        """Session gate. Signing in behaves like a reconnect."""
        was_active = self._signed_in
        self._signed_in = signed_in
        if signed_in and not was_active:
            self.reconnect()
        elif not signed_in and was_active:
            for node_id in list(self._watchers):
                self.unwatch(node_id)
            self._pending.clear()

    def reconnect(self) -> None:
        """Schedule every project, which also retries earlier failures."""
        for node_id in leaf_ids(self._store.tree):
            self.schedule(node_id)

    @property
    def failed(self) -> frozenset[str]:
        return frozenset(self._failed)

    # --- Scheduling ---

    def schedule(self, node_id: str) -> None:
        """Queue a reconciliation pass for one project.

        Bursts of changes to the same project coalesce into one extra pass.
        Without a running event loop the work waits for ``flush()``.
        """
        if not self._signed_in:
            return
        self._pending.add(node_id)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self._start_worker(node_id)

    async def flush(self) -> None:
        """Run all queued passes and wait for every in-flight pass."""
        while self._pending or self._workers:
            for node_id in list(self._pending):
                self._start_worker(node_id)
            await asyncio.gather(*self._workers.values(), return_exceptions=True)

    async def sync_all(self) -> None:
        """Reconcile every project in the tree."""
        self.reconnect()
        await self.flush()

    def _start_worker(self, node_id: str) -> None:
        if node_id in self._workers:
            return
        task = asyncio.get_running_loop().create_task(self._drain(node_id))
        self._workers[node_id] = task
        task.add_done_callback(_log_task_failure)

    async def _drain(self, node_id: str) -> None:
        try:
            while node_id in self._pending:
                self._pending.discard(node_id)
                await self._sync_leaf(node_id)
        finally:
            self._workers.pop(node_id, None)

    async def _sync_leaf(self, node_id: str) -> None:
        if node_id not in self._store.tree.items:
            return
        self._status.set_leaf(node_id, SYNCING)
        try:
            await self.reconcile(node_id)
        except NotFound:
            self._status.forget_leaf(node_id)
            return
        except Exception as e:
            logger.warning("Sync of {} failed: {}", node_id, e)
            self._failed.add(node_id)
            self._status.set_leaf(node_id, ERROR, str(e))
            return
        self._failed.discard(node_id)
        if node_id in self._store.tree.items:
            self._status.set_leaf(node_id, SAVED)

    def _on_change(self, change: TreeChange) -> None:
        for removed_id in change.removed_ids:
            # Remote records of deleted projects are left in place.
            self._pending.discard(removed_id)
            self._failed.discard(removed_id)
            self._status.forget_leaf(removed_id)
            self.unwatch(removed_id)

        if not self._signed_in:
            return
        retry = [i for i in self._failed if i in change.tree.items]
        for node_id in (*change.affected_leaves, *retry):
            self.schedule(node_id)

    # --- One-shot operations ---

    async def sync_local_to_remote(self, node_id: str) -> RemoteRecord:
        """Create or update the remote record for a project from local state.

        Does not write when the remote data already matches, so repeated calls
        with unchanged content leave the record untouched.
        """
        self._store.get_leaf(node_id)
        existing = find_record(await self._remote.list_all(), node_id)
        # Local state may have moved on while the list was in flight.
        current = self._store.get_leaf(node_id)
        return await self._push(
            node_id, leaf_snapshot(current), current.last_modified or 0, existing
        )

    async def reconcile(self, node_id: str) -> Snapshot | None:
        """Fetch the remote record and settle it against local state.

        Returns the winning snapshot, or None if the project was deleted
        while the fetch was in flight.
        """
        dispatched = self._store.get_leaf(node_id).last_modified
        record = find_record(await self._remote.list_all(), node_id)

        current = self._store.tree.items.get(node_id)
        if current is None or not current.is_leaf:
            return None
        if current.last_modified != dispatched:
            logger.debug(
                "Local {} advanced from {} to {} during fetch",
                node_id,
                dispatched,
                current.last_modified,
            )

        local_snapshot = leaf_snapshot(current)
        local_modified = current.last_modified or 0
        if record is None:
            await self._push(node_id, local_snapshot, local_modified, None)
            return local_snapshot
        if same_snapshot(record.data, local_snapshot) and record.last_modified == local_modified:
            return local_snapshot
        return await self._resolve(
            node_id, local_snapshot, record.data, local_modified, record.last_modified, record
        )

    async def resolve_conflict(
        self,
        node_id: str,
        local_snapshot: Snapshot,
        remote_snapshot: Snapshot,
        local_modified: int,
        remote_modified: int,
    ) -> Snapshot:
        """Last-modified-wins between a local and a remote snapshot.

        Remote newer: local project is overwritten and the remote snapshot is
        returned. Otherwise the local snapshot is pushed and returned.
        """
        return await self._resolve(
            node_id, local_snapshot, remote_snapshot, local_modified, remote_modified, None
        )

    async def _resolve(
        self,
        node_id: str,
        local_snapshot: Snapshot,
        remote_snapshot: Snapshot,
        local_modified: int,
        remote_modified: int,
        existing: RemoteRecord | None,
    ) -> Snapshot:
        current = self._store.tree.items.get(node_id)
        if current is not None and current.is_leaf:
            current_modified = current.last_modified or 0
            if current_modified != local_modified:
                # Always compare against the current local timestamp.
                local_snapshot, local_modified = leaf_snapshot(current), current_modified

        if remote_modified > local_modified:
            if current is not None and current.is_leaf:
                applied = self._store.apply_remote(
                    node_id,
                    name=str(remote_snapshot.get("name", current.name)),
                    components=components_from_snapshot(remote_snapshot),
                    remote_modified=remote_modified,
                    expected_modified=current.last_modified,
                )
                logger.debug(
                    "Remote wins for {} ({} > {})", node_id, remote_modified, local_modified
                )
                if not applied:
                    logger.debug("Remote update for {} discarded: local changed", node_id)
            return remote_snapshot

        if current is None or not current.is_leaf:
            return local_snapshot
        if existing is None:
            existing = find_record(await self._remote.list_all(), node_id)
        await self._push(node_id, local_snapshot, local_modified, existing)
        return local_snapshot

    async def _push(
        self,
        node_id: str,
        snapshot: Snapshot,
        modified: int,
        existing: RemoteRecord | None,
    ) -> RemoteRecord:
        if existing is None:
            record = await self._remote.create(node_id, snapshot, modified)
            logger.info("Created remote record {} for {}", record.remote_id, node_id)
            return record
        if same_snapshot(existing.data, snapshot) and existing.last_modified == modified:
            return existing
        record = await self._remote.update(existing.remote_id, node_id, snapshot, modified)
        logger.debug("Updated remote record {} for {}", existing.remote_id, node_id)
        return record

    # --- Realtime ---

    def watch(self, node_id: str) -> None:
        """Follow remote changes to one project until ``unwatch``.

        Must be called from a running event loop.
        """
        if not self._signed_in or node_id in self._watchers:
            return
        self._store.get_leaf(node_id)
        task = asyncio.get_running_loop().create_task(self._follow(node_id))
        self._watchers[node_id] = task

    def unwatch(self, node_id: str) -> None:
        task = self._watchers.pop(node_id, None)
        if task is not None:
            task.cancel()

    @property
    def watching(self) -> frozenset[str]:
        return frozenset(self._watchers)

    async def _follow(self, node_id: str) -> None:
        try:
            async for record in self._remote.subscribe(node_id):
                await self._on_remote_record(node_id, record)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Realtime updates for {} stopped: {}", node_id, e)
            self._failed.add(node_id)
            self._status.set_leaf(node_id, ERROR, str(e))
        finally:
            if self._watchers.get(node_id) is asyncio.current_task():
                del self._watchers[node_id]

    async def _on_remote_record(self, node_id: str, record: RemoteRecord) -> None:
        current = self._store.tree.items.get(node_id)
        if current is None or not current.is_leaf:
            return
        local_snapshot = leaf_snapshot(current)
        if same_snapshot(record.data, local_snapshot):
            return
        logger.debug("Realtime change for {} at {}", node_id, record.last_modified)
        await self._resolve(
            node_id,
            local_snapshot,
            record.data,
            current.last_modified or 0,
            record.last_modified,
            record,
        )

    # --- Shutdown ---

    async def close(self) -> None:
        """Stop realtime subscriptions and let in-flight passes finish."""
        self._unsubscribe()
        self._pending.clear()
        watchers = list(self._watchers.values())
        for node_id in list(self._watchers):
            self.unwatch(node_id)
        await asyncio.gather(*watchers, return_exceptions=True)
        await asyncio.gather(*self._workers.values(), return_exceptions=True)


def _log_task_failure(task: "asyncio.Task[None]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.opt(exception=exc).error("Sync worker crashed")
