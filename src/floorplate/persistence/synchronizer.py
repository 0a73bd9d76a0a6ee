# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Persistence synchronizer: mirrors an engine to a local cache and a remote store.

Load path:
    1. ``hydrate_local()`` reads every collection from the local cache,
       migrates old payloads (and writes the migrated shape back at once)
       and restores the engine for instant availability.
    2. The worker thread then selects the project from the remote store.
       Remote data wins when it arrives; an empty remote project is seeded
       from the local state instead.

Change path (``ConfigurationChanged`` from the engine):
    - Local cache: the changed collections are written after a quiet period
      of ``debounce_seconds``, so bursts of edits collapse into one write.
    - Remote store: a token is put on a bounded queue. The worker diffs the
      latest snapshot against the rows it last synced and issues row-level
      upserts and deletes. Tokens coalesce, so a full queue never blocks the
      engine.

Remote failures are logged and published as ``error`` on the save-status
channel. They are not retried; because the sync baseline only advances on
success, the next successful sync carries every unsynced change.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Set

from ..core.primitives import (
    ChangeOriginEnum,
    CollectionEnum,
    PersistenceSettings,
    SaveStatusEnum,
)
from ..engine import BuildingEngine, BuildingState, ConfigurationChanged, Subscription
from .local_cache import LocalCache, cache_key
from .migrations import migrate_payloads, wrap
from .payloads import payloads_to_state, state_to_payloads
from .remote_store import RemoteStore
from .rows import TABLES, TableRows, diff_rows, rows_to_state, state_to_rows

logger = logging.getLogger(__name__)

StatusHandler = Callable[[SaveStatusEnum], None]


class _Message(NamedTuple):
    kind: str  # "sync" | "reconcile" | "stop"
    engine: Optional[BuildingEngine] = None


class PersistenceSynchronizer:
    """
    Dual-store persistence for one project.

    Args:
        project_id: Scope of every remote row
        cache: Local cache, or ``None`` to skip local persistence
        remote: Remote store, or ``None`` to skip remote persistence
        settings: Namespace, debounce and queue configuration

    Example:
        ```python
        engine = BuildingEngine()
        with PersistenceSynchronizer("p1", JsonFileCache(path), DuckDBRemoteStore()) as sync:
            sync.load(engine)
            engine.add_floors(3)
            sync.flush()
        ```
    """

    def __init__(
        self,
        project_id: str,
        cache: Optional[LocalCache] = None,
        remote: Optional[RemoteStore] = None,
        settings: Optional[PersistenceSettings] = None,
    ):
        self.project_id = project_id
        self.cache = cache
        self.remote = remote
        self.settings = settings or PersistenceSettings()

        self._lock = threading.Lock()
        self._status = SaveStatusEnum.IDLE
        self.last_error: Optional[BaseException] = None
        self._status_handlers: List[StatusHandler] = []

        # Debounced local writes
        self._timer: Optional[threading.Timer] = None
        self._local_state: Optional[BuildingState] = None
        self._dirty: Set[CollectionEnum] = set()

        # Remote sync
        self._queue: "queue.Queue[_Message]" = queue.Queue(maxsize=self.settings.max_queue_size)
        self._worker: Optional[threading.Thread] = None
        self._remote_state: Optional[BuildingState] = None
        self._last_synced: Dict[str, TableRows] = {}

        self._subscription: Optional[Subscription] = None

    # ------------------------------------------------------------------
    # Save status channel
    # ------------------------------------------------------------------

    @property
    def status(self) -> SaveStatusEnum:
        return self._status

    def subscribe_status(self, handler: StatusHandler) -> Callable[[], None]:
        """Register a status callback; returns a function that unregisters it."""
        with self._lock:
            self._status_handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._status_handlers:
                    self._status_handlers.remove(handler)

        return unsubscribe

    def _set_status(self, status: SaveStatusEnum, error: Optional[BaseException] = None) -> None:
        with self._lock:
            self._status = status
            if error is not None:
                self.last_error = error
            handlers = list(self._status_handlers)
        for handler in handlers:
            try:
                handler(status)
            except Exception as e:
                logger.error(f"Save status handler {handler!r} failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def hydrate_local(self) -> Optional[BuildingState]:
        """
        Read, migrate and validate the locally cached state.

        Returns ``None`` when there is no cache, nothing cached, or the cache
        is unreadable or corrupt (logged).
        """
        if self.cache is None:
            return None
        namespace = self.settings.namespace
        raw: Dict[CollectionEnum, Any] = {}
        try:
            for collection in CollectionEnum:
                raw[collection] = self.cache.get(cache_key(namespace, collection))
        except Exception as e:
            logger.error(f"Local cache unavailable; starting from defaults: {e}")
            return None
        if all(payload is None for payload in raw.values()):
            return None

        try:
            data, migrated = migrate_payloads(raw, self.settings.state_version)
            state = payloads_to_state(data)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            logger.error(f"Discarding unreadable local cache: {e}")
            return None

        if migrated:
            logger.info("Persisting migrated local cache payloads")
            self._write_local_now(state, set(CollectionEnum))
        return state

    def attach(self, engine: BuildingEngine) -> Subscription:
        """Start mirroring ``engine`` changes."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
        self._subscription = engine.subscribe(self._on_change)
        return self._subscription

    def load(self, engine: BuildingEngine) -> Optional[BuildingState]:
        """
        Hydrate ``engine`` from the local cache, then reconcile with the remote
        store in the background.

        Returns the locally hydrated state, if any.
        """
        state = self.hydrate_local()
        if state is not None:
            try:
                engine.restore(state, origin=ChangeOriginEnum.CACHE)
            except (KeyError, TypeError, AttributeError, ValueError) as e:
                logger.error(f"Discarding inconsistent local cache: {e}")
                state = None
        self.attach(engine)
        if self.remote is not None:
            self._ensure_worker()
            self._queue.put(_Message("reconcile", engine))
        return state

    # ------------------------------------------------------------------
    # Change handling
    # ------------------------------------------------------------------

    def _on_change(self, event: ConfigurationChanged) -> None:
        if event.origin == ChangeOriginEnum.CACHE:
            return
        if event.origin == ChangeOriginEnum.REMOTE:
            self._drop_pending_remote()
        self._schedule_local(event.state, event.collections)
        if event.origin == ChangeOriginEnum.LOCAL and self.remote is not None:
            self._enqueue_sync(event.state)

    def _drop_pending_remote(self) -> None:
        # Local snapshots published before a remote restore were overwritten by it.
        with self._lock:
            discarded, self._remote_state = self._remote_state, None
        if discarded is not None:
            logger.info(f"Remote data for project {self.project_id} replaced unsynced local edits")
            self._set_status(SaveStatusEnum.SAVED)

    def _schedule_local(self, state: BuildingState, collections: Iterable[CollectionEnum]) -> None:
        if self.cache is None:
            return
        delay = self.settings.debounce_seconds
        with self._lock:
            self._local_state = state
            self._dirty.update(collections)
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if delay > 0:
                self._timer = threading.Timer(delay, self._flush_local)
                self._timer.daemon = True
                self._timer.start()
        if delay <= 0:
            self._flush_local()

    def _flush_local(self) -> None:
        with self._lock:
            state, dirty = self._local_state, self._dirty
            self._local_state, self._dirty = None, set()
            self._timer = None
        if state is not None and dirty:
            self._write_local_now(state, dirty)

    def _write_local_now(self, state: BuildingState, collections: Set[CollectionEnum]) -> None:
        namespace = self.settings.namespace
        version = self.settings.state_version
        for collection, data in state_to_payloads(state, collections).items():
            try:
                self.cache.set(cache_key(namespace, collection), wrap(data, version))
            except Exception as e:
                logger.error(f"Failed to write {collection.value} to local cache: {e}")

    def _enqueue_sync(self, state: BuildingState) -> None:
        with self._lock:
            self._remote_state = state
        self._set_status(SaveStatusEnum.PENDING)
        self._ensure_worker()
        try:
            self._queue.put_nowait(_Message("sync"))
        except queue.Full:
            # A queued token will pick up the latest snapshot.
            logger.debug("Remote sync queue full; coalescing")

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(
                target=self._run, name=f"floorplate-sync-{self.project_id}", daemon=True
            )
            self._worker.start()

    def _run(self) -> None:
        while True:
            message = self._queue.get()
            try:
                if message.kind == "stop":
                    return
                if message.kind == "reconcile":
                    self._reconcile(message.engine)
                else:
                    self._sync_latest()
            except Exception as e:
                logger.error(f"Sync worker failed on {message.kind!r}: {e}", exc_info=True)
                self._set_status(SaveStatusEnum.ERROR, e)
            finally:
                self._queue.task_done()

    def _select_project(self) -> Dict[str, List[Dict[str, Any]]]:
        return {table: self.remote.select_by_project(table, self.project_id) for table in TABLES}

    def _reconcile(self, engine: BuildingEngine) -> None:
        try:
            remote_state = rows_to_state(self._select_project())
        except Exception as e:
            logger.error(f"Remote load failed for project {self.project_id}: {e}")
            self._set_status(SaveStatusEnum.ERROR, e)
            return

        if remote_state is None:
            logger.info(f"Remote project {self.project_id} is empty; seeding from local state")
            with self._lock:
                self._remote_state = engine.snapshot()
            self._set_status(SaveStatusEnum.PENDING)
            self._sync_latest()
            return

        with self._lock:
            self._last_synced = state_to_rows(self.project_id, remote_state)
        try:
            engine.restore(remote_state, origin=ChangeOriginEnum.REMOTE)
        except Exception as e:
            logger.error(f"Remote data for project {self.project_id} could not be applied: {e}")
            self._set_status(SaveStatusEnum.ERROR, e)
            return
        logger.debug(f"Reconciled project {self.project_id} from remote store")

    def _sync_latest(self) -> None:
        with self._lock:
            state, self._remote_state = self._remote_state, None
            previous = self._last_synced
        if state is None:
            return

        current = state_to_rows(self.project_id, state)
        changes = diff_rows(previous, current)
        try:
            for table, change in changes.items():
                for row in change["upserts"]:
                    self.remote.upsert(table, row)
                for row_id in change["deletes"]:
                    self.remote.delete(table, row_id)
        except Exception as e:
            logger.error(f"Remote sync failed for project {self.project_id}: {e}")
            self._set_status(SaveStatusEnum.ERROR, e)
            return

        with self._lock:
            self._last_synced = current
            more_pending = self._remote_state is not None
        if not more_pending:
            self._set_status(SaveStatusEnum.SAVED)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Write pending local changes now and wait for queued remote writes.

        Returns ``False`` if the remote queue did not drain within ``timeout``
        (``settings.remote_timeout_seconds`` by default).
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._flush_local()

        if self._worker is None or not self._worker.is_alive():
            return True
        timeout = self.settings.remote_timeout_seconds if timeout is None else timeout
        deadline = time.monotonic() + timeout
        while self._queue.unfinished_tasks:
            if time.monotonic() >= deadline:
                logger.warning("Timed out waiting for remote sync to finish")
                return False
            time.sleep(0.005)
        return True

    def close(self) -> None:
        """Flush, stop the worker and detach from the engine."""
        self.flush()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        worker = self._worker
        if worker is not None and worker.is_alive():
            self._queue.put(_Message("stop"))
            worker.join(self.settings.remote_timeout_seconds)
        self._worker = None

    def __enter__(self) -> "PersistenceSynchronizer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
