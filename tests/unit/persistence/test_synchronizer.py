# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the persistence synchronizer."""

import logging
import threading

import pytest

from floorplate.building import FloorTemplate
from floorplate.core.primitives import (
    ChangeOriginEnum,
    CollectionEnum,
    EngineSettings,
    PersistenceSettings,
    SaveStatusEnum,
)
from floorplate.engine import BuildingEngine, BuildingState
from floorplate.persistence import (
    DuckDBRemoteStore,
    MemoryCache,
    PersistenceSynchronizer,
    cache_key,
    state_to_rows,
)

NAMESPACE = "realEstateModel"


def key(collection):
    return cache_key(NAMESPACE, collection)


@pytest.fixture
def settings():
    return PersistenceSettings(debounce_seconds=0, remote_timeout_seconds=5)


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def store():
    store = DuckDBRemoteStore()
    yield store
    store.close()


class FlakyStore:
    """Remote store whose first ``failures`` writes raise."""

    def __init__(self, inner, failures=1):
        self.inner = inner
        self.failures = failures

    def select_by_project(self, table, project_id):
        return self.inner.select_by_project(table, project_id)

    def upsert(self, table, row):
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("remote unavailable")
        self.inner.upsert(table, row)

    def delete(self, table, row_id):
        self.inner.delete(table, row_id)


class GatedStore:
    """Remote store whose reads wait until ``gate`` is set."""

    def __init__(self, inner):
        self.inner = inner
        self.gate = threading.Event()

    def select_by_project(self, table, project_id):
        self.gate.wait(5)
        return self.inner.select_by_project(table, project_id)

    def upsert(self, table, row):
        self.inner.upsert(table, row)

    def delete(self, table, row_id):
        self.inner.delete(table, row_id)


def seed_remote(store, state, project_id="p1"):
    for table, rows in state_to_rows(project_id, state).items():
        for row in rows.values():
            store.upsert(table, row)


class BrokenCache:
    """Local cache that fails on every call."""

    def get(self, key):
        raise OSError("storage disabled")

    def set(self, key, value):
        raise OSError("storage full")

    def remove(self, key):
        raise OSError("storage disabled")


class TestLocalCache:
    """Tests for local cache writes and hydration."""

    def test_changed_collections_written(self, engine, cache, settings):
        """Test that a command writes only the collections it changed."""
        with PersistenceSynchronizer("p1", cache=cache, settings=settings) as sync:
            assert sync.load(engine) is None
            engine.add_template("Typical", 10_000)
            payload = cache.get(key(CollectionEnum.TEMPLATES))
            assert payload["stateVersion"] == 2
            assert payload["data"][0]["name"] == "Typical"
            assert cache.get(key(CollectionEnum.FLOORS)) is None

    def test_hydrate_restores_engine(self, engine, cache, settings):
        """Test that a second engine hydrates from the cache."""
        with PersistenceSynchronizer("p1", cache=cache, settings=settings) as sync:
            sync.load(engine)
            engine.add_template("Typical", 10_000)
            engine.add_floors(3)
            engine.update_project(name="Harbor Tower")

        restored = BuildingEngine(settings=engine.settings)
        with PersistenceSynchronizer("p1", cache=cache, settings=settings) as sync:
            state = sync.load(restored)
        assert state is not None
        assert restored.snapshot() == engine.snapshot()
        assert restored.metrics.total_above_ground_area == 30_000.0

    def test_debounced_writes(self, engine, cache):
        """Test that writes wait for the quiet period or a flush."""
        slow = PersistenceSettings(debounce_seconds=30)
        sync = PersistenceSynchronizer("p1", cache=cache, settings=slow)
        sync.load(engine)
        engine.add_template("Typical", 10_000)
        engine.add_floors(2)
        assert cache.keys() == []
        sync.flush()
        assert len(cache.get(key(CollectionEnum.FLOORS))["data"]) == 2
        assert cache.get(key(CollectionEnum.TEMPLATES)) is not None
        sync.close()

    def test_cache_origin_not_written_back(self, engine, cache, settings):
        """Test that hydration does not echo into the cache."""
        sync = PersistenceSynchronizer("p1", cache=cache, settings=settings)
        sync.attach(engine)
        other = BuildingEngine(settings=engine.settings)
        other.add_template("Typical", 10_000)
        engine.restore(other.snapshot(), origin=ChangeOriginEnum.CACHE)
        assert cache.keys() == []
        sync.close()

    def test_migrates_and_rewrites_v1_cache(self, engine, settings):
        """Test that old payloads are migrated and written back at once."""
        cache = MemoryCache(
            {
                key(CollectionEnum.TEMPLATES): [
                    {"id": "t1", "name": "Typical", "squareFootage": "12000"}
                ],
                key(CollectionEnum.FLOORS): [{"floorNumber": 1, "templateId": "t1"}],
            }
        )
        sync = PersistenceSynchronizer("p1", cache=cache, settings=settings)
        state = sync.hydrate_local()
        assert [t.gross_area for t in state.templates] == [12_000.0]
        assert cache.get(key(CollectionEnum.TEMPLATES))["stateVersion"] == 2
        assert cache.get(key(CollectionEnum.FLOORS))["data"][0]["floor_number"] == 1
        assert cache.get(key(CollectionEnum.COST_LINES)) == {"stateVersion": 2, "data": []}

    @pytest.mark.parametrize(
        "contents",
        [
            {
                key(CollectionEnum.FLOORS): {
                    "stateVersion": 2,
                    "data": [{"floor_number": "ground"}],
                }
            },
            {key(CollectionEnum.FLOORS): [{"label": "Lobby"}]},
            {key(CollectionEnum.TEMPLATES): ["Typical"]},
            {
                key(CollectionEnum.TEMPLATES): {
                    "stateVersion": 2,
                    "data": [
                        {"name": "Typical", "gross_area": 10_000, "creation_order": 0},
                        {"name": "typical", "gross_area": 8_000, "creation_order": 1},
                    ],
                }
            },
        ],
        ids=["bad-number", "v1-floor-without-number", "v1-non-record", "duplicate-names"],
    )
    def test_corrupt_cache_ignored(self, engine, settings, caplog, contents):
        """Test that unreadable cache data leaves the engine at defaults."""
        sync = PersistenceSynchronizer("p1", cache=MemoryCache(contents), settings=settings)
        with caplog.at_level(logging.ERROR):
            assert sync.load(engine) is None
        assert engine.floors == []
        assert engine.templates == []
        assert "Discarding" in caplog.text
        sync.close()

    def test_newer_cache_ignored(self, settings):
        """Test that payloads from a newer schema are not loaded."""
        cache = MemoryCache({key(CollectionEnum.FLOORS): {"stateVersion": 9, "data": []}})
        sync = PersistenceSynchronizer("p1", cache=cache, settings=settings)
        assert sync.hydrate_local() is None

    def test_broken_cache_tolerated(self, engine, settings, caplog):
        """Test that cache failures never break commands."""
        sync = PersistenceSynchronizer("p1", cache=BrokenCache(), settings=settings)
        with caplog.at_level(logging.ERROR):
            assert sync.load(engine) is None
            engine.add_template("Typical", 10_000)
        assert len(engine.templates) == 1
        assert "Local cache unavailable" in caplog.text
        assert "Failed to write floorTemplates" in caplog.text
        sync.close()


class TestRemoteSync:
    """Tests for the remote store path."""

    def test_empty_remote_seeded_from_local(self, seeded_engine, store, settings):
        """Test that a new remote project receives the local state."""
        statuses = []
        with PersistenceSynchronizer("p1", remote=store, settings=settings) as sync:
            sync.subscribe_status(statuses.append)
            sync.load(seeded_engine)
            assert sync.flush()
            assert sync.status == SaveStatusEnum.SAVED
        counts = store.row_counts("p1")
        assert counts["floors"] == 1
        assert counts["floor_plate_templates"] == 1
        assert counts["projects"] == 1
        assert statuses[-1] == SaveStatusEnum.SAVED

    def test_changes_synced_as_row_operations(self, seeded_engine, store, settings):
        """Test that inserts and deletes reach the remote store."""
        with PersistenceSynchronizer("p1", remote=store, settings=settings) as sync:
            sync.load(seeded_engine)
            seeded_engine.add_floors(2)
            sync.flush()
            assert store.row_counts("p1")["floors"] == 3
            seeded_engine.remove_floors([3])
            seeded_engine.update_floor(2, primary_use="retail")
            sync.flush()
        floors = {r["floor_number"]: r for r in store.select_by_project("floors", "p1")}
        assert set(floors) == {2, 1}
        assert floors[2]["primary_use"] == "retail"

    def test_remote_wins(self, seeded_engine, store, cache, settings):
        """Test that remote data replaces the local state when it arrives."""
        remote_engine = BuildingEngine(settings=EngineSettings(seed_default_template=False))
        remote_engine.add_template("Remote Plate", 8_000)
        remote_engine.add_floors(5)
        for table, rows in state_to_rows("p1", remote_engine.snapshot()).items():
            for row in rows.values():
                store.upsert(table, row)

        received = []
        seeded_engine.subscribe(received.append)
        with PersistenceSynchronizer("p1", cache=cache, remote=store, settings=settings) as sync:
            sync.load(seeded_engine)
            sync.flush()
        assert [t.name for t in seeded_engine.templates] == ["Remote Plate"]
        assert len(seeded_engine.floors) == 5
        assert seeded_engine.metrics.total_above_ground_area == 40_000.0
        assert received[-1].origin == ChangeOriginEnum.REMOTE
        assert len(cache.get(key(CollectionEnum.FLOORS))["data"]) == 5
        assert store.row_counts("p1")["floors"] == 5

    def test_remote_wins_over_edits_made_while_loading(self, engine, store, settings):
        """Test that edits made before remote data arrives are not pushed over it."""
        remote_engine = BuildingEngine(settings=engine.settings)
        remote_engine.add_template("Remote Plate", 8_000)
        remote_engine.add_floors(3)
        seed_remote(store, remote_engine.snapshot())

        gated = GatedStore(store)
        with PersistenceSynchronizer("p1", remote=gated, settings=settings) as sync:
            sync.load(engine)
            engine.add_template("Local Plate", 5_000)
            engine.add_floors(5)
            assert sync.status == SaveStatusEnum.PENDING
            gated.gate.set()
            assert sync.flush()
            assert sync.status == SaveStatusEnum.SAVED

        assert [f.floor_number for f in engine.floors] == [3, 2, 1]
        remote_floors = store.select_by_project("floors", "p1")
        assert sorted(r["floor_number"] for r in remote_floors) == [1, 2, 3]
        remote_templates = store.select_by_project("floor_plate_templates", "p1")
        assert [r["name"] for r in remote_templates] == ["Remote Plate"]

    def test_unusable_remote_data_reported(self, engine, store, settings, caplog):
        """Test that remote data the engine rejects is reported and the worker survives."""
        seed_remote(
            store,
            BuildingState(
                templates=[
                    FloorTemplate(name="Standard Floor", gross_area=10_000),
                    FloorTemplate(name="standard floor", gross_area=8_000, creation_order=1),
                ]
            ),
        )
        statuses = []
        with caplog.at_level(logging.ERROR):
            with PersistenceSynchronizer("p1", remote=store, settings=settings) as sync:
                sync.subscribe_status(statuses.append)
                sync.load(engine)
                assert sync.flush()
                assert sync.status == SaveStatusEnum.ERROR
                assert isinstance(sync.last_error, ValueError)
                assert engine.templates == []

                engine.add_floor()
                assert sync.flush()
                assert sync.status == SaveStatusEnum.SAVED
        assert "could not be applied" in caplog.text
        assert statuses[0] == SaveStatusEnum.ERROR
        assert store.row_counts("p1")["floors"] == 1
        assert store.row_counts("p1")["floor_plate_templates"] == 0

    def test_failure_reported_without_retry(self, seeded_engine, store, settings, caplog):
        """Test that a failed sync publishes an error and is not retried."""
        flaky = FlakyStore(store, failures=1)
        statuses = []
        sync = PersistenceSynchronizer("p1", remote=flaky, settings=settings)
        sync.subscribe_status(statuses.append)
        with caplog.at_level(logging.ERROR):
            sync.load(seeded_engine)
            sync.flush()
        assert sync.status == SaveStatusEnum.ERROR
        assert isinstance(sync.last_error, ConnectionError)
        assert SaveStatusEnum.PENDING in statuses
        assert "Remote sync failed" in caplog.text
        assert store.row_counts("p1")["floors"] == 0
        sync.close()

    def test_next_sync_covers_failed_changes(self, seeded_engine, store, settings):
        """Test that the baseline only advances on success."""
        flaky = FlakyStore(store, failures=1)
        with PersistenceSynchronizer("p1", remote=flaky, settings=settings) as sync:
            sync.load(seeded_engine)
            sync.flush()
            assert sync.status == SaveStatusEnum.ERROR
            seeded_engine.add_floor()
            sync.flush()
            assert sync.status == SaveStatusEnum.SAVED
        counts = store.row_counts("p1")
        assert counts["floors"] == 2
        assert counts["projects"] == 1
        assert counts["floor_plate_templates"] == 1

    def test_status_unsubscribe(self, seeded_engine, store, settings):
        """Test removing a status handler."""
        statuses = []
        with PersistenceSynchronizer("p1", remote=store, settings=settings) as sync:
            unsubscribe = sync.subscribe_status(statuses.append)
            unsubscribe()
            sync.load(seeded_engine)
            sync.flush()
        assert statuses == []

    def test_close_detaches(self, seeded_engine, store, settings):
        """Test that a closed synchronizer ignores later changes."""
        sync = PersistenceSynchronizer("p1", remote=store, settings=settings)
        sync.load(seeded_engine)
        sync.close()
        seeded_engine.add_floors(3)
        assert store.row_counts("p1")["floors"] == 1
