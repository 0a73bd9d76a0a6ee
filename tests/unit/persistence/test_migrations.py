# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for cached payload migrations."""

import pytest

from floorplate.core.primitives import CalculationMethodEnum, CollectionEnum
from floorplate.persistence import (
    migrate_payload,
    migrate_payloads,
    payloads_to_state,
    state_to_payloads,
    unwrap,
    wrap,
)


@pytest.fixture
def v1_payloads():
    """Bare payloads in the browser application's original shape."""
    return {
        CollectionEnum.PROJECT: {
            "name": "Harbor Tower",
            "farAllowance": "2",
            "totalLandArea": "20,000",
        },
        CollectionEnum.TEMPLATES: [
            {"id": "t1", "name": "Typical", "squareFootage": "12000", "efficiencyFactor": 0.85}
        ],
        CollectionEnum.FLOORS: [
            {
                "floorNumber": 2,
                "templateId": "t1",
                "customSquareFootage": "",
                "floorToFloorHeight": "14",
                "efficiencyFactor": 0.8,
            },
            {"floorNumber": "1", "templateId": "t1", "label": "Lobby"},
            {"floorNumber": -1, "isUnderground": True, "templateId": "t1"},
        ],
        CollectionEnum.UNIT_TYPES: [
            {"id": "u1", "name": "Studio", "category": "apartments", "area": "500", "units": "10"}
        ],
        CollectionEnum.UNIT_ALLOCATIONS: [
            {"id": "a1", "floorNumber": 2, "unitTypeId": "u1", "quantity": "6"},
            {"id": "a2", "floorNumber": 9, "unitTypeId": "u1", "quantity": 3},
            {"id": "a3", "floorNumber": 1, "unitTypeId": "u1", "quantity": 0},
        ],
        CollectionEnum.COST_LINES: [
            {
                "id": "c1",
                "propertyType": "apartments",
                "costCategory": "shell",
                "calculationMethod": "area_based",
                "rate": "10",
                "total": "50000",
            },
            {
                "id": "c2",
                "propertyType": "apartments",
                "costCategory": "ti",
                "calculationMethod": "unit_based",
                "unitTypeId": "u1",
                "rate": "1000",
            },
        ],
        CollectionEnum.NON_RENTABLE_TYPES: [
            {"id": "n1", "name": "Lobby", "squareFootage": "1,500", "allocationMethod": "uniform"}
        ],
    }


class TestWrapping:
    """Tests for the versioned envelope."""

    def test_wrap_unwrap(self):
        """Test that wrapped payloads carry their version."""
        assert wrap([1], 2) == {"stateVersion": 2, "data": [1]}
        assert unwrap(wrap([1], 2)) == (2, [1])

    def test_bare_payload_is_version_one(self):
        """Test that unwrapped payloads are treated as version 1."""
        assert unwrap([{"floorNumber": 1}]) == (1, [{"floorNumber": 1}])
        assert unwrap({"name": "x"}) == (1, {"name": "x"})


class TestVersionOneMigration:
    """Tests for the version 1 → 2 migration."""

    def test_migrated_state(self, v1_payloads):
        """Test that migrated payloads build a valid state."""
        data, migrated = migrate_payloads(v1_payloads)
        assert migrated is True
        state = payloads_to_state(data)

        assert state.project.name == "Harbor Tower"
        assert state.parameters.far_allowance == 2.0
        assert state.parameters.total_land_area == 20_000.0
        assert [t.gross_area for t in state.templates] == [12_000.0]

        floors = {f.floor_number: f for f in state.floors}
        assert set(floors) == {2, 1, -1}
        assert floors[2].custom_area is None
        assert floors[2].floor_to_floor_height == 14.0
        assert floors[2].label == "Floor 2"
        assert floors[1].label == "Lobby"
        assert floors[-1].is_underground
        assert floors[-1].primary_use == "parking"
        assert len({f.id for f in state.floors}) == 3

        assert state.unit_types[0].units == 10
        assert state.non_rentable_types[0].square_footage == 1_500.0

    def test_deprecated_fields_removed(self, v1_payloads):
        """Test that efficiency factors do not survive migration."""
        data, _ = migrate_payloads(v1_payloads)
        assert "efficiencyFactor" not in data[CollectionEnum.TEMPLATES][0]
        assert all("efficiencyFactor" not in f for f in data[CollectionEnum.FLOORS])

    def test_allocations_keyed_by_floor_id(self, v1_payloads):
        """Test that allocations map to migrated floor ids."""
        data, _ = migrate_payloads(v1_payloads)
        state = payloads_to_state(data)
        (allocation,) = state.unit_allocations
        floor_2 = next(f for f in state.floors if f.floor_number == 2)
        assert allocation.floor_id == floor_2.id
        assert allocation.quantity == 6

    def test_legacy_cost_methods(self, v1_payloads):
        """Test that legacy methods split by whether a unit type is set."""
        data, _ = migrate_payloads(v1_payloads)
        lines = {c.id: c for c in payloads_to_state(data).cost_lines}
        assert lines["c1"].calculation_method == CalculationMethodEnum.AREA_BASED_CATEGORY
        assert lines["c1"].total == 50_000.0
        assert lines["c2"].calculation_method == CalculationMethodEnum.UNIT_BASED_UNIT_TYPE
        assert lines["c2"].unit_type_id == "u1"

    def test_idempotent(self, v1_payloads):
        """Test that migrating already-migrated data is a no-op."""
        data, _ = migrate_payloads(v1_payloads)
        rewrapped = {collection: wrap(value) for collection, value in data.items()}
        again, migrated = migrate_payloads(rewrapped)
        assert migrated is False
        assert again == data

    def test_single_collection(self):
        """Test migrating one collection on its own."""
        data, migrated = migrate_payload(
            CollectionEnum.TEMPLATES, [{"name": "Podium", "grossArea": 20_000}]
        )
        assert migrated is True
        assert data[0]["gross_area"] == 20_000
        assert data[0]["id"]


class TestMigrationErrors:
    """Tests for payloads that cannot be migrated."""

    def test_newer_version_rejected(self):
        """Test payloads written by a newer schema."""
        with pytest.raises(ValueError, match="newer version"):
            migrate_payloads({CollectionEnum.FLOORS: wrap([], 3)})

    def test_missing_migration_path(self):
        """Test a version with no registered step."""
        with pytest.raises(ValueError, match="No migration from state version 2"):
            migrate_payloads({CollectionEnum.FLOORS: wrap([], 2)}, current_version=3)


class TestPayloads:
    """Tests for splitting a state into collection payloads."""

    def test_round_trip(self, make_stacked_engine):
        """Test that payloads rebuild the same state."""
        engine = make_stacked_engine(above=2, below=1)
        engine.add_unit_type("apartments", "Studio", 500, 10)
        engine.seed_default_costs()
        state = engine.snapshot()
        payloads = state_to_payloads(state)
        assert set(payloads) == set(CollectionEnum)
        assert set(payloads[CollectionEnum.PROJECT]) == {"project", "parameters"}
        assert payloads_to_state(payloads) == state

    def test_subset(self, make_stacked_engine):
        """Test selecting collections."""
        state = make_stacked_engine(above=1).snapshot()
        payloads = state_to_payloads(state, [CollectionEnum.FLOORS])
        assert list(payloads) == [CollectionEnum.FLOORS]
        assert payloads[CollectionEnum.FLOORS][0]["floor_number"] == 1

    def test_missing_collections_default(self):
        """Test that absent collections fall back to defaults."""
        state = payloads_to_state({CollectionEnum.TEMPLATES: []})
        assert state.floors == []
        assert state.project.name == "Untitled Project"
