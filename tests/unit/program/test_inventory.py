# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for unit types, allocations and non-rentable space."""

import logging

import pytest
from pydantic import ValidationError

from floorplate.core.primitives import NonRentableAllocationEnum
from floorplate.program import NonRentableType, UnitAllocation, UnitInventory, UnitType


class TestUnitType:
    """Tests for unit type validation."""

    def test_area_from_dimensions(self):
        """Test that width × length fills a blank area."""
        unit = UnitType(category="apartments", name="Loft", width=20, length=30, units="12")
        assert unit.area == 600.0
        assert unit.units == 12
        assert unit.total_area == 7_200.0

    def test_lenient_area_and_count(self):
        """Test that malformed area and units read as zero."""
        unit = UnitType(category="retail", name="Kiosk", area="tbd", units="")
        assert unit.area == 0.0
        assert unit.units == 0

    def test_required_names(self):
        """Test that name and category are required."""
        with pytest.raises(ValidationError, match="Category is required"):
            UnitType(category=" ", name="Studio")
        with pytest.raises(ValidationError, match="Unit type name is required"):
            UnitType(category="apartments", name="")


class TestNonRentableType:
    """Tests for non-rentable space validation."""

    def test_percentage_required_for_percentage_method(self):
        """Test the conditional requirement."""
        with pytest.raises(ValidationError, match="percentage is required"):
            NonRentableType(name="Circulation", allocation_method="percentage")
        space = NonRentableType(name="Circulation", allocation_method="percentage", percentage="8")
        assert space.percentage == 8.0

    def test_floor_constraints_normalized(self):
        """Test that constraints are unique and highest first."""
        space = NonRentableType(name="Lobby", floor_constraints=[1, 3, 3, -1])
        assert space.floor_constraints == [3, 1, -1]

    def test_lenient_square_footage(self):
        """Test that square footage is read leniently."""
        assert NonRentableType(name="MEP", square_footage="1,500").square_footage == 1_500.0
        assert NonRentableType(name="MEP", square_footage="?").square_footage == 0.0


class TestUnitTypeCollection:
    """Tests for unit type commands and category aggregates."""

    def test_property_aggregates(self, inventory):
        """Test Σ area × units and Σ units per category."""
        assert inventory.property_areas() == {"apartments": 20_000.0, "retail": 4_000.0}
        assert inventory.property_units() == {"apartments": 30, "retail": 2}
        assert inventory.total_area() == 24_000.0
        assert inventory.total_units() == 32

    def test_categories_and_defaults(self, inventory):
        """Test category order and the default unit type."""
        assert inventory.categories() == ["apartments", "retail"]
        assert inventory.default_unit_type("apartments").name == "Studio"
        assert inventory.default_unit_type("common") is None
        assert [u.name for u in inventory.unit_types_for("apartments")] == ["Studio", "One Bed"]

    def test_update_recomputes_area(self, inventory):
        """Test that a dimension edit recomputes the unit area."""
        studio = inventory.default_unit_type("apartments")
        updated = inventory.update_unit_type(studio.id, width=10, length=60)
        assert updated.area == 600.0
        assert inventory.property_areas()["apartments"] == 21_000.0

    def test_update_rejects_unknown_fields(self, inventory):
        """Test that only editable fields can be updated."""
        studio = inventory.default_unit_type("apartments")
        with pytest.raises(ValueError, match="Cannot update unit type fields"):
            inventory.update_unit_type(studio.id, id="other")
        assert inventory.update_unit_type("missing", name="X") is None

    def test_remove_drops_allocations(self, inventory):
        """Test that removing a unit type removes its placements."""
        studio = inventory.default_unit_type("apartments")
        inventory.set_allocation("floor-1", studio.id, 4)
        assert inventory.remove_unit_type(studio.id) == studio
        assert inventory.allocations == []
        assert inventory.remove_unit_type(studio.id) is None

    def test_rename_category(self, inventory):
        """Test moving every unit type to a new category."""
        assert inventory.rename_category("apartments", "residential") == 2
        assert inventory.categories() == ["residential", "retail"]
        with pytest.raises(ValueError, match="Category is required"):
            inventory.rename_category("retail", " ")

    def test_remove_category(self, inventory):
        """Test removing a whole category."""
        removed = inventory.remove_category("apartments")
        assert {u.name for u in removed} == {"Studio", "One Bed"}
        assert inventory.categories() == ["retail"]


class TestAllocations:
    """Tests for placing units on floors."""

    def test_set_and_update(self, inventory):
        """Test that updating keeps the allocation record."""
        studio = inventory.default_unit_type("apartments")
        first = inventory.set_allocation("f1", studio.id, "6")
        second = inventory.set_allocation("f1", studio.id, 9)
        assert first.id == second.id
        assert inventory.allocation("f1", studio.id) == 9
        assert len(inventory.allocations) == 1

    def test_zero_clears(self, inventory):
        """Test that a quantity of zero removes the allocation."""
        studio = inventory.default_unit_type("apartments")
        inventory.set_allocation("f1", studio.id, 6)
        assert inventory.set_allocation("f1", studio.id, 0) is None
        assert inventory.allocation("f1", studio.id) == 0
        assert inventory.allocations == []

    def test_negative_rejected(self, inventory):
        """Test that negative quantities are an error."""
        studio = inventory.default_unit_type("apartments")
        with pytest.raises(ValueError, match="cannot be negative"):
            inventory.set_allocation("f1", studio.id, -2)

    def test_unknown_unit_type_ignored(self, inventory, caplog):
        """Test that allocations of unknown unit types are dropped with a warning."""
        with caplog.at_level(logging.WARNING):
            assert inventory.set_allocation("f1", "missing", 3) is None
        assert "unknown unit type" in caplog.text
        assert inventory.allocations == []

    def test_allocated_area_and_units(self, inventory):
        """Test per-floor allocation totals."""
        studio, one_bed = inventory.unit_types_for("apartments")
        inventory.set_allocation("f1", studio.id, 4)
        inventory.set_allocation("f1", one_bed.id, 2)
        assert inventory.allocated_area("f1") == 3_500.0
        assert inventory.allocated_units("f1") == 6
        assert inventory.allocated_area("f2") == 0.0

    def test_copy_replaces_targets(self, inventory):
        """Test that copying replaces each target floor's mix."""
        studio, one_bed = inventory.unit_types_for("apartments")
        inventory.set_allocation("f1", studio.id, 4)
        inventory.set_allocation("f2", one_bed.id, 7)
        created = inventory.copy_allocations("f1", ["f2", "f3", "f1"])
        assert len(created) == 2
        assert inventory.allocation("f2", studio.id) == 4
        assert inventory.allocation("f2", one_bed.id) == 0
        assert inventory.allocation("f3", studio.id) == 4

    def test_remove_for_floors(self, inventory):
        """Test clearing allocations of removed floors."""
        studio = inventory.default_unit_type("apartments")
        inventory.set_allocation("f1", studio.id, 4)
        inventory.set_allocation("f2", studio.id, 4)
        assert inventory.remove_allocations_for_floors(["f1"]) == 1
        assert [a.floor_id for a in inventory.allocations] == ["f2"]

    def test_restore_drops_orphans(self):
        """Test that allocations of missing unit types are not restored."""
        unit = UnitType(category="apartments", name="Studio", area=500, units=1)
        kept = UnitAllocation(floor_id="f1", unit_type_id=unit.id, quantity=1)
        orphan = UnitAllocation(floor_id="f1", unit_type_id="gone", quantity=1)
        inventory = UnitInventory([unit], [kept, orphan])
        assert inventory.allocations == [kept]


class TestNonRentableSpace:
    """Tests for spreading non-rentable space over floors."""

    def test_area_by_floor(self, inventory):
        """Test uniform, specific and percentage spreading together."""
        inventory.add_non_rentable("Lobby", 1_000)
        inventory.add_non_rentable(
            "Loading", 800, NonRentableAllocationEnum.SPECIFIC, floor_constraints=[2, 9]
        )
        inventory.add_non_rentable("Circulation", allocation_method="percentage", percentage=10)
        areas = inventory.non_rentable_area_by_floor([2, 1], lambda n: 10_000.0)
        assert areas == {2: pytest.approx(2_300.0), 1: pytest.approx(1_500.0)}

    def test_no_matching_constraints(self, inventory):
        """Test that specific spaces on absent floors allocate nothing."""
        inventory.add_non_rentable("Roof", 500, "specific", floor_constraints=[30])
        assert inventory.non_rentable_area_by_floor([1], lambda n: 1.0) == {1: 0.0}

    def test_update_and_remove(self, inventory):
        """Test editing and removing non-rentable types."""
        space = inventory.add_non_rentable("Lobby", 1_000)
        updated = inventory.update_non_rentable(space.id, square_footage="1,200")
        assert updated.square_footage == 1_200.0
        with pytest.raises(ValueError, match="Cannot update non-rentable fields"):
            inventory.update_non_rentable(space.id, id="x")
        assert inventory.remove_non_rentable(space.id) == updated
        assert inventory.non_rentable_types == []
