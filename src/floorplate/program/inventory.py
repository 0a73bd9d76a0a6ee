# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit inventory: unit types grouped by property type, their placement on
floors, and non-rentable space.

The per-category aggregates (``property_areas`` and ``property_units``) are
what the cost allocation engine prices against.
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
)

from ..core.primitives import NonRentableAllocationEnum, parse_count
from .allocation import NonRentableType, UnitAllocation
from .unit_type import UnitType

logger = logging.getLogger(__name__)

_UNIT_TYPE_FIELDS = frozenset({"name", "category", "area", "units", "width", "length"})
_NON_RENTABLE_FIELDS = frozenset(
    {"name", "square_footage", "allocation_method", "percentage", "floor_constraints"}
)


class UnitInventory:
    """Mutable collections of unit types, allocations and non-rentable space."""

    def __init__(
        self,
        unit_types: Iterable[UnitType] = (),
        allocations: Iterable[UnitAllocation] = (),
        non_rentable_types: Iterable[NonRentableType] = (),
    ):
        self._unit_types: Dict[str, UnitType] = {}
        self._allocations: Dict[str, UnitAllocation] = {}
        self._non_rentable: Dict[str, NonRentableType] = {}
        self.replace_all(unit_types, allocations, non_rentable_types)

    def replace_all(
        self,
        unit_types: Iterable[UnitType],
        allocations: Iterable[UnitAllocation] = (),
        non_rentable_types: Iterable[NonRentableType] = (),
    ) -> None:
        """Reset every collection (used on restore)."""
        self._unit_types = {u.id: u for u in unit_types}
        self._allocations = {
            a.id: a for a in allocations if a.unit_type_id in self._unit_types
        }
        self._non_rentable = {n.id: n for n in non_rentable_types}

    # ------------------------------------------------------------------
    # Unit types
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[UnitType]:
        return iter(list(self._unit_types.values()))

    def __len__(self) -> int:
        return len(self._unit_types)

    def get(self, unit_type_id: Optional[str]) -> Optional[UnitType]:
        if unit_type_id is None:
            return None
        return self._unit_types.get(unit_type_id)

    def categories(self) -> List[str]:
        """Categories in order of first appearance."""
        return list(dict.fromkeys(u.category for u in self._unit_types.values()))

    def unit_types_for(self, category: str) -> List[UnitType]:
        return [u for u in self._unit_types.values() if u.category == category]

    def default_unit_type(self, category: str) -> Optional[UnitType]:
        """First unit type of ``category`` in insertion order."""
        return next(iter(self.unit_types_for(category)), None)

    def property_areas(self) -> Dict[str, float]:
        """Σ area × units per category."""
        areas: Dict[str, float] = {}
        for unit in self._unit_types.values():
            areas[unit.category] = areas.get(unit.category, 0.0) + unit.total_area
        return areas

    def property_units(self) -> Dict[str, int]:
        """Σ units per category."""
        units: Dict[str, int] = {}
        for unit in self._unit_types.values():
            units[unit.category] = units.get(unit.category, 0) + unit.units
        return units

    def total_area(self) -> float:
        return sum(self.property_areas().values())

    def total_units(self) -> int:
        return sum(self.property_units().values())

    def add_unit_type(
        self,
        category: str,
        name: str,
        area: Any = None,
        units: Any = None,
        width: Any = None,
        length: Any = None,
    ) -> UnitType:
        unit = UnitType(
            category=category,
            name=name,
            area=area,
            units=units,
            width=width,
            length=length,
        )
        self._unit_types[unit.id] = unit
        logger.debug(f"Added unit type {unit.name!r} to {unit.category!r}")
        return unit

    def update_unit_type(self, unit_type_id: str, **changes: Any) -> Optional[UnitType]:
        """Partial update; width/length edits recompute the area like templates."""
        current = self._unit_types.get(unit_type_id)
        if current is None:
            logger.debug(f"Ignoring update of unknown unit type {unit_type_id}")
            return None
        unknown = set(changes) - _UNIT_TYPE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update unit type fields: {sorted(unknown)}")

        data = current.model_dump()
        data.update(changes)
        if ("width" in changes or "length" in changes) and "area" not in changes:
            if data.get("width") not in (None, "") and data.get("length") not in (None, ""):
                data["area"] = None
        updated = UnitType.model_validate(data)
        self._unit_types[unit_type_id] = updated
        return updated

    def remove_unit_type(self, unit_type_id: str) -> Optional[UnitType]:
        """Remove a unit type together with its floor allocations."""
        removed = self._unit_types.pop(unit_type_id, None)
        if removed is None:
            logger.debug(f"Ignoring removal of unknown unit type {unit_type_id}")
            return None
        self._allocations = {
            k: a for k, a in self._allocations.items() if a.unit_type_id != unit_type_id
        }
        return removed

    def rename_category(self, old: str, new: str) -> int:
        """Move every unit type of ``old`` into ``new``; returns the count."""
        new = (new or "").strip()
        if not new:
            raise ValueError("Category is required")
        renamed = 0
        for unit in self.unit_types_for(old):
            self._unit_types[unit.id] = unit.with_updates(category=new)
            renamed += 1
        return renamed

    def remove_category(self, category: str) -> List[UnitType]:
        removed = self.unit_types_for(category)
        for unit in removed:
            self.remove_unit_type(unit.id)
        return removed

    # ------------------------------------------------------------------
    # Floor allocations
    # ------------------------------------------------------------------

    @property
    def allocations(self) -> List[UnitAllocation]:
        return list(self._allocations.values())

    def _find_allocation(self, floor_id: str, unit_type_id: str) -> Optional[UnitAllocation]:
        for allocation in self._allocations.values():
            if allocation.floor_id == floor_id and allocation.unit_type_id == unit_type_id:
                return allocation
        return None

    def allocation(self, floor_id: str, unit_type_id: str) -> int:
        found = self._find_allocation(floor_id, unit_type_id)
        return found.quantity if found else 0

    def allocations_for_floor(self, floor_id: str) -> List[UnitAllocation]:
        return [a for a in self._allocations.values() if a.floor_id == floor_id]

    def set_allocation(
        self, floor_id: str, unit_type_id: str, quantity: Any
    ) -> Optional[UnitAllocation]:
        """
        Place ``quantity`` units of a unit type on a floor.

        A quantity of zero removes the allocation. Unknown unit types are
        ignored.
        """
        if unit_type_id not in self._unit_types:
            logger.warning(f"Ignoring allocation of unknown unit type {unit_type_id}")
            return None
        quantity = parse_count(quantity)
        if quantity < 0:
            raise ValueError("Allocation quantity cannot be negative")

        existing = self._find_allocation(floor_id, unit_type_id)
        if quantity == 0:
            if existing is not None:
                del self._allocations[existing.id]
            return None
        if existing is not None:
            allocation = existing.with_updates(quantity=quantity)
        else:
            allocation = UnitAllocation(
                floor_id=floor_id, unit_type_id=unit_type_id, quantity=quantity
            )
        self._allocations[allocation.id] = allocation
        return allocation

    def copy_allocations(
        self, source_floor_id: str, target_floor_ids: Iterable[str]
    ) -> List[UnitAllocation]:
        """Replace each target floor's allocations with the source floor's."""
        source = self.allocations_for_floor(source_floor_id)
        targets = set(target_floor_ids) - {source_floor_id}
        if not targets:
            return []
        self.remove_allocations_for_floors(targets)
        created = []
        for floor_id in sorted(targets):
            for allocation in source:
                copied = UnitAllocation(
                    floor_id=floor_id,
                    unit_type_id=allocation.unit_type_id,
                    quantity=allocation.quantity,
                )
                self._allocations[copied.id] = copied
                created.append(copied)
        return created

    def remove_allocations_for_floors(self, floor_ids: Iterable[str]) -> int:
        floor_ids = set(floor_ids)
        before = len(self._allocations)
        self._allocations = {
            k: a for k, a in self._allocations.items() if a.floor_id not in floor_ids
        }
        return before - len(self._allocations)

    def allocated_area(self, floor_id: str) -> float:
        """Σ quantity × unit area for the floor's allocations."""
        total = 0.0
        for allocation in self.allocations_for_floor(floor_id):
            unit = self._unit_types.get(allocation.unit_type_id)
            if unit is not None:
                total += allocation.quantity * unit.area
        return total

    def allocated_units(self, floor_id: str) -> int:
        return sum(a.quantity for a in self.allocations_for_floor(floor_id))

    # ------------------------------------------------------------------
    # Non-rentable space
    # ------------------------------------------------------------------

    @property
    def non_rentable_types(self) -> List[NonRentableType]:
        return list(self._non_rentable.values())

    def add_non_rentable(
        self,
        name: str,
        square_footage: Any = None,
        allocation_method: Any = NonRentableAllocationEnum.UNIFORM,
        percentage: Any = None,
        floor_constraints: Iterable[int] = (),
    ) -> NonRentableType:
        space = NonRentableType(
            name=name,
            square_footage=square_footage,
            allocation_method=allocation_method,
            percentage=percentage,
            floor_constraints=list(floor_constraints),
        )
        self._non_rentable[space.id] = space
        return space

    def update_non_rentable(
        self, non_rentable_id: str, **changes: Any
    ) -> Optional[NonRentableType]:
        current = self._non_rentable.get(non_rentable_id)
        if current is None:
            logger.debug(f"Ignoring update of unknown non-rentable type {non_rentable_id}")
            return None
        unknown = set(changes) - _NON_RENTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update non-rentable fields: {sorted(unknown)}")
        updated = current.with_updates(**changes)
        self._non_rentable[non_rentable_id] = updated
        return updated

    def remove_non_rentable(self, non_rentable_id: str) -> Optional[NonRentableType]:
        return self._non_rentable.pop(non_rentable_id, None)

    def non_rentable_area_by_floor(
        self,
        floor_numbers: Iterable[int],
        area_of: Callable[[int], float],
    ) -> Dict[int, float]:
        """
        Spread every non-rentable type over the given floors.

        Args:
            floor_numbers: Floors present in the building
            area_of: Gross area of a floor, by floor number

        Returns:
            Non-rentable area per floor number
        """
        numbers = list(floor_numbers)
        result = {n: 0.0 for n in numbers}
        for space in self._non_rentable.values():
            method = space.allocation_method
            if method == NonRentableAllocationEnum.PERCENTAGE:
                share = (space.percentage or 0.0) / 100.0
                for n in numbers:
                    result[n] += area_of(n) * share
                continue
            if method == NonRentableAllocationEnum.SPECIFIC:
                targets = [n for n in space.floor_constraints if n in result]
            else:
                targets = numbers
            if not targets:
                continue
            per_floor = space.square_footage / len(targets)
            for n in targets:
                result[n] += per_floor
        return result
