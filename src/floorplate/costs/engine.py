# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Cost allocation engine.

Owns the hard cost lines and derives each line's total from its calculation
method and the unit inventory. Totals are recomputed on every update of a
line whose method is not ``custom``, and for every such line when the
inventory changes (``recalculate``).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..core.primitives import CalculationMethodEnum, parse_optional_number
from ..program.inventory import UnitInventory
from .cost_line import CostLine
from .methods import CalculationMethod, build_method

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {
        "property_type",
        "cost_category",
        "calculation_method",
        "unit_type_id",
        "rate",
        "total",
        "notes",
    }
)

_CATEGORY_FALLBACK = {
    CalculationMethodEnum.AREA_BASED_UNIT_TYPE: CalculationMethodEnum.AREA_BASED_CATEGORY,
    CalculationMethodEnum.UNIT_BASED_UNIT_TYPE: CalculationMethodEnum.UNIT_BASED_CATEGORY,
}


class CostAllocationEngine:
    """Mutable collection of :class:`CostLine` records priced off an inventory."""

    def __init__(self, inventory: UnitInventory, lines: Iterable[CostLine] = ()):
        self._inventory = inventory
        self._lines: Dict[str, CostLine] = {}
        self.replace_all(lines)

    def replace_all(self, lines: Iterable[CostLine]) -> None:
        self._lines = {line.id: line for line in lines}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[CostLine]:
        return iter(list(self._lines.values()))

    def __len__(self) -> int:
        return len(self._lines)

    def get(self, line_id: str) -> Optional[CostLine]:
        return self._lines.get(line_id)

    def lines_for(self, property_type: str) -> List[CostLine]:
        return [line for line in self._lines.values() if line.property_type == property_type]

    def subtotal(self, property_type: str) -> float:
        """Σ total for the property type, category and unit-type lines alike."""
        return sum(line.total or 0.0 for line in self.lines_for(property_type))

    def grand_total(self) -> float:
        return sum(line.total or 0.0 for line in self._lines.values())

    def cost_per_gross_sf(self) -> float:
        """Grand total over the inventory's total area; 0 without area."""
        area = self._inventory.total_area()
        return self.grand_total() / area if area > 0 else 0.0

    def shell_vs_ti(self) -> Dict[str, float]:
        """
        Share of the grand total by cost category.

        Returns:
            Percentages keyed ``shell``, ``ti`` and ``other``; all 0 when the
            grand total is 0
        """
        grand_total = self.grand_total()
        buckets = {"shell": 0.0, "ti": 0.0, "other": 0.0}
        if grand_total == 0:
            return buckets
        for line in self._lines.values():
            key = "shell" if line.is_shell else "ti" if line.is_ti else "other"
            buckets[key] += line.total or 0.0
        return {key: value / grand_total * 100.0 for key, value in buckets.items()}

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_cost_line(
        self,
        property_type: str,
        cost_category: str,
        unit_type_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CostLine:
        """
        Create a line with no rate and no total.

        The method is ``area_based_unit_type`` when a unit type of the same
        property type is given, else ``area_based_category``.
        """
        kind = CalculationMethodEnum.AREA_BASED_CATEGORY
        if unit_type_id is not None:
            unit = self._inventory.get(unit_type_id)
            if unit is not None and unit.category == property_type:
                kind = CalculationMethodEnum.AREA_BASED_UNIT_TYPE
            else:
                logger.warning(
                    f"Unit type {unit_type_id} is not part of {property_type!r}; "
                    "adding a category-level line"
                )
                unit_type_id = None
        line = CostLine(
            property_type=property_type,
            cost_category=cost_category,
            method=build_method(kind, unit_type_id),
            notes=notes,
        )
        self._lines[line.id] = line
        logger.debug(f"Added cost line {cost_category!r} for {property_type!r}")
        return line

    def update_cost_line(self, line_id: str, **changes: Any) -> Optional[CostLine]:
        """
        Apply a partial update and re-derive the total.

        Entering a unit-type method without a valid unit type assigns the
        property type's first unit type; leaving one clears it. Under
        ``custom`` the caller's ``total`` is kept as entered.

        Raises:
            ValueError: If a unit-type method is chosen for a property type
                with no unit types, or a field is malformed
        """
        line = self._lines.get(line_id)
        if line is None:
            logger.debug(f"Ignoring update of unknown cost line {line_id}")
            return None
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update cost line fields: {sorted(unknown)}")

        property_type = changes.get("property_type", line.property_type)
        kind = CalculationMethodEnum(
            changes.get("calculation_method", line.calculation_method)
        )
        rate = (
            parse_optional_number(changes["rate"], "rate")
            if "rate" in changes
            else line.rate
        )
        if kind.is_unit_type_scoped:
            requested = changes.get("unit_type_id", line.unit_type_id)
            unit_type_id = self._resolve_unit_type(property_type, requested)
        else:
            unit_type_id = None
        method = build_method(kind, unit_type_id)

        if method.derives_total:
            if "total" in changes:
                logger.debug(f"Ignoring entered total for derived line {line_id}")
            total = method.compute(rate, property_type, self._inventory)
        else:
            total = changes.get("total", line.total)

        updated = line.with_updates(
            property_type=property_type,
            cost_category=changes.get("cost_category", line.cost_category),
            method=method,
            rate=rate,
            total=total,
            notes=changes.get("notes", line.notes),
        )
        self._lines[line_id] = updated
        return updated

    def delete_cost_line(self, line_id: str) -> Optional[CostLine]:
        return self._lines.pop(line_id, None)

    def recalculate(self) -> List[CostLine]:
        """
        Re-derive every total after the inventory changed.

        Lines pointing at a unit type that no longer belongs to their
        property type move to the property type's first unit type, or to the
        matching category method when none is left.
        """
        changed = []
        for line in list(self._lines.values()):
            method = self._repair_method(line)
            total = (
                method.compute(line.rate, line.property_type, self._inventory)
                if method.derives_total
                else line.total
            )
            if method != line.method or total != line.total:
                updated = line.with_updates(method=method, total=total)
                self._lines[line.id] = updated
                changed.append(updated)
        return changed

    def seed_defaults(
        self, property_types: Iterable[str], categories: Iterable[str]
    ) -> List[CostLine]:
        """Add one line per property type and category when there are none."""
        if self._lines:
            return []
        categories = list(categories)
        return [
            self.add_cost_line(property_type, category)
            for property_type in property_types
            for category in categories
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_unit_type(self, property_type: str, requested: Optional[str]) -> str:
        unit = self._inventory.get(requested)
        if unit is not None and unit.category == property_type:
            return unit.id
        default = self._inventory.default_unit_type(property_type)
        if default is None:
            raise ValueError(f"No unit types are defined for {property_type!r}")
        if requested is not None:
            logger.warning(
                f"Unit type {requested} is not part of {property_type!r}; "
                f"using {default.name!r}"
            )
        return default.id

    def _repair_method(self, line: CostLine) -> CalculationMethod:
        if not line.calculation_method.is_unit_type_scoped:
            return line.method
        unit = self._inventory.get(line.unit_type_id)
        if unit is not None and unit.category == line.property_type:
            return line.method
        default = self._inventory.default_unit_type(line.property_type)
        if default is not None:
            return build_method(line.calculation_method, default.id)
        logger.info(
            f"Cost line {line.id} lost its unit type; falling back to "
            f"{_CATEGORY_FALLBACK[line.calculation_method].value}"
        )
        return build_method(_CATEGORY_FALLBACK[line.calculation_method])
