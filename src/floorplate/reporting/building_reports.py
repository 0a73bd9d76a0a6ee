# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Dict, List

import pandas as pd

from .base import BaseReport


class FloorStackReport(BaseReport):
    """One row per floor, highest first, with area and allocation figures."""

    columns = [
        "floor_number",
        "label",
        "floor_type",
        "template",
        "area",
        "allocated_area",
        "allocated_units",
        "non_rentable_area",
        "primary_use",
    ]

    def _records(self) -> List[Dict]:
        engine = self._engine
        summary = {u.floor_id: u for u in engine.summary().floor_utilization}
        non_rentable = engine.non_rentable_area_by_floor()
        records = []
        for floor in engine.floors:
            template = engine.template(floor.template_id) if floor.template_id else None
            utilization = summary.get(floor.id)
            records.append(
                {
                    "floor_number": floor.floor_number,
                    "label": floor.label,
                    "floor_type": floor.floor_type.value,
                    "template": template.name if template else None,
                    "area": engine.floor_area(floor.floor_number),
                    "allocated_area": utilization.allocated_area if utilization else 0.0,
                    "allocated_units": sum(
                        a.quantity for a in engine.unit_allocations if a.floor_id == floor.id
                    ),
                    "non_rentable_area": non_rentable.get(floor.floor_number, 0.0),
                    "primary_use": floor.primary_use,
                }
            )
        return records


class CostBreakdownReport(BaseReport):
    """One row per cost line, grouped by property type."""

    columns = [
        "property_type",
        "cost_category",
        "calculation_method",
        "unit_type",
        "rate",
        "total",
        "notes",
    ]

    def _records(self) -> List[Dict]:
        engine = self._engine
        names = {u.id: u.name for u in engine.unit_types}
        lines = sorted(engine.cost_lines, key=lambda c: c.property_type)
        return [
            {
                "property_type": line.property_type,
                "cost_category": line.cost_category,
                "calculation_method": line.calculation_method.value,
                "unit_type": names.get(line.unit_type_id) if line.unit_type_id else None,
                "rate": line.rate,
                "total": line.total,
                "notes": line.notes,
            }
            for line in lines
        ]

    def subtotals(self) -> pd.Series:
        """Σ total by property type (missing totals count as zero)."""
        frame = self.generate()
        if frame.empty:
            return pd.Series(dtype=float, name="total")
        frame["total"] = pd.to_numeric(frame["total"]).fillna(0.0)
        return frame.groupby("property_type")["total"].sum()


class UnitMixReport(BaseReport):
    """One row per unit type with its share of the category."""

    columns = ["category", "unit_type", "area", "units", "total_area", "share_of_category"]

    def _records(self) -> List[Dict]:
        engine = self._engine
        areas = engine.property_areas()
        records = []
        for unit in engine.unit_types:
            category_area = areas.get(unit.category, 0.0)
            records.append(
                {
                    "category": unit.category,
                    "unit_type": unit.name,
                    "area": unit.area,
                    "units": unit.units,
                    "total_area": unit.total_area,
                    "share_of_category": (
                        unit.total_area / category_area if category_area > 0 else 0.0
                    ),
                }
            )
        return records
