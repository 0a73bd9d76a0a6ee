# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Building summary: how the floor stack is used by templates and by the
allocated unit program.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

from pydantic import Field

from ..core.primitives import Model, PositiveFloat, PositiveInt
from ..program.inventory import UnitInventory
from .floor import FloorInstance
from .metrics import floor_area
from .template import FloorTemplate

OVER_ALLOCATED_THRESHOLD = 100.0
UNDER_UTILIZED_THRESHOLD = 50.0
EXCESSIVE_UNIT_TYPE_THRESHOLD = 30.0


class TemplateUsage(Model):
    template_id: str
    name: str
    count: PositiveInt
    area: PositiveFloat
    percentage: PositiveFloat


class FloorUtilization(Model):
    floor_id: str
    floor_number: int
    label: str
    area: PositiveFloat
    allocated_area: PositiveFloat
    percentage: PositiveFloat


class UnitTypeShare(Model):
    unit_type: str
    count: PositiveInt
    percentage: PositiveFloat


class BuildingSummary(Model):
    """Aggregate view of the building for dashboards and warnings."""

    total_floors: PositiveInt = 0
    total_building_area: PositiveFloat = 0.0
    total_allocated_area: PositiveFloat = 0.0
    allocation_percentage: PositiveFloat = 0.0
    units_by_type: Dict[str, int] = Field(default_factory=dict)
    total_units: PositiveInt = 0
    template_usage: List[TemplateUsage] = Field(default_factory=list)
    floor_utilization: List[FloorUtilization] = Field(default_factory=list)
    over_allocated_floors: List[FloorUtilization] = Field(default_factory=list)
    under_utilized_floors: List[FloorUtilization] = Field(default_factory=list)
    excessive_unit_types: List[UnitTypeShare] = Field(default_factory=list)


def summarize_building(
    floors: Iterable[FloorInstance],
    templates: Mapping[str, FloorTemplate],
    inventory: UnitInventory,
) -> BuildingSummary:
    """
    Summarize template usage and unit allocation across the floor stack.

    Over-allocated floors carry more unit area than floor area (descending by
    percentage); under-utilized floors are allocated but below half their
    area (ascending). A unit type is excessive when it makes up more than 30%
    of all allocated units.
    """
    floors = list(floors)
    total_area = 0.0
    usage: Dict[str, Dict] = {}
    utilization: List[FloorUtilization] = []
    units_by_type: Dict[str, int] = {}

    for floor in floors:
        area = floor_area(floor, templates)
        total_area += area
        template = templates.get(floor.template_id) if floor.template_id else None
        if template is not None:
            stats = usage.setdefault(
                template.id, {"name": template.name, "count": 0, "area": 0.0}
            )
            stats["count"] += 1
            stats["area"] += area

        for allocation in inventory.allocations_for_floor(floor.id):
            unit = inventory.get(allocation.unit_type_id)
            if unit is not None:
                units_by_type[unit.name] = units_by_type.get(unit.name, 0) + allocation.quantity

        allocated = inventory.allocated_area(floor.id)
        utilization.append(
            FloorUtilization(
                floor_id=floor.id,
                floor_number=floor.floor_number,
                label=floor.label,
                area=area,
                allocated_area=allocated,
                percentage=allocated / area * 100.0 if area > 0 else 0.0,
            )
        )

    total_allocated = sum(u.allocated_area for u in utilization)
    total_units = sum(units_by_type.values())

    template_usage = sorted(
        (
            TemplateUsage(
                template_id=template_id,
                name=stats["name"],
                count=stats["count"],
                area=stats["area"],
                percentage=stats["area"] / total_area * 100.0 if total_area > 0 else 0.0,
            )
            for template_id, stats in usage.items()
        ),
        key=lambda u: u.area,
        reverse=True,
    )

    excessive = []
    if total_units > 0:
        for name, count in units_by_type.items():
            share = count / total_units * 100.0
            if share > EXCESSIVE_UNIT_TYPE_THRESHOLD:
                excessive.append(UnitTypeShare(unit_type=name, count=count, percentage=share))
    excessive.sort(key=lambda s: s.percentage, reverse=True)

    return BuildingSummary(
        total_floors=len(floors),
        total_building_area=total_area,
        total_allocated_area=total_allocated,
        allocation_percentage=total_allocated / total_area * 100.0 if total_area > 0 else 0.0,
        units_by_type=units_by_type,
        total_units=total_units,
        template_usage=template_usage,
        floor_utilization=utilization,
        over_allocated_floors=sorted(
            (u for u in utilization if u.percentage > OVER_ALLOCATED_THRESHOLD),
            key=lambda u: u.percentage,
            reverse=True,
        ),
        under_utilized_floors=sorted(
            (u for u in utilization if 0 < u.percentage < UNDER_UTILIZED_THRESHOLD),
            key=lambda u: u.percentage,
        ),
        excessive_unit_types=excessive,
    )
