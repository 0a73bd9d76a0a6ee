# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Mapping between engine records and remote store rows.

Every table is keyed by ``id`` and scoped by ``project_id``. ``sort_order``
preserves collection order (template creation order, floor position,
insertion order of unit types and cost lines). Nested structures are stored
as JSON text.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from ..building import BuildingParameters, FloorInstance, FloorTemplate, ProjectInfo
from ..costs import CostLine, build_method
from ..engine.state import BuildingState
from ..program import NonRentableType, UnitAllocation, UnitType

Row = Dict[str, Any]
TableRows = Dict[str, Row]

PROJECTS = "projects"
TEMPLATES = "floor_plate_templates"
FLOORS = "floors"
UNIT_TYPES = "unit_types"
UNIT_ALLOCATIONS = "unit_allocations"
HARD_COSTS = "hard_costs"
NON_RENTABLE_TYPES = "non_rentable_types"

# Column name -> DuckDB type, excluding the shared id / project_id / sort_order.
TABLE_COLUMNS: Dict[str, Dict[str, str]] = {
    PROJECTS: {
        "name": "VARCHAR",
        "location": "VARCHAR",
        "project_type": "VARCHAR",
        "far_allowance": "DOUBLE",
        "lot_size": "DOUBLE",
        "building_footprint": "DOUBLE",
        "max_buildable_area": "DOUBLE",
    },
    TEMPLATES: {
        "name": "VARCHAR",
        "area": "DOUBLE",
        "width": "DOUBLE",
        "length": "DOUBLE",
    },
    FLOORS: {
        "label": "VARCHAR",
        "position": "INTEGER",
        "template_id": "VARCHAR",
        "floor_number": "INTEGER",
        "floor_type": "VARCHAR",
        "custom_area": "DOUBLE",
        "floor_to_floor_height": "DOUBLE",
        "core_percentage": "DOUBLE",
        "primary_use": "VARCHAR",
        "secondary_use": "VARCHAR",
        "secondary_use_percentage": "DOUBLE",
        "spaces": "VARCHAR",
        "building_systems": "VARCHAR",
    },
    UNIT_TYPES: {
        "name": "VARCHAR",
        "category": "VARCHAR",
        "area": "DOUBLE",
        "units": "INTEGER",
        "width": "DOUBLE",
        "length": "DOUBLE",
    },
    UNIT_ALLOCATIONS: {
        "floor_id": "VARCHAR",
        "unit_type_id": "VARCHAR",
        "quantity": "INTEGER",
    },
    HARD_COSTS: {
        "property_type": "VARCHAR",
        "cost_category": "VARCHAR",
        "calculation_method": "VARCHAR",
        "unit_type_id": "VARCHAR",
        "rate": "DOUBLE",
        "total": "DOUBLE",
        "notes": "VARCHAR",
    },
    NON_RENTABLE_TYPES: {
        "name": "VARCHAR",
        "square_footage": "DOUBLE",
        "allocation_method": "VARCHAR",
        "percentage": "DOUBLE",
        "floor_constraints": "VARCHAR",
    },
}

TABLES = tuple(TABLE_COLUMNS)


def _dump_json(value: Any) -> Optional[str]:
    return None if value is None else json.dumps(value, sort_keys=True)


def _load_json(value: Optional[str], default: Any) -> Any:
    if value is None or value == "":
        return default
    return json.loads(value)


def state_to_rows(project_id: str, state: BuildingState) -> Dict[str, TableRows]:
    """Flatten a :class:`BuildingState` into rows per table, keyed by row id."""
    rows: Dict[str, TableRows] = {table: {} for table in TABLES}

    def put(table: str, row_id: str, order: int, values: Row) -> None:
        rows[table][row_id] = {
            "id": row_id,
            "project_id": project_id,
            "sort_order": order,
            **values,
        }

    project, params = state.project, state.parameters
    put(
        PROJECTS,
        project_id,
        0,
        {
            "name": project.name,
            "location": project.location,
            "project_type": project.project_type,
            "far_allowance": params.far_allowance,
            "lot_size": params.total_land_area,
            "building_footprint": params.building_footprint,
            "max_buildable_area": params.max_buildable_area,
        },
    )
    for t in state.templates:
        put(
            TEMPLATES,
            t.id,
            t.creation_order,
            {"name": t.name, "area": t.gross_area, "width": t.width, "length": t.length},
        )
    for f in state.floors:
        put(
            FLOORS,
            f.id,
            f.position,
            {
                "label": f.label,
                "position": f.position,
                "template_id": f.template_id,
                "floor_number": f.floor_number,
                "floor_type": f.floor_type.value,
                "custom_area": f.custom_area,
                "floor_to_floor_height": f.floor_to_floor_height,
                "core_percentage": f.core_percentage,
                "primary_use": f.primary_use,
                "secondary_use": f.secondary_use,
                "secondary_use_percentage": f.secondary_use_percentage,
                "spaces": _dump_json([s.model_dump(mode="json") for s in f.spaces]),
                "building_systems": _dump_json(
                    f.building_systems.model_dump(mode="json")
                    if f.building_systems is not None
                    else None
                ),
            },
        )
    for i, u in enumerate(state.unit_types):
        put(
            UNIT_TYPES,
            u.id,
            i,
            {
                "name": u.name,
                "category": u.category,
                "area": u.area,
                "units": u.units,
                "width": u.width,
                "length": u.length,
            },
        )
    for i, a in enumerate(state.unit_allocations):
        put(
            UNIT_ALLOCATIONS,
            a.id,
            i,
            {"floor_id": a.floor_id, "unit_type_id": a.unit_type_id, "quantity": a.quantity},
        )
    for i, c in enumerate(state.cost_lines):
        put(
            HARD_COSTS,
            c.id,
            i,
            {
                "property_type": c.property_type,
                "cost_category": c.cost_category,
                "calculation_method": c.calculation_method.value,
                "unit_type_id": c.unit_type_id,
                "rate": c.rate,
                "total": c.total,
                "notes": c.notes,
            },
        )
    for i, n in enumerate(state.non_rentable_types):
        put(
            NON_RENTABLE_TYPES,
            n.id,
            i,
            {
                "name": n.name,
                "square_footage": n.square_footage,
                "allocation_method": n.allocation_method.value,
                "percentage": n.percentage,
                "floor_constraints": _dump_json(n.floor_constraints),
            },
        )
    return rows


def _ordered(rows: List[Row]) -> List[Row]:
    return sorted(rows, key=lambda r: (r.get("sort_order") or 0))


def rows_to_state(rows: Dict[str, List[Row]]) -> Optional[BuildingState]:
    """
    Rebuild a :class:`BuildingState` from rows selected for one project.

    Returns ``None`` when the project has no rows at all.
    """
    if not any(rows.get(table) for table in TABLES):
        return None

    project_rows = rows.get(PROJECTS) or []
    project = ProjectInfo()
    parameters = BuildingParameters()
    if project_rows:
        p = project_rows[0]
        project = ProjectInfo(
            name=p.get("name") or project.name,
            location=p.get("location") or "",
            project_type=p.get("project_type") or "",
        )
        parameters = BuildingParameters(
            far_allowance=p.get("far_allowance"),
            total_land_area=p.get("lot_size"),
            building_footprint=p.get("building_footprint"),
        )

    templates = [
        FloorTemplate(
            id=r["id"],
            name=r["name"],
            gross_area=r["area"],
            width=r.get("width"),
            length=r.get("length"),
            creation_order=r.get("sort_order") or 0,
        )
        for r in _ordered(rows.get(TEMPLATES) or [])
    ]
    floors = [
        FloorInstance(
            id=r["id"],
            floor_number=r["floor_number"],
            is_underground=r.get("floor_type") == "underground",
            template_id=r.get("template_id"),
            custom_area=r.get("custom_area"),
            label=r["label"],
            position=r.get("position") or 0,
            floor_to_floor_height=r.get("floor_to_floor_height"),
            core_percentage=r.get("core_percentage"),
            primary_use=r.get("primary_use") or "office",
            secondary_use=r.get("secondary_use"),
            secondary_use_percentage=r.get("secondary_use_percentage"),
            spaces=_load_json(r.get("spaces"), []),
            building_systems=_load_json(r.get("building_systems"), None),
        )
        for r in _ordered(rows.get(FLOORS) or [])
    ]
    unit_types = [
        UnitType(
            id=r["id"],
            name=r["name"],
            category=r["category"],
            area=r.get("area"),
            units=r.get("units"),
            width=r.get("width"),
            length=r.get("length"),
        )
        for r in _ordered(rows.get(UNIT_TYPES) or [])
    ]
    allocations = [
        UnitAllocation(
            id=r["id"],
            floor_id=r["floor_id"],
            unit_type_id=r["unit_type_id"],
            quantity=r["quantity"],
        )
        for r in _ordered(rows.get(UNIT_ALLOCATIONS) or [])
    ]
    cost_lines = [
        CostLine(
            id=r["id"],
            property_type=r["property_type"],
            cost_category=r["cost_category"],
            method=build_method(r["calculation_method"], r.get("unit_type_id")),
            rate=r.get("rate"),
            total=r.get("total"),
            notes=r.get("notes"),
        )
        for r in _ordered(rows.get(HARD_COSTS) or [])
    ]
    non_rentable = [
        NonRentableType(
            id=r["id"],
            name=r["name"],
            square_footage=r.get("square_footage"),
            allocation_method=r.get("allocation_method") or "uniform",
            percentage=r.get("percentage"),
            floor_constraints=_load_json(r.get("floor_constraints"), []),
        )
        for r in _ordered(rows.get(NON_RENTABLE_TYPES) or [])
    ]
    return BuildingState(
        project=project,
        parameters=parameters,
        templates=templates,
        floors=floors,
        unit_types=unit_types,
        unit_allocations=allocations,
        non_rentable_types=non_rentable,
        cost_lines=cost_lines,
    )


def diff_rows(
    previous: Dict[str, TableRows], current: Dict[str, TableRows]
) -> Dict[str, Dict[str, List]]:
    """
    Row-level changes between two flattenings.

    Returns:
        ``{table: {"upserts": [row, ...], "deletes": [row_id, ...]}}`` for
        tables with at least one change
    """
    changes: Dict[str, Dict[str, List]] = {}
    for table in TABLES:
        before = previous.get(table, {})
        after = current.get(table, {})
        upserts = [row for row_id, row in after.items() if before.get(row_id) != row]
        deletes = [row_id for row_id in before if row_id not in after]
        if upserts or deletes:
            changes[table] = {"upserts": upserts, "deletes": deletes}
    return changes
