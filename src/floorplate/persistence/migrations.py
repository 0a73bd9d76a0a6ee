# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Forward migrations for locally cached payloads.

Every cached collection is stored as ``{"stateVersion": n, "data": ...}``.
Payloads written by the browser application are version 1: camelCase keys,
numbers as strings, ``efficiencyFactor`` fields that no longer exist, floors
without ids and allocations keyed by floor number. Bare (unwrapped) payloads
are treated as version 1.

Version 2 is the shape of :class:`~floorplate.engine.state.BuildingState`
dumped with ``model_dump(mode="json")``, split by collection.

Migration is a pure function: a payload already at the current version is
returned untouched.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.primitives import CURRENT_STATE_VERSION, CollectionEnum, new_id

logger = logging.getLogger(__name__)

VERSION_KEY = "stateVersion"
DATA_KEY = "data"

Payloads = Dict[CollectionEnum, Any]

DEPRECATED_FIELDS = ("efficiencyFactor",)

_LEGACY_COST_METHODS = {
    "area_based": ("area_based_category", "area_based_unit_type"),
    "unit_based": ("unit_based_category", "unit_based_unit_type"),
}


def wrap(data: Any, version: int = CURRENT_STATE_VERSION) -> Dict[str, Any]:
    return {VERSION_KEY: version, DATA_KEY: data}


def unwrap(payload: Any) -> Tuple[int, Any]:
    """Split a cached payload into ``(version, data)``."""
    if isinstance(payload, dict) and VERSION_KEY in payload:
        return int(payload[VERSION_KEY]), payload.get(DATA_KEY)
    return 1, payload


def _strip_deprecated(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in DEPRECATED_FIELDS}


def _pick(record: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    return default


# ----------------------------------------------------------------------
# Version 1 -> 2
# ----------------------------------------------------------------------


def _v1_project(data: Dict[str, Any]) -> Dict[str, Any]:
    data = _strip_deprecated(data or {})
    return {
        "project": {
            "name": _pick(data, "name", "projectName", default="Untitled Project") or "Untitled Project",
            "location": _pick(data, "location", default="") or "",
            "project_type": _pick(data, "projectType", "project_type", default="") or "",
        },
        "parameters": {
            "far_allowance": _pick(data, "farAllowance", "far_allowance", default="1.5"),
            "total_land_area": _pick(data, "totalLandArea", "lotSize", default="0"),
            "building_footprint": _pick(data, "buildingFootprint", default="0"),
        },
    }


def _v1_templates(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    migrated = []
    for order, t in enumerate(data or []):
        t = _strip_deprecated(t)
        migrated.append(
            {
                "id": t.get("id") or new_id(),
                "name": t.get("name"),
                "gross_area": _pick(t, "grossArea", "squareFootage"),
                "width": t.get("width"),
                "length": t.get("length"),
                "creation_order": order,
            }
        )
    return migrated


def _v1_space(s: Dict[str, Any]) -> Dict[str, Any]:
    s = _strip_deprecated(s)
    dims = s.get("dimensions") or {}
    return {
        "id": s.get("id") or new_id(),
        "name": s.get("name") or "",
        "type": s.get("type") or "other",
        "sub_type": s.get("subType"),
        "area": _pick(s, "squareFootage", "area", default=0),
        "width": dims.get("width", 0),
        "depth": dims.get("depth", 0),
        "is_rentable": bool(s.get("isRentable", True)),
        "percentage": s.get("percentage", 0),
    }


def _v1_systems(b: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not b:
        return None
    elevators = b.get("elevators") or {}
    return {
        "elevators": {
            "passenger": elevators.get("passenger", 0),
            "service": elevators.get("service", 0),
            "freight": elevators.get("freight", 0),
        },
        "hvac_system": b.get("hvacSystem") or None,
        "hvac_zones": b.get("hvacZones"),
        "floor_load_capacity": b.get("floorLoadCapacity"),
        "ceiling_height": b.get("ceilingHeight"),
        "plenum_height": b.get("plenumHeight"),
    }


def _v1_floors(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    migrated = []
    for f in data or []:
        f = _strip_deprecated(f)
        number = int(f["floorNumber"])
        underground = bool(f.get("isUnderground", number <= 0))
        floor = {
            "id": f.get("id") or new_id(),
            "floor_number": number,
            "is_underground": underground,
            "template_id": f.get("templateId"),
            "custom_area": f.get("customSquareFootage"),
            "floor_to_floor_height": f.get("floorToFloorHeight", "12"),
            "core_percentage": f.get("corePercentage", "15"),
            "primary_use": f.get("primaryUse") or ("parking" if underground else "office"),
            "secondary_use": f.get("secondaryUse") or None,
            "secondary_use_percentage": f.get("secondaryUsePercentage", "0"),
            "spaces": [_v1_space(s) for s in f.get("spaces") or []],
            "building_systems": _v1_systems(f.get("buildingSystems")),
        }
        if f.get("label"):
            floor["label"] = f["label"]
        migrated.append(floor)
    return migrated


def _v1_unit_types(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    migrated = []
    for u in data or []:
        u = _strip_deprecated(u)
        migrated.append(
            {
                "id": u.get("id") or new_id(),
                "name": u.get("name"),
                "category": u.get("category"),
                "area": _pick(u, "area", "typicalSize", "grossArea", default=0),
                "units": _pick(u, "units", "count", default=0),
                "width": u.get("width"),
                "length": u.get("length"),
            }
        )
    return migrated


def _v1_allocations(
    data: List[Dict[str, Any]], floor_ids: Dict[int, str]
) -> List[Dict[str, Any]]:
    migrated = []
    for a in data or []:
        a = _strip_deprecated(a)
        floor_id = a.get("floorId")
        if floor_id is None and a.get("floorNumber") is not None:
            floor_id = floor_ids.get(int(a["floorNumber"]))
        quantity = _pick(a, "quantity", "count", default=0)
        if floor_id is None:
            logger.warning(f"Dropping allocation {a.get('id')} for an unknown floor")
            continue
        try:
            quantity = int(float(quantity or 0))
        except (TypeError, ValueError):
            quantity = 0
        if quantity <= 0:
            continue
        migrated.append(
            {
                "id": a.get("id") or new_id(),
                "floor_id": floor_id,
                "unit_type_id": a.get("unitTypeId"),
                "quantity": quantity,
            }
        )
    return migrated


def _v1_cost_lines(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    migrated = []
    for c in data or []:
        c = _strip_deprecated(c)
        unit_type_id = c.get("unitTypeId")
        method = c.get("calculationMethod") or "area_based"
        if method in _LEGACY_COST_METHODS:
            category_kind, unit_type_kind = _LEGACY_COST_METHODS[method]
            method = unit_type_kind if unit_type_id else category_kind
        method_data = {"kind": method}
        if method.endswith("_unit_type"):
            method_data["unit_type_id"] = unit_type_id
        migrated.append(
            {
                "id": c.get("id") or new_id(),
                "property_type": c.get("propertyType"),
                "cost_category": _pick(c, "costCategory", "category", default=""),
                "method": method_data,
                "rate": c.get("rate"),
                "total": c.get("total"),
                "notes": c.get("notes"),
            }
        )
    return migrated


def _v1_non_rentable(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    migrated = []
    for n in data or []:
        n = _strip_deprecated(n)
        migrated.append(
            {
                "id": n.get("id") or new_id(),
                "name": n.get("name"),
                "square_footage": _pick(n, "squareFootage", "square_footage", default=0),
                "allocation_method": _pick(
                    n, "allocationMethod", "allocation_method", default="uniform"
                ),
                "percentage": n.get("percentage"),
                "floor_constraints": _pick(
                    n, "floorConstraints", "floor_constraints", default=[]
                ),
            }
        )
    return migrated


def _migrate_v1_to_v2(payloads: Payloads) -> Payloads:
    migrated: Payloads = {}
    floors = None
    for collection, data in payloads.items():
        if collection == CollectionEnum.PROJECT:
            migrated[collection] = _v1_project(data)
        elif collection == CollectionEnum.TEMPLATES:
            migrated[collection] = _v1_templates(data)
        elif collection == CollectionEnum.FLOORS:
            floors = migrated[collection] = _v1_floors(data)
        elif collection == CollectionEnum.UNIT_TYPES:
            migrated[collection] = _v1_unit_types(data)
        elif collection == CollectionEnum.COST_LINES:
            migrated[collection] = _v1_cost_lines(data)
        elif collection == CollectionEnum.NON_RENTABLE_TYPES:
            migrated[collection] = _v1_non_rentable(data)

    if CollectionEnum.UNIT_ALLOCATIONS in payloads:
        floor_ids = {f["floor_number"]: f["id"] for f in floors or []}
        migrated[CollectionEnum.UNIT_ALLOCATIONS] = _v1_allocations(
            payloads[CollectionEnum.UNIT_ALLOCATIONS], floor_ids
        )
    return migrated


MIGRATIONS: Dict[int, Callable[[Payloads], Payloads]] = {
    1: _migrate_v1_to_v2,
}


def migrate_payloads(
    raw: Dict[CollectionEnum, Any],
    current_version: int = CURRENT_STATE_VERSION,
) -> Tuple[Payloads, bool]:
    """
    Bring cached payloads up to ``current_version``.

    Collections are migrated together because version 1 allocations refer
    to floors by number and need the ids assigned to migrated floors.

    Args:
        raw: Cached payloads by collection, wrapped or bare
        current_version: Target schema version

    Returns:
        ``(data_by_collection, migrated)`` where ``migrated`` says whether any
        transformation ran. Payloads already at ``current_version`` are
        returned as stored.

    Raises:
        ValueError: If a payload is newer than ``current_version``, or no
            migration path exists
    """
    by_version: Dict[int, Payloads] = {}
    for collection, payload in raw.items():
        if payload is None:
            continue
        version, data = unwrap(payload)
        if version > current_version:
            raise ValueError(
                f"{collection.value} was saved by a newer version ({version} > {current_version})"
            )
        by_version.setdefault(version, {})[collection] = data

    result: Payloads = dict(by_version.pop(current_version, {}))
    migrated = False
    for version in sorted(by_version):
        data = copy.deepcopy(by_version[version])
        while version < current_version:
            step = MIGRATIONS.get(version)
            if step is None:
                raise ValueError(f"No migration from state version {version}")
            logger.info(f"Migrating {sorted(c.value for c in data)} from v{version} to v{version + 1}")
            data = step(data)
            version += 1
            migrated = True
        result.update(data)
    return result, migrated


def migrate_payload(
    collection: CollectionEnum, payload: Any, current_version: int = CURRENT_STATE_VERSION
) -> Tuple[Any, bool]:
    """Single-collection form of :func:`migrate_payloads`."""
    result, migrated = migrate_payloads({collection: payload}, current_version)
    return result.get(collection), migrated
