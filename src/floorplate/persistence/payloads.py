# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Splitting a building state into per-collection cache payloads and back."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from ..core.primitives import CollectionEnum
from ..engine.state import BuildingState

_LIST_FIELDS = {
    CollectionEnum.TEMPLATES: "templates",
    CollectionEnum.FLOORS: "floors",
    CollectionEnum.UNIT_TYPES: "unit_types",
    CollectionEnum.UNIT_ALLOCATIONS: "unit_allocations",
    CollectionEnum.NON_RENTABLE_TYPES: "non_rentable_types",
    CollectionEnum.COST_LINES: "cost_lines",
}


def state_to_payloads(
    state: BuildingState, collections: Optional[Iterable[CollectionEnum]] = None
) -> Dict[CollectionEnum, Any]:
    """JSON-ready data for each requested collection (all by default)."""
    dumped = state.model_dump(mode="json")
    wanted = set(collections) if collections is not None else set(CollectionEnum)
    payloads: Dict[CollectionEnum, Any] = {}
    for collection in CollectionEnum:
        if collection not in wanted:
            continue
        if collection == CollectionEnum.PROJECT:
            payloads[collection] = {
                "project": dumped["project"],
                "parameters": dumped["parameters"],
            }
        else:
            payloads[collection] = dumped[_LIST_FIELDS[collection]]
    return payloads


def payloads_to_state(payloads: Dict[CollectionEnum, Any]) -> BuildingState:
    """
    Merge current-version payloads over defaults.

    Raises:
        ValueError: If any payload does not validate
    """
    data: Dict[str, Any] = {}
    project = payloads.get(CollectionEnum.PROJECT)
    if project:
        if "project" in project:
            data["project"] = project["project"]
        if "parameters" in project:
            data["parameters"] = project["parameters"]
    for collection, field in _LIST_FIELDS.items():
        value = payloads.get(collection)
        if value is not None:
            data[field] = value
    return BuildingState.model_validate(data)
