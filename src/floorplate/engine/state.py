# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import List

from pydantic import Field, model_validator

from ..building import BuildingParameters, FloorInstance, FloorTemplate, ProjectInfo
from ..core.primitives import CURRENT_STATE_VERSION, Model, PositiveInt
from ..costs import CostLine
from ..program import NonRentableType, UnitAllocation, UnitType


class BuildingState(Model):
    """
    Immutable snapshot of every collection owned by a building engine.

    Derived metrics are not part of the snapshot; they are recomputed from it.
    """

    state_version: PositiveInt = CURRENT_STATE_VERSION
    project: ProjectInfo = Field(default_factory=ProjectInfo)
    parameters: BuildingParameters = Field(default_factory=BuildingParameters)
    templates: List[FloorTemplate] = Field(default_factory=list)
    floors: List[FloorInstance] = Field(default_factory=list)
    unit_types: List[UnitType] = Field(default_factory=list)
    unit_allocations: List[UnitAllocation] = Field(default_factory=list)
    non_rentable_types: List[NonRentableType] = Field(default_factory=list)
    cost_lines: List[CostLine] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_identity(self) -> "BuildingState":
        numbers = [f.floor_number for f in self.floors]
        if len(numbers) != len(set(numbers)):
            raise ValueError("Floor numbers must be unique")
        for name, records in (
            ("template", self.templates),
            ("floor", self.floors),
            ("unit type", self.unit_types),
            ("cost line", self.cost_lines),
        ):
            ids = [r.id for r in records]
            if len(ids) != len(set(ids)):
                raise ValueError(f"Duplicate {name} ids in state")
        return self

    @property
    def is_empty(self) -> bool:
        return not (self.templates or self.floors or self.unit_types or self.cost_lines)
