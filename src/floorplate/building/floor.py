# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from typing import Any, List, Optional

from pydantic import Field, ValidationInfo, field_validator, model_validator

from ..core.primitives import (
    FloorTypeEnum,
    Model,
    Percentage,
    PositiveFloat,
    PositiveInt,
    new_id,
    parse_count,
    parse_number,
    parse_optional_number,
)

logger = logging.getLogger(__name__)


def default_floor_label(floor_number: int, is_underground: bool) -> str:
    """Label given to floors created without one."""
    return f"Level {floor_number}" if is_underground else f"Floor {floor_number}"


class SpaceDefinition(Model):
    """A named space carved out of a floor plate."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    type: str = "other"
    sub_type: Optional[str] = None
    area: PositiveFloat = 0.0
    width: PositiveFloat = 0.0
    depth: PositiveFloat = 0.0
    is_rentable: bool = True
    percentage: Percentage = 0.0

    @field_validator("area", "width", "depth", "percentage", mode="before")
    @classmethod
    def _lenient_number(cls, v: Any) -> float:
        return parse_number(v)


class ElevatorCounts(Model):
    """Elevator counts serving a floor."""

    passenger: PositiveInt = 0
    service: PositiveInt = 0
    freight: PositiveInt = 0

    @field_validator("passenger", "service", "freight", mode="before")
    @classmethod
    def _lenient_count(cls, v: Any) -> int:
        return parse_count(v)


class BuildingSystemsConfig(Model):
    """Vertical transport and MEP attributes of a floor."""

    elevators: ElevatorCounts = Field(default_factory=ElevatorCounts)
    hvac_system: Optional[str] = None
    hvac_zones: Optional[PositiveInt] = None
    floor_load_capacity: Optional[PositiveFloat] = None
    ceiling_height: Optional[PositiveFloat] = None
    plenum_height: Optional[PositiveFloat] = None

    @field_validator("hvac_zones", mode="before")
    @classmethod
    def _lenient_zones(cls, v: Any) -> Optional[int]:
        parsed = parse_optional_number(v, "hvac_zones")
        return None if parsed is None else int(parsed)

    @field_validator(
        "floor_load_capacity", "ceiling_height", "plenum_height", mode="before"
    )
    @classmethod
    def _optional_number(cls, v: Any, info: ValidationInfo) -> Optional[float]:
        return parse_optional_number(v, info.field_name)


class FloorInstance(Model):
    """
    One numbered floor of the building.

    ``floor_number`` is the identity users see and the ordering key. Positive
    numbers are above grade; zero and negative numbers are below grade.
    ``custom_area`` overrides the template's gross area for this floor only.
    ``position`` is the floor's index in the stack (highest floor first) and
    is maintained by the sequencer.
    """

    id: str = Field(default_factory=new_id)
    floor_number: int
    is_underground: bool = False
    template_id: Optional[str] = None
    custom_area: Optional[PositiveFloat] = None
    label: str
    position: PositiveInt = 0
    floor_to_floor_height: PositiveFloat = 12.0
    core_percentage: Percentage = 15.0
    primary_use: str = "office"
    secondary_use: Optional[str] = None
    secondary_use_percentage: Percentage = 0.0
    spaces: List[SpaceDefinition] = Field(default_factory=list)
    building_systems: Optional[BuildingSystemsConfig] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and "label" not in data and "floor_number" in data:
            data = dict(data)
            data["label"] = default_floor_label(
                int(data["floor_number"]), bool(data.get("is_underground", False))
            )
        return data

    @field_validator("label")
    @classmethod
    def _label_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Floor label is required")
        return v.strip()

    @field_validator("custom_area", mode="before")
    @classmethod
    def _parse_custom_area(cls, v: Any) -> Optional[float]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        try:
            return parse_optional_number(v, "custom_area")
        except ValueError:
            logger.warning(f"Non-numeric custom area {v!r}; using 0")
            return 0.0

    @field_validator(
        "floor_to_floor_height",
        "core_percentage",
        "secondary_use_percentage",
        mode="before",
    )
    @classmethod
    def _lenient_number(cls, v: Any) -> float:
        return parse_number(v)

    @property
    def floor_type(self) -> FloorTypeEnum:
        return FloorTypeEnum.UNDERGROUND if self.is_underground else FloorTypeEnum.ABOVE_GROUND

    @property
    def is_above_grade_number(self) -> bool:
        return self.floor_number > 0
