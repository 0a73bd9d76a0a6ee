# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field, model_validator

from ..core.primitives import (
    Model,
    PositiveFloat,
    PositiveInt,
    ValidationMixin,
    new_id,
    parse_count,
    parse_number,
)


class UnitType(Model, ValidationMixin):
    """
    A unit or space product within one property type (category).

    ``area`` is the size of one unit; ``units`` is how many of them the
    building carries. Blank or malformed area and count read as zero; when
    both dimensions are given and the area is blank, the area is
    width × length.
    """

    id: str = Field(default_factory=new_id)
    name: str
    category: str
    area: PositiveFloat = 0.0
    units: PositiveInt = 0
    width: Optional[PositiveFloat] = None
    length: Optional[PositiveFloat] = None

    @model_validator(mode="before")
    @classmethod
    def _parse_inputs(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = cls.derive_area_from_dimensions(data, "area")
        data["name"] = cls.validate_required_name(data.get("name"), "Unit type name")
        data["category"] = cls.validate_required_name(data.get("category"), "Category")
        data["area"] = parse_number(data.get("area"))
        data["units"] = parse_count(data.get("units"))
        return data

    @property
    def total_area(self) -> float:
        return self.area * self.units
