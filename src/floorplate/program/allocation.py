# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.primitives import (
    Model,
    NonRentableAllocationEnum,
    Percentage,
    PositiveFloat,
    ValidationMixin,
    new_id,
    parse_number,
    parse_optional_number,
)


class UnitAllocation(Model):
    """Number of units of one unit type placed on one floor."""

    id: str = Field(default_factory=new_id)
    floor_id: str
    unit_type_id: str
    quantity: int = Field(ge=1)


class NonRentableType(Model, ValidationMixin):
    """
    Non-rentable space (lobby, mechanical, circulation) spread over floors.

    - ``uniform``: ``square_footage`` split evenly across every floor
    - ``specific``: ``square_footage`` split evenly across ``floor_constraints``
    - ``percentage``: ``percentage`` percent of each floor's area
    """

    id: str = Field(default_factory=new_id)
    name: str
    square_footage: PositiveFloat = 0.0
    allocation_method: NonRentableAllocationEnum = NonRentableAllocationEnum.UNIFORM
    percentage: Optional[Percentage] = None
    floor_constraints: List[int] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _parse_inputs(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        data["name"] = cls.validate_required_name(data.get("name"), "Space name")
        data["square_footage"] = parse_number(data.get("square_footage"))
        data["percentage"] = parse_optional_number(data.get("percentage"), "percentage")
        return cls.validate_conditional_requirement(
            data,
            "allocation_method",
            NonRentableAllocationEnum.PERCENTAGE,
            "percentage",
        )

    @field_validator("floor_constraints")
    @classmethod
    def _unique_sorted(cls, v: List[int]) -> List[int]:
        return sorted(set(v), reverse=True)
