# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from ..core.primitives import Model, PositiveFloat, parse_number


class ProjectInfo(Model):
    """Descriptive project attributes carried alongside the building."""

    name: str = "Untitled Project"
    location: str = ""
    project_type: str = ""


class BuildingParameters(Model):
    """Site and zoning inputs for the derived metrics."""

    far_allowance: PositiveFloat = Field(
        default=1.5, description="Permitted floor area ratio."
    )
    total_land_area: PositiveFloat = Field(
        default=0.0, description="Lot size (sf). Zero disables the FAR calculation."
    )
    building_footprint: PositiveFloat = Field(
        default=0.0, description="Maximum above-grade plate area (sf). Zero means unset."
    )

    @field_validator(
        "far_allowance", "total_land_area", "building_footprint", mode="before"
    )
    @classmethod
    def _lenient_number(cls, v: Any) -> float:
        return parse_number(v)

    @property
    def max_buildable_area(self) -> float:
        return self.far_allowance * self.total_land_area
