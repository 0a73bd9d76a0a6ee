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
    parse_required_number,
)


class FloorTemplate(Model, ValidationMixin):
    """
    Reusable floor-plate definition referenced by floor instances.

    ``gross_area`` is always present. When both ``width`` and ``length`` are
    supplied without an explicit ``gross_area``, the area is their product.

    Attributes:
        id: Opaque identifier, never reused
        name: Display name, unique within a registry (case-insensitive)
        gross_area: Gross floor-plate area (sf)
        width: Optional plate width (ft)
        length: Optional plate length (ft)
        creation_order: Ordinal assigned by the registry; the lowest one is
            the fallback when a referenced template is removed
    """

    id: str = Field(default_factory=new_id)
    name: str
    gross_area: PositiveFloat
    width: Optional[PositiveFloat] = None
    length: Optional[PositiveFloat] = None
    creation_order: PositiveInt = 0

    @model_validator(mode="before")
    @classmethod
    def _parse_inputs(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = cls.derive_area_from_dimensions(data, "gross_area")
        data["name"] = cls.validate_required_name(data.get("name"), "Template name")
        data["gross_area"] = parse_required_number(data.get("gross_area"), "gross_area")
        return data

    @property
    def has_dimensions(self) -> bool:
        return self.width is not None and self.length is not None
