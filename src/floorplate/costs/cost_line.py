# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field, ValidationInfo, field_validator

from ..core.primitives import (
    CalculationMethodEnum,
    Model,
    PositiveFloat,
    new_id,
    parse_optional_number,
)
from .methods import AnyCalculationMethod, AreaBasedCategory


class CostLine(Model):
    """
    A hard cost line for one property type, optionally scoped to a unit type.

    Attributes:
        id: Opaque identifier
        property_type: Property type (category) the line prices
        cost_category: Free-form bucket such as "shell" or "ti"
        method: Calculation method variant; unit-type variants carry the
            unit type
        rate: Rate per basis unit, or ``None`` when not yet entered
        total: Derived total, or the entered total under ``custom``
        notes: Optional free text
    """

    id: str = Field(default_factory=new_id)
    property_type: str = Field(min_length=1)
    cost_category: str
    method: AnyCalculationMethod = Field(default_factory=AreaBasedCategory)
    rate: Optional[PositiveFloat] = None
    total: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("rate", "total", mode="before")
    @classmethod
    def _parse_amount(cls, v: Any, info: ValidationInfo) -> Optional[float]:
        return parse_optional_number(v, info.field_name)

    @property
    def calculation_method(self) -> CalculationMethodEnum:
        return self.method.kind

    @property
    def unit_type_id(self) -> Optional[str]:
        return getattr(self.method, "unit_type_id", None)

    @property
    def is_shell(self) -> bool:
        return self.cost_category.strip().casefold() == "shell"

    @property
    def is_ti(self) -> bool:
        return self.cost_category.strip().casefold() == "ti"
