# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Calculation methods for hard cost lines.

Each method is a variant of a tagged union discriminated by ``kind``. Only
the unit-type variants carry a ``unit_type_id``, so a line can never hold a
unit type under a category method, or lack one under a unit-type method.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Dict, Literal, Optional, Type, Union

from pydantic import Field
from typing_extensions import Annotated

from ..core.primitives import CalculationMethodEnum, Model
from ..program.inventory import UnitInventory


class CalculationMethod(Model, ABC):
    """
    Base class for all calculation methods.

    Subclasses implement ``basis()``, the quantity the rate is multiplied by.
    ``compute()`` is the template method shared by every derived variant.
    """

    kind: CalculationMethodEnum
    derives_total: ClassVar[bool] = True

    def compute(
        self, rate: Optional[float], property_type: str, inventory: UnitInventory
    ) -> Optional[float]:
        """Derived total for ``rate``; ``None`` when no rate is set."""
        if rate is None or not self.derives_total:
            return None
        return rate * self.basis(property_type, inventory)

    @abstractmethod
    def basis(self, property_type: str, inventory: UnitInventory) -> float:
        pass


class AreaBasedCategory(CalculationMethod):
    """Rate per square foot of every unit in the property type."""

    kind: Literal[CalculationMethodEnum.AREA_BASED_CATEGORY] = (
        CalculationMethodEnum.AREA_BASED_CATEGORY
    )

    def basis(self, property_type: str, inventory: UnitInventory) -> float:
        return inventory.property_areas().get(property_type, 0.0)


class UnitBasedCategory(CalculationMethod):
    """Rate per unit across the property type."""

    kind: Literal[CalculationMethodEnum.UNIT_BASED_CATEGORY] = (
        CalculationMethodEnum.UNIT_BASED_CATEGORY
    )

    def basis(self, property_type: str, inventory: UnitInventory) -> float:
        return float(inventory.property_units().get(property_type, 0))


class _UnitTypeScoped(CalculationMethod):
    unit_type_id: str = Field(min_length=1)


class AreaBasedUnitType(_UnitTypeScoped):
    """Rate per square foot of a single unit type (area × units)."""

    kind: Literal[CalculationMethodEnum.AREA_BASED_UNIT_TYPE] = (
        CalculationMethodEnum.AREA_BASED_UNIT_TYPE
    )

    def basis(self, property_type: str, inventory: UnitInventory) -> float:
        unit = inventory.get(self.unit_type_id)
        return unit.total_area if unit is not None else 0.0


class UnitBasedUnitType(_UnitTypeScoped):
    """Rate per unit of a single unit type."""

    kind: Literal[CalculationMethodEnum.UNIT_BASED_UNIT_TYPE] = (
        CalculationMethodEnum.UNIT_BASED_UNIT_TYPE
    )

    def basis(self, property_type: str, inventory: UnitInventory) -> float:
        unit = inventory.get(self.unit_type_id)
        return float(unit.units) if unit is not None else 0.0


class LumpSum(CalculationMethod):
    """The rate is the total."""

    kind: Literal[CalculationMethodEnum.LUMP_SUM] = CalculationMethodEnum.LUMP_SUM

    def basis(self, property_type: str, inventory: UnitInventory) -> float:
        return 1.0


class Custom(CalculationMethod):
    """The total is entered directly and never derived."""

    kind: Literal[CalculationMethodEnum.CUSTOM] = CalculationMethodEnum.CUSTOM
    derives_total: ClassVar[bool] = False

    def basis(self, property_type: str, inventory: UnitInventory) -> float:
        return 0.0


AnyCalculationMethod = Annotated[
    Union[
        AreaBasedCategory,
        UnitBasedCategory,
        AreaBasedUnitType,
        UnitBasedUnitType,
        LumpSum,
        Custom,
    ],
    Field(discriminator="kind"),
]

METHOD_TYPES: Dict[CalculationMethodEnum, Type[CalculationMethod]] = {
    CalculationMethodEnum.AREA_BASED_CATEGORY: AreaBasedCategory,
    CalculationMethodEnum.UNIT_BASED_CATEGORY: UnitBasedCategory,
    CalculationMethodEnum.AREA_BASED_UNIT_TYPE: AreaBasedUnitType,
    CalculationMethodEnum.UNIT_BASED_UNIT_TYPE: UnitBasedUnitType,
    CalculationMethodEnum.LUMP_SUM: LumpSum,
    CalculationMethodEnum.CUSTOM: Custom,
}


def build_method(
    kind: Union[CalculationMethodEnum, str], unit_type_id: Optional[str] = None
) -> CalculationMethod:
    """
    Construct the variant for ``kind``.

    Raises:
        ValueError: If ``kind`` is unknown, or a unit-type method is built
            without a unit type
    """
    kind = CalculationMethodEnum(kind)
    method_type = METHOD_TYPES[kind]
    if kind.is_unit_type_scoped:
        if not unit_type_id:
            raise ValueError(f"{kind.value} requires a unit type")
        return method_type(unit_type_id=unit_type_id)
    return method_type()
