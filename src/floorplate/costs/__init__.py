# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Hard cost lines and the engine that prices them against the unit inventory."""

from .cost_line import CostLine
from .engine import CostAllocationEngine
from .methods import (
    AnyCalculationMethod,
    AreaBasedCategory,
    AreaBasedUnitType,
    CalculationMethod,
    Custom,
    LumpSum,
    UnitBasedCategory,
    UnitBasedUnitType,
    build_method,
)

__all__ = [
    "AnyCalculationMethod",
    "AreaBasedCategory",
    "AreaBasedUnitType",
    "CalculationMethod",
    "CostAllocationEngine",
    "CostLine",
    "Custom",
    "LumpSum",
    "UnitBasedCategory",
    "UnitBasedUnitType",
    "build_method",
]
