# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Unit program: unit types by property type, floor allocations, non-rentable space."""

from .allocation import NonRentableType, UnitAllocation
from .inventory import UnitInventory
from .unit_type import UnitType

__all__ = [
    "NonRentableType",
    "UnitAllocation",
    "UnitInventory",
    "UnitType",
]
