# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Floorplate Reporting Module

Tabular (pandas) views of a building engine:

    floors = FloorStackReport(engine).generate()
    costs = CostBreakdownReport(engine).generate()
"""

from .base import BaseReport
from .building_reports import CostBreakdownReport, FloorStackReport, UnitMixReport

__all__ = [
    "BaseReport",
    "CostBreakdownReport",
    "FloorStackReport",
    "UnitMixReport",
]
