# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Building configuration: floor-plate templates, the floor stack, site
parameters and the metrics derived from them.
"""

from .floor import (
    BuildingSystemsConfig,
    ElevatorCounts,
    FloorInstance,
    SpaceDefinition,
    default_floor_label,
)
from .metrics import (
    DerivedMetrics,
    Issue,
    compute_derived_metrics,
    find_consistency_issues,
    floor_area,
)
from .parameters import BuildingParameters, ProjectInfo
from .sequencer import FloorSequencer, plan_floor_numbers
from .summary import BuildingSummary, summarize_building
from .template import FloorTemplate
from .templates import TemplateRegistry

__all__ = [
    "BuildingParameters",
    "BuildingSummary",
    "BuildingSystemsConfig",
    "DerivedMetrics",
    "ElevatorCounts",
    "FloorInstance",
    "FloorSequencer",
    "FloorTemplate",
    "Issue",
    "ProjectInfo",
    "SpaceDefinition",
    "TemplateRegistry",
    "compute_derived_metrics",
    "default_floor_label",
    "find_consistency_issues",
    "floor_area",
    "plan_floor_numbers",
    "summarize_building",
]
