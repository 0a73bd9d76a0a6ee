# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from enum import Enum


class FloorTypeEnum(str, Enum):
    """Grade classification of a floor instance."""

    ABOVE_GROUND = "aboveground"
    UNDERGROUND = "underground"


class InsertPositionEnum(str, Enum):
    """Where a bulk insertion places the new floors in the stack."""

    TOP = "top"  # Above the highest floor (above grade only)
    BOTTOM = "bottom"  # Below the lowest floor (below grade only)
    SPECIFIC = "specific"  # Starting at a caller-supplied floor number


class NumberingPatternEnum(str, Enum):
    """How floor numbers are generated for a bulk insertion."""

    CONSECUTIVE = "consecutive"
    SKIP = "skip"  # Every other number: n, n+2, n+4, ...
    CUSTOM = "custom"


class ReorderDirectionEnum(str, Enum):
    """Direction of a single-step floor reorder."""

    UP = "up"
    DOWN = "down"


class CalculationMethodEnum(str, Enum):
    """
    Formula used to derive a cost line's total from its rate.

    Category methods read the property type aggregates of the unit inventory;
    unit type methods read a single unit type record.
    """

    AREA_BASED_CATEGORY = "area_based_category"
    UNIT_BASED_CATEGORY = "unit_based_category"
    AREA_BASED_UNIT_TYPE = "area_based_unit_type"
    UNIT_BASED_UNIT_TYPE = "unit_based_unit_type"
    LUMP_SUM = "lump_sum"
    CUSTOM = "custom"

    @property
    def is_unit_type_scoped(self) -> bool:
        return self.value.endswith("_unit_type")


class NonRentableAllocationEnum(str, Enum):
    """How a non-rentable space type is spread across floors."""

    UNIFORM = "uniform"  # Square footage split evenly over every floor
    SPECIFIC = "specific"  # Split evenly over the constrained floors
    PERCENTAGE = "percentage"  # Percentage of each floor's area


class IssueSeverityEnum(str, Enum):
    """Severity of a building consistency issue."""

    WARNING = "warning"
    ERROR = "error"


class IssueTypeEnum(str, Enum):
    """Kinds of consistency issues found in a building configuration."""

    DUPLICATE_FLOOR_NUMBER = "duplicate_floor_number"
    MISSING_TEMPLATE = "missing_template"
    GRADE_MISMATCH = "grade_mismatch"
    ZERO_AREA_FLOOR = "zero_area_floor"
    FAR_EXCEEDED = "far_exceeded"
    FOOTPRINT_EXCEEDED = "footprint_exceeded"


class SaveStatusEnum(str, Enum):
    """Remote save status published by the persistence synchronizer."""

    IDLE = "idle"
    PENDING = "pending"
    SAVED = "saved"
    ERROR = "error"


class ChangeOriginEnum(str, Enum):
    """Who caused a configuration change."""

    LOCAL = "local"  # A command issued against the engine
    CACHE = "cache"  # Hydration from the local cache
    REMOTE = "remote"  # Reconciliation with the remote store


class CollectionEnum(str, Enum):
    """Persisted collections of the building state."""

    PROJECT = "project"
    TEMPLATES = "floorTemplates"
    FLOORS = "floors"
    UNIT_TYPES = "unitTypes"
    UNIT_ALLOCATIONS = "unitAllocations"
    NON_RENTABLE_TYPES = "nonRentableTypes"
    COST_LINES = "hardCosts"
