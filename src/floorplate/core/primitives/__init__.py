# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Floorplate Core Primitives

Building blocks shared by every engine module: the immutable base model,
enumerations, constrained numeric types, lenient parsing, settings and
validation helpers.
"""

from .enums import (
    CalculationMethodEnum,
    ChangeOriginEnum,
    CollectionEnum,
    FloorTypeEnum,
    InsertPositionEnum,
    IssueSeverityEnum,
    IssueTypeEnum,
    NonRentableAllocationEnum,
    NumberingPatternEnum,
    ReorderDirectionEnum,
    SaveStatusEnum,
)
from .model import Model, new_id
from .parsing import (
    parse_count,
    parse_number,
    parse_optional_number,
    parse_required_number,
)
from .settings import (
    CURRENT_STATE_VERSION,
    BuildingDefaults,
    EngineSettings,
    PersistenceSettings,
)
from .types import Percentage, PositiveFloat, PositiveInt
from .validation import ValidationMixin

__all__ = [
    # Enums
    "CalculationMethodEnum",
    "ChangeOriginEnum",
    "CollectionEnum",
    "FloorTypeEnum",
    "InsertPositionEnum",
    "IssueSeverityEnum",
    "IssueTypeEnum",
    "NonRentableAllocationEnum",
    "NumberingPatternEnum",
    "ReorderDirectionEnum",
    "SaveStatusEnum",
    # Model
    "Model",
    "new_id",
    # Parsing
    "parse_count",
    "parse_number",
    "parse_optional_number",
    "parse_required_number",
    # Settings
    "CURRENT_STATE_VERSION",
    "BuildingDefaults",
    "EngineSettings",
    "PersistenceSettings",
    # Types
    "Percentage",
    "PositiveFloat",
    "PositiveInt",
    # Validation
    "ValidationMixin",
]
