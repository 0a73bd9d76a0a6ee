# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import List

from pydantic import Field

from .model import Model
from .types import Percentage, PositiveFloat, PositiveInt

CURRENT_STATE_VERSION = 2


class PersistenceSettings(Model):
    """Settings for the local cache and remote store synchronizer."""

    namespace: str = Field(
        default="realEstateModel",
        min_length=1,
        description="Prefix for local cache keys: '{namespace}_{collection}'.",
    )
    debounce_seconds: PositiveFloat = Field(
        default=0.3,
        description="Quiet period before changed collections are written locally.",
    )
    max_queue_size: PositiveInt = Field(
        default=64,
        ge=1,
        description="Bound on pending remote sync messages.",
    )
    remote_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="How long flush() waits for outstanding remote writes.",
    )
    state_version: PositiveInt = Field(
        default=CURRENT_STATE_VERSION,
        description="Schema version stamped on every locally cached payload.",
    )


class BuildingDefaults(Model):
    """Defaults applied to new templates, floors and cost lines."""

    template_name: str = Field(default="Standard Floor", min_length=1)
    template_area: PositiveFloat = Field(
        default=10_000.0, description="Gross area of the seeded template (sf)."
    )
    floor_to_floor_height: PositiveFloat = Field(
        default=12.0, description="Default floor-to-floor height (ft)."
    )
    core_percentage: Percentage = Field(
        default=15.0, description="Default share of a floor taken by the core."
    )
    above_ground_use: str = "office"
    below_ground_use: str = "parking"
    far_allowance: PositiveFloat = Field(
        default=1.5, description="Permitted floor area ratio for new projects."
    )
    property_types: List[str] = Field(
        default_factory=lambda: ["apartments", "retail", "r&d", "common"],
        description="Property types that receive seeded cost lines.",
    )
    cost_categories: List[str] = Field(
        default_factory=lambda: ["shell", "ti"],
        description="Cost categories seeded for every property type.",
    )


class EngineSettings(Model):
    """
    Top-level configuration for a building engine and its synchronizer.

    Example:
        ```python
        settings = EngineSettings(
            persistence=PersistenceSettings(debounce_seconds=0.0),
        )
        engine = BuildingEngine(settings=settings)
        ```
    """

    defaults: BuildingDefaults = Field(default_factory=BuildingDefaults)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)
    seed_default_template: bool = Field(
        default=True,
        description="Start a fresh engine with one default template and floor 1.",
    )
