# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Test utilities and fixtures for floorplate testing.

Factories build engines and collections with the least ceremony possible;
fixtures wrap the common ones.
"""

from __future__ import annotations

from typing import Iterable, Optional

import pytest

from floorplate.building import FloorSequencer, FloorTemplate, TemplateRegistry
from floorplate.core.primitives import EngineSettings, PersistenceSettings
from floorplate.engine import BuildingEngine
from floorplate.program import UnitInventory


# Settings Utilities
def quiet_settings(seed: bool = False, debounce_seconds: float = 0.0) -> EngineSettings:
    """
    Engine settings for tests: no seeded template and synchronous local writes.

    Args:
        seed: Start engines with the default template and floor 1
        debounce_seconds: Local cache debounce

    Returns:
        EngineSettings ready for testing
    """
    return EngineSettings(
        seed_default_template=seed,
        persistence=PersistenceSettings(debounce_seconds=debounce_seconds),
    )


# Engine Utilities
def create_engine(seed: bool = False) -> BuildingEngine:
    """Create an engine, empty unless ``seed`` is set."""
    return BuildingEngine(settings=quiet_settings(seed=seed))


def create_stacked_engine(
    above: int = 3, below: int = 0, template_area: float = 10_000.0
) -> BuildingEngine:
    """
    Create an engine with one template and a simple floor stack.

    Example:
        >>> engine = create_stacked_engine(above=2, below=1)
        >>> [f.floor_number for f in engine.floors]
        [2, 1, -1]
    """
    engine = create_engine()
    template = engine.add_template("Typical", template_area)
    if above:
        engine.add_floors(above, template_id=template.id)
    if below:
        engine.add_floors(below, is_underground=True, template_id=template.id)
    return engine


# Collection Utilities
def create_registry(*areas: float) -> TemplateRegistry:
    """Registry with one template per area, named T1, T2, ..."""
    registry = TemplateRegistry()
    for i, area in enumerate(areas, start=1):
        registry.add(f"T{i}", area)
    return registry


def create_sequencer(
    registry: Optional[TemplateRegistry] = None, floors: Iterable = ()
) -> FloorSequencer:
    """Sequencer whose default template is the registry's first template."""

    def default_template() -> Optional[str]:
        first = registry.first() if registry is not None else None
        return first.id if first else None

    return FloorSequencer(floors, default_template=default_template)


def create_inventory() -> UnitInventory:
    """
    Inventory with two apartment unit types and one retail unit type.

    - apartments: Studio 500 sf × 10, One Bed 750 sf × 20 (area 20,000, 30 units)
    - retail: Shop 2,000 sf × 2 (area 4,000, 2 units)
    """
    inventory = UnitInventory()
    inventory.add_unit_type("apartments", "Studio", 500, 10)
    inventory.add_unit_type("apartments", "One Bed", 750, 20)
    inventory.add_unit_type("retail", "Shop", 2_000, 2)
    return inventory


@pytest.fixture
def engine() -> BuildingEngine:
    return create_engine()


@pytest.fixture
def seeded_engine() -> BuildingEngine:
    return create_engine(seed=True)


@pytest.fixture
def inventory() -> UnitInventory:
    return create_inventory()


@pytest.fixture
def template() -> FloorTemplate:
    return FloorTemplate(name="Typical", gross_area=10_000)


@pytest.fixture
def make_stacked_engine():
    return create_stacked_engine


@pytest.fixture
def make_registry():
    return create_registry


@pytest.fixture
def make_sequencer():
    return create_sequencer
