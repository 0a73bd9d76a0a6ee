# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

import importlib
import logging

"""
Floorplate - Building Configuration and Derived Calculation Engine

Models a building as floor-plate templates, a numbered floor stack, a unit
program grouped by property type and hard cost lines priced against it.
Buildable area, FAR and cost totals are derived after every change, and the
whole configuration can be mirrored to a local cache and a remote store.

Key Entry Points:
- floorplate.engine.BuildingEngine - command surface and state owner
- floorplate.persistence.PersistenceSynchronizer - local cache + remote sync
- floorplate.reporting.* - pandas views of an engine

Example Usage:
    ```python
    from floorplate.engine import BuildingEngine

    engine = BuildingEngine()
    engine.update_parameters(total_land_area=20_000)
    engine.add_floors(4)
    print(f"FAR: {engine.metrics.actual_far:.2f}")
    ```
"""

# Add a NullHandler so applications that don't configure logging see no
# "No handlers could be found" warnings.
logging.getLogger(__name__).addHandler(logging.NullHandler())


# Public API surface (lazy-loaded on first attribute access)
__all__ = [  # noqa: F822 - lazy loading
    "building",
    "core",
    "costs",
    "engine",
    "persistence",
    "program",
    "reporting",
]


_LAZY_MODULES = {
    "building": "floorplate.building",
    "core": "floorplate.core",
    "costs": "floorplate.costs",
    "engine": "floorplate.engine",
    "persistence": "floorplate.persistence",
    "program": "floorplate.program",
    "reporting": "floorplate.reporting",
}


def __getattr__(name: str):
    module_path = _LAZY_MODULES.get(name)
    if module_path is None:
        raise AttributeError(f"module 'floorplate' has no attribute '{name}'")
    module = importlib.import_module(module_path)
    globals()[name] = module
    return module
