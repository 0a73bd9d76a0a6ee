# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
The building engine, its state snapshot and its change notifications.
"""

from .engine import BuildingEngine
from .events import ConfigurationChanged, EventBus, Subscription
from .state import BuildingState

__all__ = [
    "BuildingEngine",
    "BuildingState",
    "ConfigurationChanged",
    "EventBus",
    "Subscription",
]
