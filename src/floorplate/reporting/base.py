# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Base reporting classes.

Reports read a :class:`~floorplate.engine.BuildingEngine` and lay its state
out as pandas DataFrames. Reports only format and present data; every figure
comes from the engine's own calculations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, List

import pandas as pd

if TYPE_CHECKING:
    from ..engine import BuildingEngine


class BaseReport(ABC):
    """Abstract base class for all report formatters."""

    #: Column order of the generated frame
    columns: List[str] = []

    def __init__(self, engine: "BuildingEngine"):
        # Import at runtime to avoid circular dependencies
        from ..engine import BuildingEngine  # noqa: PLC0415

        if not isinstance(engine, BuildingEngine):
            raise TypeError(f"{type(self).__name__} requires a BuildingEngine")
        self._engine = engine

    def generate(self) -> pd.DataFrame:
        """Build the report frame; empty frames keep their columns."""
        records = self._records()
        if not records:
            return pd.DataFrame(columns=self.columns)
        return pd.DataFrame.from_records(records, columns=self.columns)

    @abstractmethod
    def _records(self) -> List[Dict]:
        pass
