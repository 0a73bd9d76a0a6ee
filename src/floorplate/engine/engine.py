# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Building engine: the single owner of a building configuration.

Every mutation goes through a command method on :class:`BuildingEngine`.
A command runs under the engine lock, is rolled back if it raises, and on
success recomputes the derived metrics before anyone can observe the new
state. Commands that change something publish a
:class:`~floorplate.engine.events.ConfigurationChanged` on the engine's
event bus.

Example:
    ```python
    engine = BuildingEngine()
    tower = engine.add_template("Tower", width=100, length=150)
    engine.add_floors(10, template_id=tower.id)
    engine.update_parameters(total_land_area=50_000)
    print(engine.metrics.actual_far)
    ```
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from ..building import (
    BuildingParameters,
    BuildingSummary,
    DerivedMetrics,
    FloorInstance,
    FloorSequencer,
    FloorTemplate,
    Issue,
    ProjectInfo,
    TemplateRegistry,
    compute_derived_metrics,
    find_consistency_issues,
    floor_area,
    summarize_building,
)
from ..core.primitives import (
    ChangeOriginEnum,
    CollectionEnum,
    EngineSettings,
    NonRentableAllocationEnum,
)
from ..costs import CostAllocationEngine, CostLine
from ..program import NonRentableType, UnitAllocation, UnitInventory, UnitType
from .events import ConfigurationChanged, EventBus, Handler, Subscription
from .state import BuildingState

logger = logging.getLogger(__name__)

ALL_COLLECTIONS = frozenset(CollectionEnum)


class BuildingEngine:
    """
    Command surface over templates, floors, the unit program and hard costs.

    Args:
        state: Initial state; when omitted the engine starts empty or, with
            ``settings.seed_default_template``, with one default template
            and floor 1
        settings: Engine configuration
    """

    def __init__(
        self,
        state: Optional[BuildingState] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or EngineSettings()
        self.events = EventBus()
        self._lock = threading.RLock()

        defaults = self.settings.defaults
        self._project = ProjectInfo()
        self._parameters = BuildingParameters(far_allowance=defaults.far_allowance)
        self._templates = TemplateRegistry()
        self._floors = FloorSequencer(
            defaults=defaults, default_template=self._default_template_id
        )
        self._inventory = UnitInventory()
        self._costs = CostAllocationEngine(self._inventory)
        self._metrics = DerivedMetrics()
        self._issues: List[Issue] = []

        if state is not None:
            self._load(state)
            self._costs.recalculate()
        elif self.settings.seed_default_template:
            self._templates.add(defaults.template_name, defaults.template_area)
            self._floors.add_single()
        self._refresh()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, handler: Handler) -> Subscription:
        """Receive a :class:`ConfigurationChanged` after each changing command."""
        return self.events.subscribe(handler)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def metrics(self) -> DerivedMetrics:
        return self._metrics

    @property
    def issues(self) -> List[Issue]:
        return list(self._issues)

    @property
    def project(self) -> ProjectInfo:
        return self._project

    @property
    def parameters(self) -> BuildingParameters:
        return self._parameters

    @property
    def templates(self) -> List[FloorTemplate]:
        return list(self._templates)

    @property
    def floors(self) -> List[FloorInstance]:
        """Floors ordered highest floor number first."""
        return self._floors.sorted()

    @property
    def unit_types(self) -> List[UnitType]:
        return list(self._inventory)

    @property
    def unit_allocations(self) -> List[UnitAllocation]:
        return self._inventory.allocations

    @property
    def non_rentable_types(self) -> List[NonRentableType]:
        return self._inventory.non_rentable_types

    @property
    def cost_lines(self) -> List[CostLine]:
        return list(self._costs)

    def template(self, template_id: str) -> Optional[FloorTemplate]:
        return self._templates.get(template_id)

    def floor(self, floor_number: int) -> Optional[FloorInstance]:
        return self._floors.get(floor_number)

    def floor_area(self, floor_number: int) -> float:
        floor = self._floors.get(floor_number)
        return floor_area(floor, self._templates.mapping()) if floor else 0.0

    def property_areas(self) -> Dict[str, float]:
        return self._inventory.property_areas()

    def property_units(self) -> Dict[str, int]:
        return self._inventory.property_units()

    def subtotal(self, property_type: str) -> float:
        return self._costs.subtotal(property_type)

    def grand_total(self) -> float:
        return self._costs.grand_total()

    def cost_per_gross_sf(self) -> float:
        return self._costs.cost_per_gross_sf()

    def shell_vs_ti(self) -> Dict[str, float]:
        return self._costs.shell_vs_ti()

    def allocation(self, floor_number: int, unit_type_id: str) -> int:
        floor = self._floors.get(floor_number)
        return self._inventory.allocation(floor.id, unit_type_id) if floor else 0

    def non_rentable_area_by_floor(self) -> Dict[int, float]:
        with self._lock:
            return self._inventory.non_rentable_area_by_floor(
                self._floors.floor_numbers, self.floor_area
            )

    def summary(self) -> BuildingSummary:
        with self._lock:
            return summarize_building(
                self._floors, self._templates.mapping(), self._inventory
            )

    def snapshot(self) -> BuildingState:
        with self._lock:
            return self._capture()

    # ------------------------------------------------------------------
    # Project and site parameters
    # ------------------------------------------------------------------

    def update_project(self, **changes: Any) -> ProjectInfo:
        with self._command(CollectionEnum.PROJECT):
            self._project = self._project.with_updates(**changes)
        return self._project

    def update_parameters(self, **changes: Any) -> BuildingParameters:
        """Update FAR allowance, land area or footprint (parsed leniently)."""
        with self._command(CollectionEnum.PROJECT):
            self._parameters = self._parameters.with_updates(**changes)
        return self._parameters

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def add_template(
        self,
        name: str,
        gross_area: Any = None,
        width: Any = None,
        length: Any = None,
    ) -> FloorTemplate:
        with self._command(CollectionEnum.TEMPLATES):
            return self._templates.add(name, gross_area, width, length)

    def update_template(self, template_id: str, **changes: Any) -> Optional[FloorTemplate]:
        with self._command(CollectionEnum.TEMPLATES):
            return self._templates.update(template_id, **changes)

    def remove_template(self, template_id: str) -> bool:
        """
        Remove a template and reassign its floors.

        Floors fall back to the remaining template with the lowest creation
        order. Removing the last template is a no-op.
        """
        with self._command(CollectionEnum.TEMPLATES, CollectionEnum.FLOORS):
            removed = self._templates.remove(template_id)
            if removed is None:
                return False
            fallback = self._default_template_id()
            moved = self._floors.reassign_template(template_id, fallback)
            logger.debug(f"Reassigned {moved} floors from {removed.name!r} to {fallback}")
            return True

    # ------------------------------------------------------------------
    # Floors
    # ------------------------------------------------------------------

    def add_floor(
        self, is_underground: bool = False, template_id: Optional[str] = None
    ) -> FloorInstance:
        with self._command(CollectionEnum.FLOORS):
            return self._floors.add_single(
                is_underground, self._checked_template(template_id)
            )

    def add_floors(
        self,
        count: int,
        is_underground: bool = False,
        template_id: Optional[str] = None,
        position: Any = None,
        specific_position: Optional[int] = None,
        numbering_pattern: Any = "consecutive",
        custom_numbering: Optional[Sequence[Any]] = None,
    ) -> List[FloorInstance]:
        with self._command(CollectionEnum.FLOORS):
            return self._floors.add_bulk(
                count,
                is_underground=is_underground,
                template_id=self._checked_template(template_id),
                position=position,
                specific_position=specific_position,
                numbering_pattern=numbering_pattern,
                custom_numbering=custom_numbering,
            )

    def remove_floors(self, floor_numbers: Iterable[int]) -> List[FloorInstance]:
        """Remove floors and their unit allocations; never leaves zero floors."""
        with self._command(CollectionEnum.FLOORS, CollectionEnum.UNIT_ALLOCATIONS):
            removed = self._floors.remove(floor_numbers)
            self._inventory.remove_allocations_for_floors(f.id for f in removed)
            return removed

    def reorder_floor(self, floor_number: int, direction: Any) -> bool:
        with self._command(CollectionEnum.FLOORS):
            return self._floors.reorder(floor_number, direction)

    def copy_floor(
        self,
        source_floor_number: int,
        target_floor_numbers: Iterable[int],
        include_allocations: bool = False,
    ) -> List[FloorInstance]:
        """Copy a floor's configuration (and optionally its unit mix) to other floors."""
        targets = list(target_floor_numbers)
        with self._command(CollectionEnum.FLOORS, CollectionEnum.UNIT_ALLOCATIONS):
            copied = self._floors.copy(source_floor_number, targets)
            source = self._floors.get(source_floor_number)
            if include_allocations and source is not None and copied:
                self._inventory.copy_allocations(source.id, [f.id for f in copied])
            return copied

    def update_floor(self, floor_number: int, **changes: Any) -> Optional[FloorInstance]:
        with self._command(CollectionEnum.FLOORS):
            if "template_id" in changes:
                changes["template_id"] = self._checked_template(changes["template_id"])
            return self._floors.update(floor_number, **changes)

    def bulk_edit_floors(
        self, floor_numbers: Iterable[int], field: str, value: Any
    ) -> List[FloorInstance]:
        with self._command(CollectionEnum.FLOORS):
            if field == "template_id":
                value = self._checked_template(value)
            return self._floors.bulk_edit(floor_numbers, field, value)

    def update_floor_spaces(self, floor_number: int, spaces: Iterable[Any]) -> Optional[FloorInstance]:
        with self._command(CollectionEnum.FLOORS):
            return self._floors.update_spaces(floor_number, spaces)

    def update_floor_systems(self, floor_number: int, systems: Any) -> Optional[FloorInstance]:
        with self._command(CollectionEnum.FLOORS):
            return self._floors.update_building_systems(floor_number, systems)

    # ------------------------------------------------------------------
    # Unit program
    # ------------------------------------------------------------------

    def add_unit_type(
        self,
        category: str,
        name: str,
        area: Any = None,
        units: Any = None,
        width: Any = None,
        length: Any = None,
    ) -> UnitType:
        with self._command(CollectionEnum.UNIT_TYPES, CollectionEnum.COST_LINES):
            unit = self._inventory.add_unit_type(category, name, area, units, width, length)
            self._costs.recalculate()
            return unit

    def update_unit_type(self, unit_type_id: str, **changes: Any) -> Optional[UnitType]:
        with self._command(CollectionEnum.UNIT_TYPES, CollectionEnum.COST_LINES):
            unit = self._inventory.update_unit_type(unit_type_id, **changes)
            self._costs.recalculate()
            return unit

    def remove_unit_type(self, unit_type_id: str) -> Optional[UnitType]:
        with self._command(
            CollectionEnum.UNIT_TYPES,
            CollectionEnum.UNIT_ALLOCATIONS,
            CollectionEnum.COST_LINES,
        ):
            unit = self._inventory.remove_unit_type(unit_type_id)
            self._costs.recalculate()
            return unit

    def rename_category(self, old: str, new: str) -> int:
        with self._command(CollectionEnum.UNIT_TYPES, CollectionEnum.COST_LINES):
            count = self._inventory.rename_category(old, new)
            self._costs.recalculate()
            return count

    def remove_category(self, category: str) -> List[UnitType]:
        with self._command(
            CollectionEnum.UNIT_TYPES,
            CollectionEnum.UNIT_ALLOCATIONS,
            CollectionEnum.COST_LINES,
        ):
            removed = self._inventory.remove_category(category)
            self._costs.recalculate()
            return removed

    def set_allocation(
        self, floor_number: int, unit_type_id: str, quantity: Any
    ) -> Optional[UnitAllocation]:
        """Place units on a floor; a quantity of 0 clears the allocation."""
        with self._command(CollectionEnum.UNIT_ALLOCATIONS):
            floor = self._floors.get(floor_number)
            if floor is None:
                logger.warning(f"Ignoring allocation on unknown floor {floor_number}")
                return None
            return self._inventory.set_allocation(floor.id, unit_type_id, quantity)

    def copy_allocations(
        self, source_floor_number: int, target_floor_numbers: Iterable[int]
    ) -> List[UnitAllocation]:
        with self._command(CollectionEnum.UNIT_ALLOCATIONS):
            source = self._floors.get(source_floor_number)
            targets = [self._floors.get(n) for n in target_floor_numbers]
            if source is None:
                return []
            return self._inventory.copy_allocations(
                source.id, [t.id for t in targets if t is not None]
            )

    def add_non_rentable(
        self,
        name: str,
        square_footage: Any = None,
        allocation_method: Any = NonRentableAllocationEnum.UNIFORM,
        percentage: Any = None,
        floor_constraints: Iterable[int] = (),
    ) -> NonRentableType:
        with self._command(CollectionEnum.NON_RENTABLE_TYPES):
            return self._inventory.add_non_rentable(
                name, square_footage, allocation_method, percentage, floor_constraints
            )

    def update_non_rentable(self, non_rentable_id: str, **changes: Any) -> Optional[NonRentableType]:
        with self._command(CollectionEnum.NON_RENTABLE_TYPES):
            return self._inventory.update_non_rentable(non_rentable_id, **changes)

    def remove_non_rentable(self, non_rentable_id: str) -> Optional[NonRentableType]:
        with self._command(CollectionEnum.NON_RENTABLE_TYPES):
            return self._inventory.remove_non_rentable(non_rentable_id)

    # ------------------------------------------------------------------
    # Hard costs
    # ------------------------------------------------------------------

    def add_cost_line(
        self,
        property_type: str,
        cost_category: str,
        unit_type_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CostLine:
        with self._command(CollectionEnum.COST_LINES):
            return self._costs.add_cost_line(property_type, cost_category, unit_type_id, notes)

    def update_cost_line(self, line_id: str, **changes: Any) -> Optional[CostLine]:
        with self._command(CollectionEnum.COST_LINES):
            return self._costs.update_cost_line(line_id, **changes)

    def delete_cost_line(self, line_id: str) -> bool:
        with self._command(CollectionEnum.COST_LINES):
            return self._costs.delete_cost_line(line_id) is not None

    def seed_default_costs(self) -> List[CostLine]:
        """Seed shell and TI lines for the default property types, once."""
        defaults = self.settings.defaults
        with self._command(CollectionEnum.COST_LINES):
            return self._costs.seed_defaults(defaults.property_types, defaults.cost_categories)

    # ------------------------------------------------------------------
    # Whole-state operations
    # ------------------------------------------------------------------

    def restore(
        self, state: BuildingState, origin: ChangeOriginEnum = ChangeOriginEnum.LOCAL
    ) -> None:
        """
        Replace every collection with ``state``.

        Cost totals are re-derived against the restored unit program, so lines
        saved against a unit type that is no longer present are repaired.
        """
        with self._command(*ALL_COLLECTIONS, origin=origin):
            self._load(state)
            self._costs.recalculate()

    def reset(self) -> None:
        """Return to the state of a freshly constructed engine."""
        fresh = BuildingEngine(settings=self.settings)
        self.restore(fresh.snapshot())

    def export_json(self, indent: Optional[int] = 2) -> str:
        return self.snapshot().model_dump_json(indent=indent)

    def import_json(self, payload: str) -> None:
        """Replace the state with a JSON export. Invalid payloads raise ``ValueError``."""
        self.restore(BuildingState.model_validate_json(payload))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _command(
        self,
        *collections: CollectionEnum,
        origin: ChangeOriginEnum = ChangeOriginEnum.LOCAL,
    ) -> Iterator[None]:
        with self._lock:
            before = self._capture()
            try:
                yield
            except Exception:
                self._load(before)
                self._refresh()
                raise
            self._refresh()
            after = self._capture()
            if after == before and origin == ChangeOriginEnum.LOCAL:
                return
            self.events.publish(
                ConfigurationChanged(
                    collections=frozenset(collections),
                    state=after,
                    metrics=self._metrics,
                    origin=origin,
                )
            )

    def _refresh(self) -> None:
        templates = self._templates.mapping()
        self._metrics = compute_derived_metrics(
            self._floors, templates, self._parameters.total_land_area
        )
        self._issues = find_consistency_issues(
            self._floors, templates, self._parameters, self._metrics
        )

    def _capture(self) -> BuildingState:
        return BuildingState(
            project=self._project,
            parameters=self._parameters,
            templates=list(self._templates),
            floors=self._floors.sorted(),
            unit_types=list(self._inventory),
            unit_allocations=self._inventory.allocations,
            non_rentable_types=self._inventory.non_rentable_types,
            cost_lines=list(self._costs),
        )

    def _load(self, state: BuildingState) -> None:
        self._project = state.project
        self._parameters = state.parameters
        self._templates.replace_all(state.templates)
        self._floors.replace_all(state.floors)
        self._inventory.replace_all(
            state.unit_types, state.unit_allocations, state.non_rentable_types
        )
        self._costs.replace_all(state.cost_lines)

    def _default_template_id(self) -> Optional[str]:
        template = self._templates.first()
        return template.id if template else None

    def _checked_template(self, template_id: Optional[str]) -> Optional[str]:
        if template_id is None or template_id in self._templates:
            return template_id
        fallback = self._default_template_id()
        logger.warning(f"Unknown template {template_id}; using {fallback}")
        return fallback
