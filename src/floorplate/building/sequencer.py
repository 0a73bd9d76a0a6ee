# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Floor sequencer: the owner of the ordered floor stack.

The stack is kept sorted by floor number, highest first, and each floor's
``position`` is its index in that order. Every command validates its whole
effect before committing, so a rejected command leaves the stack untouched.

Numbering rules for insertion:

- Above grade, new floors start one past the highest above-grade floor
  (1 when there is none).
- Below grade, new floors end one below the lowest below-grade floor
  (-1 when there is none), so a block of ``count`` floors starts at
  ``lowest - span``.
- ``skip`` numbering leaves a gap between every generated floor.
- ``custom`` numbering takes caller-supplied numbers, falling back to
  consecutive numbering where a value is missing.
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Union,
)

from ..core.primitives import (
    BuildingDefaults,
    InsertPositionEnum,
    NumberingPatternEnum,
    ReorderDirectionEnum,
)
from .floor import (
    BuildingSystemsConfig,
    FloorInstance,
    SpaceDefinition,
    default_floor_label,
)

logger = logging.getLogger(__name__)

COPYABLE_FIELDS = (
    "template_id",
    "custom_area",
    "floor_to_floor_height",
    "core_percentage",
    "primary_use",
    "secondary_use",
    "secondary_use_percentage",
    "spaces",
    "building_systems",
)

_PROTECTED_FIELDS = frozenset({"id", "position"})


def plan_floor_numbers(
    existing: Iterable[FloorInstance],
    count: int,
    is_underground: bool,
    position: InsertPositionEnum = InsertPositionEnum.TOP,
    specific_position: Optional[int] = None,
    numbering_pattern: NumberingPatternEnum = NumberingPatternEnum.CONSECUTIVE,
    custom_numbering: Optional[Sequence[Any]] = None,
) -> List[int]:
    """
    Generate the floor numbers for a bulk insertion.

    Args:
        existing: Floors already in the stack
        count: Number of floors to generate
        is_underground: Whether the new floors are below grade
        position: Insertion position; ``specific`` starts at ``specific_position``
        specific_position: Starting floor number for ``specific`` insertion
        numbering_pattern: consecutive, skip or custom
        custom_numbering: Caller-supplied numbers for the custom pattern

    Returns:
        ``count`` floor numbers in generation order
    """
    step = 2 if numbering_pattern == NumberingPatternEnum.SKIP else 1

    if position == InsertPositionEnum.SPECIFIC:
        start = int(specific_position)
    elif is_underground:
        lowest = min((f.floor_number for f in existing if f.is_underground), default=0)
        span = step * (count - 1) + 1
        start = min(lowest, 0) - span
    else:
        highest = max(
            (f.floor_number for f in existing if not f.is_underground), default=0
        )
        start = max(highest, 0) + 1

    if numbering_pattern != NumberingPatternEnum.CUSTOM:
        return [start + step * i for i in range(count)]

    custom = list(custom_numbering or [])
    numbers = []
    for i in range(count):
        value = custom[i] if i < len(custom) else None
        if value is None or (isinstance(value, str) and not value.strip()):
            numbers.append(start + i)
            continue
        try:
            numbers.append(int(value))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Custom floor number {value!r} is not an integer") from e
    return numbers


class FloorSequencer:
    """Mutable, always-sorted stack of :class:`FloorInstance` records."""

    def __init__(
        self,
        floors: Iterable[FloorInstance] = (),
        defaults: Optional[BuildingDefaults] = None,
        default_template: Callable[[], Optional[str]] = lambda: None,
    ):
        self._defaults = defaults or BuildingDefaults()
        self._default_template = default_template
        self._floors: List[FloorInstance] = []
        self.replace_all(floors)

    def replace_all(self, floors: Iterable[FloorInstance]) -> None:
        """Reset the stack (used on restore); floor numbers must be unique."""
        floors = list(floors)
        self._check_unique_numbers(floors)
        self._commit(floors)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[FloorInstance]:
        return iter(list(self._floors))

    def __len__(self) -> int:
        return len(self._floors)

    def sorted(self) -> List[FloorInstance]:
        """Floors ordered highest floor number first."""
        return list(self._floors)

    def get(self, floor_number: int) -> Optional[FloorInstance]:
        for floor in self._floors:
            if floor.floor_number == floor_number:
                return floor
        return None

    @property
    def floor_numbers(self) -> List[int]:
        return [f.floor_number for f in self._floors]

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    def add_single(
        self, is_underground: bool = False, template_id: Optional[str] = None
    ) -> FloorInstance:
        """Add one floor one past the current extreme of its grade."""
        position = (
            InsertPositionEnum.BOTTOM if is_underground else InsertPositionEnum.TOP
        )
        return self.add_bulk(
            1, is_underground=is_underground, template_id=template_id, position=position
        )[0]

    def add_bulk(
        self,
        count: int,
        is_underground: bool = False,
        template_id: Optional[str] = None,
        position: Union[InsertPositionEnum, str, None] = None,
        specific_position: Optional[int] = None,
        numbering_pattern: Union[NumberingPatternEnum, str] = NumberingPatternEnum.CONSECUTIVE,
        custom_numbering: Optional[Sequence[Any]] = None,
    ) -> List[FloorInstance]:
        """
        Insert ``count`` floors and return them, highest first.

        Raises:
            ValueError: If the count, position and grade are inconsistent, or
                if any generated number collides with an existing floor or
                with another generated floor
        """
        count = int(count)
        if count < 1:
            raise ValueError("count must be at least 1")
        if position is None:
            position = (
                InsertPositionEnum.BOTTOM if is_underground else InsertPositionEnum.TOP
            )
        position = InsertPositionEnum(position)
        numbering_pattern = NumberingPatternEnum(numbering_pattern)

        if position == InsertPositionEnum.TOP and is_underground:
            raise ValueError("Floors inserted at the top must be above ground")
        if position == InsertPositionEnum.BOTTOM and not is_underground:
            raise ValueError("Floors inserted at the bottom must be underground")
        if position == InsertPositionEnum.SPECIFIC:
            if specific_position is None or str(specific_position).strip() == "":
                raise ValueError("specific_position is required for specific insertion")
            try:
                specific_position = int(specific_position)
            except (TypeError, ValueError) as e:
                raise ValueError(
                    f"specific_position must be an integer, got {specific_position!r}"
                ) from e

        numbers = plan_floor_numbers(
            self._floors,
            count,
            is_underground,
            position,
            specific_position,
            numbering_pattern,
            custom_numbering,
        )
        self._check_collisions(numbers)

        if template_id is None:
            template_id = self._default_template()
        new_floors = [self._new_floor(n, is_underground, template_id) for n in numbers]
        self._commit(self._floors + new_floors)
        logger.debug(f"Added floors {numbers} ({position.value}, {numbering_pattern.value})")
        created = {f.id for f in new_floors}
        return [f for f in self._floors if f.id in created]

    # ------------------------------------------------------------------
    # Removal and ordering
    # ------------------------------------------------------------------

    def remove(self, floor_numbers: Iterable[int]) -> List[FloorInstance]:
        """
        Remove every matching floor and return the removed floors.

        If nothing would remain, a default floor 1 is synthesized so the
        stack is never empty after a removal.
        """
        targets = set(floor_numbers)
        removed = [f for f in self._floors if f.floor_number in targets]
        if not removed:
            logger.debug(f"No floors matched removal of {sorted(targets)}")
            return []
        remaining = [f for f in self._floors if f.floor_number not in targets]
        if not remaining:
            remaining = [self._new_floor(1, False, self._default_template())]
            logger.debug("Removal emptied the stack; synthesized default floor 1")
        self._commit(remaining)
        return removed

    def reorder(
        self, floor_number: int, direction: Union[ReorderDirectionEnum, str]
    ) -> bool:
        """
        Swap a floor's number with its neighbour's.

        ``up`` moves toward the higher floor number. Returns ``False`` for a
        no-op (boundary or unknown floor).
        """
        direction = ReorderDirectionEnum(direction)
        numbers = self.floor_numbers
        if floor_number not in numbers:
            logger.debug(f"Ignoring reorder of unknown floor {floor_number}")
            return False
        index = numbers.index(floor_number)
        neighbour = index - 1 if direction == ReorderDirectionEnum.UP else index + 1
        if neighbour < 0 or neighbour >= len(numbers):
            return False

        floors = list(self._floors)
        a, b = floors[index], floors[neighbour]
        floors[index] = self._renumbered(a, b.floor_number)
        floors[neighbour] = self._renumbered(b, a.floor_number)
        self._commit(floors)
        return True

    # ------------------------------------------------------------------
    # Attribute updates
    # ------------------------------------------------------------------

    def copy(
        self, source_floor_number: int, target_floor_numbers: Iterable[int]
    ) -> List[FloorInstance]:
        """Copy the source floor's configuration onto each target floor."""
        source = self.get(source_floor_number)
        targets = set(target_floor_numbers) - {source_floor_number}
        if source is None or not targets:
            logger.debug(f"Nothing to copy from floor {source_floor_number}")
            return []
        values = {field: getattr(source, field) for field in COPYABLE_FIELDS}
        return self._apply({n: dict(values) for n in targets})

    def update(self, floor_number: int, **changes: Any) -> Optional[FloorInstance]:
        """Apply a partial update to one floor. Unknown floors are ignored."""
        updated = self._apply({floor_number: changes})
        return updated[0] if updated else None

    def bulk_edit(
        self, floor_numbers: Iterable[int], field: str, value: Any
    ) -> List[FloorInstance]:
        """Set one attribute on several floors at once."""
        if field == "floor_number":
            raise ValueError("floor_number cannot be bulk edited")
        return self._apply({n: {field: value} for n in floor_numbers})

    def update_spaces(
        self,
        floor_number: int,
        spaces: Iterable[Union[SpaceDefinition, Dict[str, Any]]],
    ) -> Optional[FloorInstance]:
        normalized = [
            s if isinstance(s, SpaceDefinition) else SpaceDefinition.model_validate(s)
            for s in spaces
        ]
        return self.update(floor_number, spaces=normalized)

    def update_building_systems(
        self,
        floor_number: int,
        systems: Union[BuildingSystemsConfig, Dict[str, Any], None],
    ) -> Optional[FloorInstance]:
        if isinstance(systems, dict):
            systems = BuildingSystemsConfig.model_validate(systems)
        return self.update(floor_number, building_systems=systems)

    def reassign_template(self, old_id: str, new_id: Optional[str]) -> int:
        """Point every floor using ``old_id`` at ``new_id``; returns the count."""
        floors = [
            f.model_copy(update={"template_id": new_id}) if f.template_id == old_id else f
            for f in self._floors
        ]
        count = sum(1 for f in self._floors if f.template_id == old_id)
        if count:
            self._commit(floors)
        return count

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new_floor(
        self, floor_number: int, is_underground: bool, template_id: Optional[str]
    ) -> FloorInstance:
        defaults = self._defaults
        return FloorInstance(
            floor_number=floor_number,
            is_underground=is_underground,
            template_id=template_id,
            floor_to_floor_height=defaults.floor_to_floor_height,
            core_percentage=defaults.core_percentage,
            primary_use=(
                defaults.below_ground_use if is_underground else defaults.above_ground_use
            ),
        )

    @staticmethod
    def _renumbered(floor: FloorInstance, floor_number: int, **changes: Any) -> FloorInstance:
        if "label" not in changes and floor.label == default_floor_label(
            floor.floor_number, floor.is_underground
        ):
            changes["label"] = default_floor_label(floor_number, floor.is_underground)
        return floor.with_updates(floor_number=floor_number, **changes)

    def _apply(self, changes_by_number: Dict[int, Dict[str, Any]]) -> List[FloorInstance]:
        """Validate and commit per-floor changes atomically."""
        floors = list(self._floors)
        updated_ids = []
        for index, floor in enumerate(floors):
            changes = changes_by_number.get(floor.floor_number)
            if changes is None:
                continue
            protected = _PROTECTED_FIELDS.intersection(changes)
            if protected:
                raise ValueError(f"Cannot update floor fields: {sorted(protected)}")
            changes = dict(changes)
            new_number = changes.pop("floor_number", floor.floor_number)
            if new_number != floor.floor_number:
                floors[index] = self._renumbered(floor, int(new_number), **changes)
            elif changes:
                floors[index] = floor.with_updates(**changes)
            updated_ids.append(floor.id)

        missing = set(changes_by_number) - {f.floor_number for f in self._floors}
        if missing:
            logger.debug(f"Ignoring updates for unknown floors {sorted(missing)}")
        if not updated_ids:
            return []
        self._check_unique_numbers(floors)
        self._commit(floors)
        return [f for f in self._floors if f.id in set(updated_ids)]

    def _check_collisions(self, numbers: List[int]) -> None:
        taken = set(self.floor_numbers)
        seen = set()
        for n in numbers:
            if n in taken or n in seen:
                raise ValueError(f"Floor number {n} is already in use")
            seen.add(n)

    @staticmethod
    def _check_unique_numbers(floors: List[FloorInstance]) -> None:
        seen = set()
        for floor in floors:
            if floor.floor_number in seen:
                raise ValueError(f"Floor number {floor.floor_number} is already in use")
            seen.add(floor.floor_number)

    def _commit(self, floors: List[FloorInstance]) -> None:
        ordered = sorted(floors, key=lambda f: f.floor_number, reverse=True)
        self._floors = [
            f if f.position == i else f.model_copy(update={"position": i})
            for i, f in enumerate(ordered)
        ]
