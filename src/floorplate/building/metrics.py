# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Derived building metrics.

Everything here is a pure function of the floor stack, the template
registry and the site parameters. Inputs are read leniently: a floor that
references a missing template contributes zero area, and string values that
do not parse as numbers count as zero. Nothing in this module raises on bad
input.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Iterable, List, Mapping, Optional

from ..core.primitives import (
    IssueSeverityEnum,
    IssueTypeEnum,
    Model,
    PositiveFloat,
    parse_number,
)
from .floor import FloorInstance
from .parameters import BuildingParameters
from .template import FloorTemplate

logger = logging.getLogger(__name__)


class DerivedMetrics(Model):
    """Buildable area and FAR derived from the floor stack."""

    total_above_ground_area: PositiveFloat = 0.0
    total_below_ground_area: PositiveFloat = 0.0
    total_buildable_area: PositiveFloat = 0.0
    actual_far: PositiveFloat = 0.0


class Issue(Model):
    """A consistency problem found in a building configuration."""

    type: IssueTypeEnum
    message: str
    severity: IssueSeverityEnum
    floor_number: Optional[int] = None


def floor_area(floor: FloorInstance, templates: Mapping[str, FloorTemplate]) -> float:
    """Custom area when set, else the template's gross area, else 0."""
    custom = getattr(floor, "custom_area", None)
    if custom is not None and not (isinstance(custom, str) and not custom.strip()):
        return parse_number(custom)
    template = templates.get(floor.template_id) if floor.template_id else None
    if template is None:
        return 0.0
    return parse_number(template.gross_area)


def compute_derived_metrics(
    floors: Iterable[FloorInstance],
    templates: Mapping[str, FloorTemplate],
    land_area: Any,
) -> DerivedMetrics:
    """
    Recompute buildable area and FAR.

    ``actual_far`` is above-grade area over land area, and 0 when the land
    area is not positive.
    """
    above = 0.0
    below = 0.0
    for floor in floors:
        area = floor_area(floor, templates)
        if floor.is_underground:
            below += area
        else:
            above += area

    land = parse_number(land_area)
    return DerivedMetrics(
        total_above_ground_area=above,
        total_below_ground_area=below,
        total_buildable_area=above + below,
        actual_far=above / land if land > 0 else 0.0,
    )


def find_consistency_issues(
    floors: Iterable[FloorInstance],
    templates: Mapping[str, FloorTemplate],
    parameters: BuildingParameters,
    metrics: Optional[DerivedMetrics] = None,
) -> List[Issue]:
    """Flag configuration problems that the commands themselves allow."""
    floors = list(floors)
    if metrics is None:
        metrics = compute_derived_metrics(floors, templates, parameters.total_land_area)
    issues: List[Issue] = []

    counts = Counter(f.floor_number for f in floors)
    for number, count in sorted(counts.items(), reverse=True):
        if count > 1:
            issues.append(
                Issue(
                    type=IssueTypeEnum.DUPLICATE_FLOOR_NUMBER,
                    message=f"Floor number {number} is used by {count} floors",
                    severity=IssueSeverityEnum.ERROR,
                    floor_number=number,
                )
            )

    footprint = parse_number(parameters.building_footprint)
    for floor in floors:
        n = floor.floor_number
        if floor.template_id is not None and floor.template_id not in templates:
            issues.append(
                Issue(
                    type=IssueTypeEnum.MISSING_TEMPLATE,
                    message=f"{floor.label} references a template that no longer exists",
                    severity=IssueSeverityEnum.ERROR,
                    floor_number=n,
                )
            )
        if floor.is_underground and n > 0:
            issues.append(
                Issue(
                    type=IssueTypeEnum.GRADE_MISMATCH,
                    message=f"{floor.label} is marked underground but numbered above grade",
                    severity=IssueSeverityEnum.WARNING,
                    floor_number=n,
                )
            )
        elif not floor.is_underground and n <= 0:
            issues.append(
                Issue(
                    type=IssueTypeEnum.GRADE_MISMATCH,
                    message=f"{floor.label} is above ground but numbered below grade",
                    severity=IssueSeverityEnum.WARNING,
                    floor_number=n,
                )
            )

        area = floor_area(floor, templates)
        if area <= 0:
            issues.append(
                Issue(
                    type=IssueTypeEnum.ZERO_AREA_FLOOR,
                    message=f"{floor.label} has no floor area",
                    severity=IssueSeverityEnum.WARNING,
                    floor_number=n,
                )
            )
        elif footprint > 0 and not floor.is_underground and area > footprint:
            issues.append(
                Issue(
                    type=IssueTypeEnum.FOOTPRINT_EXCEEDED,
                    message=(
                        f"{floor.label} area {area:,.0f} sf exceeds the building "
                        f"footprint of {footprint:,.0f} sf"
                    ),
                    severity=IssueSeverityEnum.WARNING,
                    floor_number=n,
                )
            )

    allowance = parse_number(parameters.far_allowance)
    if parse_number(parameters.total_land_area) > 0 and metrics.actual_far > allowance:
        issues.append(
            Issue(
                type=IssueTypeEnum.FAR_EXCEEDED,
                message=(
                    f"Actual FAR {metrics.actual_far:.2f} exceeds the allowance "
                    f"of {allowance:.2f}"
                ),
                severity=IssueSeverityEnum.WARNING,
            )
        )

    if issues:
        logger.debug(f"Found {len(issues)} consistency issues")
    return issues
