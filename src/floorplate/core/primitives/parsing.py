# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Lenient numeric parsing for user-entered values.

Form inputs reach the engine as strings, often empty or half-typed. Each
record field applies exactly one of these policies:

- ``parse_number``: empty and malformed input collapse to a default.
- ``parse_optional_number``: empty input means "unset"; malformed input is
  rejected.
- ``parse_required_number``: both empty and malformed input are rejected.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

logger = logging.getLogger(__name__)

Numeric = Any  # str | int | float | None


def _is_blank(value: Numeric) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_float(value: Numeric) -> float:
    if isinstance(value, bool):
        raise TypeError("booleans are not numbers")
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        result = float(str(value).strip().replace(",", ""))
    if math.isnan(result) or math.isinf(result):
        raise ValueError(f"{value!r} is not a finite number")
    return result


def parse_number(value: Numeric, default: float = 0.0) -> float:
    """Parse ``value``, returning ``default`` for blank or malformed input."""
    if _is_blank(value):
        return default
    try:
        return _to_float(value)
    except (TypeError, ValueError):
        logger.debug(f"Coercing non-numeric value {value!r} to {default}")
        return default


def parse_optional_number(value: Numeric, field: str = "value") -> Optional[float]:
    """Parse ``value``; blank means ``None`` and malformed input raises."""
    if _is_blank(value):
        return None
    try:
        return _to_float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{field} must be a number, got {value!r}") from e


def parse_required_number(value: Numeric, field: str = "value") -> float:
    """Parse ``value``; blank or malformed input raises ``ValueError``."""
    if _is_blank(value):
        raise ValueError(f"{field} is required")
    return parse_optional_number(value, field)


def parse_count(value: Numeric) -> int:
    """Parse a unit count leniently, truncating toward zero."""
    return int(parse_number(value))
