# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Reusable Pydantic validation utilities for common patterns across the codebase.

This module provides standardized validators for:
- Required, trimmed display names
- Area derived from width and length dimensions
- Conditional requirements (if X then Y)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from .parsing import parse_optional_number


class ValidationMixin:
    """
    Mixin class providing reusable validation methods for Pydantic models.

    Intended for use inside ``model_validator(mode="before")`` hooks, where
    the raw input dictionary is still available.
    """

    @classmethod
    def validate_required_name(cls, value: Any, field: str = "name") -> str:
        """
        Return ``value`` stripped of surrounding whitespace.

        Raises:
            ValueError: If the name is missing or blank
        """
        if value is None or not str(value).strip():
            raise ValueError(f"{field} is required")
        return str(value).strip()

    @classmethod
    def derive_area_from_dimensions(
        cls,
        data: Dict[str, Any],
        area_field: str,
        width_field: str = "width",
        length_field: str = "length",
    ) -> Dict[str, Any]:
        """
        Fill ``area_field`` with width × length when it is blank.

        Dimensions are parsed with the optional-number policy, so blank
        dimensions become ``None`` and malformed ones raise.

        Args:
            data: Raw model input
            area_field: Name of the area field to fill
            width_field: Name of the width field
            length_field: Name of the length field

        Returns:
            A copy of ``data`` with parsed dimensions and, where derivable,
            the area filled in

        Raises:
            ValueError: If a dimension is not numeric
        """
        data = dict(data)
        width = parse_optional_number(data.get(width_field), width_field)
        length = parse_optional_number(data.get(length_field), length_field)
        data[width_field] = width
        data[length_field] = length

        area = data.get(area_field)
        area_blank = area is None or (isinstance(area, str) and not area.strip())
        if area_blank and width is not None and length is not None:
            data[area_field] = width * length
        return data

    @classmethod
    def validate_conditional_requirement(
        cls,
        data: Dict[str, Any],
        condition_field: str,
        condition_values: Union[Any, List[Any]],
        required_field: str,
        error_message: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate that a field is required when a condition is met.

        Args:
            data: Model data dictionary
            condition_field: Field name to check condition on
            condition_values: Value(s) that trigger the requirement
            required_field: Field that becomes required
            error_message: Custom error message

        Returns:
            Validated data dictionary

        Raises:
            ValueError: If required field is missing when condition is met
        """
        condition_value = data.get(condition_field)
        required_value = data.get(required_field)

        # Normalize condition_values to a list
        if not isinstance(condition_values, list):
            condition_values = [condition_values]

        if condition_value in condition_values and required_value is None:
            msg = (
                error_message
                or f"{required_field} is required when {condition_field} is {condition_value}"
            )
            raise ValueError(msg)

        return data
