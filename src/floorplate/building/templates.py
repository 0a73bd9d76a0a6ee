# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Template registry: the owner of floor-plate template definitions.

The registry keeps templates in creation order. Removing a template never
leaves the registry empty once it holds one, and the engine reassigns any
floors that referenced a removed template to ``first()``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .template import FloorTemplate

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({"name", "gross_area", "width", "length"})


def _name_key(name: str) -> str:
    return name.strip().casefold()


class TemplateRegistry:
    """Mutable collection of :class:`FloorTemplate` records keyed by id."""

    def __init__(self, templates: Iterable[FloorTemplate] = ()):
        self._templates: Dict[str, FloorTemplate] = {}
        self._next_order = 0
        self.replace_all(templates)

    def replace_all(self, templates: Iterable[FloorTemplate]) -> None:
        """Reset the registry to ``templates`` (used on restore)."""
        ordered = sorted(templates, key=lambda t: t.creation_order)
        names = set()
        for template in ordered:
            if _name_key(template.name) in names:
                raise ValueError(
                    f"A floor template named {template.name!r} already exists"
                )
            names.add(_name_key(template.name))
        self._templates = {t.id: t for t in ordered}
        self._next_order = max((t.creation_order + 1 for t in ordered), default=0)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[FloorTemplate]:
        return iter(sorted(self._templates.values(), key=lambda t: t.creation_order))

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def get(self, template_id: Optional[str]) -> Optional[FloorTemplate]:
        if template_id is None:
            return None
        return self._templates.get(template_id)

    def first(self) -> Optional[FloorTemplate]:
        """Template with the lowest creation order, if any."""
        return next(iter(self), None)

    @property
    def ids(self) -> List[str]:
        return [t.id for t in self]

    def mapping(self) -> Dict[str, FloorTemplate]:
        return dict(self._templates)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add(
        self,
        name: str,
        gross_area: Any = None,
        width: Any = None,
        length: Any = None,
    ) -> FloorTemplate:
        """
        Create and register a template.

        Raises:
            ValueError: If the name is missing or taken, or a number is
                malformed, or no area can be determined
        """
        template = FloorTemplate(
            name=name,
            gross_area=gross_area,
            width=width,
            length=length,
            creation_order=self._next_order,
        )
        self._check_unique_name(template.name)
        self._templates[template.id] = template
        self._next_order += 1
        logger.debug(f"Added template {template.name!r} ({template.id})")
        return template

    def update(self, template_id: str, **changes: Any) -> Optional[FloorTemplate]:
        """
        Apply a partial update to a template.

        Editing ``width`` or ``length`` so that both are present recomputes
        ``gross_area``, unless the same update supplies ``gross_area``.
        Unknown ids are ignored.
        """
        current = self._templates.get(template_id)
        if current is None:
            logger.debug(f"Ignoring update of unknown template {template_id}")
            return None

        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update template fields: {sorted(unknown)}")

        data = current.model_dump()
        data.update(changes)
        dims_edited = "width" in changes or "length" in changes
        if dims_edited and "gross_area" not in changes:
            width, length = data.get("width"), data.get("length")
            if width not in (None, "") and length not in (None, ""):
                data["gross_area"] = None

        updated = FloorTemplate.model_validate(data)
        if _name_key(updated.name) != _name_key(current.name):
            self._check_unique_name(updated.name, exclude=template_id)
        self._templates[template_id] = updated
        return updated

    def remove(self, template_id: str) -> Optional[FloorTemplate]:
        """
        Remove a template and return it.

        Removing the sole remaining template, or an unknown id, is a no-op
        that returns ``None``.
        """
        if template_id not in self._templates:
            logger.debug(f"Ignoring removal of unknown template {template_id}")
            return None
        if len(self._templates) <= 1:
            logger.debug("Refusing to remove the last floor template")
            return None
        removed = self._templates.pop(template_id)
        logger.debug(f"Removed template {removed.name!r} ({template_id})")
        return removed

    def _check_unique_name(self, name: str, exclude: Optional[str] = None) -> None:
        key = _name_key(name)
        for template in self._templates.values():
            if template.id != exclude and _name_key(template.name) == key:
                raise ValueError(f"A floor template named {name!r} already exists")
