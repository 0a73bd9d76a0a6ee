# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from uuid import uuid4

from pydantic import BaseModel, ConfigDict


def new_id() -> str:
    """Opaque record identifier. Never reused within a process."""
    return uuid4().hex


class Model(BaseModel):
    """Base Pydantic model with common configuration.

    Records are immutable. Registries, the sequencer and the engines own the
    mutable collections and swap records for validated copies on update.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,  # Immutable records; runtime mutable state lives in external objects
        extra="forbid",  # Catches typos and stale payload keys immediately
    )

    def with_updates(self, **changes) -> "Model":
        """Return a re-validated copy with ``changes`` applied.

        Unlike ``model_copy(update=...)`` this runs field and model validators
        again, so an update can never produce a record that fails validation.
        """
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)
