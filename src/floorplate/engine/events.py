# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Configuration-changed notifications.

Subscribers register with the engine's :class:`EventBus` and receive a
:class:`ConfigurationChanged` after every command that changed state. A
subscription is a handle; calling ``unsubscribe()`` (or leaving its ``with``
block) ends it.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, FrozenSet, List

from ..building import DerivedMetrics
from ..core.primitives import ChangeOriginEnum, CollectionEnum, Model
from .state import BuildingState

logger = logging.getLogger(__name__)


class ConfigurationChanged(Model):
    """Published after a command; ``state`` is the post-command snapshot."""

    collections: FrozenSet[CollectionEnum]
    state: BuildingState
    metrics: DerivedMetrics
    origin: ChangeOriginEnum = ChangeOriginEnum.LOCAL


Handler = Callable[[ConfigurationChanged], None]


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: "EventBus", handler: Handler):
        self._bus = bus
        self.handler = handler

    @property
    def active(self) -> bool:
        return self._bus.is_subscribed(self.handler)

    def unsubscribe(self) -> None:
        self._bus.unsubscribe(self.handler)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class EventBus:
    """Explicit publish-subscribe channel owned by one engine."""

    def __init__(self):
        self._handlers: List[Handler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Handler) -> Subscription:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)
        return Subscription(self, handler)

    def unsubscribe(self, handler: Handler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def is_subscribed(self, handler: Handler) -> bool:
        with self._lock:
            return handler in self._handlers

    def publish(self, event: ConfigurationChanged) -> None:
        """Deliver ``event`` to every handler; a failing handler is logged and skipped."""
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Configuration change handler {handler!r} failed: {e}",
                    exc_info=True,
                )
