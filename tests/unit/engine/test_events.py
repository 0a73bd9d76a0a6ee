# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the configuration-changed event bus."""

import logging

import pytest
from pydantic import ValidationError

from floorplate.building import DerivedMetrics
from floorplate.core.primitives import CollectionEnum
from floorplate.engine import BuildingState, ConfigurationChanged, EventBus


@pytest.fixture
def event():
    return ConfigurationChanged(
        collections=frozenset({CollectionEnum.FLOORS}),
        state=BuildingState(),
        metrics=DerivedMetrics(),
    )


class TestEventBus:
    """Tests for subscription and delivery."""

    def test_publish_in_subscription_order(self, event):
        """Test that every handler receives the event in order."""
        bus = EventBus()
        calls = []
        bus.subscribe(lambda e: calls.append(("a", e)))
        bus.subscribe(lambda e: calls.append(("b", e)))
        bus.publish(event)
        assert [name for name, _ in calls] == ["a", "b"]
        assert calls[0][1] is event

    def test_subscribe_is_idempotent(self, event):
        """Test that a handler subscribed twice is called once."""
        bus = EventBus()
        calls = []
        bus.subscribe(calls.append)
        bus.subscribe(calls.append)
        bus.publish(event)
        assert len(calls) == 1

    def test_failing_handler_is_isolated(self, event, caplog):
        """Test that one failing handler does not stop the others."""
        bus = EventBus()
        calls = []

        def broken(_):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(calls.append)
        with caplog.at_level(logging.ERROR):
            bus.publish(event)
        assert calls == [event]
        assert "boom" in caplog.text

    def test_subscription_handle(self, event):
        """Test unsubscribing through the handle."""
        bus = EventBus()
        calls = []
        subscription = bus.subscribe(calls.append)
        assert subscription.active
        subscription.unsubscribe()
        subscription.unsubscribe()
        assert not subscription.active
        bus.publish(event)
        assert calls == []

    def test_events_are_immutable(self, event):
        """Test that published events cannot be altered by handlers."""
        with pytest.raises(ValidationError):
            event.collections = frozenset()
