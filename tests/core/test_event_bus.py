"""Tests for EventBus."""

import logging

import pytest

from core.event_bus import EventBus
from core.events import OrderCreated, OrderFinalized, OrderStatusChanged
from core.models import OrderStatus


class TestSubscribeAndPublish:

    def test_single_handler_receives_the_exact_event_object(self, make_order):
        bus = EventBus()
        received = []
        bus.subscribe("OrderCreated", received.append)

        event = OrderCreated.create(order=make_order())
        bus.publish(event)

        assert len(received) == 1
        assert received[0] is event

    def test_handlers_run_in_subscription_order(self, make_order):
        bus = EventBus()
        calls = []
        bus.subscribe("OrderCreated", lambda e: calls.append("first"))
        bus.subscribe("OrderCreated", lambda e: calls.append("second"))

        bus.publish(OrderCreated.create(order=make_order()))

        assert calls == ["first", "second"]

    def test_only_matching_type_is_delivered(self, make_order):
        bus = EventBus()
        created = []
        bus.subscribe("OrderCreated", created.append)

        bus.publish(OrderStatusChanged.create(order=make_order(), previous_status=OrderStatus.DRAFT))

        assert created == []

    def test_publish_without_subscribers_is_a_noop(self, make_order):
        EventBus().publish(OrderFinalized.create(order=make_order(), receipt=None))


class TestHandlerFailures:

    def test_failing_handler_does_not_propagate(self, make_order):
        bus = EventBus()

        def broken(event):
            raise RuntimeError("notification service down")

        bus.subscribe("OrderCreated", broken)
        bus.publish(OrderCreated.create(order=make_order()))

    def test_later_handlers_still_run(self, make_order):
        bus = EventBus()
        received = []
        bus.subscribe("OrderCreated", lambda e: 1 / 0)
        bus.subscribe("OrderCreated", received.append)

        bus.publish(OrderCreated.create(order=make_order()))

        assert len(received) == 1

    def test_failure_is_logged_with_event_id(self, make_order, caplog):
        bus = EventBus()

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe("OrderCreated", broken)
        event = OrderCreated.create(order=make_order())

        with caplog.at_level(logging.ERROR, logger="core.event_bus"):
            bus.publish(event)

        assert "broken" in caplog.text
        assert event.event_id in caplog.text


class TestEvents:

    def test_events_are_immutable(self, make_order):
        event = OrderCreated.create(order=make_order())

        with pytest.raises(Exception):
            event.order = None

    def test_each_event_gets_unique_id_and_utc_time(self, make_order):
        order = make_order()
        a = OrderCreated.create(order=order)
        b = OrderCreated.create(order=order)

        assert a.event_id != b.event_id
        assert a.occurred_at.tzinfo is not None

    def test_status_changed_carries_previous_status(self, make_order):
        order = make_order(status=OrderStatus.ACCEPTED)

        event = OrderStatusChanged.create(order=order, previous_status=OrderStatus.PENDING_CONFIRMATION)

        assert event.previous_status == OrderStatus.PENDING_CONFIRMATION
        assert event.order.status == OrderStatus.ACCEPTED
