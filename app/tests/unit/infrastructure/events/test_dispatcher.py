"""Tests for infrastructure.events.dispatcher module."""

import asyncio

import pytest

from infrastructure.events import Event, EventBus

pytestmark = pytest.mark.unit


def make_event(event_type="group.approved", **metadata):
    return Event(event_type=event_type, actor_id="admin-1", metadata=metadata)


class TestSubscribe:
    """Handler registration."""

    def test_subscribe_and_get_handlers(self, bus):
        def handler(event):
            return None

        bus.subscribe("group.approved", handler)

        assert bus.get_handlers("group.approved") == [handler]
        assert bus.get_handlers("group.closed") == []
        assert bus.get_registered_events() == ["group.approved"]

    def test_register_handler_decorator(self, bus):
        @bus.register_handler("group.closed")
        async def on_closed(event):
            return "closed"

        assert bus.get_handlers("group.closed") == [on_closed]

    def test_buses_do_not_share_handlers(self):
        first, second = EventBus(), EventBus()
        first.subscribe("group.approved", lambda event: None)

        assert second.get_handlers("group.approved") == []


class TestPublish:
    """Delivery order and isolation."""

    @pytest.mark.asyncio
    async def test_handlers_run_in_registration_order(self, bus):
        calls = []

        async def first(event):
            calls.append("first")
            return 1

        def second(event):
            calls.append("second")
            return 2

        bus.subscribe("group.approved", first)
        bus.subscribe("group.approved", second)

        results = await bus.publish(make_event(group_id="g1"))

        assert calls == ["first", "second"]
        assert results == [1, 2]

    @pytest.mark.asyncio
    async def test_failing_handler_is_isolated(self, bus):
        calls = []

        async def broken(event):
            raise RuntimeError("notification service down")

        async def healthy(event):
            calls.append(event.metadata["group_id"])
            return "ok"

        bus.subscribe("group.approved", broken)
        bus.subscribe("group.approved", healthy)

        results = await bus.publish(make_event(group_id="g1"))

        assert calls == ["g1"]
        assert results == ["ok"]

    @pytest.mark.asyncio
    async def test_publish_without_handlers(self, bus):
        assert await bus.publish(make_event("unknown.event")) == []


class TestBackgroundDelivery:
    """publish_background and drain."""

    @pytest.mark.asyncio
    async def test_drain_waits_for_background_tasks(self, bus):
        delivered = []

        async def slow(event):
            await asyncio.sleep(0)
            delivered.append(event.event_type)

        bus.subscribe("group.approved", slow)

        task = bus.publish_background(make_event())
        await bus.drain()

        assert task.done()
        assert delivered == ["group.approved"]


class TestEventModel:
    """Event serialization."""

    def test_to_dict_and_back(self):
        event = make_event(group_id="g1")

        restored = Event.from_dict(event.to_dict())

        assert restored.event_type == event.event_type
        assert restored.correlation_id == event.correlation_id
        assert restored.timestamp == event.timestamp
        assert restored.metadata == {"group_id": "g1"}

    def test_from_dict_requires_event_type(self):
        with pytest.raises(ValueError):
            Event.from_dict({"actor_id": "a"})
