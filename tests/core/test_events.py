"""Tests for the in-memory event bus."""

import pytest

from content_spine.core.events import SCHEMA_REGISTERED, SCHEMA_REMOVED, Event, schema_event
from content_spine.core.events.memory import InMemoryEventBus
from content_spine.schema import SchemaIdentity


class TestEventMatching:
    def test_patterns(self):
        event = Event(event_type=SCHEMA_REGISTERED, source="test")
        assert event.matches("*")
        assert event.matches("schema.*")
        assert event.matches("schema.registered")
        assert not event.matches("schema.removed")
        assert not event.matches("job.*")

    def test_schema_event_payload(self):
        event = schema_event(SCHEMA_REMOVED, SchemaIdentity("example", "User", "V1"), entries_removed=2)
        assert event.source == "schema_registry"
        assert event.payload == {
            "key": "example.User.V1",
            "namespace": "example",
            "name": "User",
            "version": "V1",
            "entries_removed": 2,
        }


class TestInMemoryEventBus:
    @pytest.mark.asyncio
    async def test_publish_reaches_matching_subscribers(self):
        bus = InMemoryEventBus()
        seen = []

        async def handler(event):
            seen.append(event.event_type)

        await bus.subscribe("schema.*", handler)
        await bus.publish(Event(event_type=SCHEMA_REGISTERED, source="test"))
        await bus.publish(Event(event_type=SCHEMA_REMOVED, source="test"))
        await bus.publish(Event(event_type="job.started", source="test"))
        assert seen == [SCHEMA_REGISTERED, SCHEMA_REMOVED]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_affect_others(self):
        bus = InMemoryEventBus()
        seen = []

        async def broken(event):
            raise RuntimeError("boom")

        async def ok(event):
            seen.append(event)

        await bus.subscribe("*", broken)
        await bus.subscribe("*", ok)
        await bus.publish(Event(event_type=SCHEMA_REGISTERED, source="test"))
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_and_close(self):
        bus = InMemoryEventBus()
        seen = []

        async def handler(event):
            seen.append(event)

        sub_id = await bus.subscribe("*", handler)
        assert bus.subscription_count == 1
        await bus.unsubscribe(sub_id)
        await bus.publish(Event(event_type=SCHEMA_REGISTERED, source="test"))
        assert seen == []

        await bus.subscribe("*", handler)
        await bus.close()
        await bus.publish(Event(event_type=SCHEMA_REGISTERED, source="test"))
        assert seen == []
        assert bus.subscription_count == 0
