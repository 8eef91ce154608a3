"""Event system for schema-change notifications.

Why This Package Exists
-----------------------
Projections built on top of the registry (a GraphQL or REST surface whose
types are derived from registered schemas) must regenerate when a schema
is added, evolved or removed.  Instead of ad hoc callback arrays, the
registry publishes ``Event`` objects on an injected ``EventBus`` and the
projection layer subscribes to them.

Usage::

    from content_spine.core.events import Event
    from content_spine.core.events.memory import InMemoryEventBus

    bus = InMemoryEventBus()

    async def regenerate(event: Event):
        print(f"schema {event.payload['key']} changed")

    await bus.subscribe("schema.*", regenerate)

Event types
-----------
schema.registered   a schema was stored or evolved
schema.removed      a schema and its entries were deleted
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from content_spine.core.timestamps import utc_now

if TYPE_CHECKING:
    from content_spine.schema import SchemaIdentity

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "SCHEMA_REGISTERED",
    "SCHEMA_REMOVED",
    "schema_event",
]

SCHEMA_REGISTERED = "schema.registered"
SCHEMA_REMOVED = "schema.removed"


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass
class Event:
    """Event payload delivered to subscribers.

    Attributes:
        event_type: Dot-separated type (e.g., ``schema.registered``)
        source: Origin component
        payload: Event-specific data
        timestamp: When the event occurred (UTC)
        event_id: Unique event identifier
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (supports wildcards).

        Examples:
            - ``schema.*`` matches ``schema.registered``, ``schema.removed``
            - ``*`` matches everything
        """
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern


def schema_event(event_type: str, identity: SchemaIdentity, **extra: Any) -> Event:
    """A ``schema.*`` event whose payload carries the key and identity parts."""
    payload = {"key": identity.key, **identity.to_dict(), **extra}
    return Event(event_type=event_type, source="schema_registry", payload=payload)


EventHandler = Callable[[Event], Awaitable[None]]


# ── EventBus Protocol ────────────────────────────────────────────────────


@runtime_checkable
class EventBus(Protocol):
    """Publish/subscribe contract with wildcard patterns."""

    async def publish(self, event: Event) -> None:
        """Publish an event to all matching subscribers."""
        ...

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Subscribe to events matching a pattern; returns a subscription id."""
        ...

    async def unsubscribe(self, subscription_id: str) -> None:
        ...

    async def close(self) -> None:
        ...
