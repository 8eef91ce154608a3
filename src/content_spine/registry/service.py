"""
Schema registry service.

Holds the single active schema per identity and gates every update with
the structural compatibility checker.  Updates are schema *evolution*:
the stored schema is replaced in place, never appended as a new version.

Registration protocol (per attempt, up to ``register_max_attempts``)::

    stored = store.get(key)
    ├── None                 → store.insert(schema)            won? done
    ├── identical            → Ok, nothing written, no event
    ├── incompatible         → Err(RegisteredSchemaIncompatibleError)
    └── compatible           → store.replace(schema, revision) won? done
    lost a race              → re-read and try again

Events (only after a successful write):
    schema.registered   {key, namespace, name, version}
    schema.removed      {key, namespace, name, version, entries_removed}

Tags:
    registry, schema, compare-and-swap, events, content-spine
"""

from __future__ import annotations

from contextlib import AbstractContextManager, nullcontext

from content_spine.core.errors import (
    DatabaseError,
    MissingSchemaError,
    RegisteredSchemaIncompatibleError,
    SchemaRegistrationConflictError,
)
from content_spine.core.events import SCHEMA_REGISTERED, SCHEMA_REMOVED, EventBus, schema_event
from content_spine.core.logging import get_logger
from content_spine.core.result import Err, Ok, Result
from content_spine.core.settings import ContentSpineSettings, get_settings
from content_spine.registry.protocol import EntryCleaner, SchemaStats, SchemaStore
from content_spine.schema import Schema, SchemaIdentity

logger = get_logger(__name__)


class SchemaRegistry:
    """``SchemaRepository`` implementation over a ``SchemaStore``.

    Args:
        store: Schema storage backend.
        entries: Data store slice used to drop entries on remove and to
            compute stats.
        bus: Optional event bus notified on successful register/remove.
        settings: Defaults to :func:`get_settings`.
    """

    def __init__(
        self,
        store: SchemaStore,
        entries: EntryCleaner,
        bus: EventBus | None = None,
        settings: ContentSpineSettings | None = None,
    ) -> None:
        self._store = store
        self._entries = entries
        self._bus = bus
        self._settings = settings or get_settings()

    async def register(self, schema: Schema) -> Result[Schema]:
        key = schema.key
        attempts = self._settings.register_max_attempts
        try:
            for attempt in range(1, attempts + 1):
                stored = self._store.get(key)

                if stored is None:
                    if self._store.insert(schema):
                        logger.info("schema_registered", schema=key, revision=1)
                        await self._publish(SCHEMA_REGISTERED, schema.identity)
                        return Ok(schema)

                elif stored.schema.descriptor == schema.descriptor:
                    logger.debug("schema_unchanged", schema=key, revision=stored.revision)
                    return Ok(stored.schema)

                else:
                    violations = schema.compatibility_violations(stored.schema)
                    if violations:
                        logger.warning(
                            "schema_incompatible",
                            schema=key,
                            violations=violations,
                        )
                        return Err(RegisteredSchemaIncompatibleError(key, violations))
                    if self._store.replace(schema, stored.revision):
                        logger.info("schema_updated", schema=key, revision=stored.revision + 1)
                        await self._publish(SCHEMA_REGISTERED, schema.identity)
                        return Ok(schema)

                logger.info("schema_registration_conflict", schema=key, attempt=attempt)
        except DatabaseError as e:
            logger.error("schema_register_failed", schema=key, error=str(e))
            return Err(e.with_context(schema_key=key, operation="register"))

        return Err(SchemaRegistrationConflictError(key, attempts))

    async def find(self, identity: SchemaIdentity) -> Schema | None:
        stored = self._store.get(identity.key)
        return stored.schema if stored else None

    async def find_all(self) -> list[Schema]:
        return [stored.schema for stored in self._store.list()]

    async def remove(self, identity: SchemaIdentity) -> Result[None]:
        """Delete the schema and every entry stored under it."""
        key = identity.key
        try:
            if self._store.get(key) is None:
                return Err(MissingSchemaError(key))
            with self._removal():
                removed = self._entries.delete_by_schema(key)
                self._store.delete(key)
        except DatabaseError as e:
            logger.error("schema_remove_failed", schema=key, error=str(e))
            return Err(e.with_context(schema_key=key, operation="remove"))

        logger.info("schema_removed", schema=key, entries_removed=removed)
        await self._publish(SCHEMA_REMOVED, identity, entries_removed=removed)
        return Ok(None)

    def _removal(self) -> AbstractContextManager[None]:
        """One transaction for the entry and schema deletes when the store has them.

        SQL stores sharing a connection join it; in-memory stores have none.
        """
        transaction = getattr(self._store, "transaction", None)
        return transaction() if transaction is not None else nullcontext()

    async def load_stats(self) -> list[SchemaStats]:
        stats = []
        for stored in self._store.list():
            identity = stored.schema.identity
            row_count, last_updated = self._entries.stats(identity.key)
            stats.append(SchemaStats(identity, row_count, last_updated))
        return stats

    async def _publish(self, event_type: str, identity: SchemaIdentity, **extra) -> None:
        if self._bus is None:
            return
        await self._bus.publish(schema_event(event_type, identity, **extra))
