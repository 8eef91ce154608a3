"""
Data ingestion repository.

Every write is validated against the schema currently registered for the
identity; reads are cursor-paginated by the store-assigned entry id.

Pagination::

    page = await repo.find_by_schema(identity, limit=3)      # ids 1..3
    page = await repo.find_by_schema(identity, page.cursor, 3)  # ids 4..6

Tags:
    ingestion, validation, pagination, filters, content-spine
"""

from __future__ import annotations

from typing import Any

from content_spine.core.errors import (
    DatabaseError,
    MissingSchemaError,
    SchemaValidationError,
    ValidationError,
)
from content_spine.core.logging import get_logger
from content_spine.core.result import Err, Ok, Result
from content_spine.core.settings import ContentSpineSettings, get_settings
from content_spine.data.models import Entry, EntryPage, Filter
from content_spine.data.protocol import DataStore, UpstreamRecord
from content_spine.registry.protocol import SchemaRepository
from content_spine.schema import Schema, SchemaIdentity

logger = get_logger(__name__)


class DataIngestionRepository:
    """``DataRepository`` implementation.

    Args:
        registry: Source of the current schema per identity.
        store: Entry storage backend.
        settings: Supplies ``default_limit``.
    """

    def __init__(
        self,
        registry: SchemaRepository,
        store: DataStore,
        settings: ContentSpineSettings | None = None,
    ) -> None:
        self._registry = registry
        self._store = store
        self._settings = settings or get_settings()

    async def store(
        self, identity: SchemaIdentity, upstream_id: str, record: dict[str, Any]
    ) -> Result[Entry]:
        return (await self.store_bulk(identity, [(upstream_id, record)])).map(lambda entries: entries[0])

    async def store_bulk(
        self, identity: SchemaIdentity, records: list[UpstreamRecord]
    ) -> Result[list[Entry]]:
        """Validate every record, then upsert them all in one unit.

        One invalid record fails the batch and nothing is written.
        """
        key = identity.key
        try:
            schema = await self._registry.find(identity)
        except DatabaseError as e:
            logger.error("schema_lookup_failed", schema=key, error=str(e))
            return Err(e.with_context(schema_key=key, operation="store"))
        if schema is None:
            return Err(MissingSchemaError(key))

        invalid = self._first_invalid(schema, records)
        if invalid is not None:
            logger.info("record_rejected", schema=key, upstream_id=invalid.context.metadata.get("upstream_id"))
            return Err(invalid)

        try:
            entries = self._store.upsert_many(identity, records)
        except DatabaseError as e:
            logger.error("store_failed", schema=key, count=len(records), error=str(e))
            return Err(e.with_context(schema_key=key, operation="store"))

        logger.debug("records_stored", schema=key, count=len(entries))
        return Ok(entries)

    async def find_by_id(self, entry_id: int) -> Entry | None:
        return self._store.get(entry_id)

    async def find_by_schema(
        self, identity: SchemaIdentity, cursor: int | None = None, limit: int | None = None
    ) -> EntryPage:
        return await self.find_by_query(identity, [], cursor, limit)

    async def find_by_query(
        self,
        identity: SchemaIdentity,
        filters: list[Filter],
        cursor: int | None = None,
        limit: int | None = None,
    ) -> EntryPage:
        limit = self._settings.default_limit if limit is None else limit
        if limit < 1:
            raise ValidationError(f"limit must be at least 1, got {limit}")
        entries = self._store.page(identity, list(filters), cursor, limit)
        return EntryPage.of(entries)

    @staticmethod
    def _first_invalid(schema: Schema, records: list[UpstreamRecord]) -> SchemaValidationError | None:
        for upstream_id, record in records:
            result = schema.validate(record)
            if result.is_err():
                return result.error.with_context(upstream_id=upstream_id)
        return None
