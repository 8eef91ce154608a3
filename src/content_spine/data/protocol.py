"""Data ingestion contracts.

``DataStore`` is the storage backend (sync, raises ``DatabaseError``);
``DataRepository`` is the async service interface collaborators use.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from content_spine.core.result import Result
from content_spine.data.models import Entry, EntryPage, Filter
from content_spine.schema import SchemaIdentity

UpstreamRecord = tuple[str, dict[str, Any]]


@runtime_checkable
class DataStore(Protocol):
    def upsert_many(self, identity: SchemaIdentity, records: list[UpstreamRecord]) -> list[Entry]:
        """Upsert all records atomically, keyed by ``(identity, upstream_id)``."""
        ...

    def get(self, entry_id: int) -> Entry | None:
        ...

    def page(
        self,
        identity: SchemaIdentity,
        filters: list[Filter],
        cursor: int | None,
        limit: int,
    ) -> list[Entry]:
        """Up to ``limit`` matching entries with ``id > cursor``, ascending."""
        ...

    def delete_by_schema(self, key: str) -> int:
        ...

    def stats(self, key: str) -> tuple[int, datetime | None]:
        ...


@runtime_checkable
class DataRepository(Protocol):
    async def store(
        self, identity: SchemaIdentity, upstream_id: str, record: dict[str, Any]
    ) -> Result[Entry]:
        ...

    async def store_bulk(
        self, identity: SchemaIdentity, records: list[UpstreamRecord]
    ) -> Result[list[Entry]]:
        ...

    async def find_by_id(self, entry_id: int) -> Entry | None:
        ...

    async def find_by_schema(
        self, identity: SchemaIdentity, cursor: int | None = None, limit: int | None = None
    ) -> EntryPage:
        ...

    async def find_by_query(
        self,
        identity: SchemaIdentity,
        filters: list[Filter],
        cursor: int | None = None,
        limit: int | None = None,
    ) -> EntryPage:
        ...


__all__ = ["DataRepository", "DataStore", "UpstreamRecord"]
