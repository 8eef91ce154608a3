"""Schema registry contracts.

Two layers:

- ``SchemaStore`` is the storage backend: synchronous, keyed by
  ``SchemaIdentity.key``, with conditional writes guarded by a revision
  token.  Implementations raise ``DatabaseError`` on I/O failure.
- ``SchemaRepository`` is what collaborators (ingestion, loaders, CLI)
  depend on: async, returns ``Result`` values for the operations a caller
  can get wrong.

::

    SchemaRegistry ──(SchemaRepository)──► callers
         │
         ├── SchemaStore     InMemorySchemaStore | SqlSchemaStore
         └── EntryCleaner    drops entries on remove, supplies stats
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from content_spine.core.result import Result
from content_spine.schema import Schema, SchemaIdentity


@dataclass(frozen=True)
class StoredSchema:
    """A schema as persisted, with its optimistic concurrency token."""

    schema: Schema
    revision: int


@dataclass(frozen=True)
class SchemaStats:
    identity: SchemaIdentity
    row_count: int
    last_updated: datetime | None

    def to_dict(self) -> dict:
        return {
            "key": self.identity.key,
            "row_count": self.row_count,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


@runtime_checkable
class SchemaStore(Protocol):
    """Durable or in-memory schema storage."""

    def get(self, key: str) -> StoredSchema | None:
        ...

    def list(self) -> list[StoredSchema]:
        ...

    def insert(self, schema: Schema) -> bool:
        """Insert at revision 1.  ``False`` if the key already exists."""
        ...

    def replace(self, schema: Schema, expected_revision: int) -> bool:
        """Replace if the stored revision still equals ``expected_revision``.

        Returns ``False`` (and writes nothing) when another writer got
        there first.
        """
        ...

    def delete(self, key: str) -> bool:
        ...


@runtime_checkable
class EntryCleaner(Protocol):
    """The slice of the data store the registry needs."""

    def delete_by_schema(self, key: str) -> int:
        ...

    def stats(self, key: str) -> tuple[int, datetime | None]:
        """``(row_count, last_updated)`` for entries under ``key``."""
        ...


@runtime_checkable
class SchemaRepository(Protocol):
    async def register(self, schema: Schema) -> Result[Schema]:
        ...

    async def find(self, identity: SchemaIdentity) -> Schema | None:
        ...

    async def find_all(self) -> list[Schema]:
        ...

    async def remove(self, identity: SchemaIdentity) -> Result[None]:
        ...

    async def load_stats(self) -> list[SchemaStats]:
        ...


__all__ = [
    "EntryCleaner",
    "SchemaRepository",
    "SchemaStats",
    "SchemaStore",
    "StoredSchema",
]
