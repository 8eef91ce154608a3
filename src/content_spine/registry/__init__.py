"""
Schema registry.

Usage::

    from content_spine.registry import InMemorySchemaStore, SchemaRegistry

    registry = SchemaRegistry(InMemorySchemaStore(), entries=data_store)
    result = await registry.register(schema)
"""

from content_spine.registry.memory import InMemorySchemaStore
from content_spine.registry.protocol import (
    EntryCleaner,
    SchemaRepository,
    SchemaStats,
    SchemaStore,
    StoredSchema,
)
from content_spine.registry.service import SchemaRegistry
from content_spine.registry.store import SqlSchemaStore

__all__ = [
    "EntryCleaner",
    "InMemorySchemaStore",
    "SchemaRegistry",
    "SchemaRepository",
    "SchemaStats",
    "SchemaStore",
    "SqlSchemaStore",
    "StoredSchema",
]
