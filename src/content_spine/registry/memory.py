"""In-memory schema store for tests and ephemeral runs."""

from __future__ import annotations

import threading

from content_spine.registry.protocol import StoredSchema
from content_spine.schema import Schema


class InMemorySchemaStore:
    """Dict-backed ``SchemaStore``.

    The lock makes ``replace`` a true check-and-set, matching the
    conditional ``UPDATE`` of the SQL store.
    """

    def __init__(self) -> None:
        self._schemas: dict[str, StoredSchema] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> StoredSchema | None:
        with self._lock:
            return self._schemas.get(key)

    def list(self) -> list[StoredSchema]:
        with self._lock:
            return [self._schemas[key] for key in sorted(self._schemas)]

    def insert(self, schema: Schema) -> bool:
        with self._lock:
            if schema.key in self._schemas:
                return False
            self._schemas[schema.key] = StoredSchema(schema, 1)
            return True

    def replace(self, schema: Schema, expected_revision: int) -> bool:
        with self._lock:
            current = self._schemas.get(schema.key)
            if current is None or current.revision != expected_revision:
                return False
            self._schemas[schema.key] = StoredSchema(schema, expected_revision + 1)
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._schemas.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._schemas)
