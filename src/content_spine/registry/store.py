"""SQL schema store on ``cs_schemas``.

Registration is compare-and-swap on the ``revision`` column:

    insert   INSERT OR IGNORE ...                       rowcount == 1 wins
    replace  UPDATE ... SET revision = revision + 1
             WHERE schema_key = ? AND revision = ?      rowcount == 1 wins

A writer that loses gets ``False`` back and the registry re-reads.
"""

from __future__ import annotations

import json
from typing import Any

from content_spine.core.errors import DatabaseError, InvalidDescriptorError
from content_spine.core.repository import BaseRepository
from content_spine.core.timestamps import to_iso8601, utc_now
from content_spine.registry.protocol import StoredSchema
from content_spine.schema import Schema, SchemaIdentity

_COLUMNS = [
    "schema_key",
    "namespace",
    "name",
    "version",
    "json_schema",
    "revision",
    "created_at",
    "updated_at",
]


class SqlSchemaStore(BaseRepository):
    """``SchemaStore`` backed by any ``Connection`` + ``Dialect``."""

    def get(self, key: str) -> StoredSchema | None:
        row = self.query_one(
            f"SELECT * FROM cs_schemas WHERE schema_key = {self.ph(1)}",
            (key,),
        )
        return self._row_to_stored(row) if row else None

    def list(self) -> list[StoredSchema]:
        rows = self.query("SELECT * FROM cs_schemas ORDER BY schema_key")
        return [self._row_to_stored(row) for row in rows]

    def insert(self, schema: Schema) -> bool:
        now = to_iso8601(utc_now())
        identity = schema.identity
        sql = self.dialect.insert_or_ignore("cs_schemas", _COLUMNS)
        with self.transaction():
            cursor = self.execute(
                sql,
                (
                    schema.key,
                    identity.namespace,
                    identity.name,
                    identity.version,
                    json.dumps(schema.to_json_schema()),
                    1,
                    now,
                    now,
                ),
            )
            return cursor.rowcount == 1

    def replace(self, schema: Schema, expected_revision: int) -> bool:
        with self.transaction():
            cursor = self.execute(
                f"""
                UPDATE cs_schemas
                SET json_schema = {self.dialect.placeholder(0)},
                    revision = revision + 1,
                    updated_at = {self.dialect.placeholder(1)}
                WHERE schema_key = {self.dialect.placeholder(2)}
                  AND revision = {self.dialect.placeholder(3)}
                """,
                (
                    json.dumps(schema.to_json_schema()),
                    to_iso8601(utc_now()),
                    schema.key,
                    expected_revision,
                ),
            )
            return cursor.rowcount == 1

    def delete(self, key: str) -> bool:
        with self.transaction():
            cursor = self.execute(
                f"DELETE FROM cs_schemas WHERE schema_key = {self.ph(1)}",
                (key,),
            )
            return cursor.rowcount > 0

    def _row_to_stored(self, row: dict[str, Any]) -> StoredSchema:
        identity = SchemaIdentity(row["namespace"], row["name"], row["version"])
        try:
            schema = Schema.from_json_schema(identity, json.loads(row["json_schema"]))
        except (ValueError, InvalidDescriptorError) as e:
            raise DatabaseError(
                f"Stored schema {identity.key} is unreadable: {e}",
                cause=e,
            ).with_context(schema_key=identity.key) from e
        return StoredSchema(schema, int(row["revision"]))
