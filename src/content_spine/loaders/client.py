"""In-process gateway client handed to loaders."""

from __future__ import annotations

from typing import Any

from content_spine.core.errors import ValidationError
from content_spine.core.result import Err, Result
from content_spine.data.models import Entry
from content_spine.data.protocol import DataRepository
from content_spine.registry.protocol import SchemaRepository
from content_spine.schema import Schema, SchemaIdentity


class GatewayClient:
    """Registers schemas and saves batches on behalf of loaders.

    Each record's ``id`` field is its upstream id, so re-loading the same
    item overwrites it instead of duplicating it.
    """

    def __init__(self, registry: SchemaRepository, data: DataRepository) -> None:
        self.registry = registry
        self.data = data

    async def register(self, schema: Schema) -> Result[Schema]:
        return await self.registry.register(schema)

    async def save_batch(
        self, identity: SchemaIdentity, records: list[dict[str, Any]]
    ) -> Result[list[Entry]]:
        pairs = []
        for index, record in enumerate(records):
            upstream_id = record.get("id") if isinstance(record, dict) else None
            if upstream_id is None or upstream_id == "":
                return Err(
                    ValidationError(f"Record {index} has no 'id' field").with_context(
                        schema_key=identity.key
                    )
                )
            pairs.append((str(upstream_id), record))
        return await self.data.store_bulk(identity, pairs)
