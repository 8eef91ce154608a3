"""Example loader: records the current time every few seconds.

Useful for smoke-testing a deployment: once registered, entries under
``example.CurrentTimestamp.V1`` keep appearing without any external
source.
"""

from __future__ import annotations

import uuid

from content_spine.core.settings import ContentSpineSettings
from content_spine.core.timestamps import to_epoch_ms, utc_now
from content_spine.loaders.base import DataLoaderBase
from content_spine.loaders.contract import LoadContext, LoadingResult
from content_spine.schema import Schema, SchemaBuilder, SchemaIdentity

CURRENT_TIMESTAMP = Schema(
    SchemaIdentity("example", "CurrentTimestamp", "V1"),
    SchemaBuilder("CurrentTimestamp").string("id", non_empty=True).number("value").build(),
)


class CurrentTimestampLoader(DataLoaderBase):
    """Emits one ``{id, value}`` record per run, ``value`` in epoch milliseconds.

    A batch of one always fills its limit of one, so the job stays in
    BACKFILL and reruns on the short cadence.
    """

    def __init__(self, settings: ContentSpineSettings | None = None) -> None:
        super().__init__(CURRENT_TIMESTAMP, batch_size=1, settings=settings)

    async def load(self, ctx: LoadContext) -> LoadingResult:
        value = to_epoch_ms(utc_now())
        record = {"id": uuid.uuid4().hex, "value": value}
        return LoadingResult([record], str(value))
