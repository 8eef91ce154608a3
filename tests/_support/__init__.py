"""
Test support utilities for content-spine tests.

Schemas, loaders and a manual scheduler backend that don't fit as pytest
fixtures but are shared across test packages.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any

from content_spine.core.timestamps import utc_now
from content_spine.loaders.base import DataLoaderBase
from content_spine.loaders.contract import LoadContext, LoadingResult, SaveContext
from content_spine.schema import ObjectBuilder, Schema, SchemaBuilder, SchemaIdentity
from content_spine.scheduling.models import Job, JobDescriptor, JobState, ScheduleMode

USER_ID = SchemaIdentity("example", "User", "V1")


def user_schema(*extra_optional: str) -> Schema:
    """``example.User.V1``; ``extra_optional`` adds optional string properties."""
    address = ObjectBuilder("Address").string("city").string("street", required=False)
    builder = (
        SchemaBuilder("User")
        .string("id", non_empty=True)
        .string("name")
        .number("age", required=False)
        .boolean("active", required=False)
        .array("tags", "string", required=False)
        .object("address", address, required=False)
    )
    for name in extra_optional:
        builder.string(name, required=False)
    return Schema(USER_ID, builder.build())


def make_job(
    identity: SchemaIdentity = USER_ID,
    *,
    state: JobState = JobState.SCHEDULED,
    mode: ScheduleMode = ScheduleMode.BACKFILL,
    cursor: str = "0",
    limit: int = 100,
    scheduled_at: datetime | None = None,
    fail_count: int = 0,
) -> Job:
    now = utc_now()
    return Job(
        identity=identity,
        state=state,
        schedule_mode=mode,
        cursor=cursor,
        limit=limit,
        scheduled_at=scheduled_at or now - timedelta(seconds=1),
        updated_at=now,
        current_fail_count=fail_count,
    )


class ManualBackend:
    """Scheduler backend that never ticks on its own; tests call ``tick()``."""

    name = "manual"

    def __init__(self, fail_on_start: bool = False) -> None:
        self.fail_on_start = fail_on_start
        self.tick_callback = None
        self.interval_seconds: float | None = None
        self.running = False

    def start(self, tick_callback, interval_seconds: float = 5.0) -> None:
        if self.fail_on_start:
            raise RuntimeError("backend unavailable")
        self.tick_callback = tick_callback
        self.interval_seconds = interval_seconds
        self.running = True

    def stop(self) -> None:
        self.running = False

    def health(self) -> dict[str, Any]:
        return {"healthy": self.running, "backend": self.name}


class ListLoader(DataLoaderBase):
    """Serves records from a fixed list, paging by position.

    The cursor is the index of the next record.  ``fail_with`` makes
    ``load`` raise; ``finish_when_exhausted`` makes ``save`` return None
    once the list is drained.
    """

    def __init__(
        self,
        schema: Schema,
        records: list[dict[str, Any]],
        *,
        batch_size: int = 2,
        settings=None,
        fail_with: Exception | None = None,
        finish_when_exhausted: bool = False,
        cadences=None,
    ) -> None:
        super().__init__(schema, batch_size=batch_size, settings=settings, cadences=cadences)
        self.records = records
        self.fail_with = fail_with
        self.finish_when_exhausted = finish_when_exhausted
        self.load_calls = 0

    async def load(self, ctx: LoadContext) -> LoadingResult:
        self.load_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        start = int(ctx.job.cursor)
        batch = self.records[start:start + ctx.job.limit]
        return LoadingResult(batch, str(start + len(batch)))

    async def save(self, ctx: SaveContext) -> JobDescriptor | None:
        descriptor = await super().save(ctx)
        if self.finish_when_exhausted and int(ctx.loading_result.cursor) >= len(self.records):
            return None
        return descriptor


class GatedLoader(ListLoader):
    """``ListLoader`` whose ``load`` waits until the test sets ``release``.

    Tracks how many loads are in progress at once in ``max_active``.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.active = 0
        self.max_active = 0

    async def load(self, ctx: LoadContext) -> LoadingResult:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.started.set()
        try:
            await self.release.wait()
            return await super().load(ctx)
        finally:
            self.active -= 1
