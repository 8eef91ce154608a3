"""
Base class implementing the standard ``initialize`` and ``save`` phases.

Subclasses only write ``load``::

    class TickerLoader(DataLoaderBase):
        async def load(self, ctx: LoadContext) -> LoadingResult:
            items = await fetch_after(ctx.job.cursor, ctx.job.limit)
            return self.loading_result(items, ctx.job.cursor)

``save`` picks the next schedule mode from the batch: a full batch
(``len(data) == limit``) means more history is waiting, so BACKFILL;
anything shorter means caught up, so INCREMENTAL.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from content_spine.core.logging import get_logger
from content_spine.core.settings import ContentSpineSettings, get_settings
from content_spine.core.timestamps import utc_now
from content_spine.loaders.contract import InitContext, LoadContext, LoadingResult, SaveContext
from content_spine.schema import Schema, SchemaIdentity
from content_spine.scheduling.models import Job, JobDescriptor, ScheduleMode

logger = get_logger(__name__)


class DataLoaderBase(ABC):
    """Loader with the standard ``initialize`` and ``save`` phases.

    Args:
        schema: Schema the loader produces records for.
        batch_size: ``limit`` of the job created on first initialize.
        settings: Cadences and the default cursor.
        cadences: Per-mode delay overrides for this loader only.
    """

    def __init__(
        self,
        schema: Schema,
        batch_size: int | None = None,
        settings: ContentSpineSettings | None = None,
        cadences: Mapping[ScheduleMode, timedelta] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.schema = schema
        self.batch_size = batch_size or self.settings.default_limit
        self.cadences = dict(cadences or {})

    @property
    def identity(self) -> SchemaIdentity:
        return self.schema.identity

    @property
    def name(self) -> str:
        return self.schema.key

    async def initialize(self, ctx: InitContext) -> None:
        """Register the schema, then reuse the existing job or create one."""
        (await ctx.client.register(self.schema)).unwrap()

        existing = await ctx.scheduler.find_job(self.identity)
        if existing is not None:
            logger.info("job_reused", job=self.name, state=existing.state.value, cursor=existing.cursor)
            return

        descriptor = JobDescriptor(
            identity=self.identity,
            scheduled_at=utc_now(),
            schedule_mode=ScheduleMode.BACKFILL,
            cursor=self.settings.default_cursor,
            limit=self.batch_size,
        )
        (await ctx.scheduler.schedule(descriptor)).unwrap()

    @abstractmethod
    async def load(self, ctx: LoadContext) -> LoadingResult:
        ...

    async def save(self, ctx: SaveContext) -> JobDescriptor | None:
        result = ctx.loading_result
        (await ctx.client.save_batch(self.identity, result.data)).unwrap()
        return self.next_descriptor(ctx.job, result)

    # -- helpers -------------------------------------------------------------

    def cursor_of(self, item: dict[str, Any]) -> str:
        """Cursor value of one mapped item.  Defaults to its ``id``."""
        return str(item["id"])

    def loading_result(self, items: list[dict[str, Any]], prior_cursor: str) -> LoadingResult:
        """Wrap ``items``; the next cursor is the last item's, else ``prior_cursor``."""
        cursor = self.cursor_of(items[-1]) if items else prior_cursor
        return LoadingResult(list(items), cursor)

    def cadence_for(self, mode: ScheduleMode) -> timedelta:
        if mode in self.cadences:
            return self.cadences[mode]
        return self.settings.cadence_for(mode)

    def next_descriptor(
        self, job: Job, result: LoadingResult, now: datetime | None = None
    ) -> JobDescriptor:
        mode = ScheduleMode.for_batch(len(result.data), job.limit)
        now = now or utc_now()
        return JobDescriptor(
            identity=self.identity,
            scheduled_at=now + self.cadence_for(mode),
            schedule_mode=mode,
            cursor=result.cursor,
            limit=job.limit,
        )


__all__ = ["DataLoaderBase"]
