"""
Loader execution contract.

A loader is the source-specific routine behind one schema identity.  The
scheduler drives it through three phases::

    initialize(InitContext{client, scheduler})
        register the schema, make sure a job exists
    load(LoadContext{job})                      → LoadingResult{data, cursor}
        fetch up to job.limit items after job.cursor
    save(SaveContext{client, job, loading_result}) → JobDescriptor | None
        persist the batch, say when and from where to run next

Any phase may raise; the scheduler turns that into ``RUNNING → FAILED``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from content_spine.loaders.client import GatewayClient
    from content_spine.schema import SchemaIdentity
    from content_spine.scheduling.models import Job, JobDescriptor
    from content_spine.scheduling.service import JobScheduler


@dataclass(frozen=True)
class InitContext:
    client: GatewayClient
    scheduler: JobScheduler


@dataclass(frozen=True)
class LoadContext:
    job: Job


@dataclass(frozen=True)
class LoadingResult:
    """A loaded batch and the cursor to resume from next time."""

    data: list[dict[str, Any]] = field(default_factory=list)
    cursor: str = ""

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class SaveContext:
    client: GatewayClient
    job: Job
    loading_result: LoadingResult


@runtime_checkable
class DataLoader(Protocol):
    """What the scheduler needs from a loader.  ``name`` equals ``identity.key``."""

    @property
    def name(self) -> str:
        ...

    @property
    def identity(self) -> SchemaIdentity:
        ...

    async def initialize(self, ctx: InitContext) -> None:
        ...

    async def load(self, ctx: LoadContext) -> LoadingResult:
        ...

    async def save(self, ctx: SaveContext) -> JobDescriptor | None:
        ...


__all__ = ["DataLoader", "InitContext", "LoadContext", "LoadingResult", "SaveContext"]
