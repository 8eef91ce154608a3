"""
Runtime wiring.

``build_runtime`` assembles every component from settings, in dependency
order::

    connection ─┬─ SqlSchemaStore ──┐
                ├─ SqlDataStore ────┼─ SchemaRegistry ─ DataIngestionRepository
                └─ SqlJobRepository │            └──────── GatewayClient
                                    └─ JobScheduler(jobs, client)   JobAdmin(jobs)

``in_memory=True`` swaps the SQL stores for the dict-backed ones (tests,
throwaway runs); the database URL is then ignored.
"""

from __future__ import annotations

from dataclasses import dataclass

from content_spine.core.connection import ConnectionInfo, SqliteConnection, create_connection
from content_spine.core.events import EventBus
from content_spine.core.events.memory import InMemoryEventBus
from content_spine.core.logging import get_logger
from content_spine.core.settings import ContentSpineSettings, get_settings
from content_spine.data import DataIngestionRepository, DataStore, InMemoryDataStore, SqlDataStore
from content_spine.loaders.client import GatewayClient
from content_spine.registry import InMemorySchemaStore, SchemaRegistry, SchemaStore, SqlSchemaStore
from content_spine.scheduling import (
    InMemoryJobRepository,
    JobAdmin,
    JobRepository,
    JobScheduler,
    SchedulerBackend,
    SqlJobRepository,
)

logger = get_logger(__name__)


@dataclass
class Runtime:
    settings: ContentSpineSettings
    bus: EventBus
    schema_store: SchemaStore
    data_store: DataStore
    registry: SchemaRegistry
    data: DataIngestionRepository
    client: GatewayClient
    jobs: JobRepository
    scheduler: JobScheduler
    admin: JobAdmin
    connection: SqliteConnection | None = None
    connection_info: ConnectionInfo | None = None

    def close(self) -> None:
        if self.scheduler.is_running:
            self.scheduler.stop()
        if self.connection is not None:
            self.connection.close()


def build_runtime(
    settings: ContentSpineSettings | None = None,
    *,
    backend: SchedulerBackend | None = None,
    bus: EventBus | None = None,
    in_memory: bool = False,
) -> Runtime:
    """Build a fully wired :class:`Runtime`.

    Raises:
        ConfigError: For an unsupported ``database_url``.
    """
    settings = settings or get_settings()
    bus = bus or InMemoryEventBus()

    conn = info = None
    if in_memory:
        schema_store: SchemaStore = InMemorySchemaStore()
        data_store: DataStore = InMemoryDataStore()
        jobs: JobRepository = InMemoryJobRepository(log_limit=settings.job_log_limit)
    else:
        conn, info = create_connection(settings.database_url, init_schema=True)
        schema_store = SqlSchemaStore(conn)
        data_store = SqlDataStore(conn)
        jobs = SqlJobRepository(conn, log_limit=settings.job_log_limit)

    registry = SchemaRegistry(schema_store, data_store, bus=bus, settings=settings)
    data = DataIngestionRepository(registry, data_store, settings=settings)
    client = GatewayClient(registry, data)
    scheduler = JobScheduler(jobs, client, backend=backend, settings=settings)
    admin = JobAdmin(jobs, settings=settings)

    logger.debug("runtime_built", in_memory=in_memory, connection=repr(info) if info else None)
    return Runtime(
        settings=settings,
        bus=bus,
        schema_store=schema_store,
        data_store=data_store,
        registry=registry,
        data=data,
        client=client,
        jobs=jobs,
        scheduler=scheduler,
        admin=admin,
        connection=conn,
        connection_info=info,
    )


__all__ = ["Runtime", "build_runtime"]
