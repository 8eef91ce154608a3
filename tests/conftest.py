"""
Shared pytest fixtures for content-spine tests.

Storage fixtures are parametrized over the in-memory and SQLite backends
so every store-level behaviour is checked against both.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest

from content_spine.core.connection import SqliteConnection, create_connection
from content_spine.core.events.memory import InMemoryEventBus
from content_spine.core.settings import ContentSpineSettings
from content_spine.data import DataIngestionRepository, InMemoryDataStore, SqlDataStore
from content_spine.loaders.client import GatewayClient
from content_spine.registry import InMemorySchemaStore, SchemaRegistry, SqlSchemaStore
from content_spine.scheduling import InMemoryJobRepository, JobScheduler, SqlJobRepository
from tests._support import ManualBackend


@pytest.fixture
def settings() -> ContentSpineSettings:
    return ContentSpineSettings(
        database_url="memory",
        tick_interval_seconds=0.05,
        backfill_cadence_seconds=5,
        incremental_cadence_seconds=300,
        failure_backoff_base_seconds=30,
        failure_backoff_max_seconds=3600,
        default_cursor="0",
        default_limit=1000,
        job_log_limit=5,
        register_max_attempts=3,
    )


@pytest.fixture
def conn() -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite with every content-spine table."""
    connection, _ = create_connection("memory", init_schema=True)
    yield connection
    connection.close()


@pytest.fixture(params=["memory", "sqlite"])
def backend_kind(request: pytest.FixtureRequest) -> str:
    return request.param


@pytest.fixture
def schema_store(backend_kind, conn):
    return InMemorySchemaStore() if backend_kind == "memory" else SqlSchemaStore(conn)


@pytest.fixture
def data_store(backend_kind, conn):
    return InMemoryDataStore() if backend_kind == "memory" else SqlDataStore(conn)


@pytest.fixture
def job_repo(backend_kind, conn, settings):
    if backend_kind == "memory":
        return InMemoryJobRepository(log_limit=settings.job_log_limit)
    return SqlJobRepository(conn, log_limit=settings.job_log_limit)


@pytest.fixture
def bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def registry(schema_store, data_store, bus, settings) -> SchemaRegistry:
    return SchemaRegistry(schema_store, data_store, bus=bus, settings=settings)


@pytest.fixture
def data_repo(registry, data_store, settings) -> DataIngestionRepository:
    return DataIngestionRepository(registry, data_store, settings=settings)


@pytest.fixture
def client(registry, data_repo) -> GatewayClient:
    return GatewayClient(registry, data_repo)


@pytest.fixture
def backend() -> ManualBackend:
    return ManualBackend()


@pytest.fixture
def scheduler(job_repo, client, backend, settings) -> Generator[JobScheduler, None, None]:
    """A started scheduler whose ticks are driven by the test."""
    sched = JobScheduler(job_repo, client, backend=backend, settings=settings)
    sched.start()
    yield sched
    if sched.is_running:
        sched.stop()
