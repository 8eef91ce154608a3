"""Job scheduler - main orchestrator.

Manifesto:
    The JobScheduler owns the loader registry and the job state machine.
    Timing belongs to the backend (beat-as-poller); each tick loads due
    jobs, claims them atomically and runs their loaders.  A loader that
    fails only fails its own job: the tick never raises.

Tags:
    scheduling, orchestrator, beat-as-poller, state-machine, content-spine

┌──────────────────────────────────────────────────────────────────────────────┐
│  JOB SCHEDULER                                                               │
│                                                                              │
│   tick()                                                                     │
│   ├── RUNNING past running_lease_seconds, not held here → FAILED             │
│   ├── load_next_jobs(now) + load_retryable_jobs(now)                         │
│   └── for each due job (≤ max_concurrent_jobs at a time):                    │
│       ├── already running in this process? skip                              │
│       ├── no loader?       → CANCELED  (NoLoaderForJobError logged)          │
│       ├── try_start()      → None? someone else has it, skip                 │
│       ├── loader.load()    → LoadingResult                                   │
│       ├── loader.save()    → JobDescriptor | None                            │
│       ├── descriptor       → SCHEDULED  (fail count reset)                   │
│       ├── None             → COMPLETED                                       │
│       └── raised           → FAILED, scheduled_at = now + backoff            │
│       a run only ends by writing over its own claim (repo.finish)            │
│                                                                              │
│   Lifecycle:  NEW ──start()──► STARTED ──stop()──► STOPPED ──start()──► ...  │
│   start() marks jobs left RUNNING by a previous process as FAILED.           │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from content_spine.core.errors import (
    DatabaseError,
    JobCreationFailedError,
    JobRunningError,
    LoaderAlreadyRegisteredError,
    LoaderInitializationError,
    NoLoaderForJobError,
    NoLoaderFoundError,
    SchedulerAlreadyStartedError,
    SchedulerNotStartedError,
    SchedulerStartupError,
    SchedulerStoppedError,
)
from content_spine.core.logging import LogContext, get_logger
from content_spine.core.result import Err, Ok, Result
from content_spine.core.settings import ContentSpineSettings, get_settings
from content_spine.core.timestamps import utc_now
from content_spine.loaders.contract import DataLoader, InitContext, LoadContext, SaveContext
from content_spine.schema import SchemaIdentity
from content_spine.scheduling.models import Job, JobDescriptor, JobState
from content_spine.scheduling.protocol import JobRepository, SchedulerBackend
from content_spine.scheduling.thread_backend import ThreadSchedulerBackend

if TYPE_CHECKING:
    from content_spine.loaders.client import GatewayClient

logger = get_logger(__name__)


class _Lifecycle(str, Enum):
    NEW = "NEW"
    STARTED = "STARTED"
    STOPPED = "STOPPED"


@dataclass
class SchedulerStats:
    """Counters since the scheduler was created."""

    tick_count: int = 0
    jobs_succeeded: int = 0
    jobs_completed: int = 0
    jobs_failed: int = 0
    jobs_canceled: int = 0
    jobs_skipped: int = 0
    last_tick: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tick_count": self.tick_count,
            "jobs_succeeded": self.jobs_succeeded,
            "jobs_completed": self.jobs_completed,
            "jobs_failed": self.jobs_failed,
            "jobs_canceled": self.jobs_canceled,
            "jobs_skipped": self.jobs_skipped,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            "last_error": self.last_error,
        }


class JobScheduler:
    """Drives loaders on the job state machine.

    Example:
        >>> scheduler = JobScheduler(SqlJobRepository(conn), client)
        >>> scheduler.start()
        >>> await scheduler.register(CurrentTimestampLoader())
        >>> # ... the backend now calls scheduler.tick() every few seconds
        >>> scheduler.stop()

    Args:
        jobs: Job storage.
        client: Gateway client passed to loaders in ``initialize``/``save``.
        backend: Timing backend, defaults to :class:`ThreadSchedulerBackend`.
        settings: Tick interval, backoff and concurrency settings.
    """

    def __init__(
        self,
        jobs: JobRepository,
        client: GatewayClient,
        backend: SchedulerBackend | None = None,
        settings: ContentSpineSettings | None = None,
    ) -> None:
        self.jobs = jobs
        self.client = client
        self.backend = backend or ThreadSchedulerBackend()
        self.settings = settings or get_settings()

        self._loaders: dict[str, DataLoader] = {}
        self._loaders_lock = threading.Lock()
        self._in_flight: set[str] = set()
        self._in_flight_lock = threading.Lock()
        self._lifecycle = _Lifecycle.NEW
        self._stats = SchedulerStats()

    # === Lifecycle ===

    def start(self) -> None:
        """Fail stale RUNNING jobs, then start the backend tick loop.

        Raises:
            SchedulerAlreadyStartedError: If already started.
            SchedulerStartupError: If cleanup or the backend failed.
        """
        if self._lifecycle is _Lifecycle.STARTED:
            raise SchedulerAlreadyStartedError()

        try:
            stale = self._fail_stale_jobs()
            self.backend.start(self.tick, self.settings.tick_interval_seconds)
        except Exception as e:
            logger.error("scheduler_start_failed", error=str(e))
            raise SchedulerStartupError(e) from e

        self._lifecycle = _Lifecycle.STARTED
        logger.info(
            "scheduler_started",
            backend=self.backend.name,
            interval_seconds=self.settings.tick_interval_seconds,
            stale_jobs=stale,
        )

    def stop(self) -> None:
        """Stop the backend, waiting for the current tick.

        Raises:
            SchedulerStoppedError: If not running.
        """
        if self._lifecycle is not _Lifecycle.STARTED:
            raise SchedulerStoppedError()
        self.backend.stop()
        self._lifecycle = _Lifecycle.STOPPED
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._lifecycle is _Lifecycle.STARTED

    def _fail_stale_jobs(self) -> int:
        now = utc_now()
        failed = 0
        for job in self.jobs.find_running():
            if self._holds(job.key):
                continue
            if self._fail(job, "Job was still RUNNING when the scheduler started", now):
                logger.warning("stale_job_failed", job=job.key)
                failed += 1
        return failed

    def _holds(self, key: str) -> bool:
        with self._in_flight_lock:
            return key in self._in_flight

    # === Loaders ===

    async def register(self, loader: DataLoader) -> Result[None]:
        """Register ``loader`` and run its ``initialize`` phase."""
        if self._lifecycle is _Lifecycle.NEW:
            return Err(SchedulerNotStartedError())
        if self._lifecycle is _Lifecycle.STOPPED:
            return Err(SchedulerStoppedError())

        name = loader.name
        with self._loaders_lock:
            if name in self._loaders:
                return Err(LoaderAlreadyRegisteredError(name))
            self._loaders[name] = loader

        try:
            await loader.initialize(InitContext(self.client, self))
        except Exception as e:
            with self._loaders_lock:
                self._loaders.pop(name, None)
            logger.error("loader_initialization_failed", loader=name, error=str(e))
            return Err(LoaderInitializationError(name, e))

        logger.info("loader_registered", loader=name)
        return Ok(None)

    def remove(self, name: str) -> Result[None]:
        """Unregister a loader.  Its job stays; due runs will be CANCELED."""
        with self._loaders_lock:
            if self._loaders.pop(name, None) is None:
                return Err(NoLoaderFoundError(name))
        logger.info("loader_removed", loader=name)
        return Ok(None)

    def loader(self, name: str) -> DataLoader | None:
        with self._loaders_lock:
            return self._loaders.get(name)

    @property
    def loader_names(self) -> list[str]:
        with self._loaders_lock:
            return sorted(self._loaders)

    # === Jobs ===

    async def schedule(self, descriptor: JobDescriptor) -> Result[Job]:
        """Create or overwrite the job for ``descriptor.identity``.

        Refused with ``JobRunningError`` while a run holds the job.
        """
        name = descriptor.identity.key
        if self.loader(name) is None:
            return Err(NoLoaderForJobError(name))

        now = utc_now()
        try:
            existing = self.jobs.find(descriptor.identity)
            job = Job.from_descriptor(descriptor, now)
            if existing is not None:
                job = replace(job, previous_scheduled_at=existing.scheduled_at)
            if not self.jobs.upsert_unless_running(job):
                logger.warning("job_schedule_refused", job=name, reason="running")
                return Err(JobRunningError(name))
            self.jobs.append_log(job.identity, job.state, f"Scheduled from cursor {job.cursor}", now)
        except DatabaseError as e:
            logger.error("job_creation_failed", job=name, error=str(e))
            return Err(JobCreationFailedError(name, e))

        logger.info(
            "job_scheduled",
            job=name,
            mode=job.schedule_mode.value,
            cursor=job.cursor,
            scheduled_at=job.scheduled_at.isoformat(),
        )
        return Ok(job)

    async def find_job(self, identity: SchemaIdentity) -> Job | None:
        return self.jobs.find(identity)

    async def find_all(self) -> list[Job]:
        return self.jobs.find_all()

    async def load_next_jobs(self, now: datetime | None = None) -> list[Job]:
        """SCHEDULED jobs due at ``now`` (defaults to the current time)."""
        return self.jobs.load_next_jobs(now or utc_now())

    async def remove_job(self, identity: SchemaIdentity) -> bool:
        removed = self.jobs.remove(identity)
        if removed:
            logger.info("job_removed", job=identity.key)
        return removed

    async def remove_all_jobs(self) -> int:
        count = self.jobs.remove_all()
        logger.info("jobs_removed", count=count)
        return count

    # === Tick Processing ===

    async def tick(self) -> None:
        """One polling cycle.  Called by the backend; never raises."""
        now = utc_now()
        self._stats.tick_count += 1
        self._stats.last_tick = now

        try:
            self._reclaim_expired_runs(now)
            due = self.jobs.load_next_jobs(now) + self.jobs.load_retryable_jobs(now)
        except DatabaseError as e:
            self._stats.last_error = str(e)
            logger.error("tick_failed", error=str(e))
            return

        if not due:
            logger.debug("no_jobs_due")
            return

        logger.info("jobs_due", count=len(due))
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_jobs)

        async def bounded(job: Job) -> None:
            async with semaphore:
                await self._process_safely(job, now)

        await asyncio.gather(*(bounded(job) for job in due))

    def _reclaim_expired_runs(self, now: datetime) -> None:
        """Fail RUNNING jobs that no run in this process holds once their lease is up.

        Such a job was left behind when storage failed while its run was
        being recorded, or by a process that died mid-run.
        """
        lease = timedelta(seconds=self.settings.running_lease_seconds)
        for job in self.jobs.find_running():
            if self._holds(job.key) or now - job.updated_at < lease:
                continue
            if self._fail(job, "Run lease expired while the job was RUNNING", now):
                logger.warning("job_lease_expired", job=job.key, claimed_at=job.updated_at.isoformat())

    async def _process_safely(self, job: Job, now: datetime) -> None:
        with self._in_flight_lock:
            if job.key in self._in_flight:
                self._stats.jobs_skipped += 1
                return
            self._in_flight.add(job.key)
        try:
            async with LogContext(job=job.key):
                try:
                    await self._process(job, now)
                except Exception as e:
                    # Storage failed mid-run; a job left RUNNING is reclaimed once its lease expires.
                    self._stats.last_error = str(e)
                    logger.exception("job_processing_failed", error=str(e))
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(job.key)

    async def _process(self, job: Job, now: datetime) -> None:
        loader = self.loader(job.name)
        if loader is None:
            error = NoLoaderForJobError(job.name)
            if self.jobs.upsert_unless_running(replace(job, state=JobState.CANCELED, updated_at=now)):
                logger.warning("job_canceled", error=error.message)
                self.jobs.append_log(job.identity, JobState.CANCELED, error.message, now)
                self._stats.jobs_canceled += 1
            return

        claimed = self.jobs.try_start(job.identity, now)
        if claimed is None:
            logger.debug("job_not_claimed")
            self._stats.jobs_skipped += 1
            return

        logger.info("job_started", cursor=claimed.cursor, limit=claimed.limit)
        try:
            result = await loader.load(LoadContext(claimed))
            descriptor = await loader.save(SaveContext(self.client, claimed, result))
        except Exception as e:
            logger.warning("job_failed", error=str(e), fail_count=claimed.current_fail_count + 1)
            if not self._fail(claimed, f"{type(e).__name__}: {e}", utc_now()):
                logger.warning("job_result_discarded", state=JobState.FAILED.value, reason="claim lost")
            return

        finished = utc_now()
        if descriptor is None:
            done = replace(claimed, state=JobState.COMPLETED, updated_at=finished, current_fail_count=0)
            note = f"Completed after {len(result.data)} item(s)"
        else:
            done = claimed.rescheduled(descriptor, finished)
            note = (
                f"Loaded {len(result.data)} item(s), next cursor {done.cursor}, "
                f"mode {done.schedule_mode.value}"
            )

        if not self.jobs.finish(done, claimed.updated_at):
            logger.warning("job_result_discarded", state=done.state.value, reason="claim lost")
            self._stats.jobs_skipped += 1
            return
        if descriptor is None:
            self._stats.jobs_completed += 1
        else:
            self._stats.jobs_succeeded += 1
        self.jobs.append_log(done.identity, done.state, note, finished)
        logger.info(
            "job_finished",
            state=done.state.value,
            items=len(result.data),
            cursor=done.cursor,
        )

    def _fail(self, job: Job, note: str, now: datetime) -> bool:
        """Move the RUNNING ``job`` (as claimed) to FAILED with backoff.  False if the claim is gone."""
        fail_count = job.current_fail_count + 1
        failed = replace(
            job,
            state=JobState.FAILED,
            current_fail_count=fail_count,
            previous_scheduled_at=job.scheduled_at,
            scheduled_at=now + self.settings.backoff_for(fail_count),
            updated_at=now,
        )
        if not self.jobs.finish(failed, job.updated_at):
            return False
        self.jobs.append_log(failed.identity, JobState.FAILED, note, now)
        self._stats.jobs_failed += 1
        return True

    # === Health & Stats ===

    def health(self) -> dict[str, Any]:
        backend_health = self.backend.health()
        return {
            "healthy": self.is_running and backend_health.get("healthy", False),
            "lifecycle": self._lifecycle.value,
            "backend": backend_health,
            "loaders": self.loader_names,
            "stats": self._stats.to_dict(),
        }

    @property
    def stats(self) -> SchedulerStats:
        return self._stats
