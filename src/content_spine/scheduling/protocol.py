"""Scheduling contracts: job storage and timing backends.

┌──────────────────────────────────────────────────────────────────────────────┐
│  BEAT-AS-POLLER                                                              │
│                                                                              │
│   ┌─────────────────┐       tick()       ┌──────────────────────────┐        │
│   │ SchedulerBackend│ ─────────────────► │ JobScheduler             │        │
│   │ (timing only)   │                    │  - load due jobs         │        │
│   └─────────────────┘                    │  - claim (try_start)     │        │
│                                          │  - load → save           │        │
│                                          │  - persist next state    │        │
│                                          └────────────┬─────────────┘        │
│                                                       │                      │
│                                                       ▼                      │
│                                          ┌──────────────────────────┐        │
│                                          │ JobRepository            │        │
│                                          │  InMemory | Sql          │        │
│                                          └──────────────────────────┘        │
│                                                                              │
│  Backend: controls WHEN ticks happen.  Scheduler: controls WHAT happens.     │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from content_spine.schema import SchemaIdentity
from content_spine.scheduling.models import Job, JobLogEntry, JobState

TickCallback = Callable[[], Awaitable[None]]


@runtime_checkable
class JobRepository(Protocol):
    """Job storage.  One job per identity; raises ``DatabaseError`` on I/O failure."""

    def upsert(self, job: Job) -> Job:
        ...

    def upsert_unless_running(self, job: Job) -> bool:
        """Write ``job`` unless the stored job is RUNNING.  False if refused."""
        ...

    def finish(self, job: Job, claimed_at: datetime) -> bool:
        """End a run: write ``job`` only over the RUNNING row claimed at ``claimed_at``.

        False when the claim is gone (failed by a lease or by ``start()``,
        removed, or claimed again), in which case nothing is written.
        """
        ...

    def find(self, identity: SchemaIdentity) -> Job | None:
        ...

    def find_all(self) -> list[Job]:
        ...

    def remove(self, identity: SchemaIdentity) -> bool:
        """Delete the job and its log."""
        ...

    def remove_all(self) -> int:
        ...

    def load_next_jobs(self, now: datetime) -> list[Job]:
        """SCHEDULED jobs with ``scheduled_at <= now``, earliest first."""
        ...

    def load_retryable_jobs(self, now: datetime) -> list[Job]:
        """FAILED jobs whose backoff has elapsed, earliest first."""
        ...

    def try_start(self, identity: SchemaIdentity, now: datetime) -> Job | None:
        """Atomically move a due SCHEDULED/FAILED job to RUNNING.

        Returns the claimed job, or ``None`` if it was not claimable
        (already RUNNING, not due, or gone).
        """
        ...

    def find_running(self) -> list[Job]:
        ...

    def append_log(self, identity: SchemaIdentity, state: JobState, note: str, now: datetime) -> None:
        """Record a note, dropping the oldest beyond the retention limit."""
        ...

    def logs(self, identity: SchemaIdentity) -> list[JobLogEntry]:
        """Retained notes, oldest first."""
        ...


@runtime_checkable
class SchedulerBackend(Protocol):
    """Pluggable timing backend.

    A backend only calls the tick callback at an interval; all job
    evaluation lives in ``JobScheduler``.
    """

    name: str

    def start(self, tick_callback: TickCallback, interval_seconds: float = 5.0) -> None:
        ...

    def stop(self) -> None:
        """Stop gracefully, waiting for the current tick."""
        ...

    def health(self) -> dict[str, Any]:
        ...


@dataclass
class BackendHealth:
    """Structured backend health response."""

    healthy: bool
    backend: str
    tick_count: int = 0
    last_tick: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "tick_count": self.tick_count,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            **self.extra,
        }


__all__ = ["BackendHealth", "JobRepository", "SchedulerBackend", "TickCallback"]
