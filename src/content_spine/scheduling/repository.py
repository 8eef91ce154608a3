"""Job repository - persistence and atomic claiming.

┌──────────────────────────────────────────────────────────────────────────────┐
│  JOB REPOSITORY                                                              │
│                                                                              │
│  Responsibility: job persistence + at-most-one RUNNING run per identity      │
│                                                                              │
│  ┌────────────────────────────────────────────────────────────────────┐      │
│  │                      SqlJobRepository                              │      │
│  │                                                                    │      │
│  │   CRUD Operations:                                                 │      │
│  │   ├── upsert(job) → Job                                            │      │
│  │   ├── upsert_unless_running(job) → bool    refused while RUNNING   │      │
│  │   ├── find(identity) → Job | None                                  │      │
│  │   ├── find_all() → list[Job]                                       │      │
│  │   ├── remove(identity) → bool                                      │      │
│  │   └── remove_all() → int                                           │      │
│  │                                                                    │      │
│  │   Scheduling Operations:                                           │      │
│  │   ├── load_next_jobs(now) → list[Job]        SCHEDULED and due     │      │
│  │   ├── load_retryable_jobs(now) → list[Job]   FAILED and due        │      │
│  │   ├── try_start(identity, now) → Job | None  conditional UPDATE    │      │
│  │   ├── finish(job, claimed_at) → bool         only over that claim  │      │
│  │   └── find_running() → list[Job]                                   │      │
│  │                                                                    │      │
│  │   Log Operations:                                                  │      │
│  │   ├── append_log(identity, state, note, now)  trims to log_limit   │      │
│  │   └── logs(identity) → list[JobLogEntry]                           │      │
│  │                                                                    │      │
│  └────────────────────────────────────────────────────────────────────┘      │
│                                                                              │
│  Timestamps are fixed-width ISO 8601 UTC strings, so ``scheduled_at <= ?``   │
│  compares chronologically.                                                   │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from content_spine.core.dialect import Dialect
from content_spine.core.protocols import Connection
from content_spine.core.repository import BaseRepository
from content_spine.core.timestamps import from_iso8601, to_iso8601
from content_spine.schema import SchemaIdentity
from content_spine.scheduling.models import Job, JobLogEntry, JobState, ScheduleMode

logger = logging.getLogger(__name__)

_JOB_COLUMNS = [
    "job_key",
    "namespace",
    "name",
    "version",
    "state",
    "schedule_mode",
    "cursor",
    "job_limit",
    "current_fail_count",
    "scheduled_at",
    "updated_at",
    "previous_scheduled_at",
]


class SqlJobRepository(BaseRepository):
    """``JobRepository`` backed by any ``Connection`` + ``Dialect``.

    Example:
        >>> repo = SqlJobRepository(conn)
        >>> repo.upsert(Job.from_descriptor(descriptor, utc_now()))
        >>> claimed = repo.try_start(descriptor.identity, utc_now())
        >>> repo.try_start(descriptor.identity, utc_now()) is None
        True
    """

    def __init__(
        self,
        conn: Connection,
        dialect: Dialect | None = None,
        log_limit: int = 100,
    ) -> None:
        super().__init__(conn, dialect)
        self.log_limit = log_limit

    # === CRUD Operations ===

    def upsert(self, job: Job) -> Job:
        sql = self.dialect.upsert("cs_jobs", _JOB_COLUMNS, ["job_key"])
        with self.transaction():
            self.execute(sql, self._job_params(job))
        return job

    def upsert_unless_running(self, job: Job) -> bool:
        sql = self.dialect.upsert(
            "cs_jobs",
            _JOB_COLUMNS,
            ["job_key"],
            where=f"cs_jobs.state <> {self.dialect.placeholder(len(_JOB_COLUMNS))}",
        )
        with self.transaction():
            cursor = self.execute(sql, (*self._job_params(job), JobState.RUNNING.value))
            return cursor.rowcount == 1

    def finish(self, job: Job, claimed_at: datetime) -> bool:
        columns = _JOB_COLUMNS[1:]
        assignments = ", ".join(f"{c} = {self.dialect.placeholder(i)}" for i, c in enumerate(columns))
        n = len(columns)
        with self.transaction():
            cursor = self.execute(
                f"""
                UPDATE cs_jobs SET {assignments}
                WHERE job_key = {self.dialect.placeholder(n)}
                  AND state = {self.dialect.placeholder(n + 1)}
                  AND updated_at = {self.dialect.placeholder(n + 2)}
                """,
                (*self._job_params(job)[1:], job.key, JobState.RUNNING.value, to_iso8601(claimed_at)),
            )
            if cursor.rowcount != 1:
                logger.debug(f"Job {job.key} no longer held by the run claimed at {claimed_at}")
                return False
        return True

    def find(self, identity: SchemaIdentity) -> Job | None:
        row = self.query_one(f"SELECT * FROM cs_jobs WHERE job_key = {self.ph(1)}", (identity.key,))
        return self._row_to_job(row) if row else None

    def find_all(self) -> list[Job]:
        return [self._row_to_job(row) for row in self.query("SELECT * FROM cs_jobs ORDER BY job_key")]

    def remove(self, identity: SchemaIdentity) -> bool:
        with self.transaction():
            self.execute(f"DELETE FROM cs_job_logs WHERE job_key = {self.ph(1)}", (identity.key,))
            cursor = self.execute(f"DELETE FROM cs_jobs WHERE job_key = {self.ph(1)}", (identity.key,))
            return cursor.rowcount > 0

    def remove_all(self) -> int:
        with self.transaction():
            self.execute("DELETE FROM cs_job_logs")
            cursor = self.execute("DELETE FROM cs_jobs")
            return cursor.rowcount

    # === Scheduling Operations ===

    def load_next_jobs(self, now: datetime) -> list[Job]:
        return self._due(JobState.SCHEDULED, now)

    def load_retryable_jobs(self, now: datetime) -> list[Job]:
        return self._due(JobState.FAILED, now)

    def _due(self, state: JobState, now: datetime) -> list[Job]:
        rows = self.query(
            f"""
            SELECT * FROM cs_jobs
            WHERE state = {self.dialect.placeholder(0)}
              AND scheduled_at <= {self.dialect.placeholder(1)}
            ORDER BY scheduled_at, job_key
            """,
            (state.value, to_iso8601(now)),
        )
        return [self._row_to_job(row) for row in rows]

    def try_start(self, identity: SchemaIdentity, now: datetime) -> Job | None:
        stamp = to_iso8601(now)
        with self.transaction():
            cursor = self.execute(
                f"""
                UPDATE cs_jobs
                SET state = {self.dialect.placeholder(0)},
                    updated_at = {self.dialect.placeholder(1)}
                WHERE job_key = {self.dialect.placeholder(2)}
                  AND state IN ({self.dialect.placeholder(3)}, {self.dialect.placeholder(4)})
                  AND scheduled_at <= {self.dialect.placeholder(5)}
                """,
                (
                    JobState.RUNNING.value,
                    stamp,
                    identity.key,
                    JobState.SCHEDULED.value,
                    JobState.FAILED.value,
                    stamp,
                ),
            )
            if cursor.rowcount != 1:
                logger.debug(f"Job {identity.key} not claimable")
                return None
        return self.find(identity)

    def find_running(self) -> list[Job]:
        rows = self.query(
            f"SELECT * FROM cs_jobs WHERE state = {self.ph(1)} ORDER BY job_key",
            (JobState.RUNNING.value,),
        )
        return [self._row_to_job(row) for row in rows]

    # === Log Operations ===

    def append_log(self, identity: SchemaIdentity, state: JobState, note: str, now: datetime) -> None:
        key = identity.key
        with self.transaction():
            self.execute(
                f"INSERT INTO cs_job_logs (job_key, state, note, created_at) VALUES ({self.ph(4)})",
                (key, state.value, note, to_iso8601(now)),
            )
            self.execute(
                f"""
                DELETE FROM cs_job_logs
                WHERE job_key = {self.dialect.placeholder(0)}
                  AND id NOT IN (
                      SELECT id FROM cs_job_logs
                      WHERE job_key = {self.dialect.placeholder(1)}
                      ORDER BY id DESC
                      LIMIT {self.dialect.placeholder(2)}
                  )
                """,
                (key, key, self.log_limit),
            )

    def logs(self, identity: SchemaIdentity) -> list[JobLogEntry]:
        rows = self.query(
            f"SELECT * FROM cs_job_logs WHERE job_key = {self.ph(1)} ORDER BY id",
            (identity.key,),
        )
        return [
            JobLogEntry(identity, JobState(row["state"]), row["note"], from_iso8601(row["created_at"]))
            for row in rows
        ]

    # === Row mapping ===

    @staticmethod
    def _job_params(job: Job) -> tuple:
        return (
            job.key,
            job.identity.namespace,
            job.identity.name,
            job.identity.version,
            job.state.value,
            job.schedule_mode.value,
            job.cursor,
            job.limit,
            job.current_fail_count,
            to_iso8601(job.scheduled_at),
            to_iso8601(job.updated_at),
            to_iso8601(job.previous_scheduled_at),
        )

    @staticmethod
    def _row_to_job(row: dict[str, Any]) -> Job:
        return Job(
            identity=SchemaIdentity(row["namespace"], row["name"], row["version"]),
            state=JobState(row["state"]),
            schedule_mode=ScheduleMode(row["schedule_mode"]),
            cursor=row["cursor"],
            limit=int(row["job_limit"]),
            scheduled_at=from_iso8601(row["scheduled_at"]),
            updated_at=from_iso8601(row["updated_at"]),
            current_fail_count=int(row["current_fail_count"]),
            previous_scheduled_at=from_iso8601(row["previous_scheduled_at"]),
        )
