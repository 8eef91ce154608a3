"""In-memory job repository."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import replace
from datetime import datetime

from content_spine.schema import SchemaIdentity
from content_spine.scheduling.models import Job, JobLogEntry, JobState


class InMemoryJobRepository:
    """Dict-backed ``JobRepository``.

    ``try_start`` is a check-and-set under the lock, so two ticks racing
    for the same job cannot both claim it.
    """

    def __init__(self, log_limit: int = 100) -> None:
        self._jobs: dict[str, Job] = {}
        self._logs: dict[str, deque[JobLogEntry]] = {}
        self._log_limit = log_limit
        self._lock = threading.Lock()

    def upsert(self, job: Job) -> Job:
        with self._lock:
            self._jobs[job.key] = job
        return job

    def upsert_unless_running(self, job: Job) -> bool:
        with self._lock:
            current = self._jobs.get(job.key)
            if current is not None and current.state == JobState.RUNNING:
                return False
            self._jobs[job.key] = job
            return True

    def finish(self, job: Job, claimed_at: datetime) -> bool:
        with self._lock:
            current = self._jobs.get(job.key)
            if current is None or current.state != JobState.RUNNING or current.updated_at != claimed_at:
                return False
            self._jobs[job.key] = job
            return True

    def find(self, identity: SchemaIdentity) -> Job | None:
        with self._lock:
            return self._jobs.get(identity.key)

    def find_all(self) -> list[Job]:
        with self._lock:
            return [self._jobs[key] for key in sorted(self._jobs)]

    def remove(self, identity: SchemaIdentity) -> bool:
        with self._lock:
            self._logs.pop(identity.key, None)
            return self._jobs.pop(identity.key, None) is not None

    def remove_all(self) -> int:
        with self._lock:
            count = len(self._jobs)
            self._jobs.clear()
            self._logs.clear()
            return count

    def load_next_jobs(self, now: datetime) -> list[Job]:
        return self._due(JobState.SCHEDULED, now)

    def load_retryable_jobs(self, now: datetime) -> list[Job]:
        return self._due(JobState.FAILED, now)

    def _due(self, state: JobState, now: datetime) -> list[Job]:
        with self._lock:
            due = [j for j in self._jobs.values() if j.state == state and j.is_due(now)]
        return sorted(due, key=lambda j: (j.scheduled_at, j.key))

    def try_start(self, identity: SchemaIdentity, now: datetime) -> Job | None:
        with self._lock:
            job = self._jobs.get(identity.key)
            if job is None or not job.state.is_claimable or not job.is_due(now):
                return None
            claimed = replace(job, state=JobState.RUNNING, updated_at=now)
            self._jobs[identity.key] = claimed
            return claimed

    def find_running(self) -> list[Job]:
        with self._lock:
            return [j for j in self._jobs.values() if j.state == JobState.RUNNING]

    def append_log(self, identity: SchemaIdentity, state: JobState, note: str, now: datetime) -> None:
        with self._lock:
            log = self._logs.setdefault(identity.key, deque(maxlen=self._log_limit))
            log.append(JobLogEntry(identity, state, note, now))

    def logs(self, identity: SchemaIdentity) -> list[JobLogEntry]:
        with self._lock:
            return list(self._logs.get(identity.key, ()))
