"""
Administrative job operations.

The surface an operator (or an HTTP layer in front of this package) uses
to inspect and steer jobs.  Writes go straight to the job repository, so
they work without a running scheduler or registered loaders; the next
tick of a running scheduler picks the change up.  A job that is RUNNING
cannot be overwritten: ``submit`` and ``reset`` return ``JobRunningError``
and ``reset_all`` leaves it out.

    list_jobs()        every job
    submit(payload)    create/overwrite from the JSON wire shape
    reset(identity)    back to BACKFILL from the default cursor, due now
    reset_all()        reset every job that is not RUNNING
    get(identity)      job plus its retained log notes
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from content_spine.core.errors import (
    DatabaseError,
    InvalidJobDescriptorError,
    JobNotFoundError,
    JobRunningError,
)
from content_spine.core.logging import get_logger
from content_spine.core.result import Err, Ok, Result
from content_spine.core.settings import ContentSpineSettings, get_settings
from content_spine.core.timestamps import utc_now
from content_spine.schema import SchemaIdentity
from content_spine.scheduling.models import Job, JobDescriptor, JobDetails, JobState, ScheduleMode
from content_spine.scheduling.protocol import JobRepository

logger = get_logger(__name__)


class JobAdmin:
    def __init__(self, jobs: JobRepository, settings: ContentSpineSettings | None = None) -> None:
        self.jobs = jobs
        self.settings = settings or get_settings()

    async def list_jobs(self) -> list[Job]:
        return self.jobs.find_all()

    async def submit(self, payload: Any) -> Result[Job]:
        """Create or overwrite a job from its wire-shape descriptor."""
        try:
            descriptor = JobDescriptor.from_wire(payload)
        except InvalidJobDescriptorError as e:
            return Err(e)

        now = utc_now()
        job = Job.from_descriptor(descriptor, now)
        try:
            existing = self.jobs.find(descriptor.identity)
            if existing is not None:
                job = replace(job, previous_scheduled_at=existing.scheduled_at)
            if not self.jobs.upsert_unless_running(job):
                logger.warning("job_submit_refused", job=job.key, reason="running")
                return Err(JobRunningError(job.key))
            self.jobs.append_log(job.identity, job.state, f"Submitted with cursor {job.cursor}", now)
        except DatabaseError as e:
            logger.error("job_submit_failed", job=job.key, error=str(e))
            return Err(e.with_context(loader=job.key, operation="submit"))

        logger.info("job_submitted", job=job.key, mode=job.schedule_mode.value, cursor=job.cursor)
        return Ok(job)

    async def reset(self, identity: SchemaIdentity) -> Result[Job]:
        try:
            job = self.jobs.find(identity)
            if job is None:
                return Err(JobNotFoundError(identity.key))
            reset = self._reset(job)
            if reset is None:
                return Err(JobRunningError(identity.key))
            return Ok(reset)
        except DatabaseError as e:
            logger.error("job_reset_failed", job=identity.key, error=str(e))
            return Err(e.with_context(loader=identity.key, operation="reset"))

    async def reset_all(self) -> Result[list[Job]]:
        try:
            reset = [self._reset(job) for job in self.jobs.find_all()]
            return Ok([job for job in reset if job is not None])
        except DatabaseError as e:
            logger.error("job_reset_all_failed", error=str(e))
            return Err(e.with_context(operation="reset_all"))

    async def get(self, identity: SchemaIdentity) -> Result[JobDetails]:
        try:
            job = self.jobs.find(identity)
            if job is None:
                return Err(JobNotFoundError(identity.key))
            return Ok(JobDetails(job, self.jobs.logs(identity)))
        except DatabaseError as e:
            return Err(e.with_context(loader=identity.key, operation="get"))

    def _reset(self, job: Job) -> Job | None:
        now = utc_now()
        reset = replace(
            job,
            state=JobState.SCHEDULED,
            schedule_mode=ScheduleMode.BACKFILL,
            cursor=self.settings.default_cursor,
            limit=self.settings.default_limit,
            current_fail_count=0,
            previous_scheduled_at=job.scheduled_at,
            scheduled_at=now,
            updated_at=now,
        )
        if not self.jobs.upsert_unless_running(reset):
            logger.warning("job_reset_refused", job=job.key, reason="running")
            return None
        self.jobs.append_log(reset.identity, reset.state, "Reset to BACKFILL from the default cursor", now)
        logger.info("job_reset", job=job.key)
        return reset
