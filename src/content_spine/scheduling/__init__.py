"""
Job scheduling: job state machine, repositories, timing backend, admin.

Usage::

    from content_spine.scheduling import InMemoryJobRepository, JobScheduler

    scheduler = JobScheduler(InMemoryJobRepository(), client)
    scheduler.start()
    await scheduler.register(loader)
"""

from content_spine.scheduling.models import (
    Job,
    JobDescriptor,
    JobDescriptorPayload,
    JobDetails,
    JobLogEntry,
    JobState,
    ScheduleMode,
)
from content_spine.scheduling.protocol import (
    BackendHealth,
    JobRepository,
    SchedulerBackend,
    TickCallback,
)
from content_spine.scheduling.memory import InMemoryJobRepository
from content_spine.scheduling.repository import SqlJobRepository
from content_spine.scheduling.thread_backend import ThreadSchedulerBackend
from content_spine.scheduling.service import JobScheduler, SchedulerStats
from content_spine.scheduling.admin import JobAdmin

__all__ = [
    "BackendHealth",
    "InMemoryJobRepository",
    "Job",
    "JobAdmin",
    "JobDescriptor",
    "JobDescriptorPayload",
    "JobDetails",
    "JobLogEntry",
    "JobRepository",
    "JobScheduler",
    "JobState",
    "ScheduleMode",
    "SchedulerBackend",
    "SchedulerStats",
    "SqlJobRepository",
    "ThreadSchedulerBackend",
    "TickCallback",
]
