"""
Job models and the JSON wire shape of a job descriptor.

State machine::

                 due + claimed                 save → descriptor
    SCHEDULED ─────────────────► RUNNING ─────────────────────► SCHEDULED
        │                        │   │
        │ no loader              │   │ save → None
        ▼                        │   └─────────────────────────► COMPLETED
    CANCELED                     │ any phase raised
                                 ▼
                              FAILED ──(backoff elapsed, claimed)──► RUNNING

Wire shape (epoch milliseconds, camelCase)::

    {"info": {"namespace": "example", "name": "User", "version": "V1"},
     "scheduledAt": 1700000000000, "scheduleMode": "BACKFILL",
     "cursor": "0", "limit": 1000}

Tags:
    scheduling, job, state-machine, wire-format, content-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from content_spine.core.errors import FieldError, InvalidDescriptorError, InvalidJobDescriptorError
from content_spine.core.timestamps import ensure_utc, from_epoch_ms, to_epoch_ms, to_iso8601
from content_spine.schema import SchemaIdentity


class JobState(str, Enum):
    SCHEDULED = "SCHEDULED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"

    @property
    def is_claimable(self) -> bool:
        """States a due job may be dispatched from."""
        return self in (JobState.SCHEDULED, JobState.FAILED)


class ScheduleMode(str, Enum):
    """How soon a job runs again.

    BACKFILL: the last batch was full, more history is likely waiting.
    INCREMENTAL: caught up, poll on the steady cadence.
    """

    BACKFILL = "BACKFILL"
    INCREMENTAL = "INCREMENTAL"

    @classmethod
    def for_batch(cls, batch_size: int, limit: int) -> ScheduleMode:
        return cls.BACKFILL if batch_size == limit else cls.INCREMENTAL


# =============================================================================
# WIRE MODELS
# =============================================================================


class IdentityPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    namespace: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)


class JobDescriptorPayload(BaseModel):
    """Validated JSON form of a :class:`JobDescriptor`."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    info: IdentityPayload
    scheduled_at: int = Field(..., alias="scheduledAt", ge=0, description="Epoch milliseconds")
    schedule_mode: ScheduleMode = Field(..., alias="scheduleMode")
    cursor: str
    limit: int = Field(..., ge=1)


# =============================================================================
# DOMAIN MODELS
# =============================================================================


@dataclass(frozen=True)
class JobDescriptor:
    """What a loader asks the scheduler for: where to resume, and when."""

    identity: SchemaIdentity
    scheduled_at: datetime
    schedule_mode: ScheduleMode
    cursor: str
    limit: int

    def to_wire(self) -> dict[str, Any]:
        return {
            "info": self.identity.to_dict(),
            "scheduledAt": to_epoch_ms(self.scheduled_at),
            "scheduleMode": self.schedule_mode.value,
            "cursor": self.cursor,
            "limit": self.limit,
        }

    @classmethod
    def from_wire(cls, payload: Any) -> JobDescriptor:
        """Parse and validate the wire shape.

        Raises:
            InvalidJobDescriptorError: With one ``FieldError`` per problem.
        """
        try:
            parsed = JobDescriptorPayload.model_validate(payload)
        except pydantic.ValidationError as e:
            errors = [
                FieldError("/" + "/".join(str(part) for part in err["loc"]), err["msg"])
                for err in e.errors()
            ]
            raise InvalidJobDescriptorError("Invalid job descriptor", errors) from e

        try:
            identity = SchemaIdentity(**parsed.info.model_dump())
        except InvalidDescriptorError as e:
            raise InvalidJobDescriptorError(
                "Invalid job descriptor", [FieldError("/info", e.message)]
            ) from e

        return cls(
            identity=identity,
            scheduled_at=from_epoch_ms(parsed.scheduled_at),
            schedule_mode=parsed.schedule_mode,
            cursor=parsed.cursor,
            limit=parsed.limit,
        )


@dataclass(frozen=True)
class Job:
    """The scheduling record of one schema identity."""

    identity: SchemaIdentity
    state: JobState
    schedule_mode: ScheduleMode
    cursor: str
    limit: int
    scheduled_at: datetime
    updated_at: datetime
    current_fail_count: int = 0
    previous_scheduled_at: datetime | None = None

    @property
    def key(self) -> str:
        return self.identity.key

    @property
    def name(self) -> str:
        """Name of the loader that serves this job."""
        return self.identity.key

    def is_due(self, now: datetime) -> bool:
        return ensure_utc(self.scheduled_at) <= ensure_utc(now)

    @classmethod
    def from_descriptor(cls, descriptor: JobDescriptor, now: datetime) -> Job:
        return cls(
            identity=descriptor.identity,
            state=JobState.SCHEDULED,
            schedule_mode=descriptor.schedule_mode,
            cursor=descriptor.cursor,
            limit=descriptor.limit,
            scheduled_at=descriptor.scheduled_at,
            updated_at=now,
        )

    def rescheduled(self, descriptor: JobDescriptor, now: datetime) -> Job:
        """The job after a successful run (``RUNNING → SCHEDULED``)."""
        return replace(
            self,
            state=JobState.SCHEDULED,
            schedule_mode=descriptor.schedule_mode,
            cursor=descriptor.cursor,
            limit=descriptor.limit,
            scheduled_at=descriptor.scheduled_at,
            updated_at=now,
            current_fail_count=0,
            previous_scheduled_at=self.scheduled_at,
        )

    def to_descriptor(self) -> JobDescriptor:
        return JobDescriptor(
            self.identity, self.scheduled_at, self.schedule_mode, self.cursor, self.limit
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "info": self.identity.to_dict(),
            "state": self.state.value,
            "schedule_mode": self.schedule_mode.value,
            "cursor": self.cursor,
            "limit": self.limit,
            "current_fail_count": self.current_fail_count,
            "scheduled_at": to_iso8601(self.scheduled_at),
            "updated_at": to_iso8601(self.updated_at),
            "previous_scheduled_at": to_iso8601(self.previous_scheduled_at),
        }


@dataclass(frozen=True)
class JobLogEntry:
    identity: SchemaIdentity
    state: JobState
    note: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "note": self.note,
            "created_at": to_iso8601(self.created_at),
        }


@dataclass(frozen=True)
class JobDetails:
    """A job together with its most recent log notes (oldest first)."""

    job: Job
    logs: list[JobLogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {**self.job.to_dict(), "logs": [log.to_dict() for log in self.logs]}


__all__ = [
    "IdentityPayload",
    "Job",
    "JobDescriptor",
    "JobDescriptorPayload",
    "JobDetails",
    "JobLogEntry",
    "JobState",
    "ScheduleMode",
]
