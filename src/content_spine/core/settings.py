"""
Centralized settings for content-spine.

All fields can be set through ``CONTENT_SPINE_*`` environment variables
(e.g. ``CONTENT_SPINE_DATABASE_URL=sqlite:///data/gateway.db``) or a
``.env`` file.  The cadence table and backoff policy used by the job
scheduler live here so deployments can tune polling without code changes.

Tags:
    settings, configuration, pydantic, environment, content-spine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from content_spine.scheduling.models import ScheduleMode


class ContentSpineSettings(BaseSettings):
    """content-spine configuration.

    Fields
    ──────
    database_url            : ``memory``, ``sqlite:///path`` or a bare file path
    log_level / log_format  : structlog level and ``json`` | ``console``
    tick_interval_seconds   : how often the scheduler polls for due jobs
    *_cadence_seconds       : delay before the next run per schedule mode
    failure_backoff_*       : exponential backoff for failed jobs
    default_cursor/limit    : starting point for new and reset jobs
    job_log_limit           : notes retained per job
    max_concurrent_jobs     : jobs dispatched in parallel within one tick
    register_max_attempts   : compare-and-swap retries for schema registration
    running_lease_seconds   : age after which a RUNNING job no run holds is failed
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTENT_SPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="memory")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    # ── Scheduler ────────────────────────────────────────────────
    tick_interval_seconds: float = Field(default=5.0, gt=0)
    backfill_cadence_seconds: int = Field(default=5, ge=0)
    incremental_cadence_seconds: int = Field(default=300, ge=0)
    failure_backoff_base_seconds: int = Field(default=30, ge=0)
    failure_backoff_max_seconds: int = Field(default=3600, ge=0)
    max_concurrent_jobs: int = Field(default=4, ge=1)
    running_lease_seconds: int = Field(default=600, ge=0)

    # ── Jobs ─────────────────────────────────────────────────────
    default_cursor: str = Field(default="0")
    default_limit: int = Field(default=1000, ge=1)
    job_log_limit: int = Field(default=100, ge=1)

    # ── Registry ─────────────────────────────────────────────────
    register_max_attempts: int = Field(default=3, ge=1)

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    # ── Derived ──────────────────────────────────────────────────

    def cadence_for(self, mode: ScheduleMode) -> timedelta:
        """Delay before the next run of a job in ``mode``."""
        from content_spine.scheduling.models import ScheduleMode

        if mode == ScheduleMode.BACKFILL:
            return timedelta(seconds=self.backfill_cadence_seconds)
        return timedelta(seconds=self.incremental_cadence_seconds)

    def backoff_for(self, fail_count: int) -> timedelta:
        """Exponential backoff after the ``fail_count``-th consecutive failure."""
        exponent = max(fail_count - 1, 0)
        seconds = min(
            self.failure_backoff_base_seconds * (2**exponent),
            self.failure_backoff_max_seconds,
        )
        return timedelta(seconds=seconds)


@lru_cache(maxsize=1)
def get_settings() -> ContentSpineSettings:
    """Load and cache settings from the environment."""
    return ContentSpineSettings()


__all__ = ["ContentSpineSettings", "get_settings"]
