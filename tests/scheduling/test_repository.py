"""Tests for job repositories (both storage backends)."""

from dataclasses import replace
from datetime import timedelta

from content_spine.core.timestamps import utc_now
from content_spine.schema import SchemaIdentity
from content_spine.scheduling import JobState, ScheduleMode
from tests._support import USER_ID, make_job

OTHER_ID = SchemaIdentity("example", "Post", "V1")


class TestCrud:
    def test_upsert_and_find(self, job_repo):
        job = make_job(cursor="5", limit=50, mode=ScheduleMode.INCREMENTAL)
        job_repo.upsert(job)
        found = job_repo.find(USER_ID)
        assert found == job

    def test_upsert_overwrites(self, job_repo):
        job_repo.upsert(make_job(cursor="1"))
        job_repo.upsert(make_job(cursor="2"))
        assert job_repo.find(USER_ID).cursor == "2"
        assert len(job_repo.find_all()) == 1

    def test_find_missing(self, job_repo):
        assert job_repo.find(USER_ID) is None

    def test_remove(self, job_repo):
        job_repo.upsert(make_job())
        job_repo.append_log(USER_ID, JobState.SCHEDULED, "created", utc_now())
        assert job_repo.remove(USER_ID) is True
        assert job_repo.remove(USER_ID) is False
        assert job_repo.logs(USER_ID) == []

    def test_remove_all(self, job_repo):
        job_repo.upsert(make_job())
        job_repo.upsert(make_job(OTHER_ID))
        assert job_repo.remove_all() == 2
        assert job_repo.find_all() == []


class TestDueJobs:
    def test_load_next_jobs_only_returns_due_scheduled(self, job_repo):
        now = utc_now()
        job_repo.upsert(make_job(USER_ID, scheduled_at=now - timedelta(seconds=5)))
        job_repo.upsert(make_job(OTHER_ID, scheduled_at=now + timedelta(seconds=5)))
        job_repo.upsert(make_job(SchemaIdentity("example", "Done", "V1"), state=JobState.COMPLETED))
        job_repo.upsert(make_job(SchemaIdentity("example", "Failed", "V1"), state=JobState.FAILED))

        assert [j.key for j in job_repo.load_next_jobs(now)] == ["example.User.V1"]

    def test_scheduled_at_now_is_due(self, job_repo):
        now = utc_now()
        job_repo.upsert(make_job(scheduled_at=now))
        assert len(job_repo.load_next_jobs(now)) == 1

    def test_ordered_by_scheduled_at(self, job_repo):
        now = utc_now()
        job_repo.upsert(make_job(USER_ID, scheduled_at=now - timedelta(seconds=1)))
        job_repo.upsert(make_job(OTHER_ID, scheduled_at=now - timedelta(seconds=10)))
        assert [j.key for j in job_repo.load_next_jobs(now)] == ["example.Post.V1", "example.User.V1"]

    def test_retryable_jobs_wait_for_backoff(self, job_repo):
        now = utc_now()
        job_repo.upsert(make_job(state=JobState.FAILED, scheduled_at=now + timedelta(seconds=30)))
        assert job_repo.load_retryable_jobs(now) == []
        assert len(job_repo.load_retryable_jobs(now + timedelta(seconds=30))) == 1


class TestTryStart:
    def test_claims_a_due_job_once(self, job_repo):
        now = utc_now()
        job_repo.upsert(make_job())

        claimed = job_repo.try_start(USER_ID, now)

        assert claimed.state is JobState.RUNNING
        assert job_repo.try_start(USER_ID, now) is None
        assert [j.key for j in job_repo.find_running()] == ["example.User.V1"]

    def test_failed_jobs_can_be_claimed(self, job_repo):
        job_repo.upsert(make_job(state=JobState.FAILED))
        assert job_repo.try_start(USER_ID, utc_now()) is not None

    def test_not_due_is_not_claimed(self, job_repo):
        now = utc_now()
        job_repo.upsert(make_job(scheduled_at=now + timedelta(minutes=1)))
        assert job_repo.try_start(USER_ID, now) is None
        assert job_repo.find(USER_ID).state is JobState.SCHEDULED

    def test_terminal_states_are_not_claimed(self, job_repo):
        for state in (JobState.COMPLETED, JobState.CANCELED):
            job_repo.upsert(make_job(state=state))
            assert job_repo.try_start(USER_ID, utc_now()) is None

    def test_missing_job(self, job_repo):
        assert job_repo.try_start(USER_ID, utc_now()) is None


class TestGuardedWrites:
    def test_upsert_unless_running_inserts_and_overwrites(self, job_repo):
        assert job_repo.upsert_unless_running(make_job(cursor="1")) is True
        assert job_repo.upsert_unless_running(make_job(state=JobState.FAILED, cursor="2")) is True
        assert job_repo.find(USER_ID).cursor == "2"

    def test_upsert_unless_running_refuses_a_running_job(self, job_repo):
        job_repo.upsert(make_job(cursor="1"))
        job_repo.try_start(USER_ID, utc_now())

        assert job_repo.upsert_unless_running(make_job(cursor="0")) is False

        job = job_repo.find(USER_ID)
        assert job.state is JobState.RUNNING
        assert job.cursor == "1"

    def test_finish_writes_over_its_own_claim(self, job_repo):
        job_repo.upsert(make_job())
        claimed = job_repo.try_start(USER_ID, utc_now())
        done = replace(claimed, state=JobState.COMPLETED, updated_at=utc_now())

        assert job_repo.finish(done, claimed.updated_at) is True
        assert job_repo.find(USER_ID) == done

    def test_finish_after_the_claim_was_lost(self, job_repo):
        job_repo.upsert(make_job())
        first = job_repo.try_start(USER_ID, utc_now())
        # failed by a lease elsewhere, then claimed again by another run
        job_repo.upsert(replace(first, state=JobState.FAILED))
        second = job_repo.try_start(USER_ID, first.updated_at + timedelta(seconds=1))

        stale = replace(first, state=JobState.COMPLETED, updated_at=utc_now())
        assert job_repo.finish(stale, first.updated_at) is False
        assert job_repo.find(USER_ID) == second

    def test_finish_a_job_that_is_not_running(self, job_repo):
        job = make_job()
        job_repo.upsert(job)

        assert job_repo.finish(replace(job, state=JobState.COMPLETED), job.updated_at) is False
        assert job_repo.find(USER_ID).state is JobState.SCHEDULED


class TestLogs:
    def test_logs_are_bounded_and_oldest_first(self, job_repo, settings):
        job_repo.upsert(make_job())
        now = utc_now()
        for i in range(settings.job_log_limit + 3):
            job_repo.append_log(USER_ID, JobState.SCHEDULED, f"note {i}", now + timedelta(seconds=i))

        logs = job_repo.logs(USER_ID)

        assert len(logs) == settings.job_log_limit
        assert logs[0].note == "note 3"
        assert logs[-1].note == f"note {settings.job_log_limit + 2}"

    def test_logs_are_per_job(self, job_repo):
        now = utc_now()
        job_repo.append_log(USER_ID, JobState.SCHEDULED, "user", now)
        job_repo.append_log(OTHER_ID, JobState.FAILED, "post", now)
        assert [log.note for log in job_repo.logs(USER_ID)] == ["user"]
        assert job_repo.logs(OTHER_ID)[0].state is JobState.FAILED

    def test_preserves_previous_scheduled_at(self, job_repo):
        job = make_job()
        job = replace(job, previous_scheduled_at=job.scheduled_at - timedelta(hours=1))
        job_repo.upsert(job)
        assert job_repo.find(USER_ID).previous_scheduled_at == job.previous_scheduled_at
