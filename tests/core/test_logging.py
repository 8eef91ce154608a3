"""
Tests for the logging module.

Tests verify:
- LogContext binds and unbinds fields, per asyncio task
- configure_logging writes ECS-style JSON to stderr
- Events below the configured level are dropped
- Named loggers log, including ones created before configuration
"""

import asyncio
import json
import logging

import pytest
import structlog

from content_spine.core.logging import LogContext, bind_context, clear_context, configure_logging, get_logger


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    clear_context()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLogContext:
    def test_binds_for_the_block_only(self):
        with LogContext(job="example.User.V1"):
            assert structlog.contextvars.get_contextvars()["job"] == "example.User.V1"
        assert "job" not in structlog.contextvars.get_contextvars()

    def test_clear_context_drops_everything(self):
        bind_context(job="example.User.V1", attempt=2)
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    @pytest.mark.asyncio
    async def test_concurrent_tasks_are_isolated(self):
        seen = {}

        async def run(key: str) -> None:
            async with LogContext(job=key):
                await asyncio.sleep(0)
                seen[key] = structlog.contextvars.get_contextvars()["job"]

        await asyncio.gather(run("a.B.V1"), run("c.D.V1"))

        assert seen == {"a.B.V1": "a.B.V1", "c.D.V1": "c.D.V1"}


class TestConfigureLogging:
    def test_json_to_stderr_with_ecs_fields(self, capsys, restore_logging):
        configure_logging(level="INFO", json_format=True, service="spine-test")

        with LogContext(job="example.User.V1"):
            get_logger("tests").info("job_finished", items=3)

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "job_finished"
        assert event["items"] == 3
        assert event["job"] == "example.User.V1"
        assert event["log.level"] == "info"
        assert event["service.name"] == "spine-test"
        assert "@timestamp" in event

    def test_debug_suppressed_at_info(self, capsys, restore_logging):
        configure_logging(level="INFO", json_format=True)

        get_logger("tests").debug("noisy")

        assert "noisy" not in capsys.readouterr().err


class TestGetLogger:
    def test_named_logger_logs(self, capsys, restore_logging):
        configure_logging(level="INFO", json_format=True)

        get_logger("content_spine.registry.service").info("schema_registered", key="example.User.V1")

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["event"] == "schema_registered"
        assert event["key"] == "example.User.V1"

    def test_logger_created_before_configuration_follows_it(self, capsys, restore_logging):
        early = get_logger("content_spine.scheduling.service")

        configure_logging(level="INFO", json_format=True, service="late-config")
        early.info("scheduler_started")

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["service.name"] == "late-config"
