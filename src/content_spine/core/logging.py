"""
Structured logging for content-spine.

Services log through structlog with event-style names and keyword
fields::

    logger.info("job_scheduled", job="example.CurrentTimestamp.V1", mode="BACKFILL")

Library modules only call :func:`get_logger`.  The CLI calls
:func:`configure_logging` once per process; until then structlog's
defaults apply, which is what the test suite runs with.

JSON output uses ECS-style keys so it can be shipped to Elasticsearch
as-is::

    {"@timestamp": "...", "log.level": "info", "service.name": "content-spine",
     "event": "job_finished", "job": "example.User.V1", "items": 100}

A job run binds ``job=<key>`` with :class:`LogContext`, so everything a
loader logs during ``load``/``save`` carries the job key.

Tags:
    logging, structlog, observability, content-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "content-spine"


def _add_service_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "content-spine",
) -> None:
    """Route structlog and stdlib logging to stderr.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR).
        json_format: JSON lines if True, console rendering if False,
            JSON when stderr is not a TTY if None.
        service: Value of ``service.name`` on every event.
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service
    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stderr.isatty()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_name,
    ]
    if json_format:
        processors += [
            _ecs_field_names,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    # thread backend and connection modules log through stdlib logging
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Lazy structlog logger.

    Resolved on first use, so module-level loggers pick up a later
    :func:`configure_logging`.  ``name`` goes to the logger factory.
    """
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a block (sync or async).

    Context variables are copied per asyncio task, so concurrent job runs
    in one tick do not see each other's fields.

    Example:
        async with LogContext(job="example.User.V1"):
            logger.info("load_started")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
