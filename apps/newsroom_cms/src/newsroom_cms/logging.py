"""Logging configuration.

Everything is routed through structlog. Cron jobs and the task server bind a
``job`` context variable so every line emitted during a sweep carries it.
"""

from __future__ import annotations

import logging
import sys
from contextlib import AbstractContextManager

import structlog


def configure_logging(level: str, *, log_format: str = "json") -> None:
    level_value = logging._nameToLevel.get(level.upper(), logging.INFO)
    renderer: structlog.typing.Processor
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    logging.basicConfig(level=level_value, format="%(message)s", stream=sys.stdout)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def job_context(job: str) -> AbstractContextManager[object]:
    return structlog.contextvars.bound_contextvars(job=job)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
