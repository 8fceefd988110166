"""Structured logging configuration -- structlog + stdlib integration.

Provides a single :func:`setup_logging` entry-point that configures
**structlog** and Python's built-in :mod:`logging` so that every log
statement (including ``httpx``) flows through one processor pipeline.

Processors added to every log event:

* **timestamp** -- UTC ISO-8601
* **log level** and **logger name**
* **run context** -- ``phase``, ``environment`` and ``pr`` bound with
  :func:`bind_run_context` at boot

Local runs render with :class:`structlog.dev.ConsoleRenderer`; CI runs (or
``--json-logs``) emit single-line JSON suitable for log ingestion.  Logs go
to stderr so stdout stays free for command output.
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def setup_logging(level: str = "info", json_output: bool = False) -> None:
    """Configure structlog with stdlib logging integration.

    Args:
        level: Log level string (``debug``, ``info``, ``warning``, ``error``,
            ``critical``).
        json_output: Render JSON lines instead of coloured console output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            pad_event=32,
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.get_logger(__name__).debug(
        "logging_configured",
        level=level,
        json_output=json_output,
    )


def bind_run_context(**values: Any) -> None:
    """Bind run-scoped fields (phase, environment, pr) to every log event."""
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in values.items() if value is not None}
    )


def clear_run_context() -> None:
    structlog.contextvars.clear_contextvars()
