"""Structured logging setup.

The library only emits events through ``structlog.get_logger(__name__)``;
applications decide how they are rendered::

    from servicedb_py.log import configure_logging

    configure_logging(level="DEBUG")
"""

from __future__ import annotations

import logging
import sys

import structlog

from .runtime import AwsCallMetric

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO", *, json_output: bool = False) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...).
        json_output: Render JSON lines instead of the console renderer.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"unknown log level: {level}")

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level, force=True)

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def log_call_metric(metric: AwsCallMetric) -> None:
    """``metrics`` callback for :func:`servicedb_py.runtime.create_dynamodb_client`."""
    logger.debug(
        "aws_call",
        service=metric.service,
        operation=metric.operation,
        seconds=round(metric.seconds, 6),
        ok=metric.ok,
        error_code=metric.error_code,
    )
