"""Logging configuration using structlog.

The service runs unattended, so every event carries `service=tubecast` and
a UTC timestamp. JSON output is meant for log collectors, console output
for a terminal.
"""

import logging
import sys
from typing import TextIO

import structlog

SERVICE_NAME = "tubecast"


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the tubecast commands.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR).
        json_format: Emit one JSON object per event instead of console lines.
        stream: Output stream, stdout by default.

    Raises:
        ValueError: If the level name is unknown.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {log_level}")

    stream = stream or sys.stdout
    logging.basicConfig(format="%(message)s", stream=stream, level=level, force=True)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_format:
        # tracebacks as structured data rather than a preformatted string
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=stream.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
