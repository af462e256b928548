"""
rest_security.logging_config

Logging configuration for the server.

Responsibilities:
- Map the numeric 0-5 verbosity of the configuration file onto stdlib levels.
- Configure `structlog` on top of stdlib logging, console or JSON output.
- Route error and fatal events to stderr, everything else to stdout.
"""

from __future__ import annotations

import logging
import sys
from typing import Final

import structlog

TRACE: Final[int] = 5
logging.addLevelName(TRACE, "TRACE")

LEVELS: Final[tuple[int, ...]] = (
    logging.CRITICAL,  # 0: fatal
    logging.ERROR,  # 1
    logging.WARNING,  # 2
    logging.INFO,  # 3
    logging.DEBUG,  # 4
    TRACE,  # 5
)


def stdlib_level(level: int) -> int:
    """Translate a 0-5 configuration level into a stdlib logging level."""
    return LEVELS[max(0, min(level, len(LEVELS) - 1))]


class _BelowError(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


def configure_logging(
    level: int,
    *,
    timestamp: bool = False,
    human_readable_timestamp: bool = False,
    json_logs: bool = False,
    cache_loggers: bool = True,
) -> None:
    """
    Configure stdlib logging and structlog for the process.

    Args:
        level: Verbosity 0 (fatal only) to 5 (trace). Out of range values are clamped.
        timestamp: Prefix events with a timestamp.
        human_readable_timestamp: Use ``%Y-%m-%d %H:%M:%S`` instead of Unix seconds.
        json_logs: Render events as JSON lines instead of console text.
        cache_loggers: Freeze each logger on first use. Pass False for a
            provisional setup that will be replaced.
    """
    out = logging.StreamHandler(sys.stdout)
    out.addFilter(_BelowError())
    err = logging.StreamHandler(sys.stderr)
    err.setLevel(logging.ERROR)

    root = logging.getLogger()
    root.handlers[:] = [out, err]
    root.setLevel(stdlib_level(level))

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
    ]
    if timestamp:
        fmt = "%Y-%m-%d %H:%M:%S" if human_readable_timestamp else None
        processors.append(structlog.processors.TimeStamper(fmt=fmt, utc=False))
    processors.append(structlog.processors.StackInfoRenderer())

    if json_logs:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=cache_loggers,
    )

    log = structlog.get_logger(__name__)
    log.debug("logging configured", level=level, timestamp=timestamp)
    if level > len(LEVELS) - 1:
        log.warning("unexpected high log level", level=level)
