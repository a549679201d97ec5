"""Structured logging configuration.

Production emits JSON lines to stdout for log aggregation; development gets
human-readable console output. LOG_LEVEL and LOG_FORMAT override both.
"""

import logging
import sys

import structlog

from corporate_auth.core.config import Settings


def configure_logging(config: Settings) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        config: Application settings (log level, format, environment).
    """
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    log_format = config.log_format or ("json" if config.is_production else "console")
    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
