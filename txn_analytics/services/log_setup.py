"""Structured logging setup shared by service entry points."""

import logging

import structlog

from txn_analytics.config.models import LogFormat


def setup_logging(level: str = "INFO", fmt: LogFormat = LogFormat.JSON) -> None:
    """
    Configure structlog on top of the standard logging module.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: JSON for machine-readable lines, TEXT for a console renderer.
    """
    log_level = str(level).upper()

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == LogFormat.JSON
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level, logging.INFO),
    )

    # asyncpg logs every pool event at INFO
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
