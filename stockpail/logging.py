"""
Logging Module

Structured logging on top of structlog.

Usage:
    from stockpail.logging import configure_logging, get_logger

    configure_logging(log_level="INFO", log_format="console")
    logger = get_logger(__name__)
    logger.info("csv_import_finished", imported=3, failed=1)
"""

import logging
import sys
from typing import List, Optional, cast

import structlog
from structlog.typing import FilteringBoundLogger


def configure_logging(log_level: str = "INFO", log_format: str = "console", color: bool = True) -> None:
    """
    Configure structlog for the application.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        log_format: "console" for development, "json" for deployments
        color: Whether the console renderer uses colors
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: List[structlog.types.Processor] = [
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=color,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # SQLAlchemy and streamlit log through the standard library
    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def get_logger(name: Optional[str] = None) -> FilteringBoundLogger:
    return cast(FilteringBoundLogger, structlog.get_logger(name))
