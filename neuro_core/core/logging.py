"""
Structured Logging Configuration

JSON output for production, console rendering for development. All modules
obtain loggers through ``get_logger`` and log snake_case event names with
keyword context.
"""

import logging
import sys
from enum import Enum
from typing import Optional

import structlog


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    CONSOLE = "console"


def configure_logging(level: str = "info", fmt: str = LogFormat.JSON.value) -> None:
    """Install the structlog processor chain and the stdlib root handler."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
        force=True,
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if fmt == LogFormat.CONSOLE.value
        else structlog.processors.JSONRenderer()
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


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def preview(text: str, length: int = 50) -> str:
    """Shorten user content for log events."""
    return text if len(text) <= length else text[:length] + "..."
