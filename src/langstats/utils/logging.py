"""Logging configuration and utilities."""

import logging
import sys

import structlog
from structlog.typing import FilteringBoundLogger

from ..config.models import LoggingConfig


def setup_logging(config: LoggingConfig) -> FilteringBoundLogger:
    """Set up structured logging.

    Args:
        config: Logging configuration

    Returns:
        Configured logger
    """
    # stdout carries SVG/JSON output and the stdio transport
    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format or "%(message)s",
        stream=sys.stderr,
    )

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if config.structured:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("langstats")


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name

    Returns:
        Logger instance
    """
    if name:
        return structlog.get_logger(f"langstats.{name}")
    return structlog.get_logger("langstats")
