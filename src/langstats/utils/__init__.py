"""Utility functions and helpers."""

from .errors import (
    CacheUnavailableError,
    FetchTimeoutError,
    InternalError,
    LangStatsError,
    NotFoundError,
    PayloadTooLargeError,
    UpstreamError,
    error_payload,
    retry_async,
)
from .logging import get_logger, setup_logging

__all__ = [
    # Error handling
    "CacheUnavailableError",
    "FetchTimeoutError",
    "InternalError",
    "LangStatsError",
    "NotFoundError",
    "PayloadTooLargeError",
    "UpstreamError",
    "error_payload",
    "retry_async",
    # Logging
    "get_logger",
    "setup_logging",
]
