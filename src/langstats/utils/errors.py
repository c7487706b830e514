"""Error taxonomy and async error helpers."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from .logging import get_logger

logger = get_logger("errors")

T = TypeVar("T")


class LangStatsError(Exception):
    """Base error for language statistics operations."""

    code = "internal"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(LangStatsError):
    """Subject does not exist upstream."""

    code = "not_found"


class UpstreamError(LangStatsError):
    """Repository host returned a non-success response."""

    code = "upstream"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code


class FetchTimeoutError(LangStatsError):
    """A single outbound call timed out."""

    code = "timeout"


class CacheUnavailableError(LangStatsError):
    """Durable cache store is unreachable."""

    code = "cache_unavailable"


class PayloadTooLargeError(LangStatsError):
    """Cache payload exceeds the configured size ceiling."""

    code = "payload_too_large"

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"Payload of {size} bytes exceeds limit of {limit} bytes",
            details={"size": size, "limit": limit},
        )
        self.size = size
        self.limit = limit


class InvalidPatternError(LangStatsError):
    """Cache invalidation pattern is not a valid regular expression."""

    code = "invalid_pattern"

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(
            f"Invalid cache key pattern {pattern!r}: {reason}",
            details={"pattern": pattern},
        )
        self.pattern = pattern


class InternalError(LangStatsError):
    """Unexpected failure."""

    code = "internal"


def error_payload(error: BaseException) -> dict[str, Any]:
    """Build the structured error surfaced to callers.

    Args:
        error: Raised exception

    Returns:
        Dictionary with ``code``, ``message`` and optional ``details``
    """
    if isinstance(error, LangStatsError):
        payload: dict[str, Any] = {"code": error.code, "message": error.message}
        if isinstance(error, UpstreamError) and error.status_code is not None:
            payload["status_code"] = error.status_code
        if error.details:
            payload["details"] = error.details
        return {"error": payload}

    return {"error": {"code": InternalError.code, "message": str(error)}}


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    delay: float,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """Run an async operation with a bounded number of fixed-delay retries.

    Args:
        operation: Zero-argument coroutine factory
        attempts: Total number of attempts (at least one)
        delay: Seconds to wait between attempts
        retry_on: Exception types that trigger a retry
        description: Operation name used in log events

    Returns:
        Result of the first successful attempt

    Raises:
        The last exception raised once all attempts are exhausted
    """
    attempts = max(attempts, 1)

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except retry_on as e:
            if attempt >= attempts:
                logger.error(
                    "Retries exhausted",
                    operation=description,
                    attempts=attempts,
                    error=str(e),
                )
                raise

            logger.warning(
                "Attempt failed, retrying",
                operation=description,
                attempt=attempt,
                attempts=attempts,
                wait_time=delay,
                error=str(e),
            )
            await asyncio.sleep(delay)

    raise InternalError(f"{description} did not run")
