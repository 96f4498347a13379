"""
Shared HTTP helpers for the service clients.
Provides retry logic and the mapping from httpx/pydantic failures to TransportError.
"""
import asyncio
from dataclasses import dataclass
from typing import Optional, Callable, Any, Tuple, Type

import httpx

from nirapod_map.errors import TransportError
from nirapod_map.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 60.0


# Client errors (4xx) are not worth repeating; transport problems and 5xx are.
def is_retryable(error: BaseException) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


async def retry_with_backoff(
    func: Callable,
    config: Optional[RetryConfig] = None,
    *args,
    retry_if: Callable[[BaseException], bool] = is_retryable,
    **kwargs
) -> Any:
    """
    Execute an async function with exponential backoff retry logic.

    Args:
        func: Async function to execute
        config: RetryConfig with retry parameters
        *args: Positional arguments for func
        retry_if: Predicate deciding whether a failure is worth another attempt
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        Last exception if all retries exhausted or the failure is not retryable
    """
    if config is None:
        config = RetryConfig()

    delay = config.initial_delay

    for attempt in range(config.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if attempt >= config.max_retries or not retry_if(e):
                raise
            logger.debug(f"Attempt {attempt + 1} failed ({e}); retrying in {delay:.2f}s")
            await asyncio.sleep(delay)
            delay = min(delay * config.backoff_factor, config.max_delay)


def describe_http_error(error: BaseException) -> str:
    """Short human-readable description of a failed call."""
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code} from {error.request.url}"
    if isinstance(error, httpx.TimeoutException):
        return "request timed out"
    if isinstance(error, httpx.HTTPError):
        return f"network error: {error}"
    return str(error)


def as_transport_error(error: BaseException, what: str) -> TransportError:
    return TransportError(f"Failed to fetch {what}: {describe_http_error(error)}")


TRANSPORT_FAILURES: Tuple[Type[BaseException], ...] = (httpx.HTTPError, ValueError)
