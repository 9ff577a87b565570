"""
Retry wrapper for provider calls.

Provider failures carrying a 408, 429 or 5xx status are temporary. Other
errors are classified by message text: a rate limit (429), a timeout, a
non-2xx response, an unavailable service or an exhausted quota is retried
with exponential backoff. Everything else is re-raised on the first failure.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from codecoach.config import LLM_BASE_BACKOFF_SECONDS, LLM_MAX_RETRIES, LLM_RETRYABLE_MARKERS
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])

logger = get_logger(__name__)


def is_temporary_error(error: BaseException) -> bool:
    """
    True for a retryable status (408, 429, 5xx) or a retryable message marker.
    """
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int) and (status_code in (408, 429) or status_code >= 500):
        return True
    message = str(error).lower()
    return any(marker in message for marker in LLM_RETRYABLE_MARKERS)


def call_with_retries(
    operation: Callable[[], T],
    max_retries: int = LLM_MAX_RETRIES,
    base_delay: float = LLM_BASE_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``operation`` and retry temporary failures.

    Makes at most ``max_retries + 1`` calls. Before retry N (0-based) sleeps
    ``base_delay * 2**N`` seconds.

    Args:
        operation: Zero-argument callable doing one provider request
        max_retries: Retries allowed after the first call
        base_delay: Backoff for the first retry, in seconds
        sleep: Injected for tests

    Raises:
        Whatever ``operation`` raised last
    """
    for attempt in range(max_retries + 1):
        try:
            return operation()
        except Exception as e:
            if not is_temporary_error(e):
                raise

            if attempt >= max_retries:
                logger.error("Provider retry exhausted after %d retries: %s", max_retries, e)
                counter("llm.retry_exhausted")
                raise

            delay = base_delay * (2**attempt)
            logger.warning(
                "Temporary provider error (retry %d/%d), waiting %.1fs: %s",
                attempt + 1,
                max_retries,
                delay,
                e,
            )
            counter("llm.retry")
            sleep(delay)

    raise AssertionError("unreachable")


def retry_on_temporary_error(
    max_retries: int = LLM_MAX_RETRIES,
    base_delay: float = LLM_BASE_BACKOFF_SECONDS,
) -> Callable[[F], F]:
    """
    Decorator form of call_with_retries

    Usage:
        @retry_on_temporary_error(max_retries=2)
        def generate():
            return client.generate(prompt)
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return call_with_retries(
                lambda: func(*args, **kwargs),
                max_retries=max_retries,
                base_delay=base_delay,
            )

        return wrapper  # type: ignore[return-value]

    return decorator
