"""Map service exceptions to HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException

from codecoach.llm.errors import ProviderError, ProviderNotConfiguredError, ResponseParseError
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter
from codecoach.projects.repository import ProjectNotFoundError
from codecoach.services.generation import GenerationUnavailableError
from codecoach.utils.error_sanitizer import get_safe_error_detail

logger = get_logger(__name__)

PARSE_FAILED = "Failed to parse AI response"


def to_http_exception(error: Exception, operation: str, parse_status: int = 500) -> HTTPException:
    """
    Status for a failed operation.

    Args:
        error: Exception raised by the service
        operation: Short name used for counters and the 500 message
        parse_status: Status for ResponseParseError (400 or 500 per endpoint)
    """
    counter(f"api.{operation}.errors")

    if isinstance(error, ProjectNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ResponseParseError):
        logger.error("Unparseable AI response in %s: %s", operation, error)
        return HTTPException(status_code=parse_status, detail=PARSE_FAILED)
    if isinstance(error, GenerationUnavailableError):
        status = 429 if error.rate_limited else 503
        return HTTPException(status_code=status, detail=str(error))
    if isinstance(error, ProviderNotConfiguredError):
        return HTTPException(status_code=500, detail=get_safe_error_detail(error, 400))
    if isinstance(error, ProviderError):
        if error.is_rate_limited:
            return HTTPException(status_code=429, detail=get_safe_error_detail(error, 429))
        return HTTPException(status_code=502, detail=get_safe_error_detail(error, 400))
    if isinstance(error, ValueError):
        return HTTPException(status_code=400, detail=get_safe_error_detail(error, 400))

    return HTTPException(
        status_code=500,
        detail=get_safe_error_detail(error, 500, f"Failed to {operation.replace('_', ' ')}"),
    )
