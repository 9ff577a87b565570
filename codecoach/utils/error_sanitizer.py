"""
Error message sanitization.

Provider SDK errors can echo request ids, keys and prompt fragments; only
short, plain messages reach the client.
"""

from __future__ import annotations

import re

from codecoach.observability.logging import get_logger

logger = get_logger(__name__)

SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.py",
    r"[A-Za-z]:\\[^\s]+",
    # Stack traces
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    # Database errors
    r"sqlite3?\.",
    r"UNIQUE constraint",
    r"no such (table|column)",
    # Keys and tokens
    r"sk-[A-Za-z0-9_-]{8,}",
    r"AIza[A-Za-z0-9_-]{10,}",
    r"gho_[A-Za-z0-9]{8,}",
    r"Bearer [A-Za-z0-9._-]+",
    r"[A-Za-z0-9_-]{32,}",
    # Internal module names
    r"codecoach\.[a-z_.]+",
]

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Authentication required.",
    403: "Access denied.",
    404: "Resource not found.",
    422: "Invalid data format.",
    429: "Rate limit exceeded. Please try again later.",
    500: "An internal error occurred. Please try again later.",
    502: "AI provider request failed. Please try again.",
    503: "Service temporarily unavailable.",
}

# Provider errors like "Gemini API error: 500" are safe to surface
_PROVIDER_STATUS = re.compile(r"^[A-Za-z]+ API (error: \d{3}|key not configured \([A-Z_]+\))$")


def sanitize_error_message(message: str, status_code: int = 500) -> str:
    """
    Sanitize an error message for client consumption.

    Returns the message unchanged when it is short and plain, otherwise
    the generic message for the status code.
    """
    fallback = GENERIC_MESSAGES.get(status_code, "An error occurred.")
    if not message:
        return fallback

    if _PROVIDER_STATUS.match(message):
        return message

    for pattern in SENSITIVE_PATTERNS:
        if re.search(pattern, message, re.IGNORECASE):
            logger.warning("Sanitized sensitive error pattern: %s", pattern)
            return fallback

    if len(message) < 160 and not any(c in message for c in "{}[]\n"):
        return message
    return fallback


def get_safe_error_detail(
    error: Exception,
    status_code: int = 500,
    context: str | None = None,
) -> str:
    """
    Log the full error and return a safe detail string.

    Args:
        error: The exception that occurred
        status_code: HTTP status code
        context: Fixed message used instead of the error text for 5xx
    """
    logger.error("Error (status=%d): %s - %s", status_code, type(error).__name__, str(error))

    if context and status_code >= 500:
        return context
    return sanitize_error_message(str(error), status_code)
