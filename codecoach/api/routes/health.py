"""Health check endpoints.

- /health - service status and provider credential presence
- /health/db - connection pool health
- /debug/stats - in-memory counters and latencies
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from codecoach.config import APP_VERSION
from codecoach.infrastructure.settings import has_secret
from codecoach.observability.telemetry import get_counters, get_latency_stats

router = APIRouter(tags=["health"])

LATENCY_METRICS = (
    "llm.gemini.latency",
    "llm.openai.latency",
    "llm.anthropic.latency",
    "vision.analyze",
)


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status; checks key presence only, never calls a provider."""
    gemini_ready = has_secret("GEMINI_API_KEY") or has_secret("GOOGLE_API_KEY") or has_secret(
        "GOOGLE_CLOUD_PROJECT"
    )
    return {
        "status": "healthy",
        "service": "codecoach API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "providers": {
            "gemini": gemini_ready,
            "openai": has_secret("OPENAI_API_KEY"),
            "anthropic": has_secret("ANTHROPIC_API_KEY"),
        },
    }


@router.get("/health/db")
async def database_health() -> dict[str, Any]:
    """
    Connection pool health. Reports degraded above 80% usage.
    """
    from codecoach.infrastructure.database import get_pool_stats

    stats = get_pool_stats()
    usage_percent = stats["usage_percent"]

    return {
        "status": "degraded" if usage_percent > 80 else "healthy",
        "pool": stats,
        "warning": "Pool usage high" if usage_percent > 80 else None,
    }


@router.get("/debug/stats")
async def debug_stats() -> dict[str, Any]:
    return {
        "counters": get_counters(),
        "latencies": {name: get_latency_stats(name) for name in LATENCY_METRICS},
        "timestamp": datetime.now(UTC).isoformat(),
    }
