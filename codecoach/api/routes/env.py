"""
Environment gating for the browser client.

Only allow-listed keys can be read back. ``set`` validates and acknowledges
but never mutates the server environment.
"""

from __future__ import annotations

import os
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from codecoach.api.models import EnvGetRequest, EnvSetRequest
from codecoach.config import CLIENT_EXPOSABLE_ENV_KEYS
from codecoach.infrastructure.auth import require_authorization
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter

router = APIRouter(prefix="/api/env", tags=["env"])
logger = get_logger(__name__)


@router.post("/get")
async def get_env(body: EnvGetRequest) -> dict[str, Any]:
    if not body.key:
        raise HTTPException(status_code=400, detail="Key parameter is required")
    if body.key not in CLIENT_EXPOSABLE_ENV_KEYS:
        counter("env.denied")
        logger.warning("Denied env read for key %s", body.key)
        raise HTTPException(status_code=403, detail="Access to this environment variable is not allowed")
    return {"value": os.getenv(body.key)}


@router.post("/set")
async def set_env(
    body: EnvSetRequest, _authorization: str = Depends(require_authorization)
) -> dict[str, Any]:
    if not body.key or body.value is None:
        raise HTTPException(status_code=400, detail="Key and value are required")
    logger.info("Acknowledged env update for key %s", body.key)
    return {"success": True, "message": f"Environment variable {body.key} has been set"}
