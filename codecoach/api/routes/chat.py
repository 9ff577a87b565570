"""Chat endpoint: tutor conversation, with challenge requests routed to generation."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from codecoach.api.dependencies import get_generation_service
from codecoach.api.errors import to_http_exception
from codecoach.api.models import ChatRequest
from codecoach.infrastructure.auth import get_current_user_id
from codecoach.services.generation import GeminiAIService

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat")
def chat(
    body: ChatRequest,
    service: GeminiAIService = Depends(get_generation_service),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        return service.chat(body.message, body.project_id, user_id=user_id)
    except Exception as e:
        raise to_http_exception(e, "chat") from None
