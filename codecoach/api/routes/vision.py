"""Editor vision endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from codecoach.api.dependencies import get_vision_service
from codecoach.api.errors import to_http_exception
from codecoach.api.models import VisionRequest
from codecoach.services.vision import VisionService

router = APIRouter(prefix="/api", tags=["vision"])


@router.post("/vision")
def analyze_editor_content(
    body: VisionRequest,
    service: VisionService = Depends(get_vision_service),
) -> dict[str, Any]:
    """Comment on (or answer a question about) the code in the editor."""
    try:
        return service.analyze(body.content or "", body.prompt, body.user_question)
    except Exception as e:
        raise to_http_exception(e, "vision") from None
