"""
Generation endpoints: projects, challenges, guidance, modifications and
code review.

Handlers are plain ``def`` so FastAPI runs the blocking provider calls in
its threadpool.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from codecoach.api.dependencies import get_generation_service
from codecoach.api.errors import to_http_exception
from codecoach.api.models import (
    AnalyzeCodeRequest,
    GenerateAppRequest,
    GenerateChallengeRequest,
    GenerateGuidanceRequest,
    InitializeProjectRequest,
    ModifyAppRequest,
    RestoreVersionRequest,
)
from codecoach.infrastructure.auth import get_current_user_id
from codecoach.observability.logging import get_logger
from codecoach.services.generation import GeminiAIService

router = APIRouter(prefix="/api", tags=["generation"])
logger = get_logger(__name__)


@router.post("/generate-app")
def generate_app(
    body: GenerateAppRequest,
    service: GeminiAIService = Depends(get_generation_service),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Generate an intentionally incomplete React app with learning challenges."""
    try:
        return service.generate_app(body.prompt, body.completion_level, user_id=user_id)
    except Exception as e:
        raise to_http_exception(e, "generate_app", parse_status=400) from None


@router.post("/initialize-project")
def initialize_project(
    body: InitializeProjectRequest,
    service: GeminiAIService = Depends(get_generation_service),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    """App generation with the challenge generator as fallback."""
    try:
        return service.initialize_project(body.prompt, body.project_name, user_id=user_id)
    except Exception as e:
        raise to_http_exception(e, "initialize_project") from None


@router.post("/generate-challenge")
def generate_challenge(
    body: GenerateChallengeRequest,
    service: GeminiAIService = Depends(get_generation_service),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        return service.generate_challenge(
            body.prompt, body.completion_level, body.challenge_type, user_id=user_id
        )
    except Exception as e:
        raise to_http_exception(e, "generate_challenge") from None


@router.post("/generate-guidance")
def generate_guidance(
    body: GenerateGuidanceRequest,
    service: GeminiAIService = Depends(get_generation_service),
) -> dict[str, Any]:
    """First-step guidance; never fails on provider errors (canned fallback)."""
    try:
        return service.generate_guidance(body.app_data, body.project_id)
    except Exception as e:
        raise to_http_exception(e, "generate_guidance") from None


@router.post("/modify-app")
def modify_app(
    body: ModifyAppRequest,
    service: GeminiAIService = Depends(get_generation_service),
) -> dict[str, Any]:
    try:
        return service.modify_app(body.prompt, body.project_id)
    except Exception as e:
        raise to_http_exception(e, "modify_app") from None


@router.post("/restore-version")
def restore_version(
    body: RestoreVersionRequest,
    service: GeminiAIService = Depends(get_generation_service),
) -> dict[str, Any]:
    try:
        return service.restore_version(body.version_id)
    except Exception as e:
        raise to_http_exception(e, "restore_version") from None


@router.post("/analyze-code")
def analyze_code(
    body: AnalyzeCodeRequest,
    service: GeminiAIService = Depends(get_generation_service),
) -> dict[str, Any]:
    """Score learner code and return feedback, suggestions and completed challenges."""
    try:
        return service.analyze_code(
            body.project_id,
            [file.model_dump() for file in body.files],
            body.challenge_info,
        )
    except Exception as e:
        raise to_http_exception(e, "analyze_code", parse_status=400) from None
