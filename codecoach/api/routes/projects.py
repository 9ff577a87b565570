"""
Project read endpoints: version history, challenges and chat history.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from codecoach.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from codecoach.infrastructure.auth import get_current_user_id
from codecoach.observability.logging import get_logger
from codecoach.projects.repository import (
    AppProjectRepository,
    ChallengeRepository,
    ChatHistoryRepository,
    ProjectNotFoundError,
)

router = APIRouter(prefix="/api/projects", tags=["projects"])
logger = get_logger(__name__)


@router.get("")
async def list_projects(
    user_id: str = Depends(get_current_user_id),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> dict[str, Any]:
    """The caller's projects (version 1 rows), newest first."""
    projects = AppProjectRepository.list_by_user(user_id, limit=limit, offset=offset)
    return {"projects": [project.summary() for project in projects]}


@router.get("/{project_id}")
async def get_latest_project(project_id: str) -> dict[str, Any]:
    """Newest version of a project, with its app data."""
    try:
        latest = AppProjectRepository.get_latest_version(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return {**latest.summary(), "appData": latest.app_data}


@router.get("/{project_id}/versions")
async def list_versions(project_id: str) -> dict[str, Any]:
    try:
        versions = AppProjectRepository.list_versions(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return {"versions": [version.summary() for version in versions]}


@router.get("/{project_id}/challenges")
async def list_challenges(project_id: str) -> dict[str, Any]:
    challenges = ChallengeRepository.list_by_project(project_id)
    return {"challenges": [challenge.to_payload() for challenge in challenges]}


@router.put("/{project_id}/challenges/{challenge_id}/complete")
async def complete_challenge(project_id: str, challenge_id: str, completed: bool = True) -> dict[str, Any]:
    if not ChallengeRepository.set_completed(project_id, challenge_id, completed):
        raise HTTPException(status_code=404, detail="Challenge not found")
    return {"success": True, "challengeId": challenge_id, "completed": completed}


@router.get("/{project_id}/chat")
async def chat_history(
    project_id: str,
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
) -> dict[str, Any]:
    messages = ChatHistoryRepository.list_by_project(project_id, limit=limit)
    return {
        "messages": [
            {
                "id": m.id,
                "role": m.role,
                "content": m.content,
                "createdAt": m.created_at.isoformat(),
            }
            for m in messages
        ]
    }
