"""GitHub account linking and repository import endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from codecoach.api.dependencies import get_github_client
from codecoach.api.models import FetchRepoRequest, GitHubAuthRequest
from codecoach.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX
from codecoach.github.oauth import GitHubAPIError, GitHubAuthError, GitHubOAuthClient, parse_repo_url
from codecoach.infrastructure.auth import require_user_header
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter
from codecoach.projects.models import GitHubConnection, RepositoryFile
from codecoach.projects.repository import GitHubConnectionRepository, RepositoryFileRepository

router = APIRouter(prefix="/api/github", tags=["github"])
logger = get_logger(__name__)


@router.post("/auth")
def github_auth(
    body: GitHubAuthRequest,
    user_id: str = Depends(require_user_header),
    client: GitHubOAuthClient = Depends(get_github_client),
) -> dict[str, Any]:
    """
    Exchange an OAuth code and link the GitHub account to the user.

    Side Effects:
        - Calls GitHub (token exchange, user profile)
        - Upserts github_connections row
    """
    if not body.code:
        raise HTTPException(status_code=400, detail="Missing code parameter")

    try:
        token = client.exchange_code(body.code)
        profile = client.fetch_user(token)
    except GitHubAuthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    connection = GitHubConnection(
        user_id=user_id,
        github_id=profile["id"],
        github_username=profile["login"],
        github_avatar=profile.get("avatar_url"),
        github_name=profile.get("name"),
        access_token=token,
    )
    try:
        GitHubConnectionRepository.upsert(connection)
    except Exception as e:
        logger.error("Failed to store GitHub connection: %s", e)
        raise HTTPException(status_code=500, detail="Failed to store GitHub connection") from None

    counter("github.connected")
    return {
        "success": True,
        "user": {
            "id": profile["id"],
            "login": profile["login"],
            "name": profile.get("name"),
            "avatar_url": profile.get("avatar_url"),
        },
    }


@router.get("/connection")
async def get_connection(user_id: str = Depends(require_user_header)) -> dict[str, Any]:
    connection = GitHubConnectionRepository.get(user_id)
    if connection is None:
        return {"connected": False}
    return {"connected": True, **connection.public_view()}


@router.delete("/connection")
async def delete_connection(user_id: str = Depends(require_user_header)) -> dict[str, Any]:
    return {"success": GitHubConnectionRepository.delete(user_id)}


@router.get("/repos")
def list_repos(
    user_id: str = Depends(require_user_header),
    client: GitHubOAuthClient = Depends(get_github_client),
) -> dict[str, Any]:
    """Repositories of the linked GitHub account, using the stored token."""
    connection = GitHubConnectionRepository.get(user_id)
    if connection is None:
        raise HTTPException(status_code=400, detail="GitHub not connected")

    try:
        repos = client.list_repos(connection.access_token)
    except GitHubAPIError as e:
        raise HTTPException(status_code=502, detail=str(e)) from None
    return {"success": True, "repos": repos}


@router.post("/fetch-repo")
def fetch_repo(
    body: FetchRepoRequest,
    x_user_id: str | None = Header(None),
    client: GitHubOAuthClient = Depends(get_github_client),
) -> dict[str, Any]:
    """
    Import a repository's files into the session.

    Public repositories work without a linked account; the stored token is
    used when the caller has one.

    Side Effects:
        - Calls GitHub (contents API)
        - Inserts repository_files rows
    """
    if not body.repo_url:
        raise HTTPException(status_code=400, detail="No repository URL provided")
    try:
        owner, repo = parse_repo_url(body.repo_url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    connection = GitHubConnectionRepository.get(x_user_id) if x_user_id else None
    token = connection.access_token if connection else None
    try:
        fetched = client.fetch_repo_files(owner, repo, token)
    except GitHubAPIError as e:
        raise HTTPException(status_code=502, detail=str(e)) from None

    repository_name = f"{owner}/{repo}"
    stored: list[str] = []
    failed: list[str] = []
    for item in fetched:
        if item.skipped or item.content is None:
            continue
        record = RepositoryFile(
            repository_name=repository_name,
            file_path=item.path,
            content=item.content,
            user_id=x_user_id,
            session_id=body.session_id,
        )
        try:
            RepositoryFileRepository.add(record)
            stored.append(item.path)
        except Exception as e:
            logger.warning("Failed to store %s from %s: %s", item.path, repository_name, e)
            failed.append(item.path)

    counter("github.repo_imported")
    return {
        "success": True,
        "repository": repository_name,
        "files": stored,
        "failedFiles": failed,
        "totalFiles": len(fetched),
        "storedFiles": len(stored),
        "sessionId": body.session_id,
    }


@router.get("/repository-files")
async def list_repository_files(
    session_id: str = Query(..., alias="sessionId"),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
) -> dict[str, Any]:
    """Files imported into a session, in import order."""
    files = RepositoryFileRepository.list_by_session(session_id, limit=limit)
    return {
        "files": [
            {
                "repository": item.repository_name,
                "path": item.file_path,
                "content": item.content,
                "createdAt": item.created_at.isoformat(),
            }
            for item in files
        ]
    }
