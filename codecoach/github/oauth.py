"""
GitHub OAuth code exchange and the REST calls made with linked accounts.

The browser completes GitHub's authorize redirect and posts the resulting
code here; we trade it for an access token and fetch the account profile.
The stored token then lists the user's repositories. Repository imports
walk the contents API and work without a token for public repositories.

Reference:
    https://docs.github.com/en/apps/oauth-apps/building-oauth-apps/authorizing-oauth-apps
    https://docs.github.com/en/rest/repos/contents
"""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import requests

from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter

logger = get_logger(__name__)

TOKEN_URL = "https://github.com/login/oauth/access_token"
API_URL = "https://api.github.com"
USER_URL = f"{API_URL}/user"
REPOS_URL = f"{API_URL}/user/repos"
REQUEST_TIMEOUT_SECONDS = 10

MAX_REPO_FILES = 100
MAX_REPO_FILE_BYTES = 1_000_000
SKIPPED_EXTENSIONS = (".exe", ".bin")


class GitHubAuthError(RuntimeError):
    """Raised when the code exchange or profile fetch fails."""


class GitHubAPIError(RuntimeError):
    """Raised when a repository call returns a non-200 response."""


@dataclass
class RepoFile:
    """One entry of an imported repository; skipped files carry no content."""

    path: str
    content: str | None
    size: int
    skipped: bool = False


def parse_repo_url(repo_url: str) -> tuple[str, str]:
    """
    Owner and repository name from https://github.com/<owner>/<repo>[.git].

    Raises:
        ValueError: If the URL does not point at a GitHub repository
    """
    parsed = urlparse(repo_url.strip())
    parts = [part for part in parsed.path.split("/") if part]
    if "github.com" not in parsed.netloc or len(parts) < 2:
        raise ValueError("Invalid GitHub repository URL format")
    return parts[0], parts[1].removesuffix(".git")


def _decode_content(payload: dict[str, Any]) -> str | None:
    if payload.get("encoding") != "base64" or not payload.get("content"):
        return payload.get("content")
    try:
        return base64.b64decode(payload["content"]).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return None


class GitHubOAuthClient:
    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        session: requests.Session | None = None,
    ):
        self.client_id = client_id or os.getenv("GITHUB_CLIENT_ID")
        self.client_secret = client_secret or os.getenv("GITHUB_CLIENT_SECRET")
        self.session = session or requests.Session()

    def exchange_code(self, code: str) -> str:
        """
        Trade an OAuth code for an access token.

        Raises:
            GitHubAuthError: If credentials are missing or GitHub returns no token

        Side Effects:
            Makes API calls
        """
        if not self.client_id or not self.client_secret:
            raise GitHubAuthError("GitHub OAuth credentials not configured")

        try:
            response = self.session.post(
                TOKEN_URL,
                json={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                },
                headers={"Accept": "application/json"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            token_data = response.json()
        except requests.exceptions.Timeout as e:
            logger.warning("GitHub token exchange timeout")
            raise GitHubAuthError("GitHub token exchange timeout") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("GitHub token exchange error: %s", type(e).__name__)
            raise GitHubAuthError("GitHub token exchange failed") from e

        access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
        if not access_token:
            # GitHub reports bad codes as 200 with an "error" field
            logger.error(
                "Failed to get access token: %s",
                token_data.get("error") if isinstance(token_data, dict) else "invalid response",
            )
            counter("github.token_exchange_failed")
            raise GitHubAuthError("Failed to get access token")

        counter("github.token_exchanged")
        return access_token

    def fetch_user(self, access_token: str) -> dict[str, Any]:
        """
        Fetch the authenticated user's profile.

        Raises:
            GitHubAuthError: On transport errors or a non-200 response
        """
        try:
            response = self.session.get(
                USER_URL,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/vnd.github+json",
                },
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            logger.error("GitHub user fetch error: %s", type(e).__name__)
            raise GitHubAuthError("GitHub user fetch failed") from e

        if response.status_code != 200:
            logger.error("GitHub user fetch returned %s", response.status_code)
            raise GitHubAuthError(f"GitHub API error: {response.status_code}")

        user = response.json()
        if not isinstance(user, dict) or "id" not in user or "login" not in user:
            raise GitHubAuthError("Unexpected GitHub user payload")
        return user

    def _api_get(self, url: str, access_token: str | None = None, **kwargs: Any) -> tuple[int, Any]:
        headers = {"Accept": "application/vnd.github+json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        try:
            response = self.session.get(url, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS, **kwargs)
            return response.status_code, response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("GitHub API request failed: %s", type(e).__name__)
            raise GitHubAPIError("GitHub API request failed") from e

    def list_repos(self, access_token: str) -> list[dict[str, Any]]:
        """
        Repositories of the linked user, most recently updated first.

        Raises:
            GitHubAPIError: On transport errors or a non-200 response
        """
        status, payload = self._api_get(
            REPOS_URL, access_token, params={"sort": "updated", "per_page": 100}
        )
        if status != 200 or not isinstance(payload, list):
            raise GitHubAPIError(f"GitHub API error: {status}")

        counter("github.repos_listed")
        return [
            {
                "id": repo.get("id"),
                "name": repo.get("full_name"),
                "description": repo.get("description"),
                "url": repo.get("html_url"),
                "private": bool(repo.get("private")),
                "updated_at": repo.get("updated_at"),
            }
            for repo in payload
            if isinstance(repo, dict)
        ]

    def fetch_repo_files(self, owner: str, repo: str, access_token: str | None = None) -> list[RepoFile]:
        """
        Walk a repository's contents and download up to MAX_REPO_FILES files.

        Large and binary files are listed as skipped. Unreadable
        subdirectories and files are left out.

        Raises:
            GitHubAPIError: If the repository root cannot be listed
        """
        contents_url = f"{API_URL}/repos/{owner}/{repo}/contents"
        status, root = self._api_get(contents_url, access_token)
        if status != 200 or not isinstance(root, list):
            message = root.get("message") if isinstance(root, dict) else status
            raise GitHubAPIError(f"GitHub API error: {message}")

        files: list[RepoFile] = []
        pending: list[dict[str, Any]] = list(root)
        while pending and len(files) < MAX_REPO_FILES:
            item = pending.pop(0)
            path = item.get("path") or item.get("name") or ""
            kind = item.get("type")

            if kind == "dir":
                status, listing = self._api_get(f"{contents_url}/{path}", access_token)
                if status == 200 and isinstance(listing, list):
                    pending.extend(listing)
                else:
                    logger.warning("Skipping unreadable directory %s/%s:%s", owner, repo, path)
            elif kind == "file":
                size = int(item.get("size") or 0)
                if size >= MAX_REPO_FILE_BYTES or path.endswith(SKIPPED_EXTENSIONS):
                    files.append(RepoFile(path=path, content=None, size=size, skipped=True))
                    continue
                status, payload = self._api_get(f"{contents_url}/{path}", access_token)
                if status == 200 and isinstance(payload, dict):
                    files.append(RepoFile(path=path, content=_decode_content(payload), size=size))
                else:
                    logger.warning("Skipping unreadable file %s/%s:%s", owner, repo, path)

        counter("github.repo_files_fetched", len(files))
        return files
