"""
Project domain models for codecoach.

An app project is a generated, intentionally incomplete application plus the
challenges the learner works through. Every modification or restore stores a
new version row; parent_id always points at the root version.

AI output arrives in camelCase with fields that may be missing or oddly
valued, so the models parse leniently and serialize back to camelCase for
the API.
"""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


DEFAULT_EXPLANATION = "Learn by fixing the issues in this application"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ChallengeType(str, Enum):
    IMPLEMENTATION = "implementation"
    BUGFIX = "bugfix"
    FEATURE = "feature"


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


def _text_or_empty(value: Any) -> str:
    """Model output sometimes sends null or a number where text belongs."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=True,
        validate_default=True,
    )

    def to_payload(self) -> dict[str, Any]:
        """camelCase dict for API responses and stored app_data blobs."""
        return self.model_dump(by_alias=True, mode="json")


class Challenge(_CamelModel):
    """One learning task inside a generated project."""

    id: str
    title: str = ""
    description: str = ""
    feature_name: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    type: ChallengeType = ChallengeType.IMPLEMENTATION
    files_paths: list[str] = Field(default_factory=list)
    hints: list[str] = Field(default_factory=list)
    completed: bool = False

    @field_validator("title", "description", "feature_name", mode="before")
    @classmethod
    def validate_text(cls, value: Any) -> str:
        return _text_or_empty(value)

    @field_validator("completed", mode="before")
    @classmethod
    def validate_completed(cls, value: Any) -> bool:
        if value is None:
            return False
        return bool(value) if isinstance(value, (int, float)) else value

    @field_validator("difficulty", mode="before")
    @classmethod
    def validate_difficulty(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text if text in Difficulty._value2member_map_ else Difficulty.MEDIUM.value

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text if text in ChallengeType._value2member_map_ else ChallengeType.IMPLEMENTATION.value

    @field_validator("files_paths", "hints", mode="before")
    @classmethod
    def validate_string_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            return [_text_or_empty(value)]
        return [_text_or_empty(item) for item in value if item is not None]

    @classmethod
    def from_ai_list(cls, items: Any) -> list[Challenge]:
        """
        Parse the "challenges" array of a model response.

        Non-dict entries are skipped; missing ids become "challenge-<n>" and
        repeated ids get a "-<n>" suffix so every challenge keeps its own state.
        """
        challenges: list[Challenge] = []
        seen: set[str] = set()
        for index, item in enumerate(items or [], start=1):
            if not isinstance(item, dict):
                continue
            data = dict(item)
            base_id = _text_or_empty(data.get("id")).strip() or f"challenge-{index}"
            challenge_id, copy = base_id, 1
            while challenge_id in seen:
                copy += 1
                challenge_id = f"{base_id}-{copy}"
            seen.add(challenge_id)
            data["id"] = challenge_id
            challenges.append(cls.model_validate(data))
        return challenges


class ProjectFile(_CamelModel):
    path: str
    content: str = ""
    is_complete: bool = True

    @field_validator("path", "content", mode="before")
    @classmethod
    def validate_text(cls, value: Any) -> str:
        return _text_or_empty(value)


class AppData(_CamelModel):
    """The project blob stored in app_projects.app_data."""

    project_name: str = "untitled-project"
    description: str = ""
    files: list[ProjectFile] = Field(default_factory=list)
    challenges: list[Challenge] = Field(default_factory=list)
    explanation: str = DEFAULT_EXPLANATION

    @field_validator("project_name", mode="before")
    @classmethod
    def validate_project_name(cls, value: Any) -> str:
        return _text_or_empty(value).strip() or "untitled-project"

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, value: Any) -> str:
        return _text_or_empty(value)

    @field_validator("files", mode="before")
    @classmethod
    def validate_files(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [
            item
            for item in value
            if isinstance(item, ProjectFile) or (isinstance(item, dict) and item.get("path"))
        ]

    @field_validator("challenges", mode="before")
    @classmethod
    def validate_challenges(cls, value: Any) -> list[Challenge]:
        if value and all(isinstance(item, Challenge) for item in value):
            return value
        return Challenge.from_ai_list(value)

    @field_validator("explanation", mode="before")
    @classmethod
    def validate_explanation(cls, value: Any) -> str:
        return _text_or_empty(value) or DEFAULT_EXPLANATION


class AppProject(BaseModel):
    """
    One stored version of a project.

    Version 1 has parent_id None; later versions point at the root id.
    """

    id: str = Field(default_factory=new_id)
    user_id: str
    parent_id: str | None = None
    version: int = 1
    app_data: dict[str, Any] = Field(default_factory=dict)
    creation_prompt: str | None = None
    modification_prompt: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def root_id(self) -> str:
        return self.parent_id or self.id

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dict for database storage."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "parent_id": self.parent_id,
            "version": self.version,
            "app_data": json.dumps(self.app_data),
            "creation_prompt": self.creation_prompt,
            "modification_prompt": self.modification_prompt,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> AppProject:
        """Create AppProject from database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            parent_id=row.get("parent_id"),
            version=row["version"],
            app_data=json.loads(row["app_data"]) if row["app_data"] else {},
            creation_prompt=row.get("creation_prompt"),
            modification_prompt=row.get("modification_prompt"),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def summary(self) -> dict[str, Any]:
        """Version-list entry (no app data)."""
        return {
            "id": self.id,
            "parentId": self.parent_id,
            "version": self.version,
            "projectName": self.app_data.get("projectName"),
            "modificationPrompt": self.modification_prompt,
            "createdAt": self.created_at.isoformat(),
        }


class ChatMessage(BaseModel):
    """A persisted chat turn."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=new_id)
    user_id: str
    project_id: str | None = None
    role: ChatRole
    content: str
    created_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "role": self.role if isinstance(self.role, str) else self.role.value,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> ChatMessage:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            project_id=row.get("project_id"),
            role=ChatRole(row["role"]),
            content=row["content"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class GitHubConnection(BaseModel):
    """A user's linked GitHub account (one per user)."""

    user_id: str
    github_id: int
    github_username: str
    github_avatar: str | None = None
    github_name: str | None = None
    access_token: str = Field(..., repr=False)
    connected_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "github_id": self.github_id,
            "github_username": self.github_username,
            "github_avatar": self.github_avatar,
            "github_name": self.github_name,
            "access_token": self.access_token,
            "connected_at": self.connected_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> GitHubConnection:
        return cls(
            user_id=row["user_id"],
            github_id=row["github_id"],
            github_username=row["github_username"],
            github_avatar=row.get("github_avatar"),
            github_name=row.get("github_name"),
            access_token=row["access_token"],
            connected_at=datetime.fromisoformat(row["connected_at"]),
        )

    def public_view(self) -> dict[str, Any]:
        """Connection details without the access token."""
        return {
            "githubId": self.github_id,
            "githubUsername": self.github_username,
            "githubAvatar": self.github_avatar,
            "githubName": self.github_name,
            "connectedAt": self.connected_at.isoformat(),
        }


class RepositoryFile(BaseModel):
    """A file imported from a GitHub repository into a tutoring session."""

    id: str = Field(default_factory=new_id)
    repository_name: str
    file_path: str
    content: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {**self.model_dump(), "created_at": self.created_at.isoformat()}

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> RepositoryFile:
        return cls(**{**row, "created_at": datetime.fromisoformat(row["created_at"])})
