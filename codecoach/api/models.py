"""Pydantic request models for the codecoach API.

Bodies use the camelCase field names the browser client sends; snake_case
names are accepted too.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_PROMPT_LENGTH = 20_000
MAX_MESSAGE_LENGTH = 10_000


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _PromptRequest(_Request):
    prompt: str = Field(max_length=MAX_PROMPT_LENGTH)

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class GenerateAppRequest(_PromptRequest):
    completion_level: str = "intermediate"


class GenerateChallengeRequest(_PromptRequest):
    completion_level: str = "intermediate"
    challenge_type: str = "fullstack"


class InitializeProjectRequest(_PromptRequest):
    project_name: str | None = None


class GenerateGuidanceRequest(_Request):
    app_data: dict[str, Any]
    project_id: str | None = None


class ModifyAppRequest(_PromptRequest):
    project_id: str


class RestoreVersionRequest(_Request):
    version_id: str


class CodeFile(BaseModel):
    path: str
    content: str = ""


class AnalyzeCodeRequest(_Request):
    project_id: str
    files: list[CodeFile] = Field(min_length=1)
    challenge_info: dict[str, Any] | None = None


class ChatRequest(_Request):
    message: str = Field(max_length=MAX_MESSAGE_LENGTH)
    project_id: str | None = None

    @field_validator("message")
    @classmethod
    def validate_message(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class VisionRequest(_Request):
    content: str | None = None
    prompt: str | None = None
    user_question: str | None = None


class GitHubAuthRequest(_Request):
    code: str | None = None


class EnvGetRequest(_Request):
    key: str | None = None


class EnvSetRequest(_Request):
    key: str | None = None
    value: str | None = None


class FetchRepoRequest(_Request):
    repo_url: str | None = None
    session_id: str | None = None
