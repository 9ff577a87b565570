"""Request-scoped access to the services the app factory constructed."""

from __future__ import annotations

from fastapi import Request

from codecoach.github.oauth import GitHubOAuthClient
from codecoach.services.generation import GeminiAIService
from codecoach.services.vision import VisionService


def get_generation_service(request: Request) -> GeminiAIService:
    return request.app.state.generation_service


def get_vision_service(request: Request) -> VisionService:
    return request.app.state.vision_service


def get_github_client(request: Request) -> GitHubOAuthClient:
    return request.app.state.github_client
