"""
Pytest configuration for codecoach tests

Provides a throwaway sqlite database, scripted fake LLM clients and a
FastAPI TestClient wired to them. No test touches the network.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from codecoach.infrastructure.database import close_pools, init_database
from codecoach.llm.errors import ProviderError
from codecoach.observability.telemetry import reset_telemetry


class FakeLLM:
    """
    LLMClient that replays scripted replies.

    Each reply is a string (returned) or an exception (raised). The last
    reply repeats once the script runs out.
    """

    def __init__(self, provider: str, *replies: str | Exception):
        self.provider = provider
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        self.calls.append(
            {"prompt": prompt, "system": system, "temperature": temperature, "max_tokens": max_tokens}
        )
        if not self.replies:
            raise ProviderError(self.provider, f"{self.provider} has no scripted reply")
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


def app_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "projectName": "todo-app",
        "description": "A todo list",
        "fileStructure": {
            "src": {
                "App.js": "export default function App() {}",
                "components": {"TodoList.js": "// TODO"},
            },
        },
        "challenges": [
            {
                "id": "challenge-1",
                "title": "Add todos",
                "description": "add todo items",
                "featureName": "Todo list",
                "difficulty": "easy",
                "type": "implementation",
                "filesPaths": ["src/components/TodoList.js"],
                "hints": ["Use state", "Map over the items"],
            },
            {
                "id": "challenge-2",
                "title": "Delete todos",
                "description": "delete todo items",
                "difficulty": "medium",
                "type": "feature",
                "hints": ["Filter the array"],
            },
        ],
        "explanation": "Finish the todo list.",
    }
    payload.update(overrides)
    return payload


def fenced(payload: dict[str, Any]) -> str:
    return f"Here is your project:\n```json\n{json.dumps(payload)}\n```\nEnjoy!"


@pytest.fixture(autouse=True)
def _clean_telemetry():
    reset_telemetry()
    yield
    reset_telemetry()


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Initialized sqlite database in a temp dir; pools closed afterwards."""
    db_path = tmp_path / "codecoach.db"
    monkeypatch.setenv("CODECOACH_DB_PATH", str(db_path))
    init_database()
    yield db_path
    close_pools()


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    delays: list[float] = []

    def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays  # type: ignore[attr-defined]
    return sleep


@pytest.fixture
def fakes() -> dict[str, FakeLLM]:
    return {
        "gemini": FakeLLM("Gemini", fenced(app_payload())),
        "openai": FakeLLM("OpenAI", "A short summary."),
        "anthropic": FakeLLM("Anthropic", fenced(app_payload(projectName="todo-app-v2"))),
        "vision": FakeLLM("Gemini", "I can see your code."),
    }


@pytest.fixture
def service(temp_db, fakes, no_sleep):
    from codecoach.services.generation import GeminiAIService

    return GeminiAIService(
        gemini=fakes["gemini"],
        openai=fakes["openai"],
        anthropic=fakes["anthropic"],
        max_retries=2,
        base_delay=0.01,
        sleep=no_sleep,
    )


@pytest.fixture
def client(temp_db, service, fakes):
    from fastapi.testclient import TestClient

    from codecoach.api.app import create_app
    from codecoach.github.oauth import GitHubOAuthClient
    from codecoach.services.vision import VisionService

    github = GitHubOAuthClient(client_id="id", client_secret="secret", session=FakeGitHubSession())
    app = create_app(service=service, vision=VisionService(fakes["vision"]), github_client=github)
    with TestClient(app) as test_client:
        test_client.github_session = github.session  # type: ignore[attr-defined]
        yield test_client


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def json(self) -> Any:
        return self._payload


class FakeGitHubSession:
    """
    requests.Session stand-in for GitHub calls.

    ``routes`` maps a URL to (payload, status); other GETs return the user
    profile.
    """

    def __init__(
        self,
        token_payload: Any = None,
        user_payload: Any = None,
        user_status: int = 200,
        routes: dict[str, tuple[Any, int]] | None = None,
    ):
        self.token_payload = token_payload if token_payload is not None else {"access_token": "gho_test"}
        self.user_payload = user_payload if user_payload is not None else {
            "id": 42,
            "login": "octocat",
            "name": "The Octocat",
            "avatar_url": "https://avatars.example/octocat.png",
        }
        self.user_status = user_status
        self.routes = routes or {}
        self.posts: list[dict[str, Any]] = []
        self.gets: list[dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.posts.append({"url": url, **kwargs})
        return FakeResponse(self.token_payload)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.gets.append({"url": url, **kwargs})
        if url in self.routes:
            return FakeResponse(*self.routes[url])
        return FakeResponse(self.user_payload, self.user_status)
