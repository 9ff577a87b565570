"""
End-to-end route tests: FastAPI TestClient, fake providers, temp database.
"""

import base64
import json

from conftest import FakeGitHubSession, app_payload, fenced

from codecoach.config import ANONYMOUS_USER_ID
from codecoach.github.oauth import API_URL, REPOS_URL
from codecoach.llm.errors import ProviderError


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert set(body["providers"]) == {"gemini", "openai", "anthropic"}

    def test_health_db(self, client):
        body = client.get("/health/db").json()
        assert body["status"] == "healthy"
        assert body["pool"]["closed"] is False

    def test_debug_stats(self, client):
        client.get("/health")
        assert "counters" in client.get("/debug/stats").json()


class TestGenerateApp:
    def test_generate_app(self, client):
        response = client.post("/api/generate-app", json={"prompt": "todo app", "completionLevel": "beginner"})
        assert response.status_code == 200
        body = response.json()
        assert body["projectName"] == "todo-app"

        versions = client.get(f"/api/projects/{body['projectId']}/versions").json()["versions"]
        assert [v["version"] for v in versions] == [1]

        latest = client.get(f"/api/projects/{body['projectId']}").json()
        assert latest["appData"]["projectName"] == "todo-app"

        projects = client.get("/api/projects").json()["projects"]
        assert [p["id"] for p in projects] == [body["projectId"]]

    def test_validation_error_lists_fields(self, client):
        response = client.post("/api/generate-app", json={})
        assert response.status_code == 422
        assert response.json()["invalid_fields"] == ["prompt"]

    def test_blank_prompt_rejected(self, client):
        assert client.post("/api/generate-app", json={"prompt": "   "}).status_code == 422

    def test_parse_failure_is_400(self, client, fakes):
        fakes["gemini"].replies = ["no json here"]
        response = client.post("/api/generate-app", json={"prompt": "todo"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Failed to parse AI response"

    def test_null_fields_from_model_still_succeed(self, client, fakes):
        payload = app_payload()
        payload["challenges"][0]["featureName"] = None
        fakes["gemini"].replies = [fenced(payload)]

        response = client.post("/api/generate-app", json={"prompt": "todo"})

        assert response.status_code == 200
        assert response.json()["challenges"][0]["featureName"] == ""

    def test_rate_limit_is_429(self, client, fakes):
        fakes["gemini"].replies = [ProviderError.from_status("Gemini", 429)]
        response = client.post("/api/generate-app", json={"prompt": "todo"})
        assert response.status_code == 429

    def test_provider_failure_is_502(self, client, fakes):
        fakes["gemini"].replies = [ProviderError.from_status("Gemini", 500)]
        response = client.post("/api/generate-app", json={"prompt": "todo"})
        assert response.status_code == 502
        assert response.json()["detail"] == "Gemini API error: 500"

    def test_initialize_project_unavailable(self, client, fakes):
        fakes["gemini"].replies = [ProviderError.from_status("Gemini", 500)]
        fakes["openai"].replies = [ProviderError.from_status("OpenAI", 500)]
        response = client.post("/api/initialize-project", json={"prompt": "todo"})
        assert response.status_code == 503
        assert "high demand" in response.json()["detail"]


class TestChallengeAndModify:
    def test_generate_challenge_parse_failure_is_500(self, client, fakes):
        fakes["openai"].replies = ["no json"]
        response = client.post("/api/generate-challenge", json={"prompt": "weather"})
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to parse AI response"

    def test_modify_and_restore(self, client):
        project_id = client.post("/api/generate-app", json={"prompt": "todo"}).json()["projectId"]

        modified = client.post("/api/modify-app", json={"prompt": "dark mode", "projectId": project_id})
        assert modified.status_code == 200
        assert modified.json()["version"] == 2

        restored = client.post("/api/restore-version", json={"versionId": project_id})
        assert restored.json()["message"] == "Successfully restored to version 1"

        versions = client.get(f"/api/projects/{project_id}/versions").json()["versions"]
        assert [v["version"] for v in versions] == [1, 2, 3]

    def test_modify_unknown_project_is_404(self, client):
        response = client.post("/api/modify-app", json={"prompt": "x", "projectId": "missing"})
        assert response.status_code == 404

    def test_versions_unknown_project_is_404(self, client):
        assert client.get("/api/projects/missing/versions").status_code == 404


class TestChallenges:
    def test_list_and_complete(self, client):
        project_id = client.post("/api/generate-app", json={"prompt": "todo"}).json()["projectId"]

        challenges = client.get(f"/api/projects/{project_id}/challenges").json()["challenges"]
        assert [c["id"] for c in challenges] == ["challenge-1", "challenge-2"]
        assert challenges[0]["featureName"] == "Todo list"

        response = client.put(f"/api/projects/{project_id}/challenges/challenge-1/complete")
        assert response.json()["completed"] is True
        assert client.put(f"/api/projects/{project_id}/challenges/nope/complete").status_code == 404


class TestAnalyzeAndGuidance:
    def test_analyze_code(self, client, fakes):
        fakes["gemini"].replies = [json.dumps({"feedback": "ok", "suggestions": [], "score": 90})]
        response = client.post(
            "/api/analyze-code",
            json={"projectId": "p1", "files": [{"path": "a.js", "content": "x"}]},
        )
        assert response.status_code == 200
        assert response.json()["score"] == 90

    def test_analyze_requires_files(self, client):
        response = client.post("/api/analyze-code", json={"projectId": "p1", "files": []})
        assert response.status_code == 422

    def test_guidance_fallback(self, client, fakes):
        fakes["gemini"].replies = [ProviderError.from_status("Gemini", 503)]
        response = client.post("/api/generate-guidance", json={"appData": app_payload()})
        assert response.status_code == 200
        assert response.json()["fallback"] is True


class TestChat:
    def test_chat_history(self, client, fakes):
        fakes["gemini"].replies = ["Hi there!"]
        response = client.post("/api/chat", json={"message": "hello", "projectId": "p1"})
        assert response.json()["response"] == "Hi there!"

        messages = client.get("/api/projects/p1/chat").json()["messages"]
        assert [(m["role"], m["content"]) for m in messages] == [
            ("user", "hello"),
            ("assistant", "Hi there!"),
        ]

    def test_chat_unavailable_is_503(self, client, fakes):
        fakes["gemini"].replies = [ProviderError.from_status("Gemini", 500)]
        fakes["openai"].replies = [ProviderError.from_status("OpenAI", 500)]
        response = client.post("/api/chat", json={"message": "hello"})
        assert response.status_code == 503
        assert "temporarily unavailable" in response.json()["detail"]


class TestVision:
    def test_vision(self, client):
        response = client.post("/api/vision", json={"content": "let x = 1;", "userQuestion": "why?"})
        assert response.status_code == 200
        assert response.json()["analysis"] == "I can see your code."

    def test_vision_without_content_is_400(self, client):
        response = client.post("/api/vision", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == "No content provided"


class TestGitHub:
    def test_link_account(self, client):
        response = client.post("/api/github/auth", json={"code": "abc"}, headers={"X-User-Id": "u1"})
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "user": {
                "id": 42,
                "login": "octocat",
                "name": "The Octocat",
                "avatar_url": "https://avatars.example/octocat.png",
            },
        }

        connection = client.get("/api/github/connection", headers={"X-User-Id": "u1"}).json()
        assert connection["connected"] is True
        assert connection["githubUsername"] == "octocat"
        assert "accessToken" not in connection

        assert client.delete("/api/github/connection", headers={"X-User-Id": "u1"}).json() == {"success": True}
        assert client.get("/api/github/connection", headers={"X-User-Id": "u1"}).json() == {"connected": False}

    def test_requires_user(self, client):
        assert client.post("/api/github/auth", json={"code": "abc"}).status_code == 401

    def test_requires_code(self, client):
        response = client.post("/api/github/auth", json={}, headers={"X-User-Id": "u1"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing code parameter"

    def test_bad_code(self, client):
        client.app.state.github_client.session = FakeGitHubSession(token_payload={"error": "bad_verification_code"})
        response = client.post("/api/github/auth", json={"code": "bad"}, headers={"X-User-Id": "u1"})
        assert response.status_code == 400

    def test_list_repos_with_linked_account(self, client):
        client.github_session.routes[REPOS_URL] = ([{"id": 7, "full_name": "octocat/hello"}], 200)
        client.post("/api/github/auth", json={"code": "abc"}, headers={"X-User-Id": "u1"})

        response = client.get("/api/github/repos", headers={"X-User-Id": "u1"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["repos"][0]["name"] == "octocat/hello"
        assert client.github_session.gets[-1]["headers"]["Authorization"] == "Bearer gho_test"

    def test_list_repos_requires_connection(self, client):
        assert client.get("/api/github/repos").status_code == 401
        response = client.get("/api/github/repos", headers={"X-User-Id": "u1"})
        assert response.status_code == 400
        assert response.json()["detail"] == "GitHub not connected"

    def test_list_repos_upstream_error(self, client):
        client.github_session.routes[REPOS_URL] = ({"message": "Bad credentials"}, 401)
        client.post("/api/github/auth", json={"code": "abc"}, headers={"X-User-Id": "u1"})
        assert client.get("/api/github/repos", headers={"X-User-Id": "u1"}).status_code == 502

    def test_fetch_repo_stores_files(self, client):
        contents = f"{API_URL}/repos/octocat/hello/contents"
        client.github_session.routes.update(
            {
                contents: (
                    [
                        {"type": "file", "path": "index.js", "size": 14},
                        {"type": "file", "path": "tool.exe", "size": 10},
                    ],
                    200,
                ),
                f"{contents}/index.js": (
                    {"encoding": "base64", "content": base64.b64encode(b"console.log(1)").decode()},
                    200,
                ),
            }
        )
        response = client.post(
            "/api/github/fetch-repo",
            json={"repoUrl": "https://github.com/octocat/hello.git", "sessionId": "s1"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["repository"] == "octocat/hello"
        assert body["files"] == ["index.js"]
        assert body["failedFiles"] == []
        assert (body["totalFiles"], body["storedFiles"]) == (2, 1)
        assert body["sessionId"] == "s1"

        stored = client.get("/api/github/repository-files", params={"sessionId": "s1"}).json()["files"]
        assert [(f["path"], f["content"]) for f in stored] == [("index.js", "console.log(1)")]

    def test_fetch_repo_bad_input(self, client):
        response = client.post("/api/github/fetch-repo", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == "No repository URL provided"

        response = client.post("/api/github/fetch-repo", json={"repoUrl": "https://gitlab.com/a/b"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid GitHub repository URL format"

    def test_fetch_repo_missing_repository(self, client):
        client.github_session.routes[f"{API_URL}/repos/octocat/gone/contents"] = ({"message": "Not Found"}, 404)
        response = client.post("/api/github/fetch-repo", json={"repoUrl": "https://github.com/octocat/gone"})
        assert response.status_code == 502
        assert "Not Found" in response.json()["detail"]


class TestEnv:
    def test_allow_listed_key(self, client, monkeypatch):
        monkeypatch.setenv("GITHUB_CLIENT_ID", "public-client-id")
        response = client.post("/api/env/get", json={"key": "GITHUB_CLIENT_ID"})
        assert response.json() == {"value": "public-client-id"}

    def test_forbidden_key(self, client):
        assert client.post("/api/env/get", json={"key": "ANTHROPIC_API_KEY"}).status_code == 403

    def test_missing_key(self, client):
        assert client.post("/api/env/get", json={}).status_code == 400

    def test_set_requires_authorization(self, client):
        assert client.post("/api/env/set", json={"key": "A", "value": "b"}).status_code == 401

    def test_set_acknowledges_without_mutation(self, client, monkeypatch):
        monkeypatch.delenv("SOME_FLAG", raising=False)
        response = client.post(
            "/api/env/set", json={"key": "SOME_FLAG", "value": "1"}, headers={"Authorization": "Bearer t"}
        )
        assert response.json()["success"] is True
        import os

        assert "SOME_FLAG" not in os.environ

    def test_set_requires_both_fields(self, client):
        response = client.post("/api/env/set", json={"key": "A"}, headers={"Authorization": "Bearer t"})
        assert response.status_code == 400


def test_anonymous_user_owns_projects(client):
    project_id = client.post("/api/generate-app", json={"prompt": "todo"}).json()["projectId"]
    from codecoach.projects.repository import AppProjectRepository

    assert AppProjectRepository.get_by_id(project_id).user_id == ANONYMOUS_USER_ID
