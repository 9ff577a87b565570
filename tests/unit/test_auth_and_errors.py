"""Unit tests for JWT subject extraction and error sanitization."""

import jwt
import pytest
from fastapi import HTTPException

from codecoach.api.errors import to_http_exception
from codecoach.config import ANONYMOUS_USER_ID
from codecoach.infrastructure.auth import decode_jwt_subject, get_current_user_id, require_user_header
from codecoach.llm.errors import ProviderError, ProviderNotConfiguredError, ResponseParseError
from codecoach.projects.repository import ProjectNotFoundError
from codecoach.services.generation import GenerationUnavailableError
from codecoach.utils.error_sanitizer import sanitize_error_message


def make_jwt(claims, key="issuer-signing-key-0123456789abcdef"):
    return jwt.encode(claims, key, algorithm="HS256")


class TestAuth:
    def test_subject_from_bearer_token(self):
        token = make_jwt({"sub": "user-123", "role": "authenticated"})
        assert get_current_user_id(f"Bearer {token}") == "user-123"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer not-a-jwt", "Bearer a.!!!.c"])
    def test_anonymous_fallback(self, header):
        assert get_current_user_id(header) == ANONYMOUS_USER_ID

    def test_token_without_subject(self):
        assert decode_jwt_subject(make_jwt({"role": "anon"})) is None

    def test_signature_not_checked(self):
        token = make_jwt({"sub": "user-9"}, key="another-issuer-signing-key-0123456789")
        assert decode_jwt_subject(token) == "user-9"

    def test_expired_token_still_names_user(self):
        token = make_jwt({"sub": "user-9", "exp": 1})
        assert decode_jwt_subject(token) == "user-9"

    def test_user_header_required(self):
        with pytest.raises(HTTPException) as exc:
            require_user_header(None)
        assert exc.value.status_code == 401
        assert require_user_header("u1") == "u1"


class TestSanitizer:
    def test_plain_message_kept(self):
        assert sanitize_error_message("No content provided", 400) == "No content provided"

    def test_provider_status_kept(self):
        assert sanitize_error_message("Gemini API error: 503", 502) == "Gemini API error: 503"

    @pytest.mark.parametrize(
        "message",
        [
            'File "/app/codecoach/llm/gemini.py", line 10',
            "Incorrect API key provided: sk-abcdefghijklmnop",
            "sqlite3.OperationalError: no such table: app_projects",
        ],
    )
    def test_sensitive_messages_replaced(self, message):
        assert sanitize_error_message(message, 500) == "An internal error occurred. Please try again later."


class TestErrorMapping:
    @pytest.mark.parametrize(
        ("error", "parse_status", "expected"),
        [
            (ProjectNotFoundError("p1"), 500, 404),
            (ResponseParseError("bad json"), 400, 400),
            (ResponseParseError("bad json"), 500, 500),
            (ProviderError.from_status("Gemini", 429), 500, 429),
            (ProviderError("OpenAI", "You exceeded your current quota"), 500, 429),
            (ProviderError.from_status("Anthropic", 529), 500, 502),
            (ProviderNotConfiguredError("OpenAI", "OPENAI_API_KEY"), 500, 500),
            (GenerationUnavailableError("busy"), 500, 503),
            (GenerationUnavailableError("slow down", rate_limited=True), 500, 429),
            (ValueError("No content provided"), 500, 400),
            (RuntimeError("boom"), 500, 500),
        ],
    )
    def test_status_codes(self, error, parse_status, expected):
        assert to_http_exception(error, "op", parse_status=parse_status).status_code == expected

    def test_parse_error_detail(self):
        exc = to_http_exception(ResponseParseError("Expecting value: line 1"), "modify_app")
        assert exc.detail == "Failed to parse AI response"
