"""Unit tests for prompt budgeting, provider fallback and prompt templates."""

import pytest
from conftest import FakeLLM

from codecoach.llm.errors import ProviderError
from codecoach.llm.fallback import FallbackChain, condense_prompt, estimate_tokens
from codecoach.llm.prompts import (
    app_generation_prompt,
    challenge_generation_prompt,
    code_analysis_prompt,
    guidance_fallback,
    modification_prompts,
    vision_prompt,
)
from codecoach.observability.telemetry import get_counters


class TestCondensePrompt:
    def test_estimate_tokens_rounds_up(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcde") == 2

    def test_short_prompt_unchanged(self):
        summarizer = FakeLLM("OpenAI", "summary")
        assert condense_prompt("build a todo app", summarizer) == "build a todo app"
        assert summarizer.calls == []

    def test_long_prompt_summarized(self):
        summarizer = FakeLLM("OpenAI", "short version")
        long_prompt = "x" * 4000

        assert condense_prompt(long_prompt, summarizer, max_tokens=800) == "short version"
        assert summarizer.calls[0]["max_tokens"] == 800
        assert long_prompt in summarizer.calls[0]["prompt"]


class TestFallbackChain:
    def test_primary_used_when_healthy(self):
        chain = FallbackChain(FakeLLM("Gemini", "from gemini"), FakeLLM("OpenAI", "from openai"))
        assert chain.generate("hi") == "from gemini"
        assert chain.provider == "Gemini->OpenAI"

    def test_falls_back_with_own_token_limit(self):
        fallback = FakeLLM("OpenAI", "from openai")
        chain = FallbackChain(FakeLLM("Gemini", ProviderError.from_status("Gemini", 500)), fallback)

        assert chain.generate("hi", max_tokens=2048, fallback_max_tokens=1500) == "from openai"
        assert fallback.calls[0]["max_tokens"] == 1500
        assert get_counters("llm.fallback_used") == {"llm.fallback_used": 1}

    def test_fallback_error_propagates(self):
        chain = FallbackChain(
            FakeLLM("Gemini", ProviderError.from_status("Gemini", 500)),
            FakeLLM("OpenAI", ProviderError.from_status("OpenAI", 429)),
        )
        with pytest.raises(ProviderError, match="OpenAI API error: 429"):
            chain.generate("hi")


class TestPrompts:
    def test_app_generation_prompt(self):
        prompt = app_generation_prompt("a todo app", "beginner")
        assert "a todo app" in prompt
        assert "beginner" in prompt

    def test_challenge_generation_prompt(self):
        prompt = challenge_generation_prompt("a chat app", "advanced", "frontend")
        assert "a chat app" in prompt
        assert "frontend" in prompt

    def test_modification_prompts_embed_app_data(self):
        system, user = modification_prompts("add dark mode", {"projectName": "todo"})
        assert system
        assert "add dark mode" in user
        assert '"projectName": "todo"' in user

    def test_code_analysis_prompt_lists_files(self):
        prompt = code_analysis_prompt("p1", [{"path": "src/App.js", "content": "const x = 1;"}])
        assert "src/App.js" in prompt
        assert "const x = 1;" in prompt

    def test_guidance_fallback_variants(self):
        assert "Todo" in guidance_fallback("Todo", "a list")
        assert guidance_fallback() == guidance_fallback(None, None)

    def test_vision_prompt(self):
        assert vision_prompt("code").startswith("Analyze this code and provide feedback:")
        assert 'The user is asking: "why?"' in vision_prompt("code", user_question="why?")
        assert vision_prompt("print(1)").endswith("```\nprint(1)\n```")
