"""Shared shape of the provider clients."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class LLMClient(Protocol):
    """
    Anything that turns a prompt into text.

    GeminiClient, OpenAIClient and AnthropicClient implement this; tests pass
    small fakes with the same method.
    """

    provider: str

    def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str: ...
