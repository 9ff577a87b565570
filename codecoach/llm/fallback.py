"""
Provider fallback and prompt budgeting.

FallbackChain tries a primary client and, on any failure, a secondary one
(chat uses Gemini then OpenAI). condense_prompt keeps long user requests
under the prompt token budget by having OpenAI summarise them.
"""

from __future__ import annotations

import math

from codecoach.config import CHARS_PER_TOKEN, PROMPT_MAX_TOKENS
from codecoach.llm.base import LLMClient
from codecoach.llm.prompts import summarize_prompts
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter, log_event

logger = get_logger(__name__)


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def condense_prompt(
    prompt: str,
    summarizer: LLMClient,
    max_tokens: int = PROMPT_MAX_TOKENS,
) -> str:
    """
    Return ``prompt`` unchanged when within budget, else a summary of it.

    Raises:
        ProviderError: If the summariser call fails
    """
    current = estimate_tokens(prompt)
    if current <= max_tokens:
        return prompt

    logger.info("Prompt exceeds %d tokens (%d), summarizing", max_tokens, current)
    counter("llm.prompt_condensed")
    system, user = summarize_prompts(prompt, max_tokens)
    return summarizer.generate(user, system=system, max_tokens=max_tokens)


class FallbackChain:
    """Primary client with one fallback; behaves like an LLMClient."""

    def __init__(self, primary: LLMClient, fallback: LLMClient):
        self.primary = primary
        self.fallback = fallback
        self.provider = f"{primary.provider}->{fallback.provider}"

    def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        fallback_max_tokens: int | None = None,
    ) -> str:
        """
        Generate with the primary client, falling back on any error.

        The fallback's own error propagates when both fail.
        """
        try:
            return self.primary.generate(
                prompt, system=system, temperature=temperature, max_tokens=max_tokens
            )
        except Exception as e:
            logger.warning(
                "%s failed (%s), falling back to %s",
                self.primary.provider,
                type(e).__name__,
                self.fallback.provider,
            )
            counter("llm.fallback_used")
            log_event(
                "llm.fallback",
                primary=self.primary.provider,
                fallback=self.fallback.provider,
                error_type=type(e).__name__,
            )

        return self.fallback.generate(
            prompt,
            system=system,
            temperature=temperature,
            max_tokens=fallback_max_tokens or max_tokens,
        )
