"""OpenAI chat-completions client (challenge generation, summaries, chat fallback)."""

from __future__ import annotations

import os
from typing import Any

import openai

from codecoach.config import LLM_TIMEOUT_SECONDS, OPENAI_MODEL
from codecoach.llm.errors import ProviderError, ProviderNotConfiguredError
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter, time_block

logger = get_logger(__name__)

PROVIDER = "OpenAI"


class OpenAIClient:
    """Text generation through ``client.chat.completions.create``."""

    provider = PROVIDER

    def __init__(
        self,
        model_name: str = OPENAI_MODEL,
        api_key: str | None = None,
        client: Any = None,
    ):
        self.model_name = model_name
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            api_key = self._api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ProviderNotConfiguredError(PROVIDER, "OPENAI_API_KEY")
            # Retries are handled by call_with_retries, not the SDK
            self._client = openai.OpenAI(
                api_key=api_key, timeout=float(LLM_TIMEOUT_SECONDS), max_retries=0
            )
        return self._client

    def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        counter("llm.openai.calls")
        try:
            with time_block("llm.openai.latency"):
                completion = self.client.chat.completions.create(
                    model=self.model_name,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
        except openai.RateLimitError as e:
            counter("llm.openai.errors")
            logger.error("OpenAI rate limit exceeded")
            raise ProviderError.from_status(PROVIDER, 429) from e
        except openai.APITimeoutError as e:
            counter("llm.openai.errors")
            logger.error("OpenAI API timeout (%ss)", LLM_TIMEOUT_SECONDS)
            raise ProviderError(PROVIDER, f"{PROVIDER} API timeout", status_code=408) from e
        except openai.APIStatusError as e:
            counter("llm.openai.errors")
            logger.error("OpenAI API error (%s): %s", e.status_code, type(e).__name__)
            raise ProviderError.from_status(PROVIDER, e.status_code) from e
        except openai.APIError as e:
            counter("llm.openai.errors")
            logger.error("OpenAI API error: %s", type(e).__name__)
            raise ProviderError(PROVIDER, f"{PROVIDER} API error: {e}") from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ProviderError(PROVIDER, "Empty response from OpenAI API", status_code=502)
        return content
