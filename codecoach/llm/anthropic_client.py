"""Anthropic messages client, used for app modification."""

from __future__ import annotations

import os
from typing import Any

import anthropic

from codecoach.config import ANTHROPIC_MODEL, LLM_TIMEOUT_SECONDS
from codecoach.llm.errors import ProviderError, ProviderNotConfiguredError
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter, time_block

logger = get_logger(__name__)

PROVIDER = "Anthropic"


class AnthropicClient:
    provider = PROVIDER

    def __init__(
        self,
        model_name: str = ANTHROPIC_MODEL,
        api_key: str | None = None,
        client: Any = None,
    ):
        self.model_name = model_name
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            api_key = self._api_key or os.getenv("ANTHROPIC_API_KEY")
            if not api_key:
                raise ProviderNotConfiguredError(PROVIDER, "ANTHROPIC_API_KEY")
            self._client = anthropic.Anthropic(
                api_key=api_key, timeout=float(LLM_TIMEOUT_SECONDS), max_retries=0
            )
        return self._client

    def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.5,
        max_tokens: int = 4000,
    ) -> str:
        """
        Send one user message and return the first text block.

        Raises:
            ProviderError: On API failure or an empty content list
        """
        kwargs: dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        counter("llm.anthropic.calls")
        try:
            with time_block("llm.anthropic.latency"):
                message = self.client.messages.create(**kwargs)
        except anthropic.APITimeoutError as e:
            counter("llm.anthropic.errors")
            logger.error("Anthropic API timeout (%ss)", LLM_TIMEOUT_SECONDS)
            raise ProviderError(PROVIDER, f"{PROVIDER} API timeout", status_code=408) from e
        except anthropic.RateLimitError as e:
            counter("llm.anthropic.errors")
            logger.error("Anthropic rate limit exceeded")
            raise ProviderError.from_status(PROVIDER, 429) from e
        except anthropic.APIStatusError as e:
            counter("llm.anthropic.errors")
            logger.error("Anthropic API error (%s): %s", e.status_code, type(e).__name__)
            raise ProviderError.from_status(PROVIDER, e.status_code) from e
        except anthropic.APIError as e:
            counter("llm.anthropic.errors")
            logger.error("Anthropic API error: %s", type(e).__name__)
            raise ProviderError(PROVIDER, f"{PROVIDER} API error: {e}") from e

        texts = [block.text for block in message.content if getattr(block, "type", "") == "text"]
        if not texts:
            raise ProviderError(
                PROVIDER, "Empty or invalid response from Anthropic API", status_code=502
            )
        return texts[0]
