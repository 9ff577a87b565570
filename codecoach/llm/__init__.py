"""LLM provider clients, retries, JSON recovery and prompt templates."""

from __future__ import annotations

from codecoach.llm.errors import ProviderError, ProviderNotConfiguredError, ResponseParseError
from codecoach.llm.fallback import FallbackChain, condense_prompt, estimate_tokens
from codecoach.llm.json_extraction import extract_json, extract_json_object
from codecoach.llm.retry import call_with_retries, is_temporary_error, retry_on_temporary_error

__all__ = [
    "FallbackChain",
    "ProviderError",
    "ProviderNotConfiguredError",
    "ResponseParseError",
    "call_with_retries",
    "condense_prompt",
    "estimate_tokens",
    "extract_json",
    "extract_json_object",
    "is_temporary_error",
    "retry_on_temporary_error",
]
