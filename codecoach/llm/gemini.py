"""
Gemini client.

Supports two backends:
  1. Vertex AI SDK (Cloud Run) when GOOGLE_CLOUD_PROJECT is set
  2. google-generativeai with GEMINI_API_KEY (local dev and the default)

Model instances are cached per model name so app generation, code analysis,
guidance and vision share one instance each.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from google.api_core import exceptions as google_exceptions

from codecoach.config import GEMINI_LOCATION, GEMINI_MODEL, GOOGLE_CLOUD_PROJECT
from codecoach.llm.errors import ProviderError, ProviderNotConfiguredError
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter, time_block

logger = get_logger(__name__)

PROVIDER = "Gemini"


class GeminiInitializationError(ProviderNotConfiguredError):
    """Raised when no Gemini model can be initialized."""


@lru_cache(maxsize=4)
def get_gemini_model(model_name: str = GEMINI_MODEL) -> Any:
    """
    Get or create the shared Gemini model for ``model_name``.

    Returns:
        GenerativeModel from whichever SDK is configured

    Raises:
        GeminiInitializationError: If neither backend is configured
    """
    project = GOOGLE_CLOUD_PROJECT or os.getenv("GOOGLE_CLOUD_PROJECT")

    if project:
        import vertexai
        from vertexai.generative_models import GenerativeModel

        vertexai.init(project=project, location=GEMINI_LOCATION or "us-central1")
        logger.info(
            "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
            project,
            GEMINI_LOCATION,
            model_name,
        )
        return GenerativeModel(model_name)

    import google.generativeai as genai

    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise GeminiInitializationError(PROVIDER, "GEMINI_API_KEY")

    genai.configure(api_key=api_key)
    logger.info("Initialized Gemini model (google-generativeai): model=%s", model_name)
    return genai.GenerativeModel(model_name)


def clear_model_cache() -> None:
    """
    Clear the cached model instances.

    Useful for testing or when reconfiguration is needed.
    """
    get_gemini_model.cache_clear()
    logger.info("Cleared Gemini model cache")


def _wrap_google_error(error: google_exceptions.GoogleAPIError) -> ProviderError:
    if isinstance(error, google_exceptions.ResourceExhausted):
        return ProviderError.from_status(PROVIDER, 429)
    if isinstance(error, google_exceptions.DeadlineExceeded):
        return ProviderError(PROVIDER, f"{PROVIDER} API timeout", status_code=408)
    code = getattr(error, "code", None)
    if isinstance(code, int):
        return ProviderError.from_status(PROVIDER, code)
    return ProviderError(PROVIDER, f"{PROVIDER} API error: {error}")


class GeminiClient:
    """Text generation through a Gemini GenerativeModel."""

    provider = PROVIDER

    def __init__(self, model_name: str = GEMINI_MODEL, model: Any = None):
        self.model_name = model_name
        self._model = model

    @property
    def model(self) -> Any:
        if self._model is None:
            self._model = get_gemini_model(self.model_name)
        return self._model

    def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        """
        Generate text for ``prompt``.

        Raises:
            ProviderNotConfiguredError: If the model cannot be created
            ProviderError: On API failure or an empty candidate list
        """
        contents = f"{system}\n\n{prompt}" if system else prompt
        generation_config = {
            "temperature": temperature,
            "top_k": 40,
            "top_p": 0.95,
            "max_output_tokens": max_tokens,
        }

        counter("llm.gemini.calls")
        try:
            with time_block("llm.gemini.latency"):
                response = self.model.generate_content(
                    contents, generation_config=generation_config
                )
        except google_exceptions.GoogleAPIError as e:
            counter("llm.gemini.errors")
            logger.error("Gemini API error (%s): %s", self.model_name, e)
            raise _wrap_google_error(e) from e

        try:
            text = response.text
        except (ValueError, IndexError, AttributeError) as e:
            counter("llm.gemini.empty")
            raise ProviderError(
                PROVIDER, "Empty or invalid response from Gemini API", status_code=502
            ) from e

        if not text:
            counter("llm.gemini.empty")
            raise ProviderError(
                PROVIDER, "Empty or invalid response from Gemini API", status_code=502
            )
        return text
