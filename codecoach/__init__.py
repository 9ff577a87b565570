"""codecoach - learn by finishing AI-generated, intentionally incomplete projects"""

from __future__ import annotations

__version__ = "1.0.0"

# Lazy imports for guidance module
def __getattr__(name: str):
    """
    Lazy imports to avoid loading provider SDKs when only importing lightweight modules.
    """
    if name in ("AIGuide", "TeachingGuide"):
        from codecoach.guidance import ai_guide, teaching_guide
        if name == "AIGuide":
            return ai_guide.AIGuide
        if name == "TeachingGuide":
            return teaching_guide.TeachingGuide

    if name == "GeminiAIService":
        from codecoach.services.generation import GeminiAIService
        return GeminiAIService

    if name == "call_with_retries":
        from codecoach.llm.retry import call_with_retries
        return call_with_retries

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "AIGuide",
    "TeachingGuide",
    "GeminiAIService",
    "call_with_retries",
]
