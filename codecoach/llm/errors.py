"""Exceptions raised by the LLM provider layer."""

from __future__ import annotations


class ProviderError(RuntimeError):
    """
    A provider call failed.

    The message reads "<Provider> API error: <status>" when a status is known
    so the string-based retry classifier keeps matching "429" and "timeout".
    """

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    @classmethod
    def from_status(cls, provider: str, status_code: int) -> ProviderError:
        return cls(provider, f"{provider} API error: {status_code}", status_code=status_code)

    @property
    def is_rate_limited(self) -> bool:
        if self.status_code == 429:
            return True
        message = str(self).lower()
        return "429" in message or "quota" in message or "rate limit" in message


class ProviderNotConfiguredError(ProviderError):
    """Raised when a provider's API key (or project) is missing."""

    def __init__(self, provider: str, setting: str):
        super().__init__(provider, f"{provider} API key not configured ({setting})")
        self.setting = setting


class ResponseParseError(ValueError):
    """Raised when structured JSON cannot be recovered from model output."""

