"""Environment-backed settings: provider credentials, model names, OAuth ids.

Values are read once at import time after loading a local ``.env`` file.
Secrets are never logged; use ``has_secret`` to check presence.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

# --- Environment ---
CODECOACH_ENV: str = os.getenv("CODECOACH_ENV", "development")

# --- Gemini ---
GEMINI_API_KEY: str | None = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-1.5-pro")
GEMINI_VISION_MODEL: str = os.getenv("GEMINI_VISION_MODEL", "gemini-1.5-pro-latest")
GOOGLE_CLOUD_PROJECT: str | None = os.getenv("GOOGLE_CLOUD_PROJECT")
GEMINI_LOCATION: str = os.getenv("GEMINI_LOCATION", "us-central1")

# --- OpenAI ---
OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# --- Anthropic ---
ANTHROPIC_API_KEY: str | None = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20240620")

# --- GitHub OAuth ---
GITHUB_CLIENT_ID: str | None = os.getenv("GITHUB_CLIENT_ID")
GITHUB_CLIENT_SECRET: str | None = os.getenv("GITHUB_CLIENT_SECRET")

# Only these keys may be read back by the browser client through /api/env/get
CLIENT_EXPOSABLE_ENV_KEYS: frozenset[str] = frozenset(
    {
        "GITHUB_CLIENT_ID",
        "GEMINI_API_KEY",
        "OPENAI_API_KEY",
    }
)


def has_secret(name: str) -> bool:
    """True when the named environment variable is set and non-empty."""
    return bool(os.getenv(name))
