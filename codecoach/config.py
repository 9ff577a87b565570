"""Centralized configuration for the codecoach backend.

Re-exports everything from codecoach.infrastructure.settings so callers have
one import point, then adds typed tunables for the database, LLM calls,
guidance and the API. Environment variable overrides use safe defaults so the
app starts without extra env configuration.
"""

from __future__ import annotations

import os

from codecoach.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"
ANONYMOUS_USER_ID: str = "00000000-0000-0000-0000-000000000000"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("CODECOACH_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("CODECOACH_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("CODECOACH_DB_CONNECT_TIMEOUT", "30.0"))
DB_RETRY_MAX: int = int(os.getenv("CODECOACH_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("CODECOACH_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("CODECOACH_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("CODECOACH_DB_RETRY_JITTER", "0.1"))

# --- LLM ---
LLM_TIMEOUT_SECONDS: int = int(os.getenv("CODECOACH_LLM_TIMEOUT", "60"))
LLM_MAX_RETRIES: int = int(os.getenv("CODECOACH_LLM_MAX_RETRIES", "3"))
LLM_BASE_BACKOFF_SECONDS: float = float(os.getenv("CODECOACH_LLM_BASE_BACKOFF", "2.0"))
LLM_RETRYABLE_MARKERS: tuple[str, ...] = ("429", "timeout", "non-2xx", "unavailable", "quota")

# --- Prompt budget ---
PROMPT_MAX_TOKENS: int = int(os.getenv("CODECOACH_PROMPT_MAX_TOKENS", "800"))
CHARS_PER_TOKEN: int = 4

# --- Generation ---
APP_GENERATION_MAX_OUTPUT_TOKENS: int = 8192
CHALLENGE_GENERATION_MAX_TOKENS: int = 4000
MODIFICATION_MAX_TOKENS: int = 4000
CHANGE_SUMMARY_MAX_TOKENS: int = 200
CHAT_MAX_OUTPUT_TOKENS: int = 2048
CHAT_FALLBACK_MAX_TOKENS: int = 1500
GUIDANCE_MAX_OUTPUT_TOKENS: int = 1000
VISION_MAX_OUTPUT_TOKENS: int = 1024

# --- Guidance ---
GUIDANCE_SAMPLE_FILES: int = 5
GUIDANCE_SAMPLE_CHARS: int = 500

# --- Vision ---
VISION_CAPTURE_INTERVAL_SECONDS: float = float(os.getenv("CODECOACH_VISION_INTERVAL", "5.0"))

# --- API ---
API_LIST_LIMIT_DEFAULT: int = 100
API_LIST_LIMIT_MAX: int = 500
MAX_ANALYZE_FILES: int = 50
