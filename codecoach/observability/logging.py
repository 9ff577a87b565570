from __future__ import annotations

import logging
import os
from typing import Final

_HANDLER_ATTACHED: bool = False
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_COMPACT_FORMAT: Final[str] = "%(levelname)s %(name)s: %(message)s"

# Provider SDKs and HTTP clients log every request at INFO
_NOISY_LOGGERS: Final[tuple[str, ...]] = (
    "httpx",
    "httpcore",
    "urllib3",
    "openai",
    "anthropic",
    "google.auth",
    "google.generativeai",
)


def _resolve_level() -> int:
    level_name = os.getenv("CODECOACH_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _resolve_format() -> str:
    if os.getenv("CODECOACH_LOG_FORMAT", "").lower() == "compact":
        return _COMPACT_FORMAT
    return _FORMAT


def _quiet_provider_loggers() -> None:
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; the root stream handler is attached on first use."""
    global _HANDLER_ATTACHED

    level = _resolve_level()

    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_resolve_format(), datefmt="%Y-%m-%d %H:%M:%S"))
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(level)
        _quiet_provider_loggers()
        _HANDLER_ATTACHED = True
    else:
        logging.getLogger().setLevel(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
