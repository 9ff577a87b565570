"""Recover JSON payloads from free-text model responses.

Models wrap their JSON in markdown fences, add chatty preambles, or leave
trailing commas. extract_json() narrows the text to the most likely JSON span
and gives it one repair pass before giving up with ResponseParseError.
"""

from __future__ import annotations

import json
import re
from typing import Any

from codecoach.llm.errors import ResponseParseError
from codecoach.observability.logging import get_logger
from codecoach.observability.telemetry import counter

logger = get_logger(__name__)

_JSON_FENCE = re.compile(r"```json\s*\n?(.*?)\n?\s*```", re.DOTALL | re.IGNORECASE)
_BARE_FENCE = re.compile(r"```\s*\n?(.*?)\n?\s*```", re.DOTALL)


def _candidate(text: str, anchor_key: str | None) -> str:
    """Pick the span of ``text`` most likely to hold the JSON payload."""
    match = _JSON_FENCE.search(text)
    if match:
        return match.group(1)

    match = _BARE_FENCE.search(text)
    if match:
        return match.group(1)

    if anchor_key:
        # Greedy on both sides so nested objects stay intact
        anchored = re.search(r"\{.*\"" + re.escape(anchor_key) + r"\".*\}", text, re.DOTALL)
        if anchored:
            return anchored.group(0)

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]

    return text


def _repair(text: str) -> str:
    repaired = re.sub(r"```(?:json)?", "", text, flags=re.IGNORECASE)
    # Missing commas between fields split across lines
    repaired = re.sub(r'"\s*\n\s*"', '",\n"', repaired)
    repaired = re.sub(r"(\d+\.?\d*|true|false|null)\s*\n\s*\"", r'\1,\n"', repaired)
    repaired = re.sub(r'\}\s*\n\s*"', '},\n"', repaired)
    repaired = re.sub(r'\]\s*\n\s*"', '],\n"', repaired)
    # Trailing commas before } or ]
    repaired = re.sub(r",\s*([\}\]])", r"\1", repaired)
    return repaired.strip()


def extract_json(text: str, anchor_key: str | None = None) -> Any:
    """
    Parse the JSON payload embedded in a model response.

    Tries, in order: a ```json fence, a bare ``` fence, a brace span containing
    ``anchor_key``, the first-to-last brace slice, then the whole text.

    Args:
        text: Raw model output
        anchor_key: Key the payload is known to contain (e.g. "projectName")

    Returns:
        The decoded JSON value

    Raises:
        ResponseParseError: If the candidate span is not valid JSON after repair
    """
    if not text or not text.strip():
        counter("llm.parse_failure")
        raise ResponseParseError("Empty model response")

    candidate = _candidate(text, anchor_key).strip()

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning("JSON parse error (attempting repair): %s", e)

    repaired = _repair(candidate)
    try:
        result = json.loads(repaired)
        logger.info("JSON repair succeeded")
        counter("llm.parse_repaired")
        return result
    except json.JSONDecodeError as e:
        logger.warning("JSON repair failed: %s", e)
        counter("llm.parse_failure")
        raise ResponseParseError(f"JSON parsing failed: {e}") from e


def extract_json_object(text: str, anchor_key: str | None = None) -> dict[str, Any]:
    """extract_json() that insists on a JSON object at the top level."""
    result = extract_json(text, anchor_key=anchor_key)
    if not isinstance(result, dict):
        counter("llm.parse_failure")
        raise ResponseParseError(f"Expected a JSON object, got {type(result).__name__}")
    return result
