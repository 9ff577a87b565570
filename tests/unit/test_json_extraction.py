"""Unit tests for JSON extraction and repair of model responses."""

import pytest

from codecoach.llm.errors import ResponseParseError
from codecoach.llm.json_extraction import extract_json, extract_json_object
from codecoach.observability.telemetry import get_counters


class TestExtractJSON:
    def test_valid_json(self):
        assert extract_json('{"projectName": "todo", "files": []}') == {"projectName": "todo", "files": []}

    def test_fenced_json_block_wins(self):
        """A ```json block is used even when other braces surround it."""
        text = 'Intro {"ignored": true}\n```json\n{"projectName": "fenced"}\n```\nOutro {"x": 1}'
        assert extract_json(text) == {"projectName": "fenced"}

    def test_bare_fence(self):
        assert extract_json('```\n{"feedback": "ok"}\n```') == {"feedback": "ok"}

    def test_whole_text_fallback(self):
        """Without a fence or braces, the whole text is parsed."""
        assert extract_json("  [1, 2, 3]  ") == [1, 2, 3]

    def test_surrounding_prose(self):
        text = 'Sure! Here is the analysis: {"feedback": "Looks good", "score": 80} Hope it helps.'
        assert extract_json(text)["score"] == 80

    def test_anchor_key_keeps_nested_objects(self):
        text = 'Result:\n{"projectId": "p1", "challenges": [{"id": "c1"}]}\nThanks'
        result = extract_json(text, anchor_key="projectId")
        assert result["challenges"] == [{"id": "c1"}]

    def test_trailing_commas_repaired(self):
        text = '{"feedback": "ok", "suggestions": ["a", "b",],}'
        assert extract_json(text) == {"feedback": "ok", "suggestions": ["a", "b"]}
        assert get_counters("llm.parse_repaired") == {"llm.parse_repaired": 1}

    def test_missing_commas_between_lines_repaired(self):
        text = """{
            "projectName": "todo"
            "description": "A list"
        }"""
        assert extract_json(text)["description"] == "A list"

    def test_unrepairable_raises(self):
        with pytest.raises(ResponseParseError):
            extract_json("I could not generate a project, sorry.")
        assert get_counters("llm.parse_failure") == {"llm.parse_failure": 1}

    def test_empty_response_raises(self):
        with pytest.raises(ResponseParseError, match="Empty"):
            extract_json("   ")


class TestExtractJSONObject:
    def test_requires_object(self):
        with pytest.raises(ResponseParseError, match="list"):
            extract_json_object("[1, 2]")

    def test_returns_dict(self):
        assert extract_json_object('```json\n{"a": 1}\n```') == {"a": 1}
