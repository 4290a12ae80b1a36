"""Tests for best-effort JSON extraction."""

import pytest

from sopwise.core.exceptions import ReasoningServiceError
from sopwise.llm.parsing import extract_json_objects, parse_json_object


class TestExtractJsonObjects:
    def test_balanced_objects(self):
        raw = 'first {"a": {"b": 1}} then {"c": 2}'
        assert extract_json_objects(raw) == ['{"a": {"b": 1}}', '{"c": 2}']

    def test_braces_inside_strings_ignored(self):
        raw = 'x {"text": "use } carefully", "n": 1} y'
        assert extract_json_objects(raw) == ['{"text": "use } carefully", "n": 1}']


class TestParseJsonObject:
    def test_plain_json(self):
        assert parse_json_object('{"areDuplicates": true}') == {"areDuplicates": True}

    def test_code_fence(self):
        text = 'Here you go:\n```json\n{"similarity": 0.4}\n```'
        assert parse_json_object(text) == {"similarity": 0.4}

    def test_embedded_in_prose(self):
        text = 'I think {"needsReordering": false} is right.'
        assert parse_json_object(text) == {"needsReordering": False}

    def test_array_is_not_an_object(self):
        with pytest.raises(ReasoningServiceError):
            parse_json_object("[1, 2]")

    def test_no_json(self):
        with pytest.raises(ReasoningServiceError):
            parse_json_object("no idea")
