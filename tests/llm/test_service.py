"""Tests for the reasoning service facade and SDK adapters."""

import asyncio
import logging
from types import SimpleNamespace

import anthropic
import openai
import pytest
from pydantic import ValidationError

from sopwise.config.settings import Settings
from sopwise.core.exceptions import ReasoningServiceError
from sopwise.core.rules import Priority
from sopwise.llm.client import (
    AnthropicReasoningClient,
    OpenAIReasoningClient,
    create_reasoning_client,
)
from sopwise.llm.schemas import GapJudgment, OrderingJudgment
from sopwise.llm.service import ReasoningService


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


class TestReasoningService:
    """Every failure mode of the service returns None."""

    def test_duplicate_judgment_parsed(self, make_client):
        client = make_client('```json\n{"areDuplicates": true, "similarity": 0.9, "reasoning": "same"}\n```')
        result = asyncio.run(ReasoningService(client).judge_duplicates("Pay bill", "Make payment"))

        assert result.are_duplicates is True
        assert result.similarity == 0.9
        assert 'Step 1: "Pay bill"' in client.calls[0]

    def test_ordering_prompt_numbers_steps(self, make_client):
        client = make_client('{"needsReordering": false}')
        result = asyncio.run(ReasoningService(client).judge_ordering(["Wash", "Wipe"]))

        assert result.needs_reordering is False
        assert "1. Wash\n2. Wipe" in client.calls[0]

    def test_schema_violation_returns_none(self, make_client):
        client = make_client('{"areDuplicates": true, "similarity": 1.5}')
        assert asyncio.run(ReasoningService(client).judge_duplicates("a", "b")) is None

    def test_missing_required_field_returns_none(self, make_client):
        client = make_client('{"suggestedSteps": ["a"]}')
        assert asyncio.run(ReasoningService(client).judge_ordering(["a"])) is None

    def test_client_error_returns_none(self, failing_client):
        assert asyncio.run(ReasoningService(failing_client).judge_duplicates("a", "b")) is None

    def test_timeout_returns_none(self, make_client):
        client = make_client("{}", delay=1.0)
        service = ReasoningService(client, timeout_seconds=0.01)
        assert asyncio.run(service.judge_duplicates("a", "b")) is None

    def test_unexpected_client_error_returns_none(self, make_client, caplog):
        client = make_client(error=ConnectionError("connection reset"))
        service = ReasoningService(client)

        with caplog.at_level(logging.WARNING, logger="sopwise.llm.service"):
            assert asyncio.run(service.judge_duplicates("a", "b")) is None
            assert asyncio.run(service.judge_ordering(["a", "b"])) is None
            assert asyncio.run(service.judge_gaps(["a", "b"])) is None

        unexpected = [r for r in caplog.records if r.getMessage() == "Reasoning request raised unexpectedly"]
        assert len(unexpected) == 3
        assert unexpected[0].exc_info is not None
        assert unexpected[0].purpose == "duplicates"

    def test_gap_judgment_parsed(self, make_client):
        client = make_client(
            '{"domain": "cooking", "confidence": 0.9, "missingSteps": '
            '[{"position": 1, "suggestion": "Preheat the oven", "priority": "high"}]}'
        )
        result = asyncio.run(ReasoningService(client).judge_gaps(["Mix batter", "Bake"]))

        assert result.domain == "cooking"
        assert result.missing_steps[0].priority == Priority.HIGH
        assert result.missing_steps[0].position == 1
        assert "1. Mix batter\n2. Bake" in client.calls[0]


class TestGapJudgment:
    def test_defaults_and_blank_suggestion(self):
        judgment = GapJudgment.model_validate({"missingSteps": [{"suggestion": "Lock the door", "priority": " Low "}]})
        assert judgment.domain == "general"
        assert judgment.missing_steps[0].priority == Priority.LOW

        with pytest.raises(ValidationError):
            GapJudgment.model_validate({"missingSteps": [{"suggestion": ""}]})


class TestOrderingJudgment:
    def test_step_objects_coerced_to_text(self):
        judgment = OrderingJudgment.model_validate(
            {"needsReordering": True, "suggestedSteps": [{"text": "Wipe"}, {"name": "Wash"}, " ", "Dry"]}
        )
        assert judgment.suggested_steps == ["Wipe", "Wash", "Dry"]
        assert judgment.confidence == 0.8


# -----------------------------------------------------------------------------
# SDK adapters
# -----------------------------------------------------------------------------


class _FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def _openai_sdk(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestOpenAIReasoningClient:
    def test_returns_message_content(self):
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content='{"ok": 1}'))])
        completions = _FakeCompletions(response)
        client = OpenAIReasoningClient(api_key="k", model="m", client=_openai_sdk(completions))

        text = asyncio.run(client.complete(system="sys", prompt="hi", max_tokens=10))

        assert text == '{"ok": 1}'
        assert completions.kwargs["model"] == "m"
        assert completions.kwargs["response_format"] == {"type": "json_object"}
        assert completions.kwargs["messages"][0] == {"role": "system", "content": "sys"}

    def test_sdk_error_wrapped(self):
        completions = _FakeCompletions(error=openai.OpenAIError("rate limited"))
        client = OpenAIReasoningClient(api_key="k", model="m", client=_openai_sdk(completions))

        with pytest.raises(ReasoningServiceError):
            asyncio.run(client.complete(system="s", prompt="p", max_tokens=10))

    def test_no_choices(self):
        completions = _FakeCompletions(SimpleNamespace(choices=[]))
        client = OpenAIReasoningClient(api_key="k", model="m", client=_openai_sdk(completions))

        with pytest.raises(ReasoningServiceError):
            asyncio.run(client.complete(system="s", prompt="p", max_tokens=10))


class TestAnthropicReasoningClient:
    def test_joins_text_blocks(self):
        message = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text='{"a": '),
                SimpleNamespace(type="tool_use", text="ignored"),
                SimpleNamespace(type="text", text="1}"),
            ]
        )
        messages = _FakeCompletions(message)
        client = AnthropicReasoningClient(api_key="k", model="m", client=SimpleNamespace(messages=messages))

        assert asyncio.run(client.complete(system="s", prompt="p", max_tokens=10)) == '{"a": 1}'
        assert messages.kwargs["system"] == "s"

    def test_sdk_error_wrapped(self):
        messages = _FakeCompletions(error=anthropic.AnthropicError("overloaded"))
        client = AnthropicReasoningClient(api_key="k", model="m", client=SimpleNamespace(messages=messages))

        with pytest.raises(ReasoningServiceError):
            asyncio.run(client.complete(system="s", prompt="p", max_tokens=10))


class TestCreateReasoningClient:
    def test_no_credential(self, settings):
        assert create_reasoning_client(None, settings) is None
        assert create_reasoning_client("  ", settings) is None

    def test_openai_provider(self, settings):
        client = create_reasoning_client("sk-test", settings)
        assert isinstance(client, OpenAIReasoningClient)
        assert client.model == "gpt-4o-mini"

    def test_anthropic_provider(self):
        settings = Settings(_env_file=None, provider="anthropic")
        client = create_reasoning_client("sk-ant-test", settings)
        assert isinstance(client, AnthropicReasoningClient)
        assert client.model == "claude-3-5-haiku-latest"
