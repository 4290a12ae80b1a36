"""Shared test fixtures.

Reasoning clients are faked so no test touches the network.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

import pytest

from sopwise.config.settings import Settings
from sopwise.core.exceptions import ReasoningServiceError
from sopwise.llm.service import ReasoningService

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

Responder = Union[str, Callable[[str, str], str]]


class FakeReasoningClient:
    """In-memory `ReasoningClient`.

    `response` is either a fixed string or a callable ``(system, prompt) -> str``.
    """

    def __init__(
        self,
        response: Responder = "{}",
        *,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls: List[str] = []

    async def complete(self, *, system: str, prompt: str, max_tokens: int) -> str:
        self.calls.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if callable(self.response):
            return self.response(system, prompt)
        return self.response


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local `.env` file."""
    return Settings(_env_file=None)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def failing_client() -> FakeReasoningClient:
    return FakeReasoningClient(error=ReasoningServiceError("service unavailable"))


@pytest.fixture
def make_client():
    """Factory for `FakeReasoningClient` instances."""
    return FakeReasoningClient


@pytest.fixture
def make_reasoning():
    """Build a `ReasoningService` around a fake client."""

    def _make(client: FakeReasoningClient, *, timeout_seconds: float = 1.0) -> ReasoningService:
        return ReasoningService(client, timeout_seconds=timeout_seconds)

    return _make
