"""Reasoning service clients.

A reasoning client sends one system + user prompt pair and returns the raw
text answer. Both SDK adapters re-raise provider errors as
`ReasoningServiceError` so callers only handle one exception type.
"""

from __future__ import annotations

from typing import Any, List, Optional, Protocol

import anthropic
import openai

from ..config.settings import Settings
from ..core.exceptions import ReasoningServiceError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ReasoningClient(Protocol):
    async def complete(self, *, system: str, prompt: str, max_tokens: int) -> str:
        ...


class OpenAIReasoningClient:
    """Chat-completions adapter (`openai.AsyncOpenAI`) asking for JSON output."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        client: Any = None,
    ):
        self.model = model
        self._client = client or openai.AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def complete(self, *, system: str, prompt: str, max_tokens: int) -> str:
        try:
            resp = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as exc:
            raise ReasoningServiceError(
                "OpenAI request failed",
                context={"model": self.model, "error": str(exc)},
            ) from exc

        choices = getattr(resp, "choices", None) or []
        if not choices:
            raise ReasoningServiceError("OpenAI response had no choices", context={"model": self.model})
        return choices[0].message.content or ""


class AnthropicReasoningClient:
    """Messages API adapter (`anthropic.AsyncAnthropic`)."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        client: Any = None,
    ):
        self.model = model
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key, base_url=base_url)

    async def complete(self, *, system: str, prompt: str, max_tokens: int) -> str:
        try:
            message = await self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.AnthropicError as exc:
            raise ReasoningServiceError(
                "Anthropic request failed",
                context={"model": self.model, "error": str(exc)},
            ) from exc

        parts: List[str] = []
        for block in getattr(message, "content", None) or []:
            if getattr(block, "type", None) == "text":
                parts.append(block.text)
        return "".join(parts)


def create_reasoning_client(
    credential: Optional[str], settings: Settings
) -> Optional[ReasoningClient]:
    """Build the configured client, or None when no credential was supplied."""
    if not credential or not credential.strip():
        return None
    model = settings.resolved_model
    logger.debug("Creating reasoning client", extra={"provider": settings.provider, "model": model})
    if settings.provider == "anthropic":
        return AnthropicReasoningClient(api_key=credential, model=model, base_url=settings.base_url)
    return OpenAIReasoningClient(api_key=credential, model=model, base_url=settings.base_url)
