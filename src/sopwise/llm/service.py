"""Reasoning service facade used by the analyzers.

Every call is bounded by a timeout and returns None on any collaborator
failure so callers can fall back to their local heuristic.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.exceptions import ReasoningServiceError
from ..utils.logging import get_logger
from .client import ReasoningClient
from .parsing import parse_json_object
from .prompts import (
    DUPLICATE_SYSTEM_PROMPT,
    GAP_SYSTEM_PROMPT,
    ORDERING_SYSTEM_PROMPT,
    duplicate_prompt,
    gap_prompt,
    ordering_prompt,
)
from .schemas import DuplicateJudgment, GapJudgment, OrderingJudgment

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ReasoningService:
    def __init__(
        self,
        client: ReasoningClient,
        *,
        timeout_seconds: float = 20.0,
        max_tokens: int = 1000,
    ):
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens

    async def judge_duplicates(self, step_a: str, step_b: str) -> Optional[DuplicateJudgment]:
        return await self._ask(
            DuplicateJudgment,
            system=DUPLICATE_SYSTEM_PROMPT,
            prompt=duplicate_prompt(step_a, step_b),
            max_tokens=min(self.max_tokens, 150),
            purpose="duplicates",
        )

    async def judge_ordering(self, step_texts: Sequence[str]) -> Optional[OrderingJudgment]:
        return await self._ask(
            OrderingJudgment,
            system=ORDERING_SYSTEM_PROMPT,
            prompt=ordering_prompt(step_texts),
            max_tokens=self.max_tokens,
            purpose="ordering",
        )

    async def judge_gaps(self, step_texts: Sequence[str]) -> Optional[GapJudgment]:
        return await self._ask(
            GapJudgment,
            system=GAP_SYSTEM_PROMPT,
            prompt=gap_prompt(step_texts),
            max_tokens=self.max_tokens,
            purpose="gaps",
        )

    async def _ask(
        self,
        schema: Type[ModelT],
        *,
        system: str,
        prompt: str,
        max_tokens: int,
        purpose: str,
    ) -> Optional[ModelT]:
        log_extra: Dict[str, Any] = {"purpose": purpose}
        try:
            text = await asyncio.wait_for(
                self.client.complete(system=system, prompt=prompt, max_tokens=max_tokens),
                timeout=self.timeout_seconds,
            )
            return schema.model_validate(parse_json_object(text))
        except asyncio.TimeoutError:
            logger.warning(
                "Reasoning request timed out",
                extra={**log_extra, "timeout_seconds": self.timeout_seconds},
            )
        except ReasoningServiceError as exc:
            logger.warning("Reasoning request failed", extra={**log_extra, "error": str(exc)})
        except ValidationError as exc:
            logger.warning(
                "Reasoning response did not match schema",
                extra={**log_extra, "error": str(exc)[:500]},
            )
        except Exception as exc:
            logger.warning(
                "Reasoning request raised unexpectedly",
                extra={**log_extra, "error": str(exc)},
                exc_info=True,
            )
        return None
