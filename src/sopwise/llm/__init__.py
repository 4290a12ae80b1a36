"""External reasoning service (LLM) integration."""

from .client import (
    AnthropicReasoningClient,
    OpenAIReasoningClient,
    ReasoningClient,
    create_reasoning_client,
)
from .parsing import parse_json_object
from .schemas import DuplicateJudgment, OrderingJudgment
from .service import ReasoningService

__all__ = [
    "AnthropicReasoningClient",
    "DuplicateJudgment",
    "OpenAIReasoningClient",
    "OrderingJudgment",
    "ReasoningClient",
    "ReasoningService",
    "create_reasoning_client",
    "parse_json_object",
]
