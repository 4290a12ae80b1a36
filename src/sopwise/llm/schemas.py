"""Validated response schemas for reasoning service answers."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.rules import Priority


class DuplicateJudgment(BaseModel):
    """Answer to "do these two steps describe the same action?"."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    are_duplicates: bool = Field(default=False, alias="areDuplicates")
    similarity: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""


class OrderingJudgment(BaseModel):
    """Answer to "is this list in a sensible order?"."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    needs_reordering: bool = Field(alias="needsReordering")
    suggested_steps: List[str] = Field(default_factory=list, alias="suggestedSteps")
    reasoning: str = ""
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)

    @field_validator("suggested_steps", mode="before")
    @classmethod
    def coerce_step_texts(cls, value):
        # Some models answer with step objects instead of plain strings.
        if not isinstance(value, list):
            return value
        texts: List[str] = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("text") or item.get("name") or ""
            text = str(item).strip()
            if text:
                texts.append(text)
        return texts


class MissingStep(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    position: int = 0
    suggestion: str = Field(min_length=1)
    reason: str = ""
    priority: Priority = Priority.MEDIUM
    impact: str = ""

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


class GapJudgment(BaseModel):
    """Answer to "which steps are missing from this list?"."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    domain: str = "general"
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    missing_steps: List[MissingStep] = Field(default_factory=list, alias="missingSteps")
