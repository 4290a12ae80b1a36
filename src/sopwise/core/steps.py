"""Workflow step model and step-list construction.

A step list is the only input every analyzer reads. Steps are frozen pydantic
models; anything that reorders or edits a list builds new step objects with
`model_copy` instead of mutating the caller's list.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import InvalidStepListError
from .rules import contains_any


def generate_step_id() -> str:
    """Generate a unique ID for a step."""
    return f"step-{uuid4().hex[:12]}"


class StepKind(str, Enum):
    """Role of a step inside the process."""
    START = "start"
    PROCESS = "process"
    DECISION = "decision"
    END = "end"


class WorkflowStep(BaseModel):
    """One textual line item of an ordered business process."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=generate_step_id)
    text: str
    kind: StepKind = StepKind.PROCESS
    ordinal: int = 0
    details: Tuple[str, ...] = ()

    @field_validator("text")
    @classmethod
    def validate_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("step text must not be empty")
        return stripped

    @property
    def lowered(self) -> str:
        return self.text.lower()


StepInput = Union[str, WorkflowStep, Mapping[str, Any]]


# -----------------------------------------------------------------------------
# Kind inference
# -----------------------------------------------------------------------------

DECISION_MARKERS = ("if", "?", "decision point", "qualification")
START_MARKERS = ("start", "begin")
END_MARKERS = ("end", "complete")


def infer_kind(text: str) -> StepKind:
    """Guess the step kind from its wording."""
    if contains_any(text, DECISION_MARKERS):
        return StepKind.DECISION
    if contains_any(text, START_MARKERS):
        return StepKind.START
    if contains_any(text, END_MARKERS):
        return StepKind.END
    return StepKind.PROCESS


# -----------------------------------------------------------------------------
# List construction
# -----------------------------------------------------------------------------


def build_steps(items: Iterable[StepInput]) -> List[WorkflowStep]:
    """Coerce caller input into a validated step list.

    Strings become steps with an inferred kind; blank strings are dropped.
    Mappings are validated as `WorkflowStep` payloads (a legacy `type` key is
    accepted for `kind`, missing kinds are inferred, unknown keys are ignored).
    If any step lacks an ordinal the whole list is numbered by position.

    Raises:
        InvalidStepListError: if an item cannot be coerced or ordinals are not
            unique and strictly increasing.
    """
    steps: List[WorkflowStep] = []
    for position, item in enumerate(items):
        step = _coerce_step(item, position)
        if step is not None:
            steps.append(step)

    if any(step.ordinal <= 0 for step in steps):
        steps = [step.model_copy(update={"ordinal": idx}) for idx, step in enumerate(steps, 1)]

    ordinals = [step.ordinal for step in steps]
    for previous, current in zip(ordinals, ordinals[1:]):
        if current <= previous:
            raise InvalidStepListError(
                "Step ordinals must be unique and strictly increasing",
                context={"ordinals": ordinals},
            )
    return steps


_STEP_FIELDS = ("id", "kind", "ordinal", "details")
_KIND_VALUES = {kind.value for kind in StepKind}


def _coerce_step(item: StepInput, position: int) -> Optional[WorkflowStep]:
    if isinstance(item, WorkflowStep):
        return item
    if isinstance(item, str):
        if not item.strip():
            return None
        return WorkflowStep(text=item, kind=infer_kind(item))
    if isinstance(item, Mapping):
        text = str(item.get("text") or item.get("name") or "")
        if not text.strip():
            return None
        payload = {key: item[key] for key in _STEP_FIELDS if item.get(key) is not None}
        payload["text"] = text
        legacy_kind = item.get("type")
        if "kind" not in payload and legacy_kind in _KIND_VALUES:
            payload["kind"] = legacy_kind
        payload.setdefault("kind", infer_kind(text))
        try:
            return WorkflowStep.model_validate(payload)
        except ValidationError as exc:
            raise InvalidStepListError(
                "Invalid step payload",
                context={"position": position, "error": str(exc)},
            ) from exc
    raise InvalidStepListError(
        "Unsupported step type",
        context={"position": position, "type": type(item).__name__},
    )


def renumber(steps: Sequence[WorkflowStep]) -> List[WorkflowStep]:
    """Return copies of `steps` with ordinals 1..n."""
    return [
        step if step.ordinal == idx else step.model_copy(update={"ordinal": idx})
        for idx, step in enumerate(steps, 1)
    ]


# -----------------------------------------------------------------------------
# SOP text
# -----------------------------------------------------------------------------

_NUMBERED_LINE = re.compile(r"^\s*(\d+)[.)]\s*(.+)$")
_BULLET_LINE = re.compile(r"^\s*[•\-*]\s*(.+)$")


def parse_steps(sop_text: str) -> List[WorkflowStep]:
    """Parse numbered SOP lines (``1. text`` / ``1) text``) into steps.

    Bullet lines below a numbered line are attached to that step as `details`.
    Other lines are ignored.
    """
    if not sop_text:
        return []

    parsed: List[Tuple[int, str, List[str]]] = []
    for line in sop_text.splitlines():
        if not line.strip():
            continue
        match = _NUMBERED_LINE.match(line)
        if match:
            parsed.append((int(match.group(1)), match.group(2).strip(), []))
            continue
        bullet = _BULLET_LINE.match(line)
        if bullet and parsed:
            detail = bullet.group(1).strip()
            if detail:
                parsed[-1][2].append(detail)

    return [
        WorkflowStep(
            id=f"step-{number}",
            text=text,
            kind=infer_kind(text),
            ordinal=idx,
            details=tuple(details),
        )
        for idx, (number, text, details) in enumerate(parsed, 1)
    ]


def steps_to_text(steps: Sequence[WorkflowStep]) -> str:
    """Render steps back into numbered SOP text."""
    return "\n".join(f"{idx}. {step.text}" for idx, step in enumerate(steps, 1))
