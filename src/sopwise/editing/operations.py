"""Structured step edits.

Edits are validated pydantic records discriminated by ``op``. Step numbers
are 1-based, as shown to users. Applying an edit never mutates the input list;
it returns a new list with ordinals renumbered ``1..n``.
"""

from __future__ import annotations

import json
from typing import Annotated, List, Literal, Optional, Sequence, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from ..core.exceptions import EditPlanError, InvalidEditError, ReasoningServiceError
from ..core.reports import ComprehensiveAnalysis, OrderingIssue
from ..core.steps import WorkflowStep, infer_kind, renumber
from ..llm.parsing import parse_json_object

MERGE_SEPARATOR = " AND "


class _Edit(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


def _clean_text(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("step text must not be empty")
    return stripped


StepText = Annotated[str, AfterValidator(_clean_text)]


class AddStep(_Edit):
    """Insert a new step so that it becomes step `position` (append when omitted or 0)."""
    op: Literal["add"] = "add"
    text: StepText
    position: Optional[int] = Field(default=None, ge=0)


class RemoveStep(_Edit):
    op: Literal["remove"] = "remove"
    step: int = Field(ge=1)


class MoveStep(_Edit):
    op: Literal["move"] = "move"
    from_step: int = Field(ge=1)
    to_step: int = Field(ge=1)


class EditStep(_Edit):
    op: Literal["edit"] = "edit"
    step: int = Field(ge=1)
    text: StepText


class MergeSteps(_Edit):
    """Append the text of `second` to `first` and drop `second`."""
    op: Literal["merge"] = "merge"
    first: int = Field(ge=1)
    second: int = Field(ge=1)

    @model_validator(mode="after")
    def check_distinct(self) -> "MergeSteps":
        if self.first == self.second:
            raise ValueError("cannot merge a step with itself")
        return self


class SplitStep(_Edit):
    op: Literal["split"] = "split"
    step: int = Field(ge=1)
    first_text: StepText
    second_text: StepText


StepEdit = Annotated[
    Union[AddStep, RemoveStep, MoveStep, EditStep, MergeSteps, SplitStep],
    Field(discriminator="op"),
]

_STEP_EDIT_ADAPTER: TypeAdapter[StepEdit] = TypeAdapter(StepEdit)


class EditPlan(BaseModel):
    """Edits applied in order; each edit sees the list produced by the previous one."""

    model_config = ConfigDict(frozen=True)

    edits: List[StepEdit] = Field(default_factory=list)
    rationale: str = ""


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------


def parse_step_edit(payload: dict) -> StepEdit:
    try:
        return _STEP_EDIT_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise EditPlanError("Invalid step edit", context={"errors": str(exc)[:500]}) from exc


def parse_edit_plan(text: str) -> EditPlan:
    """Parse an edit plan from collaborator output.

    Accepts ``{"edits": [...], "rationale": "..."}`` (optionally wrapped in
    prose or code fences) or a bare JSON array of edits.

    Raises:
        EditPlanError: if no valid plan can be recovered.
    """
    payload: object
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        try:
            payload = parse_json_object(text)
        except ReasoningServiceError as exc:
            raise EditPlanError("Edit plan is not valid JSON", context={"preview": text[:200]}) from exc

    if isinstance(payload, list):
        payload = {"edits": payload}
    if not isinstance(payload, dict):
        raise EditPlanError("Edit plan must be a JSON object or array", context={"preview": text[:200]})

    try:
        return EditPlan.model_validate(payload)
    except ValidationError as exc:
        raise EditPlanError("Invalid edit plan", context={"errors": str(exc)[:500]}) from exc


# -----------------------------------------------------------------------------
# Applying edits
# -----------------------------------------------------------------------------


def _check_number(number: int, count: int, *, field: str) -> int:
    if not 1 <= number <= count:
        raise InvalidEditError(
            f"Step {number} does not exist",
            context={"field": field, "step": number, "step_count": count},
        )
    return number - 1


def _new_step(text: str) -> WorkflowStep:
    return WorkflowStep(text=text, kind=infer_kind(text))


def apply_edit(steps: Sequence[WorkflowStep], edit: StepEdit) -> List[WorkflowStep]:
    """Return a new step list with `edit` applied.

    Raises:
        InvalidEditError: if the edit references a step number outside the list.
    """
    result = list(steps)
    count = len(result)

    if isinstance(edit, AddStep):
        if edit.position is None or edit.position == 0:
            result.append(_new_step(edit.text))
        elif edit.position > count + 1:
            raise InvalidEditError(
                f"Cannot insert at position {edit.position}",
                context={"position": edit.position, "step_count": count},
            )
        else:
            result.insert(edit.position - 1, _new_step(edit.text))

    elif isinstance(edit, RemoveStep):
        del result[_check_number(edit.step, count, field="step")]

    elif isinstance(edit, MoveStep):
        source = _check_number(edit.from_step, count, field="from_step")
        target = _check_number(edit.to_step, count, field="to_step")
        moved = result.pop(source)
        result.insert(target, moved)

    elif isinstance(edit, EditStep):
        idx = _check_number(edit.step, count, field="step")
        result[idx] = result[idx].model_copy(update={"text": edit.text})

    elif isinstance(edit, MergeSteps):
        first = _check_number(edit.first, count, field="first")
        second = _check_number(edit.second, count, field="second")
        merged = f"{result[first].text}{MERGE_SEPARATOR}{result[second].text}"
        result[first] = result[first].model_copy(update={"text": merged})
        del result[second]

    elif isinstance(edit, SplitStep):
        idx = _check_number(edit.step, count, field="step")
        result[idx] = result[idx].model_copy(update={"text": edit.first_text})
        result.insert(idx + 1, _new_step(edit.second_text))

    else:
        raise InvalidEditError("Unsupported edit", context={"type": type(edit).__name__})

    return renumber(result)


def apply_edits(steps: Sequence[WorkflowStep], edits: Union[EditPlan, Sequence[StepEdit]]) -> List[WorkflowStep]:
    sequence = edits.edits if isinstance(edits, EditPlan) else edits
    result = list(steps)
    for edit in sequence:
        result = apply_edit(result, edit)
    return renumber(result)


# -----------------------------------------------------------------------------
# Candidate edits from an analysis
# -----------------------------------------------------------------------------


def _moves_for(issue: OrderingIssue) -> List[MoveStep]:
    """Moves that turn the original order into the suggested one.

    Returns no moves when the suggestion is not a permutation of the original
    steps (for example when a reasoning service rewrote step texts).
    """
    current = [step.id for step in issue.original_steps]
    target = [step.id for step in issue.suggested_steps]
    if sorted(current) != sorted(target):
        return []

    moves: List[MoveStep] = []
    for position, step_id in enumerate(target):
        source = current.index(step_id)
        if source == position:
            continue
        current.insert(position, current.pop(source))
        moves.append(MoveStep(from_step=source + 1, to_step=position + 1))
    return moves


def edits_from_analysis(analysis: ComprehensiveAnalysis) -> List[EditPlan]:
    """Turn report findings into candidate plans.

    Every plan applies to `analysis.steps` on its own; plans are alternatives,
    not a sequence.
    """
    plans: List[EditPlan] = []
    if analysis.gaps is not None:
        for gap in analysis.gaps.internal_gaps:
            plans.append(
                EditPlan(
                    edits=[AddStep(text=gap.suggested_text, position=gap.insertion_position + 1)],
                    rationale=gap.reason,
                )
            )
    for pair in analysis.duplicates:
        plans.append(
            EditPlan(
                edits=[MergeSteps(first=pair.index_a + 1, second=pair.index_b + 1)],
                rationale=pair.rationale or "Duplicate steps",
            )
        )
    if analysis.ordering is not None:
        moves = _moves_for(analysis.ordering)
        if moves:
            plans.append(EditPlan(edits=moves, rationale=analysis.ordering.reasoning))
    return plans
