"""Structured edits over step lists."""

from .operations import (
    AddStep,
    EditPlan,
    EditStep,
    MergeSteps,
    MoveStep,
    RemoveStep,
    SplitStep,
    StepEdit,
    apply_edit,
    apply_edits,
    edits_from_analysis,
    parse_edit_plan,
    parse_step_edit,
)

__all__ = [
    "AddStep",
    "EditPlan",
    "EditStep",
    "MergeSteps",
    "MoveStep",
    "RemoveStep",
    "SplitStep",
    "StepEdit",
    "apply_edit",
    "apply_edits",
    "edits_from_analysis",
    "parse_edit_plan",
    "parse_step_edit",
]
