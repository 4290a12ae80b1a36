"""Step model, keyword rules, report models and exceptions."""

from .exceptions import (
    ConfigurationError,
    EditError,
    EditPlanError,
    InvalidEditError,
    InvalidStepListError,
    ReasoningServiceError,
    SopwiseException,
)
from .reports import ComprehensiveAnalysis, summarize
from .rules import KeywordRule, Priority, ScoreAdjustment
from .steps import StepKind, WorkflowStep, build_steps, parse_steps, steps_to_text

__all__ = [
    "ComprehensiveAnalysis",
    "ConfigurationError",
    "EditError",
    "EditPlanError",
    "InvalidEditError",
    "InvalidStepListError",
    "KeywordRule",
    "Priority",
    "ReasoningServiceError",
    "ScoreAdjustment",
    "SopwiseException",
    "StepKind",
    "WorkflowStep",
    "build_steps",
    "parse_steps",
    "steps_to_text",
    "summarize",
]
