"""Weighted efficiency scoring.

Each step gets four factors (complexity, time, error rate, business impact)
from additive keyword tables. The overall score is the impact-weighted mean
of per-step efficiency, so a slow step that matters to customers counts more
than a slow internal filing step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from ..core.reports import EfficiencyReport, EfficiencySubscores, EfficiencySummary, StepEfficiency
from ..core.rules import ScoreAdjustment, apply_adjustments, clamp, contains_any, round_half_up
from ..core.steps import StepKind, WorkflowStep

CONDITIONAL_KEYWORDS = ("if", "check", "?")
CUSTOMER_KEYWORDS = ("customer", "client", "user")
FINANCIAL_KEYWORDS = ("pay", "bill", "invoice", "cost", "transaction")
APPROVAL_KEYWORDS = ("approve", "authorize", "sign")
COMPLIANCE_KEYWORDS = ("complian", "security", "audit", "legal", "regulat")
LOW_IMPACT_KEYWORDS = ("file", "internal", "log", "record")
VERIFICATION_KEYWORDS = ("verify", "check", "validate")

HIGH_IMPACT_KEYWORDS = (
    CUSTOMER_KEYWORDS + FINANCIAL_KEYWORDS + APPROVAL_KEYWORDS + COMPLIANCE_KEYWORDS
)

COMPLEXITY_TABLE = (
    ScoreAdjustment("conditional", CONDITIONAL_KEYWORDS, 0.30),
    ScoreAdjustment("joining-words", ("and", "then", "also", "while", "during"), 0.10, per_keyword=True),
    ScoreAdjustment(
        "technical-verbs",
        ("verify", "validate", "authenticate", "configure", "integrate", "analyze"),
        0.05,
        per_keyword=True,
    ),
)

TIME_TABLE = (
    ScoreAdjustment("conditional", CONDITIONAL_KEYWORDS, 3),
    ScoreAdjustment("manual-entry", ("enter", "input", "approve"), 5),
    ScoreAdjustment("review", ("review", "analyze", "investigate"), 10),
    ScoreAdjustment("communication", ("call", "email", "notify", "contact"), 5),
    ScoreAdjustment("waiting", ("wait", "schedule", "queue"), 15),
)

ERROR_TABLE = (
    ScoreAdjustment("manual-entry", ("enter", "input", "type"), 0.15),
    ScoreAdjustment("calculation", ("calculate", "compute", "add up"), 0.10),
    ScoreAdjustment("manual", ("manual",), 0.10),
)

IMPACT_TABLE = (
    ScoreAdjustment("customer", CUSTOMER_KEYWORDS, 0.35),
    ScoreAdjustment("financial", FINANCIAL_KEYWORDS, 0.35),
    ScoreAdjustment("approval", APPROVAL_KEYWORDS, 0.20),
    ScoreAdjustment("compliance", COMPLIANCE_KEYWORDS, 0.30),
    ScoreAdjustment("error", ("error", "fail", "exception"), 0.15),
)


@dataclass(frozen=True)
class StepFactors:
    complexity: float
    minutes: float
    error_rate: float
    impact: float

    @property
    def efficiency(self) -> float:
        return (
            (1 - self.complexity * 0.3)
            * (1 - min(self.minutes / 60, 1) * 0.2)
            * (1 - self.error_rate * 0.5)
        )


def step_complexity(text: str) -> float:
    score = apply_adjustments(text, 0.30, COMPLEXITY_TABLE)
    if len(text) > 50:
        score += 0.10
    if len(text) > 100:
        score += 0.10
    return clamp(score)


def estimated_minutes(text: str, complexity: float) -> float:
    return apply_adjustments(text, 2, TIME_TABLE) + complexity * 10


def error_rate(text: str, complexity: float) -> float:
    rate = apply_adjustments(text, 0.05, ERROR_TABLE)
    if not contains_any(text, VERIFICATION_KEYWORDS):
        rate += 0.05
    rate += complexity * 0.1
    return clamp(rate, 0.0, 0.5)


def business_impact(step: WorkflowStep) -> float:
    text = step.text
    impact = 0.90 if step.kind in (StepKind.START, StepKind.END) else 0.30
    if step.kind == StepKind.DECISION or contains_any(text, CONDITIONAL_KEYWORDS):
        impact += 0.25
    impact = apply_adjustments(text, impact, IMPACT_TABLE)
    if contains_any(text, LOW_IMPACT_KEYWORDS) and not contains_any(text, HIGH_IMPACT_KEYWORDS):
        return 0.20
    return clamp(impact)


def step_factors(step: WorkflowStep) -> StepFactors:
    complexity = step_complexity(step.text)
    return StepFactors(
        complexity=complexity,
        minutes=estimated_minutes(step.text, complexity),
        error_rate=error_rate(step.text, complexity),
        impact=business_impact(step),
    )


class EfficiencyScorer:
    """Compute an `EfficiencyReport` for a step list."""

    def score(self, steps: Sequence[WorkflowStep]) -> EfficiencyReport:
        if not steps:
            return EfficiencyReport()

        per_step: List[StepEfficiency] = []
        for index, step in enumerate(steps):
            factors = step_factors(step)
            efficiency = factors.efficiency
            per_step.append(
                StepEfficiency(
                    step=step.text,
                    index=index,
                    complexity=factors.complexity,
                    estimated_minutes=factors.minutes,
                    error_rate=factors.error_rate,
                    business_impact=factors.impact,
                    step_efficiency=efficiency,
                    weighted_score=efficiency * factors.impact,
                )
            )

        count = len(per_step)
        total_impact = sum(s.business_impact for s in per_step)
        total_weighted = sum(s.weighted_score for s in per_step)
        total_minutes = sum(s.estimated_minutes for s in per_step)
        avg_complexity = sum(s.complexity for s in per_step) / count
        avg_error = sum(s.error_rate for s in per_step) / count

        overall = round_half_up(100 * total_weighted / total_impact) if total_impact else 0
        overall = int(clamp(overall, 0, 100))

        return EfficiencyReport(
            overall_score=overall,
            subscores=EfficiencySubscores(
                complexity=round_half_up(100 * (1 - avg_complexity)),
                time=round_half_up(max(0.0, 100 - 2 * total_minutes / count)),
                quality=round_half_up(100 * (1 - avg_error)),
                impact=round_half_up(100 * total_impact / count),
            ),
            per_step=per_step,
            total_estimated_minutes=round_half_up(total_minutes),
            average_error_rate_percent=round_half_up(100 * avg_error),
            recommendations=self._recommendations(per_step, overall),
            summary=self._summary(per_step),
        )

    @staticmethod
    def _recommendations(per_step: Sequence[StepEfficiency], overall: int) -> List[str]:
        recommendations: List[str] = []
        complex_steps = sum(1 for s in per_step if s.complexity > 0.7)
        if complex_steps:
            recommendations.append(f"Break down {complex_steps} complex steps into simpler sub-steps")
        error_prone = sum(1 for s in per_step if s.error_rate > 0.2)
        if error_prone:
            recommendations.append(f"Add validation checks to {error_prone} error-prone steps")
        slow_steps = sum(1 for s in per_step if s.estimated_minutes > 15)
        if slow_steps:
            recommendations.append(f"Consider automation for {slow_steps} time-consuming steps")

        if overall < 60:
            recommendations.append(
                "Workflow needs significant optimization - consider redesigning process flow"
            )
        elif overall < 80:
            recommendations.append("Workflow is functional but has room for improvement")
        return recommendations

    @staticmethod
    def _summary(per_step: Sequence[StepEfficiency]) -> EfficiencySummary:
        # sorted() is stable, so equal scores keep list order
        best = sorted(per_step, key=lambda s: s.weighted_score, reverse=True)[:3]
        worst = sorted(per_step, key=lambda s: s.weighted_score)[:3]
        return EfficiencySummary(
            best_steps=[s.step for s in best],
            worst_steps=[s.step for s in worst],
            high_risk_steps=[s.step for s in per_step if s.error_rate > 0.2],
        )
