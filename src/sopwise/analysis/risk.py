"""Probability x impact risk matrix."""

from __future__ import annotations

from typing import Dict, List, Sequence

from ..core.reports import RiskLevel, RiskReport, StepRisk
from ..core.rules import ScoreAdjustment, apply_adjustments, clamp, round_half_up
from ..core.steps import WorkflowStep

PROBABILITY_TABLE = (
    ScoreAdjustment("manual", ("manual", "enter", "input"), 0.30),
    ScoreAdjustment("decision", ("if", "check", "decide", "?"), 0.20),
    ScoreAdjustment("external-dependency", ("wait", "third party", "third-party", "external"), 0.30),
)

IMPACT_TABLE = (
    ScoreAdjustment("financial", ("payment", "invoice", "transaction"), 0.40),
    ScoreAdjustment("customer", ("customer", "client"), 0.30),
    ScoreAdjustment("compliance", ("compliance", "legal", "regulatory"), 0.40),
)

HIGH_RISK_THRESHOLD = 0.6
MEDIUM_RISK_THRESHOLD = 0.3


def risk_probability(text: str) -> float:
    return clamp(apply_adjustments(text, 0.20, PROBABILITY_TABLE))


def risk_impact(text: str) -> float:
    return clamp(apply_adjustments(text, 0.30, IMPACT_TABLE))


def classify_risk(score: float) -> RiskLevel:
    """Bucket a risk score: above 0.6 is high, above 0.3 is medium."""
    if score > HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score > MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class RiskAnalyzer:
    def analyze(self, steps: Sequence[WorkflowStep]) -> RiskReport:
        if not steps:
            return RiskReport()

        buckets: Dict[RiskLevel, List[StepRisk]] = {level: [] for level in RiskLevel}
        total = 0.0
        for index, step in enumerate(steps):
            probability = risk_probability(step.text)
            impact = risk_impact(step.text)
            score = probability * impact
            total += score
            level = classify_risk(score)
            buckets[level].append(
                StepRisk(
                    step=step.text,
                    index=index,
                    probability=probability,
                    impact=impact,
                    risk_score=clamp(score),
                    level=level,
                )
            )

        recommendations: List[str] = []
        if buckets[RiskLevel.HIGH]:
            recommendations.append(
                f"{len(buckets[RiskLevel.HIGH])} high-risk steps require mitigation plans"
            )
        if len(buckets[RiskLevel.MEDIUM]) > 2:
            recommendations.append("Consider adding validation or approval steps")

        return RiskReport(
            total_risk_score=round_half_up(100 * total / len(steps)),
            high_risk=buckets[RiskLevel.HIGH],
            medium_risk=buckets[RiskLevel.MEDIUM],
            low_risk=buckets[RiskLevel.LOW],
            recommendations=recommendations,
        )
