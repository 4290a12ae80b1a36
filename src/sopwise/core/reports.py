"""Report models produced by the analyzers.

These models are the output contract consumed by dashboards and by the edit
collaborator. They are built fresh on every run and frozen afterwards.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .rules import Priority
from .steps import WorkflowStep


class ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True)


JudgmentSource = Literal["heuristic", "reasoning"]


# -----------------------------------------------------------------------------
# Duplicates
# -----------------------------------------------------------------------------


class DuplicatePair(ReportModel):
    """Two steps judged to describe the same action."""
    step_a: WorkflowStep
    step_b: WorkflowStep
    index_a: int
    index_b: int
    similarity: float = Field(ge=0.0, le=1.0)
    rationale: str = ""
    source: JudgmentSource = "heuristic"


# -----------------------------------------------------------------------------
# Efficiency
# -----------------------------------------------------------------------------


class EfficiencySubscores(ReportModel):
    complexity: int = 0
    time: int = 0
    quality: int = 0
    impact: int = 0


class StepEfficiency(ReportModel):
    """Per-step efficiency factors."""
    step: str
    index: int
    complexity: float
    estimated_minutes: float
    error_rate: float
    business_impact: float
    step_efficiency: float
    weighted_score: float


class EfficiencySummary(ReportModel):
    best_steps: List[str] = Field(default_factory=list)
    worst_steps: List[str] = Field(default_factory=list)
    high_risk_steps: List[str] = Field(default_factory=list)


class EfficiencyReport(ReportModel):
    """Weighted efficiency of a workflow (scores are 0-100)."""
    overall_score: int = Field(default=0, ge=0, le=100)
    subscores: EfficiencySubscores = Field(default_factory=EfficiencySubscores)
    per_step: List[StepEfficiency] = Field(default_factory=list)
    total_estimated_minutes: int = 0
    average_error_rate_percent: int = 0
    recommendations: List[str] = Field(default_factory=list)
    summary: EfficiencySummary = Field(default_factory=EfficiencySummary)


# -----------------------------------------------------------------------------
# Risk
# -----------------------------------------------------------------------------


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class StepRisk(ReportModel):
    step: str
    index: int
    probability: float = Field(ge=0.0, le=1.0)
    impact: float = Field(ge=0.0, le=1.0)
    risk_score: float = Field(ge=0.0, le=1.0)
    level: RiskLevel


class RiskReport(ReportModel):
    total_risk_score: int = 0
    high_risk: List[StepRisk] = Field(default_factory=list)
    medium_risk: List[StepRisk] = Field(default_factory=list)
    low_risk: List[StepRisk] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Ordering
# -----------------------------------------------------------------------------


class Dependency(ReportModel):
    from_index: int
    to_index: int
    reason: str


class DependencyReport(ReportModel):
    """Lightweight sequencing hints (advisory strings, no reordering)."""
    needs_reordering: bool = False
    dependencies: List[Dependency] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


class OrderingViolation(ReportModel):
    """A step pair whose order contradicts an ordering rule."""
    rule_id: str
    earlier_index: int
    later_index: int
    earlier_stage: str
    later_stage: str
    reason: str
    confidence: float


class OrderingIssue(ReportModel):
    """A proposed reordering. Absent (None) when no violation was found."""
    original_steps: List[WorkflowStep]
    suggested_steps: List[WorkflowStep]
    reasoning: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: JudgmentSource = "heuristic"
    violations: List[OrderingViolation] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Gaps
# -----------------------------------------------------------------------------


class GapSuggestion(ReportModel):
    """A missing step inferred from the step list itself."""
    insertion_position: int
    suggested_text: str
    reason: str
    impact: str = ""
    priority: Priority
    rule_id: str
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    origin: JudgmentSource = "heuristic"
    source: Literal["internal"] = "internal"


class IndustrySuggestionSet(ReportModel):
    """Generic best practices for the detected industry.

    These are not derived from the caller's steps and are tagged as external.
    """
    industry: str = "general"
    practices: List[str] = Field(default_factory=list)
    matched_keywords: List[str] = Field(default_factory=list)
    source: Literal["external"] = "external"


class GapSummary(ReportModel):
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class GapReport(ReportModel):
    internal_gaps: List[GapSuggestion] = Field(default_factory=list)
    external_practices: IndustrySuggestionSet = Field(default_factory=IndustrySuggestionSet)

    @computed_field
    @property
    def summary(self) -> GapSummary:
        counts = {priority: 0 for priority in Priority}
        for gap in self.internal_gaps:
            counts[gap.priority] += 1
        return GapSummary(
            total=len(self.internal_gaps),
            critical=counts[Priority.CRITICAL],
            high=counts[Priority.HIGH],
            medium=counts[Priority.MEDIUM],
            low=counts[Priority.LOW],
        )


# -----------------------------------------------------------------------------
# Combined report
# -----------------------------------------------------------------------------


class ComprehensiveAnalysis(ReportModel):
    """Everything the engine knows about one step list."""
    workflow_name: str
    steps: List[WorkflowStep] = Field(default_factory=list)
    duplicates: List[DuplicatePair] = Field(default_factory=list)
    efficiency: Optional[EfficiencyReport] = None
    risks: Optional[RiskReport] = None
    dependencies: Optional[DependencyReport] = None
    gaps: Optional[GapReport] = None
    ordering: Optional[OrderingIssue] = None
    timestamp: datetime
    error: Optional[str] = None


def summarize(analysis: ComprehensiveAnalysis) -> List[str]:
    """Headline lines for a dashboard."""
    lines: List[str] = []
    if analysis.efficiency is not None:
        lines.append(f"Overall Efficiency: {analysis.efficiency.overall_score}/100")
    if analysis.duplicates:
        lines.append(f"Found {len(analysis.duplicates)} potential duplicate steps")
    if analysis.risks is not None and analysis.risks.high_risk:
        lines.append(f"{len(analysis.risks.high_risk)} high-risk steps identified")
    if analysis.gaps is not None and analysis.gaps.internal_gaps:
        lines.append(f"{analysis.gaps.summary.total} potential gaps detected")
    if analysis.ordering is not None:
        lines.append("Step order can be improved")
    if not lines:
        lines.append("Workflow looks good! No major issues detected.")
    return lines
