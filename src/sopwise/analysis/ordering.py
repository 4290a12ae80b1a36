"""Step ordering analysis.

Two passes share this module:

- `analyze_dependencies` is a cheap scan of neighbouring steps for sequencing
  markers and for validation that follows the action it should guard. It only
  produces advisory strings.
- `analyze` classifies steps into ordered stages of rule families (food,
  hygiene, work, ...) and proposes a full reordering when a later stage shows
  up before an earlier one. A reasoning service, when configured, is asked
  first and the local rules are the fallback.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..core.reports import Dependency, DependencyReport, OrderingIssue, OrderingViolation
from ..core.rules import contains_any
from ..core.steps import WorkflowStep, infer_kind, renumber
from ..llm.service import ReasoningService
from ..utils.logging import get_logger

logger = get_logger(__name__)

REORDER_PREAMBLE = "The steps were reordered to follow a logical cause-and-effect flow."

SEQUENTIAL_MARKERS = ("then", "after", "once")
VALIDATION_KEYWORDS = ("verify", "validate", "check")
ACTION_KEYWORDS = ("send", "submit", "process")


# -----------------------------------------------------------------------------
# Rule records
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderingStage:
    name: str
    keywords: Tuple[str, ...]


@dataclass(frozen=True)
class PairOverride:
    """Confidence/reason for one specific out-of-order stage pair.

    `found_first` is the stage that appears too early, `found_later` the stage
    that should have preceded it.
    """

    found_first: str
    found_later: str
    confidence: float
    reason: str


@dataclass(frozen=True)
class OrderingRule:
    """A family of stages that must appear in declaration order."""

    id: str
    stages: Tuple[OrderingStage, ...]
    confidence: float
    reason: str
    pair_overrides: Tuple[PairOverride, ...] = ()

    def stage_of(self, text: str) -> Optional[int]:
        """Index of the single stage `text` belongs to, else None.

        Text that matches several stages of the family is ambiguous and left
        unclassified.
        """
        matched = [idx for idx, stage in enumerate(self.stages) if contains_any(text, stage.keywords)]
        if len(matched) == 1:
            return matched[0]
        return None

    def judge(self, found_first: int, found_later: int) -> Tuple[float, str]:
        first_name = self.stages[found_first].name
        later_name = self.stages[found_later].name
        for override in self.pair_overrides:
            if override.found_first == first_name and override.found_later == later_name:
                return override.confidence, override.reason
        return self.confidence, self.reason


FOOD_RULE = OrderingRule(
    id="food",
    stages=(
        OrderingStage("preparation", ("cook", "prepare", "heat", "mix", "chop", "cut", "slice")),
        OrderingStage("consumption", ("eat", "drink", "consume", "taste", "sample")),
    ),
    confidence=0.9,
    reason="Food preparation should come before eating, so you cook before you consume.",
)

HYGIENE_RULE = OrderingRule(
    id="hygiene",
    stages=(
        OrderingStage("dirty", ("wipe", "poop", "toilet", "bathroom", "cleanse", "dirty", "soiled")),
        OrderingStage("clean", ("wash", "sanitize", "clean hands", "hygiene")),
    ),
    confidence=0.9,
    reason=(
        "Dirty tasks should come before clean tasks, so you wash your hands after "
        "completing dirty activities."
    ),
)

WORK_RULE = OrderingRule(
    id="work",
    stages=(
        OrderingStage("setup", ("open", "start", "begin", "initialize", "setup", "prepare")),
        OrderingStage("execution", ("process", "execute", "run", "complete", "finish")),
    ),
    confidence=0.8,
    reason="Setup tasks should come before execution, so you prepare before you process.",
)

COMMUNICATION_RULE = OrderingRule(
    id="communication",
    stages=(
        OrderingStage("create", ("write", "draft", "create", "compose", "type")),
        OrderingStage("send", ("send", "email", "submit", "transmit", "deliver")),
    ),
    confidence=0.8,
    reason="You need to create content before you can send it.",
)

APPROVAL_RULE = OrderingRule(
    id="approval",
    stages=(
        OrderingStage("review", ("review", "check", "examine", "verify", "validate")),
        OrderingStage("approve", ("approve", "sign", "authorize", "confirm", "accept")),
    ),
    confidence=0.8,
    reason="You need to review something before you can approve it.",
)

INTIMATE_RULE = OrderingRule(
    id="intimate",
    stages=(
        OrderingStage("consent", ("ask", "consent", "permission", "agree", "discuss")),
        OrderingStage(
            "foreplay",
            ("kiss", "touch", "caress", "foreplay", "arousal", "mood", "music", "drink"),
        ),
        OrderingStage(
            "intimacy",
            ("sex", "intercourse", "intimate", "penetrat", "vagina", "penis"),
        ),
    ),
    confidence=0.8,
    reason="Foreplay and mood-setting should come before intimacy.",
    pair_overrides=(
        PairOverride(
            "foreplay",
            "consent",
            0.7,
            "Consent and communication should ideally come before foreplay activities.",
        ),
        PairOverride(
            "intimacy",
            "foreplay",
            0.8,
            "Foreplay and mood-setting should come before intimacy.",
        ),
        PairOverride(
            "intimacy",
            "consent",
            0.9,
            "Consent and communication should come before any intimate activities.",
        ),
    ),
)


def default_ordering_rules(include_intimate: bool = True) -> Tuple[OrderingRule, ...]:
    """Built-in rule families in bucket order."""
    rules = (FOOD_RULE, HYGIENE_RULE, WORK_RULE, COMMUNICATION_RULE, APPROVAL_RULE)
    if include_intimate:
        rules = rules + (INTIMATE_RULE,)
    return rules


# -----------------------------------------------------------------------------
# Analyzer
# -----------------------------------------------------------------------------


@dataclass
class _Classification:
    # rule id -> {step index: stage index}
    stages: Dict[str, Dict[int, int]] = field(default_factory=dict)


class OrderingAnalyzer:
    def __init__(
        self,
        rules: Optional[Sequence[OrderingRule]] = None,
        reasoning: Optional[ReasoningService] = None,
    ):
        self.rules: Tuple[OrderingRule, ...] = (
            tuple(rules) if rules is not None else default_ordering_rules()
        )
        self.reasoning = reasoning

    # ------------------------------------------------------------------
    # Dependency hints
    # ------------------------------------------------------------------

    def analyze_dependencies(self, steps: Sequence[WorkflowStep]) -> DependencyReport:
        dependencies: List[Dependency] = []
        suggestions: List[str] = []
        for i in range(len(steps)):
            for j in range(i + 1, len(steps)):
                if contains_any(steps[j].text, SEQUENTIAL_MARKERS):
                    dependencies.append(
                        Dependency(from_index=i, to_index=j, reason="Sequential dependency")
                    )
        for i in range(1, len(steps)):
            text = steps[i].text
            previous = steps[i - 1].text
            if contains_any(text, VALIDATION_KEYWORDS) and contains_any(previous, ACTION_KEYWORDS):
                suggestions.append(
                    f"Consider moving validation (step {i + 1}) before action (step {i})"
                )
        return DependencyReport(
            needs_reordering=bool(suggestions),
            dependencies=dependencies,
            suggestions=suggestions,
            improvements=_improvements(steps) if suggestions else [],
        )

    # ------------------------------------------------------------------
    # Rule-family ordering
    # ------------------------------------------------------------------

    def find_violations(self, steps: Sequence[WorkflowStep]) -> List[OrderingViolation]:
        classification = self._classify(steps)
        violations: List[OrderingViolation] = []
        for rule in self.rules:
            staged = sorted(classification.stages.get(rule.id, {}).items())
            for pos, (i, stage_i) in enumerate(staged):
                for j, stage_j in staged[pos + 1 :]:
                    if stage_i <= stage_j:
                        continue
                    confidence, reason = rule.judge(stage_i, stage_j)
                    violations.append(
                        OrderingViolation(
                            rule_id=rule.id,
                            earlier_index=i,
                            later_index=j,
                            earlier_stage=rule.stages[stage_i].name,
                            later_stage=rule.stages[stage_j].name,
                            reason=reason,
                            confidence=confidence,
                        )
                    )
        return violations

    def reorder_locally(self, steps: Sequence[WorkflowStep]) -> Optional[OrderingIssue]:
        """Bucket steps of violated families by stage; None when nothing is out of order."""
        if len(steps) < 2:
            return None
        violations = self.find_violations(steps)
        if not violations:
            return None

        violated = {v.rule_id for v in violations}
        classification = self._classify(steps)
        placed: Set[int] = set()
        ordered: List[WorkflowStep] = []
        for rule in self.rules:
            if rule.id not in violated:
                continue
            staged = classification.stages.get(rule.id, {})
            for stage_idx in range(len(rule.stages)):
                for step_idx in sorted(staged):
                    if staged[step_idx] == stage_idx and step_idx not in placed:
                        placed.add(step_idx)
                        ordered.append(steps[step_idx])
        ordered.extend(step for idx, step in enumerate(steps) if idx not in placed)

        return OrderingIssue(
            original_steps=list(steps),
            suggested_steps=renumber(ordered),
            reasoning=self._reasoning_text(violations),
            confidence=max(v.confidence for v in violations),
            source="heuristic",
            violations=violations,
        )

    async def analyze(self, steps: Sequence[WorkflowStep]) -> Optional[OrderingIssue]:
        if len(steps) < 2:
            return None
        if self.reasoning is None:
            return self.reorder_locally(steps)

        judgment = await self.reasoning.judge_ordering([step.text for step in steps])
        if judgment is None:
            logger.info("Falling back to local ordering rules")
            return self.reorder_locally(steps)
        if not judgment.needs_reordering:
            return None
        if not judgment.suggested_steps:
            logger.warning("Reasoning service suggested reordering without steps")
            return self.reorder_locally(steps)

        return OrderingIssue(
            original_steps=list(steps),
            suggested_steps=renumber(_map_suggested(steps, judgment.suggested_steps)),
            reasoning=judgment.reasoning or REORDER_PREAMBLE,
            confidence=judgment.confidence,
            source="reasoning",
            violations=self.find_violations(steps),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _classify(self, steps: Sequence[WorkflowStep]) -> _Classification:
        result = _Classification()
        for rule in self.rules:
            staged: Dict[int, int] = {}
            for idx, step in enumerate(steps):
                stage = rule.stage_of(step.text)
                if stage is not None:
                    staged[idx] = stage
            if staged:
                result.stages[rule.id] = staged
        return result

    @staticmethod
    def _reasoning_text(violations: Sequence[OrderingViolation]) -> str:
        reasons: List[str] = []
        for violation in sorted(violations, key=lambda v: -v.confidence):
            if violation.reason not in reasons:
                reasons.append(violation.reason)
        return " ".join([REORDER_PREAMBLE] + reasons)


def _map_suggested(steps: Sequence[WorkflowStep], texts: Sequence[str]) -> List[WorkflowStep]:
    """Reuse original step objects for suggested texts that match one exactly."""
    available: Dict[str, List[WorkflowStep]] = {}
    for step in steps:
        available.setdefault(step.lowered, []).append(step)

    mapped: List[WorkflowStep] = []
    for text in texts:
        matches = available.get(text.strip().lower())
        if matches:
            mapped.append(matches.pop(0))
        else:
            mapped.append(WorkflowStep(text=text, kind=infer_kind(text)))
    return mapped


def _improvements(steps: Sequence[WorkflowStep]) -> List[str]:
    improvements = ["Reordered steps for better logical flow"]
    verification: List[int] = []
    actions: List[int] = []
    for index, step in enumerate(steps):
        if contains_any(step.text, VALIDATION_KEYWORDS):
            verification.append(index)
        elif contains_any(step.text, ACTION_KEYWORDS):
            actions.append(index)
    if verification and actions and min(verification) > max(actions):
        positions = ", ".join(str(index + 1) for index in verification)
        improvements.append(f"Moved verification steps ({positions}) before action steps")
    return improvements
