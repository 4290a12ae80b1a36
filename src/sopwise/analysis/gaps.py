"""Missing-step (gap) detection.

A gap rule fires when its trigger keywords appear somewhere in the workflow
and none of its follow-up keywords do. Rules are evaluated against the whole
step list, independently of each other. Prerequisite rules look only at the
step right before each trigger.

With a reasoning service, its suggested missing steps are merged in. Repeated
suggestions are collapsed before the result is sorted by priority.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Sequence

from ..core.reports import GapReport, GapSuggestion
from ..core.rules import KeywordRule, Priority, contains_any
from ..core.steps import END_MARKERS, START_MARKERS, StepKind, WorkflowStep
from ..llm.service import ReasoningService
from ..utils.logging import get_logger
from .industry import industry_practices

logger = get_logger(__name__)

Placement = Literal["start", "end", "before_trigger", "after_trigger"]

EXECUTION_KEYWORDS = ("execute", "run", "perform", "eat", "poop", "wipe")


@dataclass(frozen=True)
class GapRule(KeywordRule):
    """A precondition -> missing follow-up rule.

    `message` is the reason shown to the user; `suggestion` is the text of the
    step to insert.
    """

    suggestion: str = ""
    impact: str = ""
    min_steps: int = 0
    satisfied_by_kind: Optional[StepKind] = None
    placement: Placement = "end"
    confidence: float = 0.8

    @property
    def reason(self) -> str:
        return self.message

    def applies_to(self, steps: Sequence[WorkflowStep]) -> bool:
        if len(steps) < self.min_steps:
            return False
        if self.trigger_keywords and self.first_trigger(steps) is None:
            return False
        if self.satisfied_by_kind is not None and any(
            step.kind == self.satisfied_by_kind for step in steps
        ):
            return False
        return not any(self.is_satisfied(step.text) for step in steps)

    def first_trigger(self, steps: Sequence[WorkflowStep]) -> Optional[int]:
        for idx, step in enumerate(steps):
            if contains_any(step.text, self.trigger_keywords):
                return idx
        return None

    def insertion_position(self, steps: Sequence[WorkflowStep]) -> int:
        trigger = self.first_trigger(steps) if self.trigger_keywords else None
        if self.placement == "before_trigger" and trigger is not None:
            return trigger
        if self.placement == "after_trigger" and trigger is not None:
            return trigger + 1
        if self.placement == "start":
            return 0
        return len(steps)


@dataclass(frozen=True)
class PrerequisiteRule(GapRule):
    """A step that needs a preparatory step right before it.

    The rule is met when the trigger step itself or the step before it
    mentions one of the anti keywords.
    """

    def unmet_trigger(self, steps: Sequence[WorkflowStep]) -> Optional[int]:
        for idx, step in enumerate(steps):
            if not contains_any(step.text, self.trigger_keywords):
                continue
            if self.is_satisfied(step.text):
                continue
            if idx > 0 and self.is_satisfied(steps[idx - 1].text):
                continue
            return idx
        return None

    def applies_to(self, steps: Sequence[WorkflowStep]) -> bool:
        return self.unmet_trigger(steps) is not None

    def insertion_position(self, steps: Sequence[WorkflowStep]) -> int:
        trigger = self.unmet_trigger(steps)
        return trigger if trigger is not None else 0


DEFAULT_GAP_RULES = (
    GapRule(
        id="toilet-flush",
        trigger_keywords=("toilet", "poop"),
        anti_keywords=("flush",),
        priority=Priority.CRITICAL,
        message="You used the toilet but never flushed afterward",
        suggestion="Flush the toilet",
        impact="Unhygienic conditions",
        placement="after_trigger",
        confidence=0.9,
    ),
    GapRule(
        id="wipe-disposal",
        trigger_keywords=("wipe",),
        anti_keywords=("dispose", "disposal", "trash", "waste"),
        priority=Priority.HIGH,
        message="You wiped but never disposed of the toilet paper afterward",
        suggestion="Dispose of toilet paper properly",
        impact="Unhygienic bathroom conditions",
        placement="after_trigger",
    ),
    GapRule(
        id="eat-handwash",
        trigger_keywords=("eat",),
        anti_keywords=("wash", "sanitize", "cleanse"),
        priority=Priority.HIGH,
        message="You're eating but never washed your hands first",
        suggestion="Wash hands before eating",
        impact="Risk of ingesting germs and bacteria",
        placement="before_trigger",
    ),
    GapRule(
        id="data-entry-verification",
        trigger_keywords=("enter", "input", "data entry", "type in"),
        anti_keywords=("verify", "validate", "check", "review", "confirm"),
        priority=Priority.CRITICAL,
        message="Data is entered but never verified",
        suggestion="Verify the entered data for accuracy",
        impact="Data errors propagate to every later step",
        placement="after_trigger",
    ),
    GapRule(
        id="payment-confirmation",
        trigger_keywords=("pay", "charge", "transaction"),
        anti_keywords=("confirm", "receipt", "notify", "notification", "email"),
        priority=Priority.CRITICAL,
        message="A payment is taken but no confirmation or notification is sent",
        suggestion="Send payment confirmation to the customer",
        impact="Disputes and duplicate payments",
        placement="after_trigger",
    ),
    GapRule(
        id="approval-submission",
        trigger_keywords=("approve", "approval"),
        anti_keywords=("submit", "submission", "request"),
        priority=Priority.CRITICAL,
        message="Something is approved but nothing is ever submitted for approval",
        suggestion="Submit the request for approval",
        impact="Approvers have no defined input to review",
        placement="before_trigger",
    ),
    GapRule(
        id="hazard-safety-check",
        trigger_keywords=("cut", "burn", "chemical", "machinery", "knife"),
        anti_keywords=("safety", "protect", "helmet", "glove", "inspect"),
        priority=Priority.CRITICAL,
        message="You're doing dangerous activities but never checked safety first",
        suggestion="Perform safety check before dangerous activities",
        impact="High risk of injury or accident",
        placement="before_trigger",
        confidence=0.9,
    ),
    GapRule(
        id="error-handling",
        trigger_keywords=(),
        anti_keywords=("error", "fail", "exception", "retry", "fallback", "escalat"),
        priority=Priority.HIGH,
        message="No error handling detected in a multi-step process",
        suggestion="Add error handling step",
        impact="Failures go unnoticed and the process stalls",
        min_steps=6,
        placement="end",
    ),
    GapRule(
        id="explicit-start",
        trigger_keywords=(),
        anti_keywords=START_MARKERS + ("receive", "trigger", "initiate", "kick off"),
        priority=Priority.MEDIUM,
        message="The workflow has no explicit start or trigger",
        suggestion="Add a start step describing what triggers the workflow",
        impact="Unclear when the process should begin",
        min_steps=4,
        satisfied_by_kind=StepKind.START,
        placement="start",
    ),
    GapRule(
        id="explicit-completion",
        trigger_keywords=(),
        anti_keywords=END_MARKERS + ("finish", "close", "done"),
        priority=Priority.MEDIUM,
        message="The workflow has no explicit completion step",
        suggestion="Add a completion step confirming the workflow is finished",
        impact="Unclear when the process is done",
        min_steps=4,
        satisfied_by_kind=StepKind.END,
        placement="end",
    ),
    GapRule(
        id="customer-communication",
        trigger_keywords=("customer", "client"),
        anti_keywords=("notify", "email", "call", "contact", "inform", "message"),
        priority=Priority.MEDIUM,
        message="A customer is involved but never contacted",
        suggestion="Notify the customer of the outcome",
        impact="Customers are left without status updates",
        min_steps=4,
        placement="end",
    ),
    GapRule(
        id="critical-action-audit",
        trigger_keywords=("approve", "delete", "payment", "close"),
        anti_keywords=("log", "audit", "record", "document"),
        priority=Priority.LOW,
        message="Critical actions are not logged",
        suggestion="Record the action in the audit log",
        impact="No traceability for sensitive actions",
        min_steps=6,
        placement="after_trigger",
    ),
    GapRule(
        id="intimate-consent",
        trigger_keywords=("touch", "kiss", "intimate", "foreplay", "sexual"),
        anti_keywords=("consent", "permission", "ask", "agree"),
        priority=Priority.CRITICAL,
        message="You're doing intimate activities but never obtained consent first",
        suggestion="Obtain consent before intimate activities",
        impact="Legal and ethical violations",
        placement="start",
        confidence=0.95,
    ),
    GapRule(
        id="missing-setup",
        trigger_keywords=EXECUTION_KEYWORDS,
        anti_keywords=("setup", "set up", "prepare", "open", "wash", "cleanse"),
        priority=Priority.HIGH,
        message="You're executing actions but never set up or prepared first",
        suggestion="Setup/prepare before execution",
        impact="Execution may fail without proper setup",
        placement="start",
        confidence=0.7,
    ),
    GapRule(
        id="missing-cleanup",
        trigger_keywords=EXECUTION_KEYWORDS,
        anti_keywords=("cleanup", "clean up", "close", "finish", "dispose", "flush"),
        priority=Priority.MEDIUM,
        message="You're executing actions but never cleaned up afterward",
        suggestion="Cleanup after execution",
        impact="Unfinished workflow, potential mess or issues",
        placement="end",
        confidence=0.7,
    ),
    PrerequisiteRule(
        id="cook-preheat",
        trigger_keywords=("cook",),
        anti_keywords=("heat", "preheat"),
        priority=Priority.HIGH,
        message="You're cooking but never preheated the equipment first",
        suggestion="Preheat cooking equipment",
        impact="Food may not cook properly or safely",
    ),
    PrerequisiteRule(
        id="diagnose-examine",
        trigger_keywords=("diagnose",),
        anti_keywords=("examine", "check"),
        priority=Priority.CRITICAL,
        message="You're diagnosing but never examined the patient first",
        suggestion="Examine patient/symptoms first",
        impact="Incorrect diagnosis without proper examination",
        confidence=0.9,
    ),
)


class GapDetector:
    def __init__(self, rules: Optional[Sequence[GapRule]] = None):
        self.rules = tuple(rules) if rules is not None else DEFAULT_GAP_RULES

    def detect(self, steps: Sequence[WorkflowStep]) -> GapReport:
        """Run the rule catalogue only."""
        return self._report(steps, self._rule_gaps(steps))

    async def analyze(
        self,
        steps: Sequence[WorkflowStep],
        reasoning: Optional[ReasoningService] = None,
    ) -> GapReport:
        """Rule gaps plus missing steps suggested by the reasoning service.

        Without a service, or when the service gives no answer, only the rule
        catalogue contributes.
        """
        gaps = self._rule_gaps(steps)
        if reasoning is not None and steps:
            gaps.extend(await self._reasoning_gaps(steps, reasoning))
        return self._report(steps, gaps)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _rule_gaps(self, steps: Sequence[WorkflowStep]) -> List[GapSuggestion]:
        gaps: List[GapSuggestion] = []
        for rule in self.rules:
            try:
                if not rule.applies_to(steps):
                    continue
                position = rule.insertion_position(steps)
            except Exception:
                logger.exception("Gap rule failed", extra={"rule_id": rule.id})
                continue
            gaps.append(
                GapSuggestion(
                    insertion_position=position,
                    suggested_text=rule.suggestion,
                    reason=rule.reason,
                    impact=rule.impact,
                    priority=rule.priority,
                    rule_id=rule.id,
                    confidence=rule.confidence,
                )
            )
        return gaps

    @staticmethod
    async def _reasoning_gaps(
        steps: Sequence[WorkflowStep], reasoning: ReasoningService
    ) -> List[GapSuggestion]:
        judgment = await reasoning.judge_gaps([step.text for step in steps])
        if judgment is None:
            return []
        gaps: List[GapSuggestion] = []
        for missing in judgment.missing_steps:
            gaps.append(
                GapSuggestion(
                    insertion_position=min(max(missing.position, 0), len(steps)),
                    suggested_text=missing.suggestion,
                    reason=missing.reason or f"Missing step for a {judgment.domain} workflow",
                    impact=missing.impact,
                    priority=missing.priority,
                    rule_id=f"reasoning-{judgment.domain}",
                    confidence=judgment.confidence,
                    origin="reasoning",
                )
            )
        logger.debug(
            "Reasoning gap pass finished",
            extra={"domain": judgment.domain, "gaps": len(gaps)},
        )
        return gaps

    @staticmethod
    def _report(steps: Sequence[WorkflowStep], gaps: List[GapSuggestion]) -> GapReport:
        gaps = dedupe_gaps(gaps)
        # stable sort keeps catalogue order within a priority
        gaps.sort(key=lambda gap: gap.priority.rank)
        return GapReport(internal_gaps=gaps, external_practices=industry_practices(steps))


def _gap_key(text: str) -> str:
    return re.sub(r"[^\w\s]", "", text.lower()).strip()


def dedupe_gaps(gaps: Sequence[GapSuggestion]) -> List[GapSuggestion]:
    """Drop gaps whose suggested text repeats an earlier one.

    Of two repeats the more confident one is kept, in the slot of the first.
    """
    unique: Dict[str, GapSuggestion] = {}
    for gap in gaps:
        key = _gap_key(gap.suggested_text)
        kept = unique.get(key)
        if kept is None or kept.confidence < gap.confidence:
            unique[key] = gap
    return list(unique.values())
