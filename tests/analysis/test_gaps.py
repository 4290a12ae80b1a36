"""Tests for missing-step detection and industry practices."""

import asyncio
from dataclasses import dataclass

from sopwise.analysis.gaps import DEFAULT_GAP_RULES, GapDetector, GapRule, dedupe_gaps
from sopwise.analysis.industry import GENERAL_PRACTICES, classify_industry, practices_for
from sopwise.core.reports import GapSuggestion
from sopwise.core.rules import Priority
from sopwise.core.steps import build_steps

ORDER_FLOW = [
    "Customer places order",
    "Enter the order details",
    "Process payment",
    "Manager approves the order",
    "Ship the product",
    "Close the order",
]


@dataclass(frozen=True)
class ExplodingRule(GapRule):
    def applies_to(self, steps):
        raise RuntimeError("broken rule")


# -----------------------------------------------------------------------------
# Internal gaps
# -----------------------------------------------------------------------------


class TestGapDetector:
    """Tests for the default gap catalogue."""

    def test_toilet_without_flush_or_disposal(self):
        steps = build_steps(["Use the toilet", "Wipe"])
        report = GapDetector().detect(steps)

        assert [g.rule_id for g in report.internal_gaps] == [
            "toilet-flush",
            "wipe-disposal",
            "missing-setup",
            "missing-cleanup",
        ]
        flush, disposal, setup, cleanup = report.internal_gaps
        assert flush.priority == Priority.CRITICAL
        assert flush.suggested_text == "Flush the toilet"
        assert flush.insertion_position == 1
        assert disposal.priority == Priority.HIGH
        assert disposal.insertion_position == 2
        assert setup.insertion_position == 0
        assert cleanup.insertion_position == 2
        assert all(g.source == "internal" for g in report.internal_gaps)

    def test_flush_step_satisfies_rule(self):
        steps = build_steps(["Use the toilet", "Wipe", "Flush the toilet"])
        report = GapDetector().detect(steps)
        assert [g.rule_id for g in report.internal_gaps] == ["wipe-disposal", "missing-setup"]

    def test_order_flow_sorted_by_priority(self):
        report = GapDetector().detect(build_steps(ORDER_FLOW))

        assert [g.rule_id for g in report.internal_gaps] == [
            "data-entry-verification",
            "payment-confirmation",
            "approval-submission",
            "error-handling",
            "explicit-start",
            "customer-communication",
            "critical-action-audit",
        ]
        positions = {g.rule_id: g.insertion_position for g in report.internal_gaps}
        assert positions["data-entry-verification"] == 2
        assert positions["approval-submission"] == 3
        assert positions["explicit-start"] == 0
        assert positions["error-handling"] == 6
        assert positions["critical-action-audit"] == 3

        summary = report.summary
        assert (summary.total, summary.critical, summary.high, summary.medium, summary.low) == (7, 3, 1, 2, 1)

    def test_start_kind_satisfies_explicit_start(self):
        steps = build_steps(["Begin shift", "Sort mail", "Stack boxes", "Sweep floor"])
        rule_ids = [g.rule_id for g in GapDetector().detect(steps).internal_gaps]
        assert "explicit-start" not in rule_ids
        assert "explicit-completion" in rule_ids

    def test_eating_keyword_needs_word_start(self):
        steps = build_steps(["Create the report"])
        assert GapDetector().detect(steps).internal_gaps == []

    def test_empty_list(self):
        report = GapDetector().detect([])
        assert report.internal_gaps == []
        assert report.external_practices.industry == "general"

    def test_failing_rule_is_skipped(self):
        broken = ExplodingRule(
            id="broken",
            trigger_keywords=(),
            anti_keywords=(),
            priority=Priority.LOW,
            message="never",
        )
        detector = GapDetector((broken,) + DEFAULT_GAP_RULES)
        report = detector.detect(build_steps(["Use the toilet"]))
        assert [g.rule_id for g in report.internal_gaps] == ["toilet-flush"]


# -----------------------------------------------------------------------------
# Pattern and prerequisite rules
# -----------------------------------------------------------------------------


class TestPatternRules:
    """Consent, setup/cleanup and neighbour prerequisite rules."""

    def test_intimate_steps_need_consent(self):
        report = GapDetector().detect(build_steps(["Kiss partner", "Touch gently"]))

        assert [g.rule_id for g in report.internal_gaps] == ["intimate-consent"]
        consent = report.internal_gaps[0]
        assert consent.priority == Priority.CRITICAL
        assert consent.insertion_position == 0
        assert consent.confidence == 0.95

    def test_asking_permission_satisfies_consent(self):
        steps = build_steps(["Ask for permission", "Kiss partner"])
        assert GapDetector().detect(steps).internal_gaps == []

    def test_execution_without_setup_or_cleanup(self):
        report = GapDetector().detect(build_steps(["Run the nightly batch"]))

        assert [(g.rule_id, g.insertion_position) for g in report.internal_gaps] == [
            ("missing-setup", 0),
            ("missing-cleanup", 1),
        ]
        assert report.internal_gaps[0].priority == Priority.HIGH
        assert report.internal_gaps[1].priority == Priority.MEDIUM

    def test_prepared_and_closed_execution(self):
        steps = build_steps(["Prepare the server", "Run the nightly batch", "Close the session"])
        assert GapDetector().detect(steps).internal_gaps == []

    def test_cooking_needs_preheat_right_before(self):
        report = GapDetector().detect(build_steps(["Chop onions", "Cook the onions"]))

        assert [(g.rule_id, g.insertion_position) for g in report.internal_gaps] == [("cook-preheat", 1)]
        assert report.internal_gaps[0].suggested_text == "Preheat cooking equipment"

    def test_preheat_step_satisfies_cooking(self):
        steps = build_steps(["Preheat the pan", "Cook the onions"])
        assert GapDetector().detect(steps).internal_gaps == []

    def test_diagnosis_needs_adjacent_examination(self):
        adjacent = build_steps(["Examine the patient", "Diagnose the illness"])
        distant = build_steps(["Examine the patient", "Take history", "Diagnose the illness"])

        assert GapDetector().detect(adjacent).internal_gaps == []
        gaps = GapDetector().detect(distant).internal_gaps
        assert [(g.rule_id, g.priority, g.insertion_position) for g in gaps] == [
            ("diagnose-examine", Priority.CRITICAL, 2)
        ]


# -----------------------------------------------------------------------------
# De-duplication and reasoning gaps
# -----------------------------------------------------------------------------


def _suggestion(text: str, confidence: float, position: int = 0) -> GapSuggestion:
    return GapSuggestion(
        insertion_position=position,
        suggested_text=text,
        reason="r",
        priority=Priority.MEDIUM,
        rule_id="r",
        confidence=confidence,
    )


class TestDedupeGaps:
    def test_punctuation_and_case_ignored(self):
        gaps = dedupe_gaps(
            [
                _suggestion("Flush the toilet", 0.6, position=1),
                _suggestion("Lock the door", 0.5),
                _suggestion("flush the toilet!", 0.9, position=3),
            ]
        )

        assert [(g.suggested_text, g.confidence) for g in gaps] == [
            ("flush the toilet!", 0.9),
            ("Lock the door", 0.5),
        ]

    def test_tie_keeps_first(self):
        gaps = dedupe_gaps([_suggestion("Wash up", 0.8, position=1), _suggestion("wash up", 0.8, position=2)])
        assert [g.insertion_position for g in gaps] == [1]


class TestReasoningGaps:
    """Gap detection with a (fake) reasoning service."""

    def test_without_reasoning_matches_rules(self):
        steps = build_steps(ORDER_FLOW)
        assert asyncio.run(GapDetector().analyze(steps)) == GapDetector().detect(steps)

    def test_reasoning_gaps_merged_and_deduplicated(self, make_client, make_reasoning):
        answer = (
            '{"domain": "hygiene", "confidence": 0.95, "missingSteps": ['
            '{"position": 99, "suggestion": "Flush the toilet.", "priority": "high", "reason": "Flush"},'
            '{"position": -4, "suggestion": "Lock the door", "priority": "low"}]}'
        )
        steps = build_steps(["Use the toilet"])

        report = asyncio.run(GapDetector().analyze(steps, make_reasoning(make_client(answer))))

        flush, lock = report.internal_gaps
        assert (flush.suggested_text, flush.origin, flush.priority) == ("Flush the toilet.", "reasoning", Priority.HIGH)
        assert flush.insertion_position == 1
        assert flush.rule_id == "reasoning-hygiene"
        assert (lock.insertion_position, lock.priority) == (0, Priority.LOW)
        assert lock.reason == "Missing step for a hygiene workflow"

    def test_service_failure_keeps_rule_gaps(self, failing_client, make_reasoning):
        steps = build_steps(["Use the toilet", "Wipe"])
        report = asyncio.run(GapDetector().analyze(steps, make_reasoning(failing_client)))

        assert report == GapDetector().detect(steps)
        assert all(g.origin == "heuristic" for g in report.internal_gaps)

    def test_unexpected_client_error_keeps_rule_gaps(self, make_client, make_reasoning):
        client = make_client(error=ConnectionError("connection reset"))
        steps = build_steps(["Use the toilet"])

        report = asyncio.run(GapDetector().analyze(steps, make_reasoning(client)))

        assert [g.rule_id for g in report.internal_gaps] == ["toilet-flush"]


# -----------------------------------------------------------------------------
# Industry practices
# -----------------------------------------------------------------------------


class TestIndustry:
    def test_most_hits_wins(self):
        industry, matched = classify_industry(build_steps(ORDER_FLOW))
        assert industry == "ecommerce"
        assert matched == ["order", "product"]

    def test_no_hits_is_general(self):
        assert classify_industry(build_steps(["Sweep floor"])) == ("general", [])
        assert practices_for("general") == list(GENERAL_PRACTICES)

    def test_practices_attached_to_report(self):
        report = GapDetector().detect(build_steps(["Admit the patient", "Call the doctor"]))
        external = report.external_practices
        assert external.industry == "healthcare"
        assert external.source == "external"
        assert "Record informed consent" in external.practices
