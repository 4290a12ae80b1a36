"""Tests for dependency hints and rule-family ordering."""

import asyncio

from sopwise.analysis.ordering import (
    FOOD_RULE,
    REORDER_PREAMBLE,
    OrderingAnalyzer,
    default_ordering_rules,
)
from sopwise.core.steps import build_steps

REORDER_ANSWER = (
    '{"needsReordering": true, "suggestedSteps": ["Wipe", "Wash hands"], '
    '"reasoning": "Wipe before washing", "confidence": 0.95}'
)


# -----------------------------------------------------------------------------
# Dependency hints
# -----------------------------------------------------------------------------


class TestDependencies:
    def test_sequential_markers_and_validation_after_action(self):
        steps = build_steps(["Send the invoice", "Verify the invoice", "Then archive it"])
        report = OrderingAnalyzer().analyze_dependencies(steps)

        assert report.needs_reordering
        assert [(d.from_index, d.to_index) for d in report.dependencies] == [(0, 2), (1, 2)]
        assert all(d.reason == "Sequential dependency" for d in report.dependencies)
        assert report.suggestions == [
            "Consider moving validation (step 2) before action (step 1)"
        ]
        assert report.improvements == [
            "Reordered steps for better logical flow",
            "Moved verification steps (2) before action steps",
        ]

    def test_marker_links_every_earlier_step(self):
        steps = build_steps(["Prepare the room", "Clean the desk", "Once dry, paint the wall", "Hang the art"])
        report = OrderingAnalyzer().analyze_dependencies(steps)

        assert [(d.from_index, d.to_index) for d in report.dependencies] == [(0, 2), (1, 2)]
        assert not report.needs_reordering
        assert report.improvements == []

    def test_verification_already_first_gets_generic_improvement(self):
        steps = build_steps(["Check stock", "Send the order", "Verify the address"])
        report = OrderingAnalyzer().analyze_dependencies(steps)

        assert report.needs_reordering
        assert report.improvements == ["Reordered steps for better logical flow"]

    def test_clean_list(self):
        report = OrderingAnalyzer().analyze_dependencies(build_steps(["Verify order", "Send order"]))
        assert not report.needs_reordering
        assert report.dependencies == []


# -----------------------------------------------------------------------------
# Local rules
# -----------------------------------------------------------------------------


class TestStageClassification:
    def test_single_stage(self):
        assert FOOD_RULE.stage_of("Cook dinner") == 0
        assert FOOD_RULE.stage_of("Eat dinner") == 1

    def test_ambiguous_text_unclassified(self):
        assert FOOD_RULE.stage_of("Prepare and eat dinner") is None

    def test_unrelated_text_unclassified(self):
        assert FOOD_RULE.stage_of("Send invoice") is None


class TestLocalReordering:
    """Tests for rule-family violations and the bucketed reorder."""

    def test_correct_order_needs_nothing(self):
        steps = build_steps(["Ask for consent", "Kiss", "Have intercourse"])
        assert OrderingAnalyzer().reorder_locally(steps) is None

    def test_wash_before_wipe_is_reordered(self):
        steps = build_steps(["Wash hands", "Wipe"])
        issue = OrderingAnalyzer().reorder_locally(steps)

        assert issue is not None
        assert [s.text for s in issue.suggested_steps] == ["Wipe", "Wash hands"]
        assert [s.ordinal for s in issue.suggested_steps] == [1, 2]
        assert [s.id for s in issue.suggested_steps] == [steps[1].id, steps[0].id]
        assert issue.confidence == 0.9
        assert issue.source == "heuristic"
        assert issue.reasoning.startswith(REORDER_PREAMBLE)
        assert issue.violations[0].rule_id == "hygiene"

    def test_wipe_after_using_toilet_goes_before_washing(self):
        steps = build_steps(["Wash hands", "Wipe after using toilet"])
        issue = OrderingAnalyzer().reorder_locally(steps)

        assert [s.text for s in issue.suggested_steps] == ["Wipe after using toilet", "Wash hands"]
        assert issue.confidence == 0.9
        assert issue.violations[0].earlier_stage == "clean"
        assert issue.violations[0].later_stage == "dirty"

    def test_input_list_not_mutated(self):
        steps = build_steps(["Wash hands", "Wipe"])
        OrderingAnalyzer().reorder_locally(steps)
        assert [s.text for s in steps] == ["Wash hands", "Wipe"]
        assert [s.ordinal for s in steps] == [1, 2]

    def test_violated_family_first_then_rest(self):
        steps = build_steps(["Open the app", "Wash hands", "Wipe", "Log out"])
        issue = OrderingAnalyzer().reorder_locally(steps)

        assert [s.text for s in issue.suggested_steps] == ["Wipe", "Wash hands", "Open the app", "Log out"]

    def test_pair_specific_confidence(self):
        analyzer = OrderingAnalyzer()
        early_foreplay = analyzer.reorder_locally(build_steps(["Kiss", "Ask for consent"]))
        early_intimacy = analyzer.reorder_locally(build_steps(["Have intercourse", "Ask for consent"]))

        assert early_foreplay.confidence == 0.7
        assert early_intimacy.confidence == 0.9
        assert [s.text for s in early_intimacy.suggested_steps] == ["Ask for consent", "Have intercourse"]

    def test_intimate_family_can_be_disabled(self):
        analyzer = OrderingAnalyzer(default_ordering_rules(include_intimate=False))
        assert analyzer.reorder_locally(build_steps(["Have intercourse", "Ask for consent"])) is None

    def test_single_step(self):
        assert OrderingAnalyzer().reorder_locally(build_steps(["Wipe"])) is None


# -----------------------------------------------------------------------------
# Reasoning-backed ordering
# -----------------------------------------------------------------------------


class TestReasoningOrdering:
    def test_without_reasoning_uses_rules(self):
        issue = asyncio.run(OrderingAnalyzer().analyze(build_steps(["Wash hands", "Wipe"])))
        assert issue.source == "heuristic"

    def test_reasoning_suggestion_reuses_original_steps(self, make_client, make_reasoning):
        steps = build_steps(["Wash hands", "Wipe"])
        analyzer = OrderingAnalyzer(reasoning=make_reasoning(make_client(REORDER_ANSWER)))

        issue = asyncio.run(analyzer.analyze(steps))

        assert issue.source == "reasoning"
        assert issue.confidence == 0.95
        assert issue.reasoning == "Wipe before washing"
        assert [s.id for s in issue.suggested_steps] == [steps[1].id, steps[0].id]

    def test_reasoning_says_order_is_fine(self, make_client, make_reasoning):
        client = make_client('{"needsReordering": false, "reasoning": "fine"}')
        analyzer = OrderingAnalyzer(reasoning=make_reasoning(client))
        assert asyncio.run(analyzer.analyze(build_steps(["Wash hands", "Wipe"]))) is None

    def test_reasoning_failure_falls_back_to_rules(self, failing_client, make_reasoning):
        analyzer = OrderingAnalyzer(reasoning=make_reasoning(failing_client))
        issue = asyncio.run(analyzer.analyze(build_steps(["Wash hands", "Wipe"])))

        assert issue.source == "heuristic"
        assert [s.text for s in issue.suggested_steps] == ["Wipe", "Wash hands"]

    def test_unexpected_client_error_falls_back_to_rules(self, make_client, make_reasoning):
        client = make_client(error=ConnectionError("connection reset"))
        analyzer = OrderingAnalyzer(reasoning=make_reasoning(client))
        issue = asyncio.run(analyzer.analyze(build_steps(["Wash hands", "Wipe"])))

        assert issue.source == "heuristic"
        assert [s.text for s in issue.suggested_steps] == ["Wipe", "Wash hands"]

    def test_empty_suggestion_falls_back_to_rules(self, make_client, make_reasoning):
        client = make_client('{"needsReordering": true, "suggestedSteps": []}')
        analyzer = OrderingAnalyzer(reasoning=make_reasoning(client))
        issue = asyncio.run(analyzer.analyze(build_steps(["Wash hands", "Wipe"])))
        assert issue.source == "heuristic"

    def test_rewritten_step_text_becomes_new_step(self, make_client, make_reasoning):
        client = make_client(
            '{"needsReordering": true, "suggestedSteps": [{"text": "Wipe carefully"}, "Wash hands"]}'
        )
        steps = build_steps(["Wash hands", "Wipe"])
        analyzer = OrderingAnalyzer(reasoning=make_reasoning(client))

        issue = asyncio.run(analyzer.analyze(steps))

        assert [s.text for s in issue.suggested_steps] == ["Wipe carefully", "Wash hands"]
        assert issue.suggested_steps[1].id == steps[0].id
        assert issue.confidence == 0.8
