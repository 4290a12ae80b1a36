"""Analysis orchestrator.

Runs every analyzer over one step list as a single async batch and merges
their partial results into a `ComprehensiveAnalysis`. Each analyzer is guarded
on its own: a failure is logged, recorded in `error`, and only that analyzer's
sub-report is left empty.
"""

from __future__ import annotations

import asyncio
import inspect
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Tuple

from ..config.settings import Settings, get_settings
from ..core.exceptions import InvalidStepListError
from ..core.reports import ComprehensiveAnalysis, OrderingIssue
from ..core.steps import StepInput, build_steps
from ..llm.client import ReasoningClient, create_reasoning_client
from ..llm.service import ReasoningService
from ..utils.logging import get_logger
from .duplicates import DuplicateDetector
from .efficiency import EfficiencyScorer
from .gaps import GapDetector
from .ordering import OrderingAnalyzer, default_ordering_rules
from .risk import RiskAnalyzer

logger = get_logger(__name__)

NO_STEPS_ERROR = "No steps to analyze"

Clock = Callable[[], datetime]
ClientFactory = Callable[[Optional[str], Settings], Optional[ReasoningClient]]
DuplicateDetectorFactory = Callable[[Optional[ReasoningService]], DuplicateDetector]
OrderingAnalyzerFactory = Callable[[Optional[ReasoningService]], OrderingAnalyzer]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisOrchestrator:
    """Entry point for a full workflow analysis run."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        duplicate_detector_factory: Optional[DuplicateDetectorFactory] = None,
        efficiency_scorer: Optional[EfficiencyScorer] = None,
        risk_analyzer: Optional[RiskAnalyzer] = None,
        gap_detector: Optional[GapDetector] = None,
        ordering_analyzer_factory: Optional[OrderingAnalyzerFactory] = None,
        client_factory: Optional[ClientFactory] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings or get_settings()
        self.efficiency_scorer = efficiency_scorer or EfficiencyScorer()
        self.risk_analyzer = risk_analyzer or RiskAnalyzer()
        self.gap_detector = gap_detector or GapDetector()
        self._duplicate_detector_factory = duplicate_detector_factory or self._default_duplicate_detector
        self._ordering_analyzer_factory = ordering_analyzer_factory or self._default_ordering_analyzer
        self._client_factory = client_factory or create_reasoning_client
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def analyze(
        self,
        steps: Iterable[StepInput],
        credential: Optional[str] = None,
        workflow_name: str = "Workflow",
        *,
        include_ordering: bool = False,
    ) -> ComprehensiveAnalysis:
        """Analyze `steps`; never raises."""
        try:
            step_list = build_steps(steps)
        except InvalidStepListError as exc:
            logger.warning("Rejected step list", extra={"workflow": workflow_name, "error": str(exc)})
            return self._empty(workflow_name, error=str(exc))

        if not step_list:
            return self._empty(workflow_name, error=NO_STEPS_ERROR)

        reasoning = self._reasoning(credential)
        ordering_analyzer = self._ordering_analyzer_factory(reasoning)

        async def detect_duplicates() -> Any:
            if not credential:
                return []
            return await self._duplicate_detector_factory(reasoning).detect(step_list)

        async def order_steps() -> Any:
            if not include_ordering:
                return None
            return await ordering_analyzer.analyze(step_list)

        results = await asyncio.gather(
            self._guarded("duplicates", detect_duplicates),
            self._guarded("efficiency", lambda: self.efficiency_scorer.score(step_list)),
            self._guarded("risk", lambda: self.risk_analyzer.analyze(step_list)),
            self._guarded("dependencies", lambda: ordering_analyzer.analyze_dependencies(step_list)),
            self._guarded("gaps", lambda: self.gap_detector.analyze(step_list, reasoning)),
            self._guarded("ordering", order_steps),
        )
        (duplicates, efficiency, risks, dependencies, gaps, ordering) = [r for r, _ in results]
        errors = [e for _, e in results if e]

        analysis = ComprehensiveAnalysis(
            workflow_name=workflow_name,
            steps=step_list,
            duplicates=duplicates or [],
            efficiency=efficiency,
            risks=risks,
            dependencies=dependencies,
            gaps=gaps,
            ordering=ordering,
            timestamp=self._clock(),
            error="; ".join(errors) if errors else None,
        )
        logger.info(
            "Workflow analysis finished",
            extra={
                "workflow": workflow_name,
                "steps": len(step_list),
                "duplicates": len(analysis.duplicates),
                "failed_analyzers": len(errors),
                "reasoning": reasoning is not None,
            },
        )
        return analysis

    async def analyze_ordering(
        self,
        steps: Iterable[StepInput],
        credential: Optional[str] = None,
    ) -> Optional[OrderingIssue]:
        """Run only the rule-family ordering pass.

        Raises:
            InvalidStepListError: if `steps` cannot be coerced into a valid list.
        """
        step_list = build_steps(steps)
        if len(step_list) < 2:
            return None
        analyzer = self._ordering_analyzer_factory(self._reasoning(credential))
        return await analyzer.analyze(step_list)

    def analyze_sync(
        self,
        steps: Iterable[StepInput],
        credential: Optional[str] = None,
        workflow_name: str = "Workflow",
        *,
        include_ordering: bool = False,
    ) -> ComprehensiveAnalysis:
        """Blocking wrapper around `analyze` for callers without an event loop."""
        return asyncio.run(
            self.analyze(steps, credential, workflow_name, include_ordering=include_ordering)
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _guarded(self, name: str, run: Callable[[], Any]) -> Tuple[Any, Optional[str]]:
        try:
            result = run()
            if inspect.isawaitable(result):
                result = await result
            return result, None
        except Exception as exc:
            logger.exception("Analyzer failed", extra={"analyzer": name})
            return None, f"{name}: {exc}"

    def _reasoning(self, credential: Optional[str]) -> Optional[ReasoningService]:
        if not credential:
            return None
        try:
            client = self._client_factory(credential, self.settings)
        except Exception as exc:
            logger.warning(
                "Could not create reasoning client; using local heuristics",
                extra={"error": str(exc)},
            )
            return None
        if client is None:
            return None
        return ReasoningService(
            client,
            timeout_seconds=self.settings.reasoning_timeout_seconds,
            max_tokens=self.settings.max_tokens,
        )

    def _default_duplicate_detector(self, reasoning: Optional[ReasoningService]) -> DuplicateDetector:
        return DuplicateDetector(
            reasoning,
            threshold=self.settings.duplicate_threshold,
            max_concurrency=self.settings.max_concurrent_requests,
        )

    def _default_ordering_analyzer(self, reasoning: Optional[ReasoningService]) -> OrderingAnalyzer:
        return OrderingAnalyzer(
            default_ordering_rules(self.settings.include_intimate_ordering),
            reasoning,
        )

    def _empty(self, workflow_name: str, *, error: str) -> ComprehensiveAnalysis:
        return ComprehensiveAnalysis(
            workflow_name=workflow_name,
            steps=[],
            duplicates=[],
            timestamp=self._clock(),
            error=error,
        )
