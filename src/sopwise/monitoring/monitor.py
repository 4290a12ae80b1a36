"""Periodic re-analysis of a changing step list.

The monitor owns one asyncio task with an explicit start/stop lifecycle.
Clock and sleep are injected so tests can drive it without real time.
"""

from __future__ import annotations

import asyncio
import inspect
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Optional, Tuple, Union

from ..analysis.orchestrator import AnalysisOrchestrator, Clock, utc_now
from ..core.reports import ComprehensiveAnalysis
from ..core.steps import StepInput, WorkflowStep
from ..utils.logging import get_logger

logger = get_logger(__name__)

StepSource = Callable[[], Union[Iterable[StepInput], Awaitable[Iterable[StepInput]]]]
ReportCallback = Callable[[ComprehensiveAnalysis], Any]
Sleep = Callable[[float], Awaitable[Any]]


def _fingerprint(items: Iterable[StepInput]) -> Tuple[str, ...]:
    texts = []
    for item in items:
        if isinstance(item, WorkflowStep):
            texts.append(item.text)
        elif isinstance(item, str):
            texts.append(item.strip())
        else:
            texts.append(str(item.get("text") or item.get("name") or "").strip())
    return tuple(texts)


class AnalysisMonitor:
    """Re-run the orchestrator whenever the source's step texts change."""

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        source: StepSource,
        *,
        interval_seconds: float = 60.0,
        credential: Optional[str] = None,
        workflow_name: str = "Workflow",
        include_ordering: bool = False,
        only_on_change: bool = True,
        on_report: Optional[ReportCallback] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.orchestrator = orchestrator
        self.source = source
        self.interval_seconds = interval_seconds
        self.credential = credential
        self.workflow_name = workflow_name
        self.include_ordering = include_ordering
        self.only_on_change = only_on_change
        self.on_report = on_report
        self._clock = clock or utc_now
        self._sleep = sleep or asyncio.sleep

        self.last_report: Optional[ComprehensiveAnalysis] = None
        self.last_run_at: Optional[datetime] = None
        self.runs = 0
        self._last_fingerprint: Optional[Tuple[str, ...]] = None
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[ComprehensiveAnalysis]:
        """Analyze the current steps; None when they are unchanged since the last run."""
        items = self.source()
        if inspect.isawaitable(items):
            items = await items
        items = list(items)

        fingerprint = _fingerprint(items)
        if self.only_on_change and fingerprint == self._last_fingerprint:
            return None

        report = await self.orchestrator.analyze(
            items,
            self.credential,
            self.workflow_name,
            include_ordering=self.include_ordering,
        )
        self._last_fingerprint = fingerprint
        self.last_report = report
        self.last_run_at = self._clock()
        self.runs += 1

        if self.on_report is not None:
            result = self.on_report(report)
            if inspect.isawaitable(result):
                await result
        return report

    def start(self) -> None:
        """Schedule the monitor loop on the running event loop."""
        if self.running:
            raise RuntimeError("monitor is already running")
        self._stopping = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info(
            "Analysis monitor started",
            extra={"workflow": self.workflow_name, "interval_seconds": self.interval_seconds},
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        logger.info("Analysis monitor stopped", extra={"workflow": self.workflow_name, "runs": self.runs})

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Monitored analysis failed", extra={"workflow": self.workflow_name})
            await self._sleep(self.interval_seconds)
