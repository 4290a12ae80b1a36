"""sopwise - workflow step analysis engine."""

from typing import TYPE_CHECKING

__all__ = ["AnalysisOrchestrator", "Settings", "WorkflowStep", "build_steps"]

if TYPE_CHECKING:
    from .analysis.orchestrator import AnalysisOrchestrator
    from .config.settings import Settings
    from .core.steps import WorkflowStep, build_steps


def __getattr__(name: str):
    if name == "AnalysisOrchestrator":
        from .analysis.orchestrator import AnalysisOrchestrator

        return AnalysisOrchestrator
    if name == "Settings":
        from .config.settings import Settings

        return Settings
    if name in {"WorkflowStep", "build_steps"}:
        from .core import steps

        return getattr(steps, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
