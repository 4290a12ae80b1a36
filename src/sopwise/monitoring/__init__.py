"""Background re-analysis of step lists."""

from .monitor import AnalysisMonitor

__all__ = ["AnalysisMonitor"]
