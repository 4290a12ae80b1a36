"""Workflow analyzers and the orchestrator that combines them."""

from .duplicates import DuplicateDetector
from .efficiency import EfficiencyScorer
from .gaps import DEFAULT_GAP_RULES, GapDetector, GapRule, PrerequisiteRule
from .industry import classify_industry
from .orchestrator import AnalysisOrchestrator
from .ordering import OrderingAnalyzer, OrderingRule, default_ordering_rules
from .risk import RiskAnalyzer, classify_risk

__all__ = [
    "AnalysisOrchestrator",
    "DEFAULT_GAP_RULES",
    "DuplicateDetector",
    "EfficiencyScorer",
    "GapDetector",
    "GapRule",
    "OrderingAnalyzer",
    "OrderingRule",
    "PrerequisiteRule",
    "RiskAnalyzer",
    "classify_industry",
    "classify_risk",
    "default_ordering_rules",
]
