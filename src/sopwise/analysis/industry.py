"""Industry classification and generic best-practice catalogue.

The practices returned here are not derived from the caller's steps, which is
why the result is tagged as external.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..core.reports import IndustrySuggestionSet
from ..core.rules import find_keywords
from ..core.steps import WorkflowStep

GENERAL = "general"


@dataclass(frozen=True)
class IndustryProfile:
    name: str
    keywords: Tuple[str, ...]
    practices: Tuple[str, ...]


GENERAL_PRACTICES: Tuple[str, ...] = (
    "Document all decision criteria clearly",
    "Add time estimates for each step",
    "Include escalation procedures",
    "Define success criteria",
)

INDUSTRY_PROFILES: Tuple[IndustryProfile, ...] = (
    IndustryProfile(
        name="ecommerce",
        keywords=("order", "cart", "checkout", "shipping", "product", "inventory", "refund", "store"),
        practices=(
            "Confirm stock availability before accepting the order",
            "Send order and shipping confirmations to the customer",
            "Define a returns and refund procedure",
            "Reconcile inventory after fulfilment",
        ),
    ),
    IndustryProfile(
        name="healthcare",
        keywords=("patient", "doctor", "nurse", "clinic", "hospital", "medical", "diagnos", "prescri"),
        practices=(
            "Verify patient identity before any procedure",
            "Record informed consent",
            "Protect patient data according to privacy regulations",
            "Schedule follow-up and document the care plan",
        ),
    ),
    IndustryProfile(
        name="finance",
        keywords=("loan", "bank", "credit", "invoice", "payment", "account", "transaction", "mortgage"),
        practices=(
            "Apply the four-eyes principle to approvals above a threshold",
            "Run compliance and fraud checks before releasing funds",
            "Keep an audit trail for every transaction",
            "Reconcile accounts at the end of each cycle",
        ),
    ),
    IndustryProfile(
        name="hr",
        keywords=("employee", "hire", "hiring", "recruit", "onboard", "payroll", "candidate", "interview"),
        practices=(
            "Use a standard checklist for onboarding and offboarding",
            "Collect signed policy acknowledgements",
            "Provision and revoke system access on a fixed schedule",
            "Keep personnel records confidential",
        ),
    ),
    IndustryProfile(
        name="customer-support",
        keywords=("ticket", "support", "complaint", "helpdesk", "escalat", "customer", "issue", "resolve"),
        practices=(
            "Acknowledge every request within the agreed response time",
            "Define escalation tiers and owners",
            "Confirm resolution with the customer before closing",
            "Capture feedback after closure",
        ),
    ),
)


def classify_industry(steps: Sequence[WorkflowStep]) -> Tuple[str, List[str]]:
    """Pick the profile with the most distinct keyword hits across all steps.

    Ties go to the profile listed first; no hits at all means ``general``.
    """
    corpus = " ".join(step.text for step in steps)
    best_name = GENERAL
    best_hits: List[str] = []
    for profile in INDUSTRY_PROFILES:
        hits = find_keywords(corpus, profile.keywords)
        if len(hits) > len(best_hits):
            best_name = profile.name
            best_hits = hits
    return best_name, best_hits


def practices_for(industry: str) -> List[str]:
    for profile in INDUSTRY_PROFILES:
        if profile.name == industry:
            return list(profile.practices)
    return list(GENERAL_PRACTICES)


def industry_practices(steps: Sequence[WorkflowStep]) -> IndustrySuggestionSet:
    industry, matched = classify_industry(steps)
    return IndustrySuggestionSet(
        industry=industry,
        practices=practices_for(industry),
        matched_keywords=matched,
    )
