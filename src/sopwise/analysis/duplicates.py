"""Duplicate step detection.

Every unordered pair of steps is judged once. Without a reasoning service the
judgment is a keyword-overlap heuristic; with one, the service decides and the
heuristic only covers pairs where the service failed.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Tuple

from ..core.reports import DuplicatePair, JudgmentSource
from ..core.steps import WorkflowStep
from ..llm.service import ReasoningService
from ..utils.logging import get_logger

logger = get_logger(__name__)

STOP_WORDS: FrozenSet[str] = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
        "with", "by", "from", "up", "about", "into", "through", "during", "before",
        "after", "above", "below", "between", "under", "again", "further", "then",
        "once", "here", "there", "when", "where", "why", "how", "all", "both",
        "each", "few", "more", "most", "other", "some", "such", "no", "nor", "not",
        "only", "own", "same", "so", "than", "too", "very", "s", "t", "can",
        "will", "just", "don", "should", "now",
    }
)

HEURISTIC_DUPLICATE_THRESHOLD = 0.7

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def extract_keywords(text: str) -> FrozenSet[str]:
    """Distinct content words: longer than two characters and not stop words."""
    cleaned = _PUNCTUATION.sub(" ", text.lower())
    return frozenset(
        word for word in cleaned.split() if len(word) > 2 and word not in STOP_WORDS
    )


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text.strip().lower())


@dataclass(frozen=True)
class Judgment:
    similarity: float
    is_duplicate: bool
    rationale: str
    source: JudgmentSource


def keyword_similarity(text_a: str, text_b: str) -> Judgment:
    """Overlap of the two keyword sets relative to the larger set."""
    if _normalize(text_a) == _normalize(text_b):
        return Judgment(1.0, True, "Identical step text", "heuristic")

    keywords_a = extract_keywords(text_a)
    keywords_b = extract_keywords(text_b)
    common = keywords_a & keywords_b
    denominator = max(len(keywords_a), len(keywords_b))
    similarity = len(common) / denominator if denominator else 0.0
    return Judgment(
        similarity=similarity,
        is_duplicate=similarity > HEURISTIC_DUPLICATE_THRESHOLD,
        rationale=f"Keyword match: {len(common)}/{denominator} common keywords",
        source="heuristic",
    )


class DuplicateDetector:
    def __init__(
        self,
        reasoning: Optional[ReasoningService] = None,
        *,
        threshold: float = 0.75,
        max_concurrency: int = 4,
    ):
        self.reasoning = reasoning
        self.threshold = threshold
        self.max_concurrency = max(1, max_concurrency)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detect_heuristic(self, steps: Sequence[WorkflowStep]) -> List[DuplicatePair]:
        """Keyword-only detection; deterministic for a given list."""
        pairs: List[DuplicatePair] = []
        for i, j in _index_pairs(len(steps)):
            judgment = keyword_similarity(steps[i].text, steps[j].text)
            if judgment.is_duplicate:
                pairs.append(self._to_pair(steps, i, j, judgment))
        return pairs

    async def detect(self, steps: Sequence[WorkflowStep]) -> List[DuplicatePair]:
        """Judge all pairs, using the reasoning service when configured."""
        reasoning = self.reasoning
        if reasoning is None:
            return self.detect_heuristic(steps)

        semaphore = asyncio.Semaphore(self.max_concurrency)
        index_pairs = _index_pairs(len(steps))

        async def judge(i: int, j: int) -> Judgment:
            async with semaphore:
                return await _judge_with_reasoning(reasoning, steps[i].text, steps[j].text)

        judgments = await asyncio.gather(*(judge(i, j) for i, j in index_pairs))

        pairs: List[DuplicatePair] = []
        for (i, j), judgment in zip(index_pairs, judgments):
            if judgment.similarity >= self.threshold or judgment.is_duplicate:
                pairs.append(self._to_pair(steps, i, j, judgment))
        logger.debug(
            "Duplicate detection finished",
            extra={"pairs_checked": len(index_pairs), "duplicates": len(pairs)},
        )
        return pairs

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _to_pair(
        steps: Sequence[WorkflowStep], i: int, j: int, judgment: Judgment
    ) -> DuplicatePair:
        return DuplicatePair(
            step_a=steps[i],
            step_b=steps[j],
            index_a=i,
            index_b=j,
            similarity=judgment.similarity,
            rationale=judgment.rationale,
            source=judgment.source,
        )


def _index_pairs(count: int) -> List[Tuple[int, int]]:
    return [(i, j) for i in range(count) for j in range(i + 1, count)]


async def _judge_with_reasoning(reasoning: ReasoningService, text_a: str, text_b: str) -> Judgment:
    result = await reasoning.judge_duplicates(text_a, text_b)
    if result is None:
        return keyword_similarity(text_a, text_b)
    return Judgment(
        similarity=result.similarity,
        is_duplicate=result.are_duplicates,
        rationale=result.reasoning,
        source="reasoning",
    )
