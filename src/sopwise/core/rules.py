"""Keyword matching and declarative rule records.

Every keyword-membership test in the analyzers goes through `find_keywords`:

- text is lower-cased before matching
- a keyword that starts with a letter or digit only matches at the start of a
  word, so ``"pay"`` matches ``"payment"`` but ``"eat"`` does not match ``"create"``
- a keyword that starts with punctuation (``"?"``) matches anywhere

Rules are plain data (`KeywordRule`, `ScoreAdjustment`) evaluated by the generic
helpers below, so catalogues can be extended without new code.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Iterable, List, Pattern, Sequence, Tuple


class Priority(str, Enum):
    """Priority levels for gap suggestions."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


@lru_cache(maxsize=1024)
def keyword_pattern(keyword: str) -> Pattern[str]:
    """Compile the pattern used to look for `keyword` in lower-cased text."""
    normalized = keyword.lower()
    if normalized[:1].isalnum():
        return re.compile(r"(?<![a-z0-9])" + re.escape(normalized))
    return re.compile(re.escape(normalized))


def has_keyword(text: str, keyword: str) -> bool:
    return keyword_pattern(keyword).search(text.lower()) is not None


def find_keywords(text: str, keywords: Iterable[str]) -> List[str]:
    """Return the distinct keywords present in `text`, in catalogue order."""
    lowered = text.lower()
    found: List[str] = []
    for keyword in keywords:
        if keyword in found:
            continue
        if keyword_pattern(keyword).search(lowered):
            found.append(keyword)
    return found


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(keyword_pattern(k).search(lowered) for k in keywords)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(value, high))


# -----------------------------------------------------------------------------
# Rule records
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class KeywordRule:
    """Trigger/anti keyword rule.

    The rule matches when any trigger keyword is present (or no triggers are
    declared) and none of the anti keywords is present.
    """

    id: str
    trigger_keywords: Tuple[str, ...]
    anti_keywords: Tuple[str, ...]
    priority: Priority
    message: str

    def is_triggered(self, text: str) -> bool:
        if not self.trigger_keywords:
            return True
        return contains_any(text, self.trigger_keywords)

    def is_satisfied(self, text: str) -> bool:
        return contains_any(text, self.anti_keywords)

    def matches(self, text: str) -> bool:
        return self.is_triggered(text) and not self.is_satisfied(text)


@dataclass(frozen=True)
class ScoreAdjustment:
    """Add `delta` to a score when `keywords` are found.

    With `per_keyword`, the delta is applied once per distinct keyword found.
    """

    id: str
    keywords: Tuple[str, ...]
    delta: float
    per_keyword: bool = False

    def contribution(self, text: str) -> float:
        found = find_keywords(text, self.keywords)
        if not found:
            return 0.0
        if self.per_keyword:
            return self.delta * len(found)
        return self.delta


def apply_adjustments(text: str, base: float, table: Sequence[ScoreAdjustment]) -> float:
    """Evaluate an additive score table against `text`."""
    score = base
    for adjustment in table:
        score += adjustment.contribution(text)
    return score


def round_half_up(value: float) -> int:
    """Round like JavaScript's ``Math.round`` (halves go up)."""
    return math.floor(value + 0.5)
