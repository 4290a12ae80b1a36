"""Best-effort JSON extraction from model responses."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from ..core.exceptions import ReasoningServiceError

_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def extract_json_objects(raw: str) -> List[str]:
    """Return balanced top-level ``{...}`` substrings, skipping braces inside strings."""
    objects: List[str] = []
    depth = 0
    start: Optional[int] = None
    in_string = False
    escape = False
    for idx, ch in enumerate(raw):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            continue
        if ch == "{":
            if depth == 0:
                start = idx
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                objects.append(raw[start : idx + 1])
                start = None
    return objects


def parse_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of `text`.

    Tries plain JSON, then fenced code blocks, then balanced objects embedded
    in surrounding prose.

    Raises:
        ReasoningServiceError: if no JSON object can be recovered.
    """
    candidates: List[str] = [text.strip()]
    candidates.extend(block.strip() for block in _CODE_FENCE.findall(text))
    candidates.extend(extract_json_objects(text))

    for candidate in candidates:
        if not candidate:
            continue
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    raise ReasoningServiceError(
        "Failed to parse JSON object from response", context={"preview": text[:200]}
    )
