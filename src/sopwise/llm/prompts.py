"""Prompt text for the reasoning service."""

from __future__ import annotations

from typing import Sequence

DUPLICATE_SYSTEM_PROMPT = (
    "You are an expert at comparing business process steps. Return only valid JSON."
)

ORDERING_SYSTEM_PROMPT = """You are an expert workflow analyst. Analyze the given workflow steps for logical sequencing issues and suggest improvements. Consider:

1. Logical cause-and-effect relationships
2. Safety and best practices
3. Domain-specific knowledge (medical, business, personal, creative, etc.)
4. Efficiency and user experience
5. Natural progression and flow

Provide a JSON response with:
- "needsReordering": boolean
- "suggestedSteps": array of reordered step texts (if needed)
- "reasoning": detailed explanation of why reordering is needed
- "confidence": confidence score (0-1)

If no reordering is needed, set "needsReordering": false and keep original steps."""


def duplicate_prompt(step_a: str, step_b: str) -> str:
    return f"""Compare these two workflow steps and determine if they are duplicates (same action/meaning).

Step 1: "{step_a}"
Step 2: "{step_b}"

Consider:
- Do they describe the SAME action, even with different words?
- Examples of duplicates:
  * "Customer pays bill" = "Customer makes payment" (same action)
  * "Verify email address" = "Check email validity" (same action)
  * "User logs in" = "User authenticates" (same action)

- Examples of NOT duplicates:
  * "Customer pays bill" != "Customer receives invoice" (different actions)
  * "Check if urgent" != "If urgent, call manager" (condition vs action)

Return ONLY valid JSON:
{{
  "areDuplicates": true or false,
  "similarity": 0.0 to 1.0,
  "reasoning": "Brief explanation"
}}"""


def ordering_prompt(step_texts: Sequence[str]) -> str:
    numbered = "\n".join(f"{idx}. {text}" for idx, text in enumerate(step_texts, 1))
    return (
        "Analyze this workflow for logical ordering issues:\n\n"
        f"{numbered}\n\n"
        "Consider the logical sequence, safety, efficiency, and domain-specific best "
        "practices. Suggest improvements if needed."
    )


GAP_SYSTEM_PROMPT = (
    "You are an expert workflow analyst. Analyze workflows from any domain and "
    "identify missing steps. Return only valid JSON."
)


def gap_prompt(step_texts: Sequence[str]) -> str:
    numbered = "\n".join(f"{idx}. {text}" for idx, text in enumerate(step_texts, 1))
    return f"""Analyze this workflow and identify missing steps.

Workflow:
{numbered}

Infer the domain from the steps themselves. Look for missing preparation,
prerequisites, safety or consent checks, verification and cleanup.
Positions are zero-based insertion points into the list above.

Return ONLY valid JSON:
{{
  "domain": "detected domain",
  "confidence": 0.0 to 1.0,
  "missingSteps": [
    {{
      "position": 0,
      "suggestion": "Missing step text",
      "reason": "Why it is needed",
      "priority": "CRITICAL" | "HIGH" | "MEDIUM" | "LOW",
      "impact": "What goes wrong without it"
    }}
  ]
}}"""
