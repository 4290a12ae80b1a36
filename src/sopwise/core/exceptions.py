"""Custom exception hierarchy for sopwise."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class SopwiseException(Exception):
    """Base exception type for all sopwise errors."""

    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} | context={self.context}"


class ConfigurationError(SopwiseException):
    """Raised when configuration is missing or invalid."""


class InvalidStepListError(SopwiseException):
    """Raised when a step list breaks the ordering/text invariants."""


class ReasoningServiceError(SopwiseException):
    """Raised when the external reasoning service cannot be reached or answers badly."""


# -----------------------------------------------------------------------------
# Step editing
# -----------------------------------------------------------------------------


class EditError(SopwiseException):
    """Base class for structured step edit failures."""


class InvalidEditError(EditError):
    """Raised when an edit references a step number outside the list."""


class EditPlanError(EditError):
    """Raised when an edit plan payload cannot be parsed or validated."""
