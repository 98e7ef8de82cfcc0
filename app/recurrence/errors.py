"""Errors raised by the recurrence engine."""
from datetime import date
from typing import Any, Dict, List, Optional


class RecurrenceError(Exception):
    """Base exception for recurrence errors."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(RecurrenceError):
    """A recurrence rule violates one or more construction constraints."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__(
            code="VALIDATION_ERROR",
            message="Invalid recurrence rule: " + "; ".join(self.violations),
            details={"violations": self.violations},
        )


class RangeOverflowError(RecurrenceError):
    """Expansion hit the occurrence cap; ``dates`` holds what was produced."""

    def __init__(self, limit: int, dates: List[date]):
        self.limit = limit
        self.dates = list(dates)
        super().__init__(
            code="RANGE_OVERFLOW",
            message=f"Recurrence expansion truncated at {limit} occurrences",
            details={
                "limit": limit,
                "last_date": self.dates[-1].isoformat() if self.dates else None,
            },
        )
