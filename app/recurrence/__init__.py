"""Recurrence engine: rules, end conditions and date expansion."""

from .engine import (
    OccurrenceSequence,
    is_occurrence,
    iter_occurrences,
    materialize,
    next_occurrence,
    occurrence_at,
    occurrence_index,
    occurrences_in_range,
    truncate_before,
)
from .errors import RangeOverflowError, RecurrenceError, ValidationError
from .rule import (
    AfterCount,
    MonthlyOption,
    Never,
    OnDate,
    RecurrenceRule,
    RecurrenceType,
    TaskOccurrence,
    end_condition_from_fields,
)

__all__ = [
    "AfterCount",
    "MonthlyOption",
    "Never",
    "OccurrenceSequence",
    "OnDate",
    "RangeOverflowError",
    "RecurrenceError",
    "RecurrenceRule",
    "RecurrenceType",
    "TaskOccurrence",
    "ValidationError",
    "end_condition_from_fields",
    "is_occurrence",
    "iter_occurrences",
    "materialize",
    "next_occurrence",
    "occurrence_at",
    "occurrence_index",
    "occurrences_in_range",
    "truncate_before",
]
