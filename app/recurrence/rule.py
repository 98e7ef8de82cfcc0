"""Recurrence rule value objects.

A ``RecurrenceRule`` is immutable and validated when it is built, so every
rule that exists can be expanded without errors. End conditions are a small
tagged union: ``Never``, ``AfterCount`` and ``OnDate``.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Union

from app.recurrence.errors import ValidationError


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class MonthlyOption(str, Enum):
    BY_DATE = "by-date"  # e.g. "the 15th"
    BY_RELATIVE_DAY = "by-relative-day"  # e.g. "the 3rd Monday"


# Legacy form values ("date" / "day") map onto the canonical option names
MONTHLY_OPTION_ALIASES = {
    "date": MonthlyOption.BY_DATE,
    "day": MonthlyOption.BY_RELATIVE_DAY,
    "by-date": MonthlyOption.BY_DATE,
    "by-relative-day": MonthlyOption.BY_RELATIVE_DAY,
}

WEEKDAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


@dataclass(frozen=True)
class Never:
    """The series has no end."""

    end_type = "never"


@dataclass(frozen=True)
class AfterCount:
    """The series stops after ``count`` occurrences."""

    count: int
    end_type = "after_count"


@dataclass(frozen=True)
class OnDate:
    """The series stops after ``date`` (inclusive)."""

    date: date
    end_type = "on_date"


EndCondition = Union[Never, AfterCount, OnDate]


def sunday_weekday(day: date) -> int:
    """Weekday index with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def end_condition_from_fields(
    end_type: Optional[str],
    end_count: Optional[int] = None,
    end_date: Optional[date] = None,
) -> EndCondition:
    """
    Build an end condition from the flat ``endType/endCount/endDate`` fields.

    Raises:
        ValidationError: If the fields are inconsistent (e.g. ``after_count``
            without a count).
    """
    kind = (end_type or "never").strip().lower()
    if kind == "never":
        return Never()
    if kind == "after_count":
        if end_count is None:
            raise ValidationError(["end count is required when end type is after_count"])
        try:
            return AfterCount(int(end_count))
        except (TypeError, ValueError):
            raise ValidationError([f"end count must be a positive integer (got {end_count!r})"])
    if kind == "on_date":
        if end_date is None:
            raise ValidationError(["end date is required when end type is on_date"])
        if isinstance(end_date, str):
            try:
                end_date = date.fromisoformat(end_date)
            except ValueError:
                raise ValidationError([f"end date must be an ISO date (got {end_date!r})"])
        return OnDate(_as_date(end_date))
    raise ValidationError([f"end type must be one of: never, after_count, on_date (got {end_type!r})"])


def _as_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class RecurrenceRule:
    """Canonical recurrence rule anchored on the first occurrence's date."""

    type: RecurrenceType
    anchor_date: date
    interval: int = 1
    weekly_days: FrozenSet[int] = frozenset()
    monthly_option: MonthlyOption = MonthlyOption.BY_DATE
    end_condition: EndCondition = field(default_factory=Never)

    def __post_init__(self):
        violations: List[str] = []

        kind = self.type
        if not isinstance(kind, RecurrenceType):
            try:
                kind = RecurrenceType(str(kind).lower())
            except ValueError:
                violations.append(
                    "type must be one of: daily, weekly, monthly, yearly, custom "
                    f"(got {self.type!r})"
                )
                kind = None
        object.__setattr__(self, "type", kind)

        option = self.monthly_option
        if option is None:
            option = MonthlyOption.BY_DATE
        elif not isinstance(option, MonthlyOption):
            option = MONTHLY_OPTION_ALIASES.get(str(option).lower())
            if option is None:
                violations.append(
                    f"monthly option must be by-date or by-relative-day (got {self.monthly_option!r})"
                )
        object.__setattr__(self, "monthly_option", option)

        anchor = _as_date(self.anchor_date)
        if not isinstance(anchor, date):
            violations.append("anchor date must be a date")
            anchor = None
        object.__setattr__(self, "anchor_date", anchor)

        if isinstance(self.interval, bool) or not isinstance(self.interval, int) or self.interval < 1:
            violations.append(f"interval must be a positive integer (got {self.interval!r})")

        days = frozenset(self.weekly_days or ())
        object.__setattr__(self, "weekly_days", days)
        if any(isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6 for d in days):
            violations.append("weekly days must be integers between 0 (Sunday) and 6 (Saturday)")
        if kind is RecurrenceType.WEEKLY and not days:
            violations.append("weekly days must not be empty for a weekly recurrence")

        violations.extend(self._end_condition_violations(anchor))

        if violations:
            raise ValidationError(violations)

    def _end_condition_violations(self, anchor: Optional[date]) -> List[str]:
        end = self.end_condition
        if isinstance(end, Never):
            return []
        if isinstance(end, AfterCount):
            if isinstance(end.count, bool) or not isinstance(end.count, int) or end.count < 1:
                return [f"end count must be a positive integer (got {end.count!r})"]
            return []
        if isinstance(end, OnDate):
            if not isinstance(end.date, date):
                return ["end date must be a date"]
            if anchor is not None and _as_date(end.date) < anchor:
                return ["end date must not be before the anchor date"]
            return []
        return ["end condition must be one of: never, after_count, on_date"]

    @property
    def effective_type(self) -> RecurrenceType:
        """Type used for expansion; ``custom`` falls back to weekly or daily."""
        if self.type is RecurrenceType.CUSTOM:
            return RecurrenceType.WEEKLY if self.weekly_days else RecurrenceType.DAILY
        return self.type

    @property
    def sorted_weekly_days(self) -> List[int]:
        return sorted(self.weekly_days)

    @property
    def end_date(self) -> Optional[date]:
        if isinstance(self.end_condition, OnDate):
            return self.end_condition.date
        return None

    @property
    def end_count(self) -> Optional[int]:
        if isinstance(self.end_condition, AfterCount):
            return self.end_condition.count
        return None

    def with_end(self, end_condition: EndCondition) -> "RecurrenceRule":
        return replace(self, end_condition=end_condition)

    def to_pattern(self) -> Dict[str, Any]:
        """Serialize to the canonical JSON pattern stored with a recurrence."""
        return {
            "type": self.type.value,
            "interval": self.interval,
            "anchorDate": self.anchor_date.isoformat(),
            "weeklyDays": self.sorted_weekly_days,
            "monthlyOption": self.monthly_option.value,
            "endType": self.end_condition.end_type,
            "endCount": self.end_count,
            "endDate": self.end_date.isoformat() if self.end_date else None,
        }

    @classmethod
    def from_pattern(cls, pattern: Dict[str, Any]) -> "RecurrenceRule":
        anchor = pattern.get("anchorDate")
        if isinstance(anchor, str):
            anchor = date.fromisoformat(anchor)
        return cls(
            type=pattern.get("type"),
            anchor_date=anchor,
            interval=pattern.get("interval", 1),
            weekly_days=frozenset(pattern.get("weeklyDays") or ()),
            monthly_option=pattern.get("monthlyOption") or MonthlyOption.BY_DATE,
            end_condition=end_condition_from_fields(
                pattern.get("endType"), pattern.get("endCount"), pattern.get("endDate")
            ),
        )


def weekday_names(days: Iterable[int]) -> str:
    """Comma separated weekday names, e.g. ``"monday,wednesday"``."""
    return ",".join(WEEKDAY_NAMES[d] for d in sorted(days))


@dataclass(frozen=True)
class TaskOccurrence:
    """One scheduled instance produced from a recurrence rule."""

    recurrence_id: Optional[int]
    sequence_index: int
    scheduled_date: date
    origin_task_id: Optional[int] = None
