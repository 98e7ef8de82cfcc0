"""
Recurrence expansion.

Every function here is pure: the output depends only on the rule and the
arguments, so callers may expand the same rule concurrently. Dates are
computed from the anchor for each period rather than by stepping from the
previous occurrence, which keeps month-end clamping exact (Jan 31 -> Feb 28
-> Mar 31).
"""
from datetime import date, timedelta
from itertools import islice
import logging
from typing import Iterator, List, Optional, Tuple

from dateutil.relativedelta import relativedelta, MO, TU, WE, TH, FR, SA, SU

from app.config import RECURRENCE_MAX_OCCURRENCES
from app.recurrence.errors import RangeOverflowError
from app.recurrence.rule import (
    AfterCount,
    MonthlyOption,
    OnDate,
    RecurrenceRule,
    RecurrenceType,
    TaskOccurrence,
    sunday_weekday,
)

logger = logging.getLogger(__name__)

# Indexed by date.weekday() (Monday = 0)
_RELATIVE_WEEKDAYS = (MO, TU, WE, TH, FR, SA, SU)


def _week_start(day: date) -> date:
    """Sunday that starts the week containing ``day``."""
    return day - timedelta(days=sunday_weekday(day))


def _nth_weekday(month_start: date, weekday: int, ordinal: int) -> date:
    """The ``ordinal``-th ``weekday`` of a month; ordinal 5 means the last one."""
    relative = _RELATIVE_WEEKDAYS[weekday]
    if ordinal >= 5:
        return month_start + relativedelta(day=31, weekday=relative(-1))
    return month_start + relativedelta(weekday=relative(+ordinal))


def _first_period(rule: RecurrenceRule, start: Optional[date]) -> int:
    """Index of the first period that can contain a date on or after ``start``."""
    anchor = rule.anchor_date
    if start is None or start <= anchor:
        return 0

    kind = rule.effective_type
    if kind is RecurrenceType.DAILY:
        return (start - anchor).days // rule.interval
    if kind is RecurrenceType.WEEKLY:
        weeks = (_week_start(start) - _week_start(anchor)).days // 7
        return weeks // rule.interval
    if kind is RecurrenceType.MONTHLY:
        months = (start.year - anchor.year) * 12 + (start.month - anchor.month)
        return months // rule.interval
    return (start.year - anchor.year) // rule.interval


def _first_week_count(rule: RecurrenceRule) -> int:
    anchor_weekday = sunday_weekday(rule.anchor_date)
    return sum(1 for d in rule.weekly_days if d >= anchor_weekday)


def _sequence_offset(rule: RecurrenceRule, period: int) -> int:
    """Sequence index of the first occurrence in ``period``."""
    if period == 0:
        return 0
    if rule.effective_type is RecurrenceType.WEEKLY:
        return _first_week_count(rule) + (period - 1) * len(rule.weekly_days)
    return period


def _period_dates(rule: RecurrenceRule, period: int) -> List[date]:
    anchor = rule.anchor_date
    step = period * rule.interval
    kind = rule.effective_type

    if kind is RecurrenceType.DAILY:
        return [anchor + timedelta(days=step)]

    if kind is RecurrenceType.WEEKLY:
        week = _week_start(anchor) + timedelta(weeks=step)
        dates = [week + timedelta(days=d) for d in rule.sorted_weekly_days]
        if period == 0:
            dates = [d for d in dates if d >= anchor]
        return dates

    if kind is RecurrenceType.MONTHLY:
        if rule.monthly_option is MonthlyOption.BY_RELATIVE_DAY:
            month_start = anchor.replace(day=1) + relativedelta(months=step)
            ordinal = (anchor.day - 1) // 7 + 1
            return [_nth_weekday(month_start, anchor.weekday(), ordinal)]
        # relativedelta clamps to the last day of shorter months
        return [anchor + relativedelta(months=step)]

    return [anchor + relativedelta(years=step)]


def iter_occurrences(
    rule: RecurrenceRule,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Iterator[Tuple[int, date]]:
    """
    Yield ``(sequence_index, date)`` pairs for ``rule`` within ``[start, end]``.

    Args:
        rule: A validated recurrence rule
        start: Inclusive lower bound, or None for the anchor
        end: Inclusive upper bound, or None for no window bound

    The generator is unbounded for a ``Never`` rule with no ``end``; use
    ``occurrences_in_range`` for capped expansion.
    """
    if start is not None and end is not None and start > end:
        return

    count_limit = rule.end_count
    date_limit = rule.end_date

    period = _first_period(rule, start)
    index = _sequence_offset(rule, period)
    previous = None

    while True:
        try:
            dates = _period_dates(rule, period)
        except (OverflowError, ValueError):
            # Ran past date.max
            return

        for day in dates:
            if count_limit is not None and index >= count_limit:
                return
            if date_limit is not None and day > date_limit:
                return
            if end is not None and day > end:
                return

            sequence_index = index
            index += 1
            if start is not None and day < start:
                continue
            if previous is not None and day <= previous:
                continue
            previous = day
            yield sequence_index, day

        if count_limit is not None and index >= count_limit:
            return
        period += 1


class OccurrenceSequence:
    """
    Lazy, restartable view of a rule's occurrences in a window.

    Each iteration starts over from the rule. Iteration stops after ``limit``
    dates; ``truncated`` then reports that the window held more.

    ``truncated`` describes the last iteration of this object, so a sequence
    iterated that way belongs to one caller. ``collect()`` returns the flag
    with the dates and keeps nothing on the instance.
    """

    def __init__(
        self,
        rule: RecurrenceRule,
        range_start: Optional[date],
        range_end: Optional[date],
        limit: Optional[int] = None,
    ):
        self.rule = rule
        self.range_start = range_start
        self.range_end = range_end
        self.limit = limit if limit is not None else RECURRENCE_MAX_OCCURRENCES
        self.truncated = False

    def _log_truncation(self) -> None:
        logger.warning(
            "Recurrence expansion truncated at %s occurrences (type=%s anchor=%s)",
            self.limit,
            self.rule.type.value,
            self.rule.anchor_date,
        )

    def indexed(self) -> Iterator[Tuple[int, date]]:
        self.truncated = False
        produced = 0
        for sequence_index, day in iter_occurrences(self.rule, self.range_start, self.range_end):
            if produced >= self.limit:
                self.truncated = True
                self._log_truncation()
                return
            produced += 1
            yield sequence_index, day

    def collect(self) -> Tuple[List[Tuple[int, date]], bool]:
        """Expand the window once: ``(pairs, truncated)``."""
        pairs = list(islice(iter_occurrences(self.rule, self.range_start, self.range_end), self.limit + 1))
        truncated = len(pairs) > self.limit
        if truncated:
            self._log_truncation()
        return pairs[:self.limit], truncated

    def __iter__(self) -> Iterator[date]:
        for _, day in self.indexed():
            yield day

    def to_list(self, strict: bool = False) -> List[date]:
        """
        Materialize the window.

        Raises:
            RangeOverflowError: When ``strict`` is set and the cap was hit.
        """
        pairs, truncated = self.collect()
        self.truncated = truncated
        dates = [day for _, day in pairs]
        if strict and truncated:
            raise RangeOverflowError(self.limit, dates)
        return dates


def occurrences_in_range(
    rule: RecurrenceRule,
    range_start: Optional[date],
    range_end: Optional[date],
    limit: Optional[int] = None,
) -> OccurrenceSequence:
    """Occurrence dates of ``rule`` in ``[range_start, range_end]``, ascending."""
    return OccurrenceSequence(rule, range_start, range_end, limit=limit)


def occurrence_index(rule: RecurrenceRule, day: date) -> Optional[int]:
    """Sequence index of ``day`` if it is an occurrence of ``rule``."""
    for sequence_index, _ in iter_occurrences(rule, day, day):
        return sequence_index
    return None


def is_occurrence(rule: RecurrenceRule, day: date) -> bool:
    return occurrence_index(rule, day) is not None


def occurrence_at(rule: RecurrenceRule, sequence_index: int) -> Optional[date]:
    """Scheduled date of the ``sequence_index``-th occurrence, or None past the end."""
    if sequence_index < 0:
        return None
    for index, day in iter_occurrences(rule):
        if index == sequence_index:
            return day
        if index > sequence_index:
            break
    return None


def next_occurrence(rule: RecurrenceRule, after: date) -> Optional[date]:
    """First occurrence strictly after ``after``, or None when the series has ended."""
    try:
        start = after + timedelta(days=1)
    except OverflowError:
        return None
    for _, day in iter_occurrences(rule, start):
        return day
    return None


def truncate_before(rule: RecurrenceRule, day: date) -> Optional[RecurrenceRule]:
    """
    End the series just before ``day``.

    Returns the shortened rule, the rule unchanged when it already ends
    earlier, or None when no occurrence would remain.
    """
    if day <= rule.anchor_date:
        return None
    # A weekly anchor off its selected days may leave nothing before ``day``
    for _ in iter_occurrences(rule, None, day - timedelta(days=1)):
        break
    else:
        return None

    if isinstance(rule.end_condition, AfterCount):
        for sequence_index, _ in iter_occurrences(rule, day):
            return rule.with_end(AfterCount(sequence_index)) if sequence_index > 0 else None
        return rule

    cut = day - timedelta(days=1)
    if rule.end_date is not None and rule.end_date <= cut:
        return rule
    return rule.with_end(OnDate(cut))


def materialize(
    rule: RecurrenceRule,
    recurrence_id: Optional[int],
    origin_task_id: Optional[int] = None,
    range_start: Optional[date] = None,
    range_end: Optional[date] = None,
    limit: Optional[int] = None,
) -> List[TaskOccurrence]:
    """Build ``TaskOccurrence`` values for a window of the series."""
    pairs, _ = occurrences_in_range(rule, range_start, range_end, limit=limit).collect()
    return [
        TaskOccurrence(
            recurrence_id=recurrence_id,
            sequence_index=sequence_index,
            scheduled_date=day,
            origin_task_id=origin_task_id,
        )
        for sequence_index, day in pairs
    ]
