# tests/test_recurrence_engine.py

from datetime import date, timedelta
import logging

import pytest

from app.recurrence import (
    AfterCount,
    Never,
    OnDate,
    RangeOverflowError,
    RecurrenceRule,
    is_occurrence,
    iter_occurrences,
    materialize,
    next_occurrence,
    occurrence_at,
    occurrence_index,
    occurrences_in_range,
    truncate_before,
)
from app.recurrence.rule import sunday_weekday

MON, TUE, WED, FRI = 1, 2, 3, 5


def dates(rule, start, end, **kwargs):
    return occurrences_in_range(rule, start, end, **kwargs).to_list()


class TestDaily:
    def test_every_other_day(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), interval=2)

        assert dates(rule, date(2025, 1, 1), date(2025, 1, 10)) == [
            date(2025, 1, 1),
            date(2025, 1, 3),
            date(2025, 1, 5),
            date(2025, 1, 7),
            date(2025, 1, 9),
        ]

    @pytest.mark.parametrize("interval", [1, 2, 3, 7, 30])
    def test_dates_are_interval_days_apart(self, interval):
        rule = RecurrenceRule(type="daily", anchor_date=date(2024, 2, 27), interval=interval)

        result = dates(rule, date(2024, 3, 15), date(2025, 3, 15))

        assert result
        assert all((b - a).days == interval for a, b in zip(result, result[1:]))
        assert all((d - rule.anchor_date).days % interval == 0 for d in result)

    def test_window_starting_between_occurrences(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), interval=2)

        assert dates(rule, date(2025, 1, 2), date(2025, 1, 6)) == [date(2025, 1, 3), date(2025, 1, 5)]

    def test_window_before_anchor_is_empty(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1))

        assert dates(rule, date(2024, 12, 1), date(2024, 12, 31)) == []

    def test_inverted_window_is_empty(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1))

        assert dates(rule, date(2025, 1, 10), date(2025, 1, 1)) == []


class TestWeekly:
    def test_monday_and_wednesday(self):
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 6), weekly_days={MON, WED})

        assert dates(rule, date(2025, 1, 6), date(2025, 1, 19)) == [
            date(2025, 1, 6),
            date(2025, 1, 8),
            date(2025, 1, 13),
            date(2025, 1, 15),
        ]

    def test_every_returned_weekday_is_selected(self):
        days = {MON, WED, FRI}
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 6), interval=3, weekly_days=days)

        result = dates(rule, date(2025, 1, 1), date(2025, 12, 31))

        assert result == sorted(result)
        assert len(set(result)) == len(result)
        assert all(sunday_weekday(d) in days for d in result)

    def test_every_other_week(self):
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 6), interval=2, weekly_days={MON})

        assert dates(rule, date(2025, 1, 1), date(2025, 2, 5)) == [
            date(2025, 1, 6),
            date(2025, 1, 20),
            date(2025, 2, 3),
        ]

    def test_days_before_anchor_in_first_week_are_skipped(self):
        # Anchor on a Wednesday; Monday of that week is before the series starts
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 8), weekly_days={MON, WED})

        assert dates(rule, date(2025, 1, 1), date(2025, 1, 14)) == [date(2025, 1, 8), date(2025, 1, 13)]

    def test_anchor_outside_selected_days(self):
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 7), weekly_days={MON})

        assert dates(rule, date(2025, 1, 1), date(2025, 1, 21)) == [date(2025, 1, 13), date(2025, 1, 20)]

    def test_sunday_starts_the_week(self):
        # Sunday and Saturday of the anchor's week both count
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 5), weekly_days={0, 6})

        assert dates(rule, date(2025, 1, 5), date(2025, 1, 12)) == [
            date(2025, 1, 5),
            date(2025, 1, 11),
            date(2025, 1, 12),
        ]


class TestMonthly:
    def test_month_end_is_clamped(self):
        rule = RecurrenceRule(type="monthly", anchor_date=date(2025, 1, 31))

        assert dates(rule, date(2025, 1, 1), date(2025, 4, 30)) == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
            date(2025, 4, 30),
        ]

    def test_month_end_is_clamped_in_leap_year(self):
        rule = RecurrenceRule(type="monthly", anchor_date=date(2024, 1, 31))

        assert dates(rule, date(2024, 2, 1), date(2024, 3, 31)) == [date(2024, 2, 29), date(2024, 3, 31)]

    def test_quarterly(self):
        rule = RecurrenceRule(type="monthly", anchor_date=date(2025, 1, 15), interval=3)

        assert dates(rule, date(2025, 1, 1), date(2025, 12, 31)) == [
            date(2025, 1, 15),
            date(2025, 4, 15),
            date(2025, 7, 15),
            date(2025, 10, 15),
        ]

    def test_relative_day_keeps_ordinal_weekday(self):
        # 2025-01-14 is the second Tuesday of January
        rule = RecurrenceRule(type="monthly", anchor_date=date(2025, 1, 14), monthly_option="by-relative-day")

        assert dates(rule, date(2025, 1, 1), date(2025, 3, 31)) == [
            date(2025, 1, 14),
            date(2025, 2, 11),
            date(2025, 3, 11),
        ]
        assert all(d.weekday() == 1 for d in dates(rule, date(2025, 1, 1), date(2026, 1, 1)))

    def test_fifth_weekday_means_last(self):
        # 2025-01-31 is the fifth Friday; February and March have only four
        rule = RecurrenceRule(type="monthly", anchor_date=date(2025, 1, 31), monthly_option="by-relative-day")

        assert dates(rule, date(2025, 1, 1), date(2025, 3, 31)) == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 28),
        ]


class TestYearly:
    def test_leap_day_anchor(self):
        rule = RecurrenceRule(type="yearly", anchor_date=date(2024, 2, 29))

        assert dates(rule, date(2024, 1, 1), date(2028, 12, 31)) == [
            date(2024, 2, 29),
            date(2025, 2, 28),
            date(2026, 2, 28),
            date(2027, 2, 28),
            date(2028, 2, 29),
        ]

    def test_every_other_year(self):
        rule = RecurrenceRule(type="yearly", anchor_date=date(2025, 6, 1), interval=2)

        assert dates(rule, date(2026, 1, 1), date(2030, 1, 1)) == [date(2027, 6, 1), date(2029, 6, 1)]


class TestCustom:
    def test_without_weekdays_expands_daily(self):
        rule = RecurrenceRule(type="custom", anchor_date=date(2025, 1, 1), interval=3)

        assert dates(rule, date(2025, 1, 1), date(2025, 1, 7)) == [date(2025, 1, 1), date(2025, 1, 4), date(2025, 1, 7)]

    def test_with_weekdays_expands_weekly(self):
        rule = RecurrenceRule(type="custom", anchor_date=date(2025, 1, 6), weekly_days={TUE})

        assert dates(rule, date(2025, 1, 6), date(2025, 1, 14)) == [date(2025, 1, 7), date(2025, 1, 14)]


class TestEndConditions:
    def test_after_count_yields_exactly_count(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), end_condition=AfterCount(5))

        assert len(dates(rule, date(2020, 1, 1), date(2030, 1, 1))) == 5

    def test_after_count_counts_from_anchor_not_window(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), end_condition=AfterCount(5))

        assert dates(rule, date(2025, 1, 3), date(2025, 12, 31)) == [
            date(2025, 1, 3),
            date(2025, 1, 4),
            date(2025, 1, 5),
        ]

    def test_after_count_weekly_counts_occurrences(self):
        rule = RecurrenceRule(
            type="weekly",
            anchor_date=date(2025, 1, 6),
            weekly_days={MON, WED},
            end_condition=AfterCount(3),
        )

        assert dates(rule, date(2025, 1, 1), date(2025, 12, 31)) == [
            date(2025, 1, 6),
            date(2025, 1, 8),
            date(2025, 1, 13),
        ]

    def test_on_date_is_inclusive(self):
        end = date(2025, 1, 20)
        rule = RecurrenceRule(
            type="weekly",
            anchor_date=date(2025, 1, 6),
            weekly_days={MON, WED},
            end_condition=OnDate(end),
        )

        result = dates(rule, date(2025, 1, 1), date(2025, 12, 31))

        assert result[-1] == end
        assert all(d <= end for d in result)
        assert len(result) == 5

    def test_range_past_end_returns_nothing(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), end_condition=AfterCount(2))

        assert dates(rule, date(2025, 2, 1), date(2025, 3, 1)) == []


class TestSequence:
    def test_same_arguments_same_output(self):
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 6), weekly_days={MON, FRI})
        sequence = occurrences_in_range(rule, date(2025, 1, 1), date(2025, 6, 30))

        assert list(sequence) == list(sequence)
        assert sequence.to_list() == dates(rule, date(2025, 1, 1), date(2025, 6, 30))

    def test_indexed_pairs_follow_the_series(self):
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 8), weekly_days={MON, WED})

        pairs = list(occurrences_in_range(rule, date(2025, 1, 15), date(2025, 1, 22)).indexed())

        assert pairs == [(2, date(2025, 1, 15)), (3, date(2025, 1, 20)), (4, date(2025, 1, 22))]

    def test_far_window_matches_expanding_from_anchor(self):
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 8), interval=2, weekly_days={MON, WED, FRI})

        everything = list(iter_occurrences(rule, None, date(2026, 12, 31)))
        window = list(iter_occurrences(rule, date(2026, 3, 1), date(2026, 4, 30)))

        assert window == [(i, d) for i, d in everything if date(2026, 3, 1) <= d <= date(2026, 4, 30)]

    def test_limit_truncates_and_flags(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1))
        sequence = occurrences_in_range(rule, date(2025, 1, 1), date(2025, 12, 31), limit=10)

        result = sequence.to_list()

        assert len(result) == 10
        assert sequence.truncated

    def test_collect_returns_the_flag_with_the_dates(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1))
        sequence = occurrences_in_range(rule, date(2025, 1, 1), date(2025, 12, 31), limit=3)

        pairs, truncated = sequence.collect()

        assert pairs == [(0, date(2025, 1, 1)), (1, date(2025, 1, 2)), (2, date(2025, 1, 3))]
        assert truncated
        # Nothing is left on the shared sequence
        assert not sequence.truncated

    def test_limit_not_reached_is_not_truncated(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1))
        sequence = occurrences_in_range(rule, date(2025, 1, 1), date(2025, 1, 10), limit=10)

        assert len(sequence.to_list()) == 10
        assert not sequence.truncated

    def test_unbounded_window_stops_at_safety_cap(self, caplog):
        rule = RecurrenceRule(type="daily", anchor_date=date(2000, 1, 1), end_condition=Never())
        sequence = occurrences_in_range(rule, date(2000, 1, 1), date(2199, 12, 31))

        with caplog.at_level(logging.WARNING, logger="app.recurrence.engine"):
            result = sequence.to_list()

        assert len(result) == 10000
        assert result[-1] == date(2000, 1, 1) + timedelta(days=9999)
        assert sequence.truncated
        assert "truncated" in caplog.text

    def test_strict_expansion_raises_range_overflow(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1))
        sequence = occurrences_in_range(rule, date(2025, 1, 1), date(2025, 12, 31), limit=5)

        with pytest.raises(RangeOverflowError) as exc_info:
            sequence.to_list(strict=True)

        assert exc_info.value.code == "RANGE_OVERFLOW"
        assert len(exc_info.value.dates) == 5
        assert exc_info.value.details["last_date"] == "2025-01-05"

    def test_expansion_stops_at_max_date(self):
        rule = RecurrenceRule(type="yearly", anchor_date=date(9990, 3, 1))

        assert dates(rule, date(9990, 1, 1), date.max)[-1] == date(9999, 3, 1)


class TestQueries:
    def test_occurrence_index(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), interval=2)

        assert occurrence_index(rule, date(2025, 1, 9)) == 4
        assert occurrence_index(rule, date(2025, 1, 10)) is None
        assert is_occurrence(rule, date(2025, 1, 1))

    def test_occurrence_at_maps_index_back_to_date(self):
        rule = RecurrenceRule(
            type="weekly", anchor_date=date(2025, 1, 8), weekly_days={MON, WED}, end_condition=AfterCount(4)
        )

        assert occurrence_at(rule, 0) == date(2025, 1, 8)
        assert occurrence_at(rule, 3) == date(2025, 1, 20)
        assert occurrence_at(rule, 4) is None
        assert occurrence_at(rule, -1) is None

    def test_next_occurrence_is_strictly_after(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), interval=3)

        assert next_occurrence(rule, date(2025, 1, 1)) == date(2025, 1, 4)
        assert next_occurrence(rule, date(2025, 1, 2)) == date(2025, 1, 4)
        assert next_occurrence(rule, date(2024, 12, 1)) == date(2025, 1, 1)

    def test_next_occurrence_after_the_series_ended(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), interval=3, end_condition=AfterCount(2))

        assert next_occurrence(rule, date(2025, 1, 4)) is None

    def test_next_occurrence_monthly_clamped(self):
        rule = RecurrenceRule(type="monthly", anchor_date=date(2025, 1, 31))

        assert next_occurrence(rule, date(2025, 2, 28)) == date(2025, 3, 31)


class TestTruncateBefore:
    def test_open_series_gets_end_date(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1))

        shortened = truncate_before(rule, date(2025, 1, 5))

        assert shortened.end_condition == OnDate(date(2025, 1, 4))
        assert dates(shortened, date(2025, 1, 1), date(2025, 12, 31))[-1] == date(2025, 1, 4)

    def test_counted_series_keeps_counting(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), end_condition=AfterCount(10))

        assert truncate_before(rule, date(2025, 1, 5)).end_condition == AfterCount(4)

    def test_earlier_end_is_kept(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1), end_condition=OnDate(date(2025, 1, 3)))

        assert truncate_before(rule, date(2025, 2, 1)) == rule

    def test_cut_at_anchor_removes_everything(self):
        rule = RecurrenceRule(type="daily", anchor_date=date(2025, 1, 1))

        assert truncate_before(rule, date(2025, 1, 1)) is None

    def test_weekly_anchor_off_selected_days(self):
        # Tuesday anchor, Mondays only: the first occurrence is Jan 13
        rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 7), weekly_days={MON})

        assert truncate_before(rule, date(2025, 1, 13)) is None
        assert truncate_before(rule, date(2025, 1, 10)) is None
        assert truncate_before(rule, date(2025, 1, 14)).end_condition == OnDate(date(2025, 1, 13))

    def test_counted_weekly_anchor_off_selected_days(self):
        rule = RecurrenceRule(
            type="weekly", anchor_date=date(2025, 1, 7), weekly_days={MON}, end_condition=AfterCount(5)
        )

        assert truncate_before(rule, date(2025, 1, 13)) is None
        assert truncate_before(rule, date(2025, 1, 20)).end_condition == AfterCount(1)


def test_materialize_builds_occurrences():
    rule = RecurrenceRule(type="weekly", anchor_date=date(2025, 1, 6), weekly_days={MON, WED})

    occurrences = materialize(rule, 7, origin_task_id=3, range_end=date(2025, 1, 15))

    assert [o.scheduled_date for o in occurrences] == [
        date(2025, 1, 6),
        date(2025, 1, 8),
        date(2025, 1, 13),
        date(2025, 1, 15),
    ]
    assert [o.sequence_index for o in occurrences] == [0, 1, 2, 3]
    assert {o.recurrence_id for o in occurrences} == {7}
    assert {o.origin_task_id for o in occurrences} == {3}
