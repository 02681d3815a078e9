"""Tests for candidate date generation per recurrence rule."""

from datetime import date, datetime, timedelta

import pytest

from habitflow.schemas.habit import RecurrenceRule
from habitflow.services.habit_scheduler import HabitScheduler

from .conftest import MONDAY


def days(*offsets: int) -> list:
    return [MONDAY + timedelta(days=o) for o in offsets]


class TestDaily:
    def test_thirty_days_after_anchor(self) -> None:
        """generate(D, D+1, D+30) gives one date per day, none on D."""
        result = HabitScheduler.candidate_dates(
            RecurrenceRule.daily(), MONDAY, MONDAY + timedelta(days=1), MONDAY + timedelta(days=30)
        )

        assert len(result) == 30
        assert result[0] == MONDAY + timedelta(days=1)
        assert result[-1] == MONDAY + timedelta(days=30)
        assert MONDAY not in result

    def test_range_starting_on_anchor_skips_anchor(self) -> None:
        result = HabitScheduler.candidate_dates(
            RecurrenceRule.daily(), MONDAY, MONDAY, MONDAY + timedelta(days=30)
        )
        assert len(result) == 30
        assert MONDAY not in result

    def test_datetimes_are_truncated_to_dates(self) -> None:
        result = HabitScheduler.candidate_dates(
            RecurrenceRule.daily(),
            datetime(2026, 3, 2, 23, 30),
            datetime(2026, 3, 3, 15, 0),
            datetime(2026, 3, 5, 8, 0),
        )
        assert result == [date(2026, 3, 3), date(2026, 3, 4), date(2026, 3, 5)]

    def test_end_before_start_is_empty(self) -> None:
        assert HabitScheduler.candidate_dates(
            RecurrenceRule.daily(), MONDAY, MONDAY + timedelta(days=5), MONDAY + timedelta(days=2)
        ) == []


class TestWeekly:
    def test_mon_wed_fri_only(self) -> None:
        rule = RecurrenceRule.weekly({1, 3, 5})
        result = HabitScheduler.candidate_dates(
            rule, MONDAY - timedelta(days=30), MONDAY, MONDAY + timedelta(days=60)
        )

        assert result
        assert {HabitScheduler.day_of_week(d) for d in result} <= {1, 3, 5}
        assert result == sorted(set(result))

    def test_anchor_weekday_is_not_duplicated(self) -> None:
        """The creation Monday matches the rule but is never produced."""
        rule = RecurrenceRule.weekly({1, 3, 5})
        result = HabitScheduler.candidate_dates(rule, MONDAY, MONDAY, MONDAY + timedelta(days=13))

        assert result == days(2, 4, 7, 9, 11)

    def test_sunday_is_zero(self) -> None:
        rule = RecurrenceRule.weekly({0})
        result = HabitScheduler.candidate_dates(
            rule, date(2026, 2, 20), date(2026, 3, 1), date(2026, 3, 8)
        )
        assert result == [date(2026, 3, 1), date(2026, 3, 8)]

    def test_empty_weekdays_yield_nothing(self) -> None:
        rule = RecurrenceRule.weekly(set())
        assert HabitScheduler.candidate_dates(rule, MONDAY, MONDAY, MONDAY + timedelta(days=30)) == []


class TestCustom:
    def test_three_per_week_spaced_two_days(self) -> None:
        rule = RecurrenceRule.custom(3)
        result = HabitScheduler.candidate_dates(
            rule, date(2026, 1, 1), MONDAY, MONDAY + timedelta(days=13)
        )

        assert result == days(0, 2, 4, 7, 9, 11)

    def test_pattern_is_stable_when_window_starts_mid_week(self) -> None:
        rule = RecurrenceRule.custom(3)
        result = HabitScheduler.candidate_dates(
            rule, date(2026, 1, 1), MONDAY + timedelta(days=1), MONDAY + timedelta(days=13)
        )

        assert result == days(2, 4, 7, 9, 11)

    def test_anchor_mid_week_clips_earlier_slots(self) -> None:
        rule = RecurrenceRule.custom(3)
        wednesday = MONDAY + timedelta(days=2)
        result = HabitScheduler.candidate_dates(rule, wednesday, MONDAY, MONDAY + timedelta(days=6))

        assert result == days(4)

    def test_four_per_week_uses_consecutive_days(self) -> None:
        rule = RecurrenceRule.custom(4)
        result = HabitScheduler.candidate_dates(
            rule, date(2026, 1, 1), MONDAY, MONDAY + timedelta(days=6)
        )
        assert result == days(0, 1, 2, 3)

    @pytest.mark.parametrize("times_per_week", [7, 10])
    def test_seven_or_more_is_every_day(self, times_per_week: int) -> None:
        rule = RecurrenceRule.custom(times_per_week)
        result = HabitScheduler.candidate_dates(
            rule, date(2026, 1, 1), MONDAY, MONDAY + timedelta(days=6)
        )
        assert result == days(0, 1, 2, 3, 4, 5, 6)

    @pytest.mark.parametrize("times_per_week", [0, -2, None])
    def test_non_positive_frequency_yields_nothing(self, times_per_week) -> None:
        rule = RecurrenceRule(kind="Custom", times_per_week=times_per_week)
        assert HabitScheduler.candidate_dates(
            rule, date(2026, 1, 1), MONDAY, MONDAY + timedelta(days=30)
        ) == []


def test_none_rule_is_always_empty() -> None:
    assert HabitScheduler.candidate_dates(
        RecurrenceRule.none(), date(2026, 1, 1), MONDAY, MONDAY + timedelta(days=30)
    ) == []


def test_week_start_is_monday() -> None:
    assert HabitScheduler.week_start(date(2026, 3, 8)) == MONDAY
    assert HabitScheduler.week_start(MONDAY) == MONDAY


def test_should_generate_occurrence() -> None:
    rule = RecurrenceRule.weekly({2})
    tuesday = MONDAY + timedelta(days=1)

    assert HabitScheduler.should_generate_occurrence(rule, MONDAY, tuesday)
    assert not HabitScheduler.should_generate_occurrence(rule, MONDAY, MONDAY + timedelta(days=2))
    assert not HabitScheduler.should_generate_occurrence(rule, tuesday, tuesday)


@pytest.mark.parametrize(
    ("rule", "label"),
    [
        (RecurrenceRule.daily(), "Every day"),
        (RecurrenceRule.weekly({5, 1, 3}), "Weekly: Mon, Wed, Fri"),
        (RecurrenceRule.weekly(set()), "Weekly"),
        (RecurrenceRule.custom(3), "3x per week"),
        (RecurrenceRule(kind="Custom"), "1x per week"),
        (RecurrenceRule.none(), ""),
    ],
)
def test_describe(rule: RecurrenceRule, label: str) -> None:
    assert rule.describe() == label
