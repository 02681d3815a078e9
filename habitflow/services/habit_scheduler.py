"""
Habit Scheduling Service - turns a recurrence rule into candidate dates
"""

from datetime import datetime, date, timedelta
from typing import List, Optional, Union
from dateutil.rrule import rrule, DAILY, WEEKLY, MO
import logging

from habitflow.core.dates import start_of_day
from habitflow.schemas.habit import RecurrenceKind, RecurrenceRule

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


def _midnight(d: date) -> datetime:
    return datetime.combine(d, datetime.min.time())


class HabitScheduler:
    """Pure horizon policy: (rule, anchor date, range) -> sorted candidate dates"""

    @staticmethod
    def day_of_week(d: date) -> int:
        """Day of week with Sunday=0 .. Saturday=6"""
        return d.isoweekday() % 7

    @staticmethod
    def week_start(d: DateLike) -> date:
        """Monday of the calendar week containing d"""
        d = start_of_day(d)
        return d - timedelta(days=d.weekday())

    @staticmethod
    def effective_start(anchor_date: DateLike, range_start: DateLike) -> date:
        # Never generate on the anchor (creation) day itself
        return max(start_of_day(range_start), start_of_day(anchor_date) + timedelta(days=1))

    @staticmethod
    def candidate_dates(
        rule: RecurrenceRule,
        anchor_date: DateLike,
        range_start: DateLike,
        range_end: DateLike
    ) -> List[date]:
        """Generate the sorted list of dates a habit should occur on within a range.

        Generation starts at ``max(range_start, anchor_date + 1 day)`` and ends
        at ``range_end`` inclusive. Degenerate rules yield an empty list.
        """
        start = HabitScheduler.effective_start(anchor_date, range_start)
        end = start_of_day(range_end)

        if end < start or rule is None:
            return []

        if rule.kind == RecurrenceKind.DAILY:
            return HabitScheduler._daily_dates(start, end)
        if rule.kind == RecurrenceKind.WEEKLY:
            return HabitScheduler._weekly_dates(rule.weekdays, start, end)
        if rule.kind == RecurrenceKind.CUSTOM:
            return HabitScheduler._custom_dates(rule.times_per_week, start, end)
        return []

    @staticmethod
    def _daily_dates(start: date, end: date) -> List[date]:
        return [dt.date() for dt in rrule(DAILY, dtstart=_midnight(start), until=_midnight(end))]

    @staticmethod
    def _weekly_dates(weekdays, start: date, end: date) -> List[date]:
        # dateutil counts Monday=0, weekdays here count Sunday=0
        byweekday = sorted({(d - 1) % 7 for d in weekdays if 0 <= d <= 6})
        if not byweekday:
            logger.debug("Weekly rule without weekdays, nothing to schedule")
            return []

        return [
            dt.date()
            for dt in rrule(WEEKLY, byweekday=byweekday, dtstart=_midnight(start), until=_midnight(end))
        ]

    @staticmethod
    def _custom_dates(times_per_week: Optional[int], start: date, end: date) -> List[date]:
        if not times_per_week or times_per_week <= 0:
            return []

        count = min(times_per_week, 7)
        spacing = 7 // count

        # Offsets are always taken from the week's Monday so the pattern does
        # not shift with the window start.
        first_monday = HabitScheduler.week_start(start)
        dates = []
        for monday in rrule(WEEKLY, byweekday=MO, dtstart=_midnight(first_monday), until=_midnight(end)):
            for i in range(count):
                candidate = monday.date() + timedelta(days=i * spacing)
                if start <= candidate <= end:
                    dates.append(candidate)

        return dates

    @staticmethod
    def should_generate_occurrence(rule: RecurrenceRule, anchor_date: DateLike, target_date: DateLike) -> bool:
        """Check whether a single date is a candidate for the rule"""
        target = start_of_day(target_date)
        return target in HabitScheduler.candidate_dates(rule, anchor_date, target, target)
