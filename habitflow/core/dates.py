from datetime import date, datetime
from typing import Union

from dateutil import tz

from habitflow.core.config import settings


def start_of_day(value: Union[date, datetime]) -> date:
    """Truncate a date or datetime to its local calendar date"""
    if isinstance(value, datetime):
        return value.date()
    return value


def local_today() -> date:
    """Calendar date in the configured timezone, the same zone the refresh job fires in"""
    return datetime.now(tz.gettz(settings.timezone)).date()
