# schedule_forecast/engine/workdays.py

from datetime import date, datetime, timedelta
from typing import Iterator

# Saturday=5, Sunday=6; no holiday calendar
WEEKEND = (5, 6)
ONE_DAY = timedelta(days=1)


def as_date(value) -> date:
    """Reduce datetime / pd.Timestamp to a plain date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def is_working_day(day) -> bool:
    return as_date(day).weekday() not in WEEKEND


def skip_to_weekday(day) -> date:
    """Same date if Mon-Fri, else the following Monday."""
    result = as_date(day)
    while result.weekday() in WEEKEND:
        result += ONE_DAY
    return result


def add_working_days(day, n: int) -> date:
    """
    Step forward one calendar day at a time, counting only Mon-Fri days,
    until n working days have been counted.

      add_working_days(Mon 2024-01-01, 4) -> Fri 2024-01-05
      add_working_days(Fri 2024-01-05, 1) -> Mon 2024-01-08
    """
    result = as_date(day)
    added = 0
    while added < n:
        result += ONE_DAY
        if result.weekday() not in WEEKEND:
            added += 1
    return result


def working_days_between(start, end) -> int:
    """
    Signed number of working days stepped over going from start to end
    (the start day itself is not counted). Inverse of add_working_days
    for weekday starts.
    """
    a, b = as_date(start), as_date(end)
    sign = 1
    if b < a:
        a, b = b, a
        sign = -1
    count = 0
    current = a
    while current < b:
        current += ONE_DAY
        if current.weekday() not in WEEKEND:
            count += 1
    return sign * count


def date_range(start, end) -> Iterator[date]:
    """Inclusive calendar-day range."""
    current, last = as_date(start), as_date(end)
    while current <= last:
        yield current
        current += ONE_DAY
