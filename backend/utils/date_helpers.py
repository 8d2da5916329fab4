"""
Date arithmetic for the lending windows.
"""

import calendar
from datetime import datetime, timedelta


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_next_day(moment: datetime) -> datetime:
    return start_of_day(moment) + timedelta(days=1)


def subtract_months(moment: datetime, months: int) -> datetime:
    """
    Go back a number of calendar months, clamping the day to the target month.

    Example:
        subtract_months(datetime(2024, 5, 31), 3) -> datetime(2024, 2, 29)
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
