import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

WINDOW_DAYS = 7


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 1) - date.resolution
    return date(year, month + 1, 1) - date.resolution


def month_period(year: int, month: int) -> Period:
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12")
    return Period(f"{year:04d}-{month:02d}", date(year, month, 1), month_end(year, month))


def year_period(year: int) -> Period:
    return Period(f"{year:04d}", date(year, 1, 1), date(year, 12, 31))


def resolve_period(month: Optional[int], year: Optional[int]) -> Optional[Period]:
    """Map optional month/year query values to a period.

    Neither given means all time (``None``); a year alone covers the calendar
    year. A month without a year is ambiguous and rejected.
    """
    if month is None and year is None:
        return None
    if year is None:
        raise ValueError("Month requires a year")
    if month is None:
        return year_period(year)
    return month_period(year, month)


def weekly_windows(year: int, month: int) -> list[Period]:
    """Split a month into 7-day windows counted from day 1.

    The final window is shorter when the month length is not a multiple of
    seven. Windows are not aligned to weekdays.
    """
    period = month_period(year, month)
    days_in_month = period.end.day
    windows: list[Period] = []
    for index in range(math.ceil(days_in_month / WINDOW_DAYS)):
        start = period.start + timedelta(days=index * WINDOW_DAYS)
        last_day = min((index + 1) * WINDOW_DAYS, days_in_month)
        windows.append(
            Period(f"{period.slug}-w{index + 1}", start, date(year, month, last_day))
        )
    return windows
