from datetime import date

import pytest

from periods import month_period, resolve_period, weekly_windows


def test_month_period_handles_leap_february() -> None:
    assert month_period(2024, 2).end == date(2024, 2, 29)
    assert month_period(2023, 2).end == date(2023, 2, 28)
    assert month_period(2024, 12).end == date(2024, 12, 31)


@pytest.mark.parametrize(
    ("year", "month", "expected"),
    [(2023, 2, 4), (2024, 2, 5), (2024, 4, 5), (2024, 3, 5)],
)
def test_weekly_window_count(year: int, month: int, expected: int) -> None:
    assert len(weekly_windows(year, month)) == expected


def test_weekly_windows_are_fixed_offsets_from_day_one() -> None:
    windows = weekly_windows(2024, 3)

    assert [(w.start.day, w.end.day) for w in windows] == [
        (1, 7),
        (8, 14),
        (15, 21),
        (22, 28),
        (29, 31),
    ]
    # March 1st 2024 is a Friday; windows ignore weekdays.
    assert windows[0].start.weekday() == 4


def test_resolve_period_variants() -> None:
    assert resolve_period(None, None) is None

    march = resolve_period(3, 2024)
    assert (march.start, march.end) == (date(2024, 3, 1), date(2024, 3, 31))

    whole_year = resolve_period(None, 2024)
    assert (whole_year.start, whole_year.end) == (date(2024, 1, 1), date(2024, 12, 31))

    with pytest.raises(ValueError):
        resolve_period(3, None)
    with pytest.raises(ValueError):
        month_period(2024, 13)
