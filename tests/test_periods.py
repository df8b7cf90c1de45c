from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from models import Granularity
from periods import UnknownWindow, previous_window, resolve_window

BERLIN = ZoneInfo("Europe/Berlin")
# a Friday
NOW = datetime(2024, 3, 15, 18, 30, tzinfo=BERLIN)


def test_all_time_is_unbounded_with_month_buckets() -> None:
    window = resolve_window("all_time", now=NOW, tz=BERLIN)
    assert window.granularity == Granularity.month
    assert window.start is None and window.end is None
    assert window.query_params() == {}
    assert previous_window(window) is None


def test_today_covers_local_calendar_day() -> None:
    window = resolve_window("today", now=NOW, tz=BERLIN)
    assert window.granularity == Granularity.day
    assert window.start == datetime(2024, 3, 15, tzinfo=BERLIN)
    assert window.end == datetime(2024, 3, 16, tzinfo=BERLIN)
    assert window.contains(NOW)

    prev = previous_window(window)
    assert prev.start == datetime(2024, 3, 14, tzinfo=BERLIN)
    assert prev.end == window.start


def test_this_week_starts_on_monday() -> None:
    window = resolve_window("this_week", now=NOW, tz=BERLIN)
    assert window.start == datetime(2024, 3, 11, tzinfo=BERLIN)
    assert window.end == datetime(2024, 3, 18, tzinfo=BERLIN)

    prev = previous_window(window)
    assert prev.start == datetime(2024, 3, 4, tzinfo=BERLIN)
    assert prev.end == datetime(2024, 3, 11, tzinfo=BERLIN)


def test_this_week_on_sunday_belongs_to_the_week_started_monday() -> None:
    sunday = datetime(2024, 3, 17, 9, 0, tzinfo=BERLIN)
    window = resolve_window("this_week", now=sunday, tz=BERLIN)
    assert window.start == datetime(2024, 3, 11, tzinfo=BERLIN)


def test_this_month_previous_is_prior_calendar_month() -> None:
    window = resolve_window("this_month", now=NOW, tz=BERLIN)
    assert window.start == datetime(2024, 3, 1, tzinfo=BERLIN)
    assert window.end == datetime(2024, 4, 1, tzinfo=BERLIN)

    prev = previous_window(window)
    assert prev.start == datetime(2024, 2, 1, tzinfo=BERLIN)
    assert prev.end == datetime(2024, 3, 1, tzinfo=BERLIN)


def test_this_month_in_january_steps_back_a_year() -> None:
    window = resolve_window("this_month", now=datetime(2024, 1, 10, tzinfo=BERLIN), tz=BERLIN)
    prev = previous_window(window)
    assert prev.start == datetime(2023, 12, 1, tzinfo=BERLIN)
    assert prev.end == datetime(2024, 1, 1, tzinfo=BERLIN)


def test_rolling_windows_include_today() -> None:
    window = resolve_window("last_7_days", now=NOW, tz=BERLIN)
    assert window.start == datetime(2024, 3, 9, tzinfo=BERLIN)
    assert window.end == datetime(2024, 3, 16, tzinfo=BERLIN)

    prev = previous_window(window)
    assert prev.start == datetime(2024, 3, 2, tzinfo=BERLIN)
    assert prev.end == datetime(2024, 3, 9, tzinfo=BERLIN)

    month = resolve_window("last_30_days", now=NOW, tz=BERLIN)
    assert (month.end - month.start).days == 30


def test_naive_now_is_read_in_the_given_timezone() -> None:
    window = resolve_window("today", now=datetime(2024, 3, 15, 23, 0), tz=BERLIN)
    assert window.start == datetime(2024, 3, 15, tzinfo=BERLIN)


def test_query_params_are_iso_bounds() -> None:
    window = resolve_window("today", now=NOW, tz=BERLIN)
    assert window.query_params() == {
        "startDate": "2024-03-15T00:00:00+01:00",
        "endDate": "2024-03-16T00:00:00+01:00",
    }


def test_unknown_window_raises() -> None:
    with pytest.raises(UnknownWindow):
        resolve_window("fortnight", now=NOW, tz=BERLIN)
    with pytest.raises(ValueError):
        resolve_window("", now=NOW, tz=BERLIN)
