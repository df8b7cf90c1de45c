from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config import get_settings
from models import Granularity

WINDOW_SLUGS = (
    "all_time",
    "today",
    "this_week",
    "this_month",
    "last_7_days",
    "last_30_days",
)

_ROLLING_DAYS = {"last_7_days": 7, "last_30_days": 30}


class UnknownWindow(ValueError):
    pass


@dataclass(frozen=True)
class AnalysisWindow:
    """A named ``[start, end)`` range; both bounds are ``None`` for all time."""

    slug: str
    start: Optional[datetime]
    end: Optional[datetime]
    granularity: Granularity

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, moment: datetime) -> bool:
        if not self.is_bounded:
            return True
        return self.start <= moment < self.end

    def query_params(self) -> dict[str, str]:
        if not self.is_bounded:
            return {}
        return {"startDate": self.start.isoformat(), "endDate": self.end.isoformat()}


def local_timezone() -> tzinfo:
    return ZoneInfo(get_settings().timezone)


def _midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _add_months(day: date, count: int) -> date:
    month_index = (day.year * 12) + (day.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def _day_range(slug: str, first: date, last_exclusive: date, tz: tzinfo) -> AnalysisWindow:
    return AnalysisWindow(
        slug, _midnight(first, tz), _midnight(last_exclusive, tz), Granularity.day
    )


def resolve_window(
    window: Union[str, AnalysisWindow],
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> AnalysisWindow:
    if isinstance(window, AnalysisWindow):
        return window
    if window not in WINDOW_SLUGS:
        raise UnknownWindow(f"Unknown analysis window: {window!r}")

    tz = tz or local_timezone()
    now = now or datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    today = now.astimezone(tz).date()

    if window == "all_time":
        return AnalysisWindow("all_time", None, None, Granularity.month)
    if window == "today":
        return _day_range(window, today, today + timedelta(days=1), tz)
    if window == "this_week":
        # weeks start on Monday
        monday = today - timedelta(days=today.weekday())
        return _day_range(window, monday, monday + timedelta(days=7), tz)
    if window == "this_month":
        first = _month_start(today)
        return _day_range(window, first, _add_months(first, 1), tz)

    days = _ROLLING_DAYS[window]
    tomorrow = today + timedelta(days=1)
    return _day_range(window, tomorrow - timedelta(days=days), tomorrow, tz)


def previous_window(window: AnalysisWindow) -> Optional[AnalysisWindow]:
    """The window of identical length right before ``window``.

    Calendar months step back a whole month, so the previous window of March
    is February even though the two differ in days.
    """
    if not window.is_bounded:
        return None
    tz = window.start.tzinfo
    first = window.start.date()
    last_exclusive = window.end.date()
    if window.slug == "this_month":
        return _day_range(window.slug, _add_months(first, -1), first, tz)
    length = last_exclusive - first
    return _day_range(window.slug, first - length, first, tz)
