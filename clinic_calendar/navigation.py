"""Calendar navigation: visible date ranges, prev/next and header titles."""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from clinic_calendar import config
from clinic_calendar.logging_config import get_logger

logger = get_logger(__name__)


class CalendarView(str, Enum):
    """Calendar layouts."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


def coerce_view(view: Any) -> CalendarView:
    """Map a view name to CalendarView; unknown views fall back to week."""
    if isinstance(view, CalendarView):
        return view
    try:
        return CalendarView(str(view).strip().lower())
    except ValueError:
        logger.warning("unknown_view", view=view, fallback=CalendarView.WEEK.value)
        return CalendarView.WEEK


def as_date(value: Any) -> date:
    """Anchor dates may arrive as datetime; only the calendar date matters."""
    if isinstance(value, datetime):
        return value.date()
    return value


def week_bounds(anchor: date, week_starts_on: Optional[int] = None) -> Tuple[date, date]:
    """
    First and last day of the week containing anchor.

    Args:
        anchor: Reference date
        week_starts_on: Python weekday number of the first day (6 = Sunday)
    """
    if week_starts_on is None:
        week_starts_on = config.WEEK_STARTS_ON
    anchor = as_date(anchor)
    start = anchor - timedelta(days=(anchor.weekday() - week_starts_on) % 7)
    return start, start + timedelta(days=6)


def month_grid_bounds(anchor: date, week_starts_on: Optional[int] = None) -> Tuple[date, date]:
    """First and last day of the full weeks covering anchor's month."""
    anchor = as_date(anchor)
    first = anchor.replace(day=1)
    last = first + relativedelta(months=1) - timedelta(days=1)
    return week_bounds(first, week_starts_on)[0], week_bounds(last, week_starts_on)[1]


def visible_days(
    view: Any,
    anchor: date,
    week_starts_on: Optional[int] = None,
    show_weekends: bool = True,
) -> List[date]:
    """
    Days rendered by a view, in display order.

    Day view always shows the anchor, even on a weekend.
    """
    view = coerce_view(view)
    anchor = as_date(anchor)

    if view == CalendarView.DAY:
        return [anchor]

    if view == CalendarView.WEEK:
        start, end = week_bounds(anchor, week_starts_on)
    else:
        start, end = month_grid_bounds(anchor, week_starts_on)

    days = [start + timedelta(days=i) for i in range((end - start).days + 1)]
    if not show_weekends:
        # weekday(): 5 = Saturday, 6 = Sunday
        days = [d for d in days if d.weekday() < 5]
    return days


def navigate(view: Any, anchor: date, direction: str, today: Optional[date] = None) -> date:
    """
    Move the anchor one view-width backwards ("prev") or forwards ("next"),
    or jump to today ("today"; defaults to date.today()).

    Months step with end-of-month clamping (Jan 31 -> Feb 28).
    """
    view = coerce_view(view)
    anchor = as_date(anchor)

    if direction == "today":
        return as_date(today) if today is not None else date.today()
    if direction == "prev":
        sign = -1
    elif direction == "next":
        sign = 1
    else:
        return anchor

    if view == CalendarView.MONTH:
        return anchor + relativedelta(months=sign)
    if view == CalendarView.WEEK:
        return anchor + timedelta(weeks=sign)
    return anchor + timedelta(days=sign)


def date_range_title(view: Any, anchor: date, week_starts_on: Optional[int] = None) -> str:
    """
    Header text for the visible range.

    Examples:
        month: "March 2025"
        week:  "09 - 15 Mar 2025"
        day:   "Wednesday, 12 March 2025"
    """
    view = coerce_view(view)
    anchor = as_date(anchor)

    if view == CalendarView.MONTH:
        return anchor.strftime("%B %Y")
    if view == CalendarView.WEEK:
        start, end = week_bounds(anchor, week_starts_on)
        return f"{start:%d} - {end:%d %b %Y}"
    return anchor.strftime("%A, %d %B %Y")
