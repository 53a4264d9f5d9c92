"""View renderers (day, week, month) and the full render pipeline.

Renderers only shape a Placement into a grid description; all event-to-cell
decisions are made in placement.py.

Pipeline (render_calendar):
    raw settings -> resolve_settings -> generate_time_slots
    raw events   -> normalize_events -> filter_events
    -> place_events -> view renderer
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

import structlog

from clinic_calendar import config
from clinic_calendar.events import CalendarEvent, EventDiagnostic, filter_events, normalize_events
from clinic_calendar.logging_config import generate_render_id, get_logger
from clinic_calendar.navigation import CalendarView, as_date, date_range_title
from clinic_calendar.placement import Placement, place_events
from clinic_calendar.settings import ScheduleSettings, resolve_settings
from clinic_calendar.slots import TimeSlot, generate_time_slots

logger = get_logger(__name__)


@dataclass(frozen=True)
class DayRow:
    slot: TimeSlot
    events: List[CalendarEvent]


@dataclass(frozen=True)
class DayGrid:
    day: date
    weekday_name: str
    day_number: int
    is_today: bool
    rows: List[DayRow]


@dataclass(frozen=True)
class WeekColumn:
    day: date
    header: str
    day_number: int
    is_today: bool


@dataclass(frozen=True)
class WeekRow:
    slot: TimeSlot
    cells: List[List[CalendarEvent]]


@dataclass(frozen=True)
class WeekGrid:
    columns: List[WeekColumn]
    rows: List[WeekRow]


@dataclass(frozen=True)
class MonthCell:
    """One day of the month grid; events beyond the cap are only counted."""
    day: date
    day_number: int
    is_current_month: bool
    is_today: bool
    visible_events: List[CalendarEvent]
    overflow_count: int = 0

    @property
    def overflow_label(self) -> Optional[str]:
        if self.overflow_count <= 0:
            return None
        return f"+{self.overflow_count} more"


@dataclass(frozen=True)
class MonthGrid:
    month: date
    weekday_headers: List[str]
    weeks: List[List[MonthCell]]


Grid = Union[DayGrid, WeekGrid, MonthGrid]


def render_day(placement: Placement, today: Optional[date] = None) -> DayGrid:
    """Single-column grid: one row per slot."""
    today = today or date.today()
    day = placement.days[0] if placement.days else placement.anchor_date

    return DayGrid(
        day=day,
        weekday_name=day.strftime("%A"),
        day_number=day.day,
        is_today=day == today,
        rows=[DayRow(slot=slot, events=placement.events_at(day, slot)) for slot in placement.slots],
    )


def render_week(placement: Placement, today: Optional[date] = None) -> WeekGrid:
    """Slot rows x day columns."""
    today = today or date.today()

    columns = [
        WeekColumn(
            day=day,
            header=f"{day:%a} {day.day}",
            day_number=day.day,
            is_today=day == today,
        )
        for day in placement.days
    ]
    rows = [
        WeekRow(slot=slot, cells=[placement.events_at(day, slot) for day in placement.days])
        for slot in placement.slots
    ]
    return WeekGrid(columns=columns, rows=rows)


def render_month(
    placement: Placement,
    today: Optional[date] = None,
    max_visible: int = config.MONTH_VIEW_MAX_VISIBLE_EVENTS,
) -> MonthGrid:
    """
    Weeks x weekdays grid with a per-day visible-event cap.

    The cap is display-only: the placement still holds every event.
    """
    today = today or date.today()
    anchor = placement.anchor_date
    row_width = len({day.weekday() for day in placement.days}) or 7

    cells = []
    for day in placement.days:
        day_events = placement.events_at(day)
        cells.append(MonthCell(
            day=day,
            day_number=day.day,
            is_current_month=(day.year, day.month) == (anchor.year, anchor.month),
            is_today=day == today,
            visible_events=day_events[:max_visible],
            overflow_count=max(len(day_events) - max_visible, 0),
        ))

    weeks = [cells[i:i + row_width] for i in range(0, len(cells), row_width)]
    headers = [cell.day.strftime("%a") for cell in weeks[0]] if weeks else []

    return MonthGrid(month=anchor.replace(day=1), weekday_headers=headers, weeks=weeks)


RENDERERS: Dict[CalendarView, Callable[..., Grid]] = {
    CalendarView.DAY: render_day,
    CalendarView.WEEK: render_week,
    CalendarView.MONTH: render_month,
}


@dataclass(frozen=True)
class CalendarRender:
    """Everything one render produced, for the caller to display and log."""
    render_id: str
    view: CalendarView
    anchor_date: date
    title: str
    settings: ScheduleSettings
    slots: List[TimeSlot]
    events: List[CalendarEvent]
    placement: Placement
    grid: Grid
    diagnostics: List[EventDiagnostic] = field(default_factory=list)


def render_calendar(
    raw_settings: Any,
    raw_events_by_kind: Optional[Mapping[Any, Iterable[Any]]],
    view: Any,
    anchor_date: date,
    today: Optional[date] = None,
    kinds: Optional[Iterable[Any]] = None,
    practitioner_ids: Optional[Iterable[str]] = None,
    week_starts_on: Optional[int] = None,
) -> CalendarRender:
    """
    Run the whole pipeline from raw inputs to a grid.

    Settings are resolved and slots generated on every call, so the latest
    settings snapshot always wins. Never raises for bad settings or bad
    events; see CalendarRender.diagnostics for dropped records.

    Args:
        raw_settings: Practice settings as fetched (may be partial or None)
        raw_events_by_kind: Mapping of kind -> source records
        view: "day", "week" or "month"
        anchor_date: Reference date for the view
        today: Date highlighted as today (defaults to date.today())
        kinds: Only show these event kinds
        practitioner_ids: Only show events of these team members
        week_starts_on: Python weekday number of the first weekday column

    Returns:
        CalendarRender
    """
    render_id = generate_render_id()
    anchor_date = as_date(anchor_date)

    with structlog.contextvars.bound_contextvars(render_id=render_id):
        settings = resolve_settings(raw_settings)
        slots = generate_time_slots(settings)

        diagnostics: List[EventDiagnostic] = []
        events = normalize_events(raw_events_by_kind, diagnostics)
        events = filter_events(events, kinds, practitioner_ids)

        placement = place_events(
            events,
            slots,
            view,
            anchor_date,
            week_starts_on=week_starts_on,
            show_weekends=settings.show_weekends,
        )
        grid = RENDERERS[placement.view](placement, today=today)

        logger.info(
            "render_complete",
            view=placement.view.value,
            anchor_date=anchor_date.isoformat(),
            slots=len(slots),
            events=len(events),
            placed=placement.placed_count,
            dropped=len(diagnostics),
        )

    return CalendarRender(
        render_id=render_id,
        view=placement.view,
        anchor_date=anchor_date,
        title=date_range_title(placement.view, anchor_date, week_starts_on),
        settings=settings,
        slots=slots,
        events=events,
        placement=placement,
        grid=grid,
        diagnostics=diagnostics,
    )
