"""Calendar view engine for clinic scheduling.

Turns practice scheduling settings and calendar events into day, week and
month grid data. Pure and synchronous: no I/O, no state between renders.
"""
from clinic_calendar.events import (
    CalendarEvent,
    EventDiagnostic,
    EventKind,
    filter_events,
    normalize_events,
)
from clinic_calendar.navigation import CalendarView, date_range_title, navigate
from clinic_calendar.placement import Placement, place_events
from clinic_calendar.settings import ScheduleSettings, resolve_settings
from clinic_calendar.slots import TimeSlot, generate_time_slots
from clinic_calendar.views import render_calendar, render_day, render_month, render_week

__version__ = "0.1.0"

__all__ = [
    "CalendarEvent",
    "CalendarView",
    "EventDiagnostic",
    "EventKind",
    "Placement",
    "ScheduleSettings",
    "TimeSlot",
    "date_range_title",
    "filter_events",
    "generate_time_slots",
    "navigate",
    "normalize_events",
    "place_events",
    "render_calendar",
    "render_day",
    "render_month",
    "render_week",
    "resolve_settings",
]
