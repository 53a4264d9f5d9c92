"""Time slot generation.

Builds the visible time axis for one day from the current practice settings.
Recomputed on every call so a settings change shows up on the next render.
"""
import datetime as dt
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field

from clinic_calendar.settings import ScheduleSettings, resolve_settings


class TimeSlot(BaseModel):
    """A fixed-width interval within a day's visible schedule window."""
    model_config = ConfigDict(frozen=True)

    time: str = Field(..., description="Start time as HH:MM, unique within a day")
    start: dt.time
    end: dt.time
    start_minutes: int = Field(..., ge=0, description="Minutes since midnight")
    end_minutes: int = Field(..., gt=0, description="Minutes since midnight (exclusive)")
    label: str = Field(..., description="12-hour display label, e.g. 7:00 AM")
    available: bool = True

    def contains(self, minute_of_day: int) -> bool:
        """True if the minute falls within [start, end)."""
        return self.start_minutes <= minute_of_day < self.end_minutes


def format_time_12h(hour: int, minute: int) -> str:
    """Convert 24h time to 12h format."""
    period = "AM" if hour < 12 else "PM"
    hour_12 = hour if hour <= 12 else hour - 12
    hour_12 = 12 if hour_12 == 0 else hour_12
    return f"{hour_12}:{minute:02d} {period}"


def _minutes_to_time(minutes: int) -> dt.time:
    return dt.time(minutes // 60, minutes % 60)


def generate_time_slots(settings: Any = None) -> List[TimeSlot]:
    """
    Generate the ordered time slots for a day.

    Covers [day_start, day_end) in interval_minutes steps. A slot is only
    emitted when its full interval fits before day_end, so a trailing partial
    step is dropped.

    Args:
        settings: Resolved ScheduleSettings, or raw settings to resolve first

    Returns:
        Fresh list of TimeSlot, ascending by start time (possibly empty)
    """
    if not isinstance(settings, ScheduleSettings):
        settings = resolve_settings(settings)

    slots = []
    interval = settings.interval_minutes
    current = settings.start_minutes
    end = settings.end_minutes

    while current + interval <= end:
        slot_end = current + interval
        hour, minute = divmod(current, 60)
        slots.append(TimeSlot(
            time=f"{hour:02d}:{minute:02d}",
            start=_minutes_to_time(current),
            end=_minutes_to_time(slot_end),
            start_minutes=current,
            end_minutes=slot_end,
            label=format_time_12h(hour, minute),
            # TODO: mark slots adjacent to bookings unavailable once buffer_minutes is enforced
            available=True,
        ))
        current = slot_end

    return slots
