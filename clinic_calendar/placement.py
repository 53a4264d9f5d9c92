"""Placement engine: maps normalized events onto (day, slot) cells.

Two strategies behind place_events():
- Slot placement (day and week views): event goes into the slot whose
  [start, start + interval) contains the event's start time on its start date
- Day placement (month view): events bucketed per day, no slot sub-placement

Events outside the visible window are left out of the grid, not reported as
errors. Events sharing a cell keep normalizer order.
"""
from bisect import bisect_right
from dataclasses import dataclass
from datetime import date, time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from clinic_calendar.events import CalendarEvent
from clinic_calendar.navigation import CalendarView, as_date, coerce_view, visible_days
from clinic_calendar.slots import TimeSlot

PlacementKey = Tuple[date, Optional[time]]


@dataclass(frozen=True)
class Placement:
    """Derived (day, slot) -> events mapping for one render. Never persisted."""
    view: CalendarView
    anchor_date: date
    days: List[date]
    slots: List[TimeSlot]
    cells: Dict[PlacementKey, List[CalendarEvent]]

    def events_at(self, day: date, slot: Optional[TimeSlot] = None) -> List[CalendarEvent]:
        """
        Events in one cell; slot=None addresses the day-level cell (month view).

        Returns a new list, so callers cannot edit the placement through it.
        """
        key = (day, slot.start if slot is not None else None)
        return list(self.cells.get(key, []))

    def events_on(self, day: date) -> List[CalendarEvent]:
        """All placed events for a day, slot order then normalizer order."""
        if self.view == CalendarView.MONTH:
            return self.events_at(day)
        placed = []
        for slot in self.slots:
            placed.extend(self.events_at(day, slot))
        return placed

    @property
    def placed_count(self) -> int:
        return sum(len(events) for events in self.cells.values())


def _minute_of_day(moment) -> int:
    return moment.hour * 60 + moment.minute


def place_by_slot(
    events: Iterable[CalendarEvent],
    days: Sequence[date],
    slots: Sequence[TimeSlot],
) -> Dict[PlacementKey, List[CalendarEvent]]:
    """Slot-level placement used by day and week views."""
    cells: Dict[PlacementKey, List[CalendarEvent]] = {
        (day, slot.start): [] for day in days for slot in slots
    }
    if not slots:
        return cells

    day_set = set(days)
    slot_starts = [slot.start_minutes for slot in slots]

    for event in events:
        event_day = event.start.date()
        if event_day not in day_set:
            continue

        minute = _minute_of_day(event.start)
        index = bisect_right(slot_starts, minute) - 1
        if index < 0 or not slots[index].contains(minute):
            continue

        cells[(event_day, slots[index].start)].append(event)

    return cells


def place_by_day(
    events: Iterable[CalendarEvent],
    days: Sequence[date],
    slots: Sequence[TimeSlot],
) -> Dict[PlacementKey, List[CalendarEvent]]:
    """Day-level placement used by month view. Slots are ignored."""
    cells: Dict[PlacementKey, List[CalendarEvent]] = {(day, None): [] for day in days}

    for event in events:
        key = (event.start.date(), None)
        if key in cells:
            cells[key].append(event)

    return cells


PLACEMENT_STRATEGIES: Dict[CalendarView, Callable[..., Dict[PlacementKey, List[CalendarEvent]]]] = {
    CalendarView.DAY: place_by_slot,
    CalendarView.WEEK: place_by_slot,
    CalendarView.MONTH: place_by_day,
}


def place_events(
    events: Iterable[CalendarEvent],
    slots: Sequence[TimeSlot],
    view: Any,
    anchor_date: date,
    week_starts_on: Optional[int] = None,
    show_weekends: bool = True,
) -> Placement:
    """
    Place events into the grid for a view.

    Pure: identical inputs give identical output, and neither events nor
    slots are modified.

    Args:
        events: Normalized events (placement keeps their order)
        slots: Slots from generate_time_slots() for the current settings
        view: "day", "week" or "month" (unknown values fall back to week)
        anchor_date: Reference date for the view
        week_starts_on: Python weekday number of the first weekday column
        show_weekends: Include Saturday/Sunday in week and month views

    Returns:
        Placement with a cell for every rendered (day, slot) pair
    """
    view = coerce_view(view)
    anchor_date = as_date(anchor_date)
    days = visible_days(view, anchor_date, week_starts_on, show_weekends)
    slots = list(slots)

    cells = PLACEMENT_STRATEGIES[view](list(events), days, slots)

    return Placement(view=view, anchor_date=anchor_date, days=days, slots=slots, cells=cells)
