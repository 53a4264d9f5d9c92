"""Tests for event placement into day/week/month grids."""
import copy
from datetime import date, datetime, time

from clinic_calendar.events import normalize_events
from clinic_calendar.navigation import CalendarView
from clinic_calendar.placement import place_events
from clinic_calendar.slots import generate_time_slots
from clinic_calendar.views import render_day


def _slot(slots, hhmm):
    return next(slot for slot in slots if slot.time == hhmm)


class TestSlotPlacement:
    """Day and week views place events by start time."""

    def test_event_placed_in_containing_slot(self, hourly_settings, raw_events, anchor):
        """07:30 with hourly slots from 06:00 lands in the 07:00 slot."""
        slots = generate_time_slots(hourly_settings)
        placement = place_events(normalize_events(raw_events), slots, "day", anchor)

        assert [e.id for e in placement.events_at(anchor, _slot(slots, "07:00"))] == ["apt-1"]
        assert placement.events_at(anchor, _slot(slots, "08:00")) == []

    def test_event_before_window_omitted(self, hourly_settings, make_appointment, anchor):
        """05:00 is outside a 06:00 start: kept by the normalizer, absent from the grid."""
        events = normalize_events({"appointment": [make_appointment("early", "2025-03-12T05:00:00")]})
        placement = place_events(events, generate_time_slots(hourly_settings), "day", anchor)

        assert [e.id for e in events] == ["early"]
        assert placement.placed_count == 0

    def test_event_at_day_end_omitted(self, hourly_settings, make_appointment, anchor):
        events = normalize_events({"appointment": [make_appointment("late", "2025-03-12T22:00:00")]})
        placement = place_events(events, generate_time_slots(hourly_settings), "day", anchor)

        assert placement.placed_count == 0

    def test_event_in_trailing_gap_omitted(self, make_appointment, anchor):
        """10:50 falls after the last full 45 minute slot (09:45-10:30)."""
        slots = generate_time_slots({"intervalMinutes": 45, "dayStart": "09:00", "dayEnd": "11:00"})
        events = normalize_events({"appointment": [make_appointment("gap", "2025-03-12T10:50:00")]})

        assert place_events(events, slots, "day", anchor).placed_count == 0

    def test_event_on_other_day_not_in_day_view(self, hourly_settings, raw_events, anchor):
        slots = generate_time_slots(hourly_settings)
        placement = place_events(normalize_events(raw_events), slots, "day", anchor)

        assert "ooo-1" not in [e.id for e in placement.events_on(anchor)]
        assert placement.days == [anchor]

    def test_concurrent_events_keep_source_order(self, hourly_settings, make_appointment, anchor):
        """Double bookings are valid; the cell lists them in source order."""
        events = normalize_events({
            "appointment": [
                make_appointment("b", "2025-03-12T09:40:00"),
                make_appointment("a", "2025-03-12T09:00:00"),
            ],
            "task": [{"id": "c", "title": "x", "dueDate": "2025-03-12T09:10:00"}],
        })
        slots = generate_time_slots(hourly_settings)
        placement = place_events(events, slots, "day", anchor)

        assert [e.id for e in placement.events_at(anchor, _slot(slots, "09:00"))] == ["b", "a", "c"]

    def test_week_covers_sunday_to_saturday(self, hourly_settings, anchor):
        slots = generate_time_slots(hourly_settings)
        placement = place_events([], slots, "week", anchor)

        assert placement.days[0] == date(2025, 3, 9)
        assert placement.days[-1] == date(2025, 3, 15)
        assert len(placement.cells) == 7 * 16
        assert all(events == [] for events in placement.cells.values())

    def test_week_placement_by_day_and_slot(self, make_appointment, anchor):
        slots = generate_time_slots({"intervalMinutes": 30, "dayStart": "08:00", "dayEnd": "18:00"})
        events = normalize_events({"appointment": [
            make_appointment("mon", "2025-03-10T09:15:00"),
            make_appointment("sat", "2025-03-15T17:59:00"),
            make_appointment("next-week", "2025-03-16T09:15:00"),
        ]})
        placement = place_events(events, slots, "week", anchor)

        assert [e.id for e in placement.events_at(date(2025, 3, 10), _slot(slots, "09:00"))] == ["mon"]
        assert [e.id for e in placement.events_at(date(2025, 3, 15), _slot(slots, "17:30"))] == ["sat"]
        assert placement.placed_count == 2

    def test_week_without_weekends(self, hourly_settings, anchor):
        placement = place_events([], generate_time_slots(hourly_settings), "week", anchor, show_weekends=False)

        assert placement.days == [date(2025, 3, d) for d in range(10, 15)]

    def test_week_starting_monday(self, hourly_settings, anchor):
        placement = place_events([], generate_time_slots(hourly_settings), "week", anchor, week_starts_on=0)

        assert placement.days[0] == date(2025, 3, 10)

    def test_interval_change_moves_event(self, make_appointment, anchor):
        """Re-rendering with new settings re-buckets without any invalidation."""
        events = normalize_events({"appointment": [make_appointment("apt", "2025-03-12T07:30:00")]})

        hourly = generate_time_slots({"intervalMinutes": 60, "dayStart": "06:00", "dayEnd": "22:00"})
        half_hourly = generate_time_slots({"intervalMinutes": 30, "dayStart": "06:00", "dayEnd": "22:00"})

        assert place_events(events, hourly, "day", anchor).events_at(anchor, _slot(hourly, "07:00"))
        assert place_events(events, half_hourly, "day", anchor).events_at(anchor, _slot(half_hourly, "07:30"))
        assert not place_events(events, half_hourly, "day", anchor).events_at(anchor, _slot(half_hourly, "07:00"))

    def test_no_slots_gives_empty_grid(self, raw_events, anchor):
        placement = place_events(normalize_events(raw_events), [], "week", anchor)

        assert placement.cells == {}
        assert placement.events_on(anchor) == []

    def test_anchor_datetime_accepted(self, hourly_settings, raw_events):
        slots = generate_time_slots(hourly_settings)
        placement = place_events(normalize_events(raw_events), slots, "day", datetime(2025, 3, 12, 23, 0))

        assert placement.anchor_date == date(2025, 3, 12)
        assert placement.placed_count == 5


class TestDayPlacement:
    """Month view buckets per day without slots."""

    def test_month_grid_covers_full_weeks(self, anchor):
        placement = place_events([], [], "month", anchor)

        assert placement.days[0] == date(2025, 2, 23)
        assert placement.days[-1] == date(2025, 4, 5)
        assert len(placement.days) == 42

    def test_month_ignores_window(self, hourly_settings, make_appointment, anchor):
        """Day-level placement keeps events outside the slot window."""
        events = normalize_events({"appointment": [
            make_appointment("early", "2025-03-12T05:00:00"),
            make_appointment("adjacent", "2025-02-25T10:00:00"),
            make_appointment("outside", "2025-04-10T10:00:00"),
        ]})
        placement = place_events(events, generate_time_slots(hourly_settings), CalendarView.MONTH, anchor)

        assert [e.id for e in placement.events_at(anchor)] == ["early"]
        assert [e.id for e in placement.events_at(date(2025, 2, 25))] == ["adjacent"]
        assert placement.placed_count == 2

    def test_month_keeps_every_event_of_a_day(self, make_appointment, anchor):
        """The 3-per-day cap belongs to the renderer, not to placement."""
        events = normalize_events({"appointment": [
            make_appointment(f"apt-{i}", f"2025-03-12T{9 + i:02d}:00:00") for i in range(5)
        ]})
        placement = place_events(events, [], "month", anchor)

        assert len(placement.events_on(anchor)) == 5


class TestPlacementProperties:
    """Purity and robustness."""

    def test_idempotent(self, hourly_settings, raw_events, anchor):
        events = normalize_events(raw_events)
        slots = generate_time_slots(hourly_settings)

        first = place_events(events, slots, "week", anchor)
        second = place_events(events, slots, "week", anchor)

        assert first == second

    def test_inputs_not_mutated(self, hourly_settings, raw_events, anchor):
        events = normalize_events(raw_events)
        slots = generate_time_slots(hourly_settings)
        events_before, slots_before = copy.deepcopy(events), copy.deepcopy(slots)

        place_events(events, slots, "month", anchor)

        assert events == events_before
        assert slots == slots_before

    def test_dropped_event_does_not_change_other_placements(self, hourly_settings, raw_events, anchor):
        without_bad = dict(raw_events)
        without_bad["appointment"] = [r for r in raw_events["appointment"] if r["id"] != "apt-bad"]
        slots = generate_time_slots(hourly_settings)

        with_bad = place_events(normalize_events(raw_events), slots, "week", anchor)
        clean = place_events(normalize_events(without_bad), slots, "week", anchor)

        assert with_bad.cells == clean.cells

    def test_unknown_view_falls_back_to_week(self, hourly_settings, anchor):
        placement = place_events([], generate_time_slots(hourly_settings), "agenda", anchor)

        assert placement.view == CalendarView.WEEK
        assert len(placement.days) == 7

    def test_cell_keys_use_slot_start(self, hourly_settings, anchor):
        slots = generate_time_slots(hourly_settings)
        placement = place_events([], slots, "day", anchor)

        assert (anchor, time(6, 0)) in placement.cells
        assert (anchor, time(22, 0)) not in placement.cells

    def test_events_at_returns_copy(self, hourly_settings, raw_events, anchor):
        """Editing a cell list handed out by the placement leaves the placement intact."""
        slots = generate_time_slots(hourly_settings)
        placement = place_events(normalize_events(raw_events), slots, "day", anchor)
        seven_am = _slot(slots, "07:00")

        cell = placement.events_at(anchor, seven_am)
        cell.clear()
        render_day(placement, today=anchor).rows[1].events.append("stray")

        assert [e.id for e in placement.events_at(anchor, seven_am)] == ["apt-1"]
        assert placement.placed_count == 5
