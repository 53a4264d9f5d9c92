"""Shared test fixtures."""
import pytest
from datetime import date

from clinic_calendar.settings import resolve_settings


@pytest.fixture
def anchor() -> date:
    """Wednesday 12 March 2025 (week of Sun 9 - Sat 15)."""
    return date(2025, 3, 12)


@pytest.fixture
def hourly_settings():
    """Default practice window: 06:00-22:00 in 60 minute slots."""
    return resolve_settings({"intervalMinutes": 60, "dayStart": "06:00", "dayEnd": "22:00"})


@pytest.fixture
def make_appointment():
    """Build a raw appointment record as the appointments API returns it."""
    def _create(apt_id: str, when: str, first: str = "Jane", last: str = "Doe", practitioner_id: str = "prac-1"):
        return {
            "id": apt_id,
            "appointmentDate": when,
            "title": "Consultation",
            "status": "scheduled",
            "type": "consultation",
            "practitionerId": practitioner_id,
            "patient": {"user": {"firstName": first, "lastName": last}},
            "practitioner": {"id": practitioner_id, "user": {"firstName": "Ana", "lastName": "Garcia"}},
        }
    return _create


@pytest.fixture
def raw_events(make_appointment):
    """One record of every kind on 12 March 2025, plus one with a bad date."""
    return {
        "appointment": [
            make_appointment("apt-1", "2025-03-12T07:30:00"),
            make_appointment("apt-bad", "not-a-date"),
            make_appointment("apt-2", "2025-03-12T09:00:00", first="John", last="Smith", practitioner_id="prac-2"),
        ],
        "task": [
            {"id": "task-1", "title": "Review labs", "dueDate": "2025-03-12T10:15:00", "priority": "high"},
        ],
        "reminder": [
            {"id": "rem-1", "title": "Call pharmacy", "reminderDate": "2025-03-12", "reminderTime": "14:30"},
        ],
        "meeting": [
            {"id": "meet-1", "title": "Staff sync", "meetingDate": "2025-03-12", "startTime": "12:00", "duration": 45},
        ],
        "out-of-office": [
            {"id": "ooo-1", "title": "Conference", "startDate": "2025-03-13T08:00:00", "endDate": "2025-03-14T18:00:00"},
        ],
    }
