"""Event normalization.

Converts heterogeneous source records (appointments, tasks, reminders,
meetings, out-of-office blocks) into one CalendarEvent shape.

Pattern: one normalizer per EventKind, dispatched through NORMALIZERS.
Add a new kind by registering a normalizer; nothing else changes.

Records with a missing or unparsable start, or dates out of range, are dropped and reported as an
EventDiagnostic; they never fail the render.
"""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from dateutil.parser import isoparse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from clinic_calendar import config
from clinic_calendar.logging_config import get_logger
from clinic_calendar.settings import parse_time_of_day

logger = get_logger(__name__)

# Source ids are never expected to carry this prefix
FALLBACK_ID_PREFIX = "unsourced:"


class EventKind(str, Enum):
    """Calendar event categories."""
    APPOINTMENT = "appointment"
    TASK = "task"
    REMINDER = "reminder"
    MEETING = "meeting"
    OUT_OF_OFFICE = "out-of-office"


class DropReason(str, Enum):
    """Why a source record was excluded from the calendar."""
    NOT_A_RECORD = "not_a_record"
    MISSING_START = "missing_start"
    UNPARSABLE_START = "unparsable_start"
    UNKNOWN_KIND = "unknown_kind"
    INVALID_RECORD = "invalid_record"
    OUT_OF_RANGE = "out_of_range"


class CalendarEvent(BaseModel):
    """Uniform calendar event read by the placement engine."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique, stable event ID")
    title: str
    start: datetime = Field(..., description="Naive local start")
    end: datetime = Field(..., description="Naive local end (== start for zero duration)")
    kind: EventKind
    practitioner_id: Optional[str] = None
    display_fields: Dict[str, Any] = Field(default_factory=dict)

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


class EventDiagnostic(BaseModel):
    """Data-quality record for a dropped source record."""
    kind: str
    index: int = Field(..., description="Position within its kind's source list")
    record_id: Optional[str] = None
    reason: DropReason
    detail: str = ""


class EventDataError(ValueError):
    """Raised by a normalizer when a record cannot become an event."""

    def __init__(self, reason: DropReason, detail: str = ""):
        super().__init__(detail or reason.value)
        self.reason = reason
        self.detail = detail


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a source timestamp into a naive datetime.

    Accepts ISO-8601 strings, datetime and date objects. Aware values keep
    their wall-clock time and lose their tzinfo.

    Returns:
        Naive datetime, or None if the value is missing or malformed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    elif isinstance(value, str) and value.strip():
        try:
            parsed = isoparse(value.strip())
        except (ValueError, OverflowError):
            return None
    else:
        return None

    return parsed.replace(tzinfo=None)


def coerce_kind(value: Any) -> Optional[EventKind]:
    """Map a kind key ("meeting", "out_of_office", "outOfOffice", ...) to EventKind."""
    if isinstance(value, EventKind):
        return value
    if not isinstance(value, str):
        return None

    key = value.strip().lower().replace("_", "-")
    if key == "outofoffice":
        key = EventKind.OUT_OF_OFFICE.value
    try:
        return EventKind(key)
    except ValueError:
        return None


def _require_start(record: Mapping[str, Any], *fields: str) -> datetime:
    raw = next((record[f] for f in fields if record.get(f) not in (None, "")), None)
    if raw is None:
        raise EventDataError(DropReason.MISSING_START, f"none of {', '.join(fields)} present")

    start = parse_timestamp(raw)
    if start is None:
        raise EventDataError(DropReason.UNPARSABLE_START, f"cannot parse {raw!r}")
    return start


def _with_time(start: datetime, time_value: Any) -> datetime:
    """Apply a separate HH:MM field to a date-only start, if it parses."""
    parsed = parse_time_of_day(time_value)
    if parsed is None:
        return start
    return start.replace(hour=parsed.hour, minute=parsed.minute, second=0, microsecond=0)


def _resolve_end(start: datetime, raw_end: Any) -> datetime:
    end = parse_timestamp(raw_end)
    if end is None or end <= start:
        return start
    return end


def _full_name(person: Any) -> Optional[str]:
    """Name from a {user: {firstName, lastName}} or {firstName, lastName} record."""
    if not isinstance(person, Mapping):
        return None
    user = person.get("user") if isinstance(person.get("user"), Mapping) else person
    parts = [user.get("firstName"), user.get("lastName")]
    name = " ".join(str(p) for p in parts if p)
    return name or None


def _record_id(record: Mapping[str, Any]) -> Optional[str]:
    value = record.get("id")
    return str(value) if value not in (None, "") else None


def _title(record: Mapping[str, Any], fallback: str) -> str:
    title = record.get("title")
    return str(title) if title not in (None, "") else fallback


def _base_fields(record: Mapping[str, Any], kind: EventKind, index: int) -> Dict[str, Any]:
    return {
        "id": _record_id(record) or f"{FALLBACK_ID_PREFIX}{kind.value}-{index}",
        "kind": kind,
        "practitioner_id": (
            str(record["practitionerId"]) if record.get("practitionerId") else None
        ),
    }


def _display(kind: EventKind, record: Mapping[str, Any], *fields: str) -> Dict[str, Any]:
    display = {"color": config.EVENT_COLORS[kind.value]}
    for field in fields:
        if record.get(field) is not None:
            display[field] = record[field]
    return display


def normalize_appointment(record: Mapping[str, Any], index: int) -> CalendarEvent:
    """Appointments have no end in the source; end = start + fixed default duration."""
    start = _require_start(record, "appointmentDate", "start")
    patient_name = _full_name(record.get("patient"))
    practitioner = record.get("practitioner")

    fields = _base_fields(record, EventKind.APPOINTMENT, index)
    if fields["practitioner_id"] is None and isinstance(practitioner, Mapping) and practitioner.get("id"):
        fields["practitioner_id"] = str(practitioner["id"])

    display = _display(EventKind.APPOINTMENT, record, "status", "type", "description", "readableId")
    if patient_name:
        display["patient_name"] = patient_name
    practitioner_name = _full_name(practitioner)
    if practitioner_name:
        display["practitioner_name"] = practitioner_name

    return CalendarEvent(
        title=patient_name or _title(record, "Appointment"),
        start=start,
        end=start + timedelta(minutes=config.APPOINTMENT_DEFAULT_DURATION_MINUTES),
        display_fields=display,
        **fields,
    )


def normalize_task(record: Mapping[str, Any], index: int) -> CalendarEvent:
    start = _require_start(record, "dueDate", "start")
    fields = _base_fields(record, EventKind.TASK, index)
    if fields["practitioner_id"] is None and record.get("assigneeId"):
        fields["practitioner_id"] = str(record["assigneeId"])

    return CalendarEvent(
        title=_title(record, "Task"),
        start=start,
        end=_resolve_end(start, record.get("end")),
        display_fields=_display(
            EventKind.TASK, record, "description", "priority", "patientId", "isCompleted", "tags"
        ),
        **fields,
    )


def normalize_reminder(record: Mapping[str, Any], index: int) -> CalendarEvent:
    start = _require_start(record, "reminderDate", "start")
    start = _with_time(start, record.get("reminderTime"))

    return CalendarEvent(
        title=_title(record, "Reminder"),
        start=start,
        end=_resolve_end(start, record.get("end")),
        display_fields=_display(
            EventKind.REMINDER, record, "description", "type", "priority", "patientId"
        ),
        **_base_fields(record, EventKind.REMINDER, index),
    )


def normalize_meeting(record: Mapping[str, Any], index: int) -> CalendarEvent:
    """Meetings carry a date plus startTime and a duration in minutes."""
    start = _require_start(record, "meetingDate", "start")
    start = _with_time(start, record.get("startTime"))

    duration = record.get("duration")
    if isinstance(duration, (int, float)) and not isinstance(duration, bool) and duration > 0:
        end = start + timedelta(minutes=duration)
    else:
        end = _resolve_end(start, record.get("end"))

    return CalendarEvent(
        title=_title(record, "Meeting"),
        start=start,
        end=end,
        display_fields=_display(
            EventKind.MEETING, record, "description", "location", "meetingType", "attendees", "agenda"
        ),
        **_base_fields(record, EventKind.MEETING, index),
    )


def normalize_out_of_office(record: Mapping[str, Any], index: int) -> CalendarEvent:
    start = _require_start(record, "startDate", "start")

    return CalendarEvent(
        title=_title(record, "Out of office"),
        start=start,
        end=_resolve_end(start, record.get("endDate") or record.get("end")),
        display_fields=_display(
            EventKind.OUT_OF_OFFICE, record, "reason", "description", "coveringPersonId", "blockAppointments"
        ),
        **_base_fields(record, EventKind.OUT_OF_OFFICE, index),
    )


NORMALIZERS: Dict[EventKind, Callable[[Mapping[str, Any], int], CalendarEvent]] = {
    EventKind.APPOINTMENT: normalize_appointment,
    EventKind.TASK: normalize_task,
    EventKind.REMINDER: normalize_reminder,
    EventKind.MEETING: normalize_meeting,
    EventKind.OUT_OF_OFFICE: normalize_out_of_office,
}


def _drop(
    diagnostics: Optional[List[EventDiagnostic]],
    kind: str,
    index: int,
    record_id: Optional[str],
    reason: DropReason,
    detail: str = "",
) -> None:
    logger.warning(
        "event_dropped",
        kind=kind,
        index=index,
        record_id=record_id,
        reason=reason.value,
        detail=detail,
    )
    if diagnostics is not None:
        diagnostics.append(EventDiagnostic(
            kind=kind, index=index, record_id=record_id, reason=reason, detail=detail
        ))


def normalize_events(
    raw_events_by_kind: Optional[Mapping[Any, Iterable[Any]]],
    diagnostics: Optional[List[EventDiagnostic]] = None,
) -> List[CalendarEvent]:
    """
    Normalize source records of every kind into CalendarEvents.

    Args:
        raw_events_by_kind: Mapping of kind -> list of source records
        diagnostics: Optional list that receives an EventDiagnostic per dropped record

    Returns:
        CalendarEvents in input order (kinds in mapping order, records in list order)
    """
    events: List[CalendarEvent] = []
    if not raw_events_by_kind:
        return events

    for kind_key, records in raw_events_by_kind.items():
        kind = coerce_kind(kind_key)
        records = list(records or [])

        if kind is None:
            for index, record in enumerate(records):
                record_id = _record_id(record) if isinstance(record, Mapping) else None
                _drop(diagnostics, str(kind_key), index, record_id, DropReason.UNKNOWN_KIND)
            continue

        normalizer = NORMALIZERS[kind]
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                _drop(diagnostics, kind.value, index, None, DropReason.NOT_A_RECORD)
                continue

            try:
                events.append(normalizer(record, index))
            except EventDataError as exc:
                _drop(diagnostics, kind.value, index, _record_id(record), exc.reason, exc.detail)
            except ValidationError as exc:
                _drop(
                    diagnostics, kind.value, index, _record_id(record),
                    DropReason.INVALID_RECORD, str(exc.errors()[0]["msg"]),
                )
            except (OverflowError, ValueError) as exc:
                # Date arithmetic past datetime.max, or a duration too large for timedelta
                _drop(
                    diagnostics, kind.value, index, _record_id(record),
                    DropReason.OUT_OF_RANGE, str(exc),
                )

    return events


def filter_events(
    events: Iterable[CalendarEvent],
    kinds: Optional[Iterable[Any]] = None,
    practitioner_ids: Optional[Iterable[str]] = None,
) -> List[CalendarEvent]:
    """
    Filter events by kind and by selected team members.

    Empty or None selections mean "no filter". Order is preserved.
    """
    kind_set = {coerce_kind(k) for k in kinds} - {None} if kinds else set()
    member_set = {str(p) for p in practitioner_ids} if practitioner_ids else set()

    return [
        event for event in events
        if (not kind_set or event.kind in kind_set)
        and (not member_set or event.practitioner_id in member_set)
    ]
