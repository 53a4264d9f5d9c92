"""Schedule settings resolution.

Turns the practice's raw calendar settings (possibly partial, possibly missing
entirely) into a fully-populated ScheduleSettings.

Rules:
- Defaults applied field-by-field for missing or invalid values
- Invalid values never raise; settings are practice configuration, not user input
- No caching: call again after every settings change
"""
from datetime import datetime, time
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, validator

from clinic_calendar import config
from clinic_calendar.logging_config import get_logger

logger = get_logger(__name__)

# Practice settings API uses camelCase; older records use the settings-table names.
FIELD_ALIASES = {
    "interval_minutes": ("interval_minutes", "intervalMinutes", "timeInterval"),
    "day_start": ("day_start", "dayStart", "defaultStartTime"),
    "day_end": ("day_end", "dayEnd", "defaultEndTime"),
    "buffer_minutes": ("buffer_minutes", "bufferMinutes", "bufferTime"),
    "working_days": ("working_days", "workingDays"),
    "show_weekends": ("show_weekends", "showWeekends", "allowWeekendBookings"),
}


def parse_time_of_day(value: Any) -> Optional[time]:
    """Parse "HH:MM" / "HH:MM:SS" strings or time objects; None if malformed."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if not isinstance(value, str):
        return None

    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    return None


def _default_time(field_name: str) -> time:
    return datetime.strptime(config.DEFAULT_SCHEDULE[field_name], "%H:%M").time()


class ScheduleSettings(BaseModel):
    """Resolved practice scheduling settings."""
    model_config = ConfigDict(frozen=True)

    interval_minutes: int = Field(
        default=config.DEFAULT_SCHEDULE["interval_minutes"],
        gt=0,
        description="Slot width in minutes",
    )
    day_start: time = Field(
        default_factory=lambda: _default_time("day_start"),
        description="First visible time of day",
    )
    day_end: time = Field(
        default_factory=lambda: _default_time("day_end"),
        description="End of the visible window (exclusive)",
    )
    buffer_minutes: int = Field(
        default=config.DEFAULT_SCHEDULE["buffer_minutes"],
        ge=0,
        description="Buffer around bookings (exposed only)",
    )
    # Exposed for collaborators only; grids never hide non-working days
    working_days: Tuple[int, ...] = Field(
        default=config.DEFAULT_WORKING_DAYS,
        description="Open weekdays, 0=Sunday .. 6=Saturday (exposed only)",
    )
    show_weekends: bool = Field(
        default=True,
        description="Whether week/month grids include Saturday and Sunday",
    )

    @validator("day_end")
    def check_end_after_start(cls, v, values):
        """day_end must come strictly after day_start."""
        start = values.get("day_start")
        if start is not None and v <= start:
            raise ValueError("day_end must be after day_start")
        return v

    @property
    def start_minutes(self) -> int:
        return self.day_start.hour * 60 + self.day_start.minute

    @property
    def end_minutes(self) -> int:
        return self.day_end.hour * 60 + self.day_end.minute


def _lookup(raw: Mapping[str, Any], field_name: str) -> Any:
    for key in FIELD_ALIASES[field_name]:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _parse_minutes(value: Any, minimum: int) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if isinstance(value, int) and value >= minimum:
        return value
    return None


def _parse_working_days(value: Any) -> Optional[Tuple[int, ...]]:
    if not isinstance(value, (list, tuple)):
        return None

    days = []
    for day in value:
        if isinstance(day, bool):
            continue
        if isinstance(day, str):
            day = day.strip().lower()
            day = config.WEEKDAY_NAMES.get(day, int(day) if day.isdigit() else None)
        if isinstance(day, int) and 0 <= day <= 6 and day not in days:
            days.append(day)

    return tuple(sorted(days)) or None


def resolve_settings(raw: Optional[Any] = None) -> ScheduleSettings:
    """
    Resolve raw practice settings into validated ScheduleSettings.

    Args:
        raw: Settings mapping (snake_case or camelCase keys), an existing
             ScheduleSettings, or None

    Returns:
        Fully-populated ScheduleSettings; never raises
    """
    if isinstance(raw, ScheduleSettings):
        return raw
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.debug("settings_defaulted", field="*", reason="not a mapping")
        return ScheduleSettings()

    defaulted = []
    resolved: Dict[str, Any] = {}

    interval = _parse_minutes(_lookup(raw, "interval_minutes"), minimum=1)
    if interval is None:
        defaulted.append("interval_minutes")
        interval = config.DEFAULT_SCHEDULE["interval_minutes"]
    resolved["interval_minutes"] = interval

    buffer = _parse_minutes(_lookup(raw, "buffer_minutes"), minimum=0)
    if buffer is None:
        defaulted.append("buffer_minutes")
        buffer = config.DEFAULT_SCHEDULE["buffer_minutes"]
    resolved["buffer_minutes"] = buffer

    for field_name in ("day_start", "day_end"):
        parsed = parse_time_of_day(_lookup(raw, field_name))
        if parsed is None:
            defaulted.append(field_name)
            parsed = _default_time(field_name)
        resolved[field_name] = parsed

    if resolved["day_end"] <= resolved["day_start"]:
        defaulted.extend(["day_start", "day_end"])
        resolved["day_start"] = _default_time("day_start")
        resolved["day_end"] = _default_time("day_end")

    working_days = _parse_working_days(_lookup(raw, "working_days"))
    if working_days is None:
        defaulted.append("working_days")
        working_days = config.DEFAULT_WORKING_DAYS
    resolved["working_days"] = working_days

    show_weekends = _lookup(raw, "show_weekends")
    resolved["show_weekends"] = show_weekends if isinstance(show_weekends, bool) else True

    if defaulted:
        logger.debug("settings_defaulted", fields=sorted(set(defaulted)))

    try:
        return ScheduleSettings(**resolved)
    except ValidationError as exc:
        logger.debug("settings_defaulted", field="*", reason=str(exc))
        return ScheduleSettings()
