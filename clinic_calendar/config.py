"""Configuration for the calendar view engine.

All business constants centralized here - modify as needed without touching code.

Practice scheduling settings (interval, hours, buffer) are NOT read from here
at render time; they are passed in by the caller on every render. The values
below are only the fallbacks used when a practice setting is missing or invalid.
"""
import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SCHEDULE = {
    "interval_minutes": 60,
    "day_start": "06:00",
    "day_end": "22:00",
    "buffer_minutes": 0,
}

# 0=Sunday .. 6=Saturday, same numbering the practice settings API uses
DEFAULT_WORKING_DAYS = (1, 2, 3, 4, 5)

WEEKDAY_NAMES = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}

# Appointments carry no end time in the source data. Fixed duration,
# independent of the configured slot interval.
APPOINTMENT_DEFAULT_DURATION_MINUTES = 60

MONTH_VIEW_MAX_VISIBLE_EVENTS = 3

# Python weekday() numbering (Monday=0). 6 = weeks start on Sunday.
WEEK_STARTS_ON = 6

EVENT_COLORS = {
    "appointment": "bg-blue-500",
    "task": "bg-green-500",
    "reminder": "bg-yellow-500",
    "meeting": "bg-purple-500",
    "out-of-office": "bg-gray-500",
}

# Logging
LOG_LEVEL = os.getenv("CALENDAR_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("CALENDAR_LOG_JSON", "true").lower() == "true"
