"""
Salon API argument validators

Checks for the scalar arguments the endpoints receive next to the snapshot:
record ids, local booking dates and times, durations, the professional's
timezone and suggestion time ranges. Every failure raises InvalidInputError
before the engine runs.
"""

import re
from datetime import date, datetime, time
from typing import Optional, Sequence, Tuple

from salon_scheduling.salon_scheduling.exceptions import InvalidInputError
from salon_scheduling.salon_scheduling.utils import (
    TimezoneLike,
    get_timezone,
    is_positive_minutes,
    localize,
    throw,
    to_time,
)

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_RECORD_ID_LENGTH = 140

# Letters, digits and the separators used in salon record ids ("pro-1", "appt_2024.12:1")
RECORD_ID_PATTERN = re.compile(r"^[\w.:@-]+$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DATETIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


def validate_record_id(value: str, field_name: str = "id") -> str:
    """
    Validate an appointment or professional id.

    Returns:
        str: the id without surrounding whitespace

    Raises:
        InvalidInputError: if the id is missing, too long or has spaces or symbols
    """
    if not value:
        throw(f"{field_name} is required", InvalidInputError)

    value = str(value).strip()

    if len(value) > MAX_RECORD_ID_LENGTH:
        throw(f"{field_name} is too long (max {MAX_RECORD_ID_LENGTH} characters)", InvalidInputError)

    if not RECORD_ID_PATTERN.match(value):
        throw(f"Invalid {field_name}: '{value}'", InvalidInputError)

    return value


def validate_booking_date(date_str: str, field_name: str = "date") -> date:
    """
    Parse a local calendar date (YYYY-MM-DD).

    Both the format and the day itself are checked, so "2024-02-30" fails.
    """
    if not date_str:
        throw(f"{field_name} is required", InvalidInputError)

    date_str = str(date_str).strip()

    if not DATE_PATTERN.match(date_str):
        throw(f"Invalid {field_name} format. Use YYYY-MM-DD", InvalidInputError)

    try:
        return datetime.strptime(date_str, DATE_FORMAT).date()
    except ValueError:
        raise InvalidInputError(f"Invalid {field_name}: '{date_str}' is not a calendar date")


def validate_timezone_name(tz_name: str) -> str:
    """Check that tz_name is a known IANA zone and return it stripped."""
    tz_name = str(tz_name).strip()
    get_timezone(tz_name)
    return tz_name


def parse_local_datetime(
    datetime_str: Optional[str],
    tz: TimezoneLike,
    field_name: str = "datetime",
    required: bool = True
) -> Optional[datetime]:
    """
    Parse a wall-clock time (YYYY-MM-DD HH:MM:SS) in the professional's timezone.

    The format, the calendar date and the timezone are validated together,
    and the result is localized in tz (naive when tz is None).

    Args:
        datetime_str: local date and time
        tz: IANA name or tzinfo of the professional
        field_name: name used in error messages
        required: when False, a missing value returns None

    Raises:
        InvalidInputError: missing value, bad format, impossible date or unknown timezone
    """
    if not datetime_str:
        if not required:
            return None
        throw(f"{field_name} is required", InvalidInputError)

    datetime_str = str(datetime_str).strip()

    if not DATETIME_PATTERN.match(datetime_str):
        throw(f"Invalid {field_name} format. Use YYYY-MM-DD HH:MM:SS", InvalidInputError)

    try:
        value = datetime.strptime(datetime_str, DATETIME_FORMAT)
    except ValueError:
        raise InvalidInputError(f"Invalid {field_name}: '{datetime_str}' is not a valid date and time")

    return localize(value, get_timezone(tz))


def validate_duration_minutes(value, field_name: str = "duration") -> int:
    """Check a booking duration: a whole number of minutes greater than 0."""
    if not is_positive_minutes(value):
        throw(f"{field_name} must be a positive number of minutes (got {value!r})", InvalidInputError)
    return value


def validate_time_range(time_range: Optional[Sequence[str]]) -> Optional[Tuple[time, time]]:
    """
    Parse a ("HH:MM", "HH:MM") window for reschedule suggestions.

    Returns:
        (start, end) as datetime.time, or None when no range is given

    Raises:
        InvalidInputError: if the range does not have two times or start is not before end
    """
    if not time_range:
        return None

    if isinstance(time_range, str) or len(time_range) != 2:
        throw("time_range must be a pair of times (HH:MM, HH:MM)", InvalidInputError)

    start, end = (to_time(value) for value in time_range)
    if start >= end:
        throw(
            f"time_range start must be before end ({start.strftime('%H:%M')} - {end.strftime('%H:%M')})",
            InvalidInputError
        )

    return start, end
