"""
Pinboard - Date/Timezone utilities.

Pure functions: every instant is a timezone-aware datetime, every timezone an
IANA name resolved through zoneinfo. Nothing here reads configuration.
"""

from __future__ import annotations

import re
from datetime import datetime, time, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo

from src.core.errors import InvalidDateError

UTC = dt_timezone.utc

# English names regardless of the process locale (strftime("%A") is locale-bound)
_DAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)

_DATE_SEPARATORS = re.compile(r"[-/\s]+")

_ONE_TICK = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_local(instant: datetime, timezone: str = "UTC") -> datetime:
    """Convert an aware instant to the wall-clock time of `timezone`."""
    return instant.astimezone(ZoneInfo(timezone))


def day_order(instant: datetime) -> int:
    """Weekday key for sorting: Monday=1 … Sunday=7.

    Uses the instant's own tzinfo, so convert with to_local() first when the
    weekday should follow the display timezone.
    """
    return instant.isoweekday()


def local_day_name(instant: datetime, timezone: str = "UTC") -> str:
    return _DAY_NAMES[to_local(instant, timezone).weekday()]


def local_short_date(instant: datetime, timezone: str = "UTC") -> str:
    """Return "dd/mm" in the given timezone."""
    return to_local(instant, timezone).strftime("%d/%m")


def format_timestamp(instant: datetime, timezone: str = "UTC") -> str:
    """Return "HH:MM:SS dd/mm/yy" in the given timezone."""
    return to_local(instant, timezone).strftime("%H:%M:%S %d/%m/%y")


def parse_local_date(text: str, timezone: str = "UTC") -> datetime:
    """Parse "dd/mm/yy" (or dd-mm-yyyy, ...) as midnight in `timezone`.

    Separators may be any run of '-', '/' or whitespace. Two-digit years are
    taken as 20xx. Returns the UTC instant of that local midnight, so
    "25/12/25" in Asia/Jerusalem is 2025-12-24 22:00 UTC.

    Raises InvalidDateError if there are not exactly three numeric parts or
    they do not form a calendar date.
    """
    parts = [p for p in _DATE_SEPARATORS.split(text.strip()) if p]
    if len(parts) != 3:
        raise InvalidDateError(text)

    try:
        day, month, year = (int(p) for p in parts)
    except ValueError:
        raise InvalidDateError(text) from None

    if 0 <= year < 100:
        year += 2000

    try:
        local_midnight = datetime(year, month, day, tzinfo=ZoneInfo(timezone))
    except ValueError:
        raise InvalidDateError(text) from None

    return local_midnight.astimezone(UTC)


def due_day(event_date: datetime, timezone: str = "UTC") -> datetime:
    """Local wall-clock time on the calendar day a reminder is due.

    Due dates are stored as the midnight that ends their day (see
    end_of_local_day), so that midnight belongs to the day before it.
    Use this, not to_local(), before taking a due date's weekday or dd/mm.
    """
    return to_local(event_date - _ONE_TICK, timezone)


def end_of_local_day(instant: datetime, timezone: str = "UTC") -> datetime:
    """Return the local midnight that ends the instant's calendar day.

    A due date parsed as 00:00 would already be in the past during the day
    it names; storing the following midnight keeps it visible until the day
    is over.
    """
    zone = ZoneInfo(timezone)
    next_day = instant.astimezone(zone).date() + timedelta(days=1)
    return datetime.combine(next_day, time(), tzinfo=zone).astimezone(UTC)
