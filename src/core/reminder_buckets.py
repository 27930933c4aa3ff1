"""
Pinboard - Reminder Bucketing Engine.

Splits a group's reminders into relative week windows for the pinned summary.
The week starts on the most recent Sunday at the current time of day:

    days = floor((event_date - start_of_week) / 1 day)

    event_date < now                -> expired (to be deleted)
    0  <= days <= 7                 -> this week
    7  <  days <= 14                -> next week
    14 <  days <= 21                -> in two weeks
    anything else                   -> not shown, kept

No I/O: deleting the expired reminders is the caller's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Sequence

from src.core.dates import UTC, day_order, due_day, to_local
from src.data.models import Reminder

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


class Bucket(Enum):
    THIS_WEEK = "this_week"
    NEXT_WEEK = "next_week"
    TWO_WEEKS_OUT = "two_weeks_out"


# Inclusive upper bound of each window, in days from start_of_week
_BUCKET_LIMITS = (
    (7, Bucket.THIS_WEEK),
    (14, Bucket.NEXT_WEEK),
    (21, Bucket.TWO_WEEKS_OUT),
)


@dataclass(frozen=True)
class ReminderBuckets:
    """Result of one bucketing pass."""

    this_week: list[Reminder] = field(default_factory=list)
    next_week: list[Reminder] = field(default_factory=list)
    two_weeks_out: list[Reminder] = field(default_factory=list)
    expired: list[Reminder] = field(default_factory=list)
    hidden: list[Reminder] = field(default_factory=list)

    def get(self, bucket: Bucket) -> list[Reminder]:
        return getattr(self, bucket.value)

    @property
    def shown(self) -> list[Reminder]:
        return self.this_week + self.next_week + self.two_weeks_out


def start_of_week(now: datetime, timezone: str = "UTC") -> datetime:
    """Roll `now` back to the last local Sunday, keeping the time of day."""
    local_now = to_local(now, timezone)
    days_since_sunday = (local_now.weekday() + 1) % 7
    return local_now - timedelta(days=days_since_sunday)


def days_from(week_start: datetime, instant: datetime) -> int:
    """Whole days between two instants, floored, on absolute time."""
    return (instant.astimezone(UTC) - week_start.astimezone(UTC)) // _ONE_DAY


def classify_days(days: int) -> Bucket | None:
    if days < 0:
        return None
    for limit, bucket in _BUCKET_LIMITS:
        if days <= limit:
            return bucket
    return None


def classify(event_date: datetime, now: datetime, timezone: str = "UTC") -> Bucket | None:
    """Return the window an event falls in relative to `now`, if any."""
    return classify_days(days_from(start_of_week(now, timezone), event_date))


def sort_reminders(reminders: Iterable[Reminder], timezone: str = "UTC") -> list[Reminder]:
    """Order by local due weekday (Mon..Sun), important ones first within a day.

    The sort is stable, so remaining ties keep their input order.
    """
    return sorted(
        reminders,
        key=lambda r: (day_order(due_day(r.event_date, timezone)), not r.is_important),
    )


def bucket_reminders(
    reminders: Sequence[Reminder],
    now: datetime,
    timezone: str = "UTC",
) -> ReminderBuckets:
    """Retire past reminders and sort the rest into week windows."""
    week_start = start_of_week(now, timezone)
    grouped: dict[Bucket, list[Reminder]] = {bucket: [] for bucket in Bucket}
    expired: list[Reminder] = []
    hidden: list[Reminder] = []

    for reminder in reminders:
        if reminder.event_date < now:
            expired.append(reminder)
            continue
        bucket = classify_days(days_from(week_start, reminder.event_date))
        if bucket is None:
            hidden.append(reminder)
        else:
            grouped[bucket].append(reminder)

    if expired:
        logger.debug("%d reminder(s) expired", len(expired))

    return ReminderBuckets(
        this_week=sort_reminders(grouped[Bucket.THIS_WEEK], timezone),
        next_week=sort_reminders(grouped[Bucket.NEXT_WEEK], timezone),
        two_weeks_out=sort_reminders(grouped[Bucket.TWO_WEEKS_OUT], timezone),
        expired=expired,
        hidden=hidden,
    )
