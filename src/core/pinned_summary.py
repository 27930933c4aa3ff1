"""
Pinboard - Pinned Summary Refresh.

Each group has at most one pinned summary of its upcoming reminders. A
refresh retires expired reminders, removes the previous summary, posts and
pins a fresh one, and records its id on the group settings.

Provider-agnostic: depends on the ChatPort protocol and the ReminderDB
repository only.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from src.core.dates import due_day, format_timestamp, local_day_name, local_short_date
from src.core.reminder_buckets import Bucket, ReminderBuckets, bucket_reminders
from src.ports.chat_port import ChatMessage, TransportError

if TYPE_CHECKING:
    from src.data.db import ReminderDB
    from src.data.models import GroupSettings, Reminder
    from src.ports.chat_port import ChatPort

logger = logging.getLogger(__name__)

DEFAULT_PIN_DURATION = timedelta(hours=72)
DEFAULT_SCAN_LIMIT = 100

_SECTION_TITLES = {
    Bucket.THIS_WEEK: "*THIS WEEK REMINDERS*",
    Bucket.NEXT_WEEK: "*NEXT WEEK REMINDERS*",
    Bucket.TWO_WEEKS_OUT: "*IN 2 WEEKS*",
}


def group_display_name(group: GroupSettings) -> str:
    return group.group_name or "Unnamed"


def format_reminder_line(reminder: Reminder, timezone: str = "UTC") -> str:
    due = due_day(reminder.event_date, timezone)
    day = local_day_name(due, timezone)
    date = local_short_date(due, timezone)
    return f"• *[{day}, {date}]* {reminder.text}"


def build_summary(
    group: GroupSettings,
    buckets: ReminderBuckets,
    now: datetime,
    timezone: str = "UTC",
) -> str:
    """Render the pinned message body. Empty buckets get no section."""
    lines = [f"❇️ *{group_display_name(group)} Calendar*", ""]

    for bucket in Bucket:
        reminders = buckets.get(bucket)
        if not reminders:
            continue
        lines.append(_SECTION_TITLES[bucket])
        lines.extend(format_reminder_line(r, timezone) for r in reminders)
        lines.append("")

    if not buckets.shown:
        lines.extend(["_Nothing coming up._", ""])

    lines.append("ℹ️ _Format: [Day, dd/mm] Notice_")
    lines.append(f"🕓 _Last updated: {format_timestamp(now, timezone)}_")
    return "\n".join(lines)


async def _find_pinned_message(
    chat: ChatPort, group: GroupSettings, scan_limit: int,
) -> ChatMessage | None:
    if not group.pin_message_id:
        return None
    recent = await chat.fetch_own_messages(group.group_id, limit=scan_limit)
    for message in recent:
        if message.message_id == group.pin_message_id:
            return message
    # Not in the window (e.g. after a restart): the id alone is enough to retire it
    logger.info(
        "Previous summary %s for %s not among the last %d messages, retiring by id",
        group.pin_message_id, group.group_id, scan_limit,
    )
    return ChatMessage(
        message_id=group.pin_message_id,
        chat_id=group.group_id,
        is_group=True,
        from_me=True,
    )


async def _retire_summary(chat: ChatPort, message: ChatMessage) -> None:
    """Unpin and delete the previous summary. Failures are logged, not raised.

    The message may already be gone: unpinned by its expiry job or deleted by
    an admin. That must not keep the new summary from being posted.
    """
    try:
        await chat.unpin_message(message)
    except TransportError as exc:
        logger.warning("Couldn't unpin previous summary %s: %s", message.message_id, exc)
    try:
        await chat.delete_message(message, for_everyone=True)
    except TransportError as exc:
        logger.warning("Couldn't delete previous summary %s: %s", message.message_id, exc)


async def refresh_pinned_summary(
    chat: ChatPort,
    db: ReminderDB,
    group: GroupSettings,
    *,
    now: datetime,
    timezone: str = "UTC",
    pin_duration: timedelta = DEFAULT_PIN_DURATION,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
) -> GroupSettings:
    """Replace the group's pinned summary and return the updated settings."""
    buckets = bucket_reminders(db.list_reminders(group.group_id), now, timezone)
    if buckets.expired:
        db.delete_reminders(r.id for r in buckets.expired)

    previous = await _find_pinned_message(chat, group, scan_limit)
    if previous is not None:
        await _retire_summary(chat, previous)

    body = build_summary(group, buckets, now, timezone)
    pinned = await chat.send_message(group.group_id, body)
    await chat.pin_message(pinned, pin_duration)

    updated = db.save_group(replace(group, pin_message_id=pinned.message_id))
    logger.info(
        "Pinned summary for %s refreshed: %d shown, %d expired",
        group.group_id, len(buckets.shown), len(buckets.expired),
    )
    return updated
