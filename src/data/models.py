"""
Pinboard - Data Models.

Plain immutable records. The repository in src.data.db is the only code that
reads or writes them to SQLite; callers derive changed copies with
dataclasses.replace() and hand them back to the repository to persist.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# Reminder text starting with this sorts first among reminders on the same day
IMPORTANT_PREFIX = "‼️(IMPORTANT)"


@dataclass(frozen=True)
class GroupSettings:
    """Per-group state, keyed by the chat transport's group id."""

    group_id: str
    group_name: str | None = None
    pin_message_id: str | None = None   # currently pinned summary, if any


@dataclass(frozen=True)
class Reminder:
    """A single due-dated notice belonging to one group."""

    id: int
    text: str
    event_date: datetime   # aware, UTC
    group_id: str

    @property
    def is_important(self) -> bool:
        return self.text.startswith(IMPORTANT_PREFIX)


@dataclass(frozen=True)
class ReminderDraft:
    """Fields needed to create a Reminder; the id is assigned on insert."""

    text: str
    event_date: datetime
