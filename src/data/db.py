"""
Pinboard - Reminder Database.

SQLite-backed repository for group settings and reminders. Every public
method runs inside transaction(): commit on success, rollback on any failure,
and the failure is re-raised (sqlite errors as PersistenceError).
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator

from src.core.dates import UTC, utc_now
from src.core.errors import PersistenceError
from src.data.models import GroupSettings, Reminder, ReminderDraft

logger = logging.getLogger(__name__)


class ReminderDB:
    """Repository over the `group_settings` and `reminders` tables."""

    def __init__(self, db_path: str | None = None, debug: bool | None = None) -> None:
        if db_path is None or debug is None:
            from src.config import settings
            db_path = db_path if db_path is not None else settings.DATABASE_PATH
            debug = debug if debug is not None else settings.DEBUG_MODE

        self._db_path = db_path
        self._debug = debug
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        if self._debug:
            conn.set_trace_callback(lambda sql: logger.debug("[DB] %s", sql))
        return conn

    def _init_db(self) -> None:
        """Create the tables if they don't exist."""
        with self.transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS group_settings (
                    group_id        TEXT PRIMARY KEY,
                    group_name      TEXT,
                    pin_message_id  TEXT,
                    created_at      TEXT NOT NULL,
                    updated_at      TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reminders (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    text        TEXT NOT NULL,
                    event_date  TEXT NOT NULL,
                    group_id    TEXT NOT NULL
                                REFERENCES group_settings(group_id),
                    created_at  TEXT NOT NULL,
                    updated_at  TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_reminders_group ON reminders(group_id)"
            )
        logger.debug("[DB] Tables initialized at %s", self._db_path)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection whose work is committed or rolled back as a unit."""
        conn = self._connect()
        try:
            yield conn
            conn.commit()
            logger.debug("[DB] Transaction committed")
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error("[DB] Transaction failed, rolled back: %s", exc)
            raise PersistenceError(f"Database error: {exc}") from exc
        except Exception as exc:
            conn.rollback()
            logger.error("[DB] Transaction failed, rolled back: %s", exc)
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_group(row: sqlite3.Row) -> GroupSettings:
        return GroupSettings(
            group_id=row["group_id"],
            group_name=row["group_name"],
            pin_message_id=row["pin_message_id"],
        )

    @staticmethod
    def _row_to_reminder(row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=row["id"],
            text=row["text"],
            event_date=datetime.fromisoformat(row["event_date"]).astimezone(UTC),
            group_id=row["group_id"],
        )

    @staticmethod
    def _timestamp() -> str:
        return utc_now().isoformat()

    # ------------------------------------------------------------------
    # Group settings
    # ------------------------------------------------------------------

    def get_group(self, group_id: str) -> GroupSettings | None:
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM group_settings WHERE group_id = ?", (group_id,)
            ).fetchone()
        return self._row_to_group(row) if row is not None else None

    def get_or_create_group(self, group_id: str) -> GroupSettings:
        """Fetch a group's settings, inserting an empty row on first access."""
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM group_settings WHERE group_id = ?", (group_id,)
            ).fetchone()
            if row is not None:
                return self._row_to_group(row)

            now = self._timestamp()
            conn.execute(
                "INSERT INTO group_settings (group_id, created_at, updated_at) VALUES (?, ?, ?)",
                (group_id, now, now),
            )
        logger.info("Group settings created for %s", group_id)
        return GroupSettings(group_id=group_id)

    def save_group(self, group: GroupSettings) -> GroupSettings:
        """Persist name and pinned message id of an existing group."""
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE group_settings
                   SET group_name = ?, pin_message_id = ?, updated_at = ?
                 WHERE group_id = ?
                """,
                (group.group_name, group.pin_message_id, self._timestamp(), group.group_id),
            )
            if cursor.rowcount == 0:
                raise PersistenceError(f"Unknown group {group.group_id!r}")
        logger.debug("[DB] Group %s saved", group.group_id)
        return group

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def add_reminders(self, group_id: str, drafts: Iterable[ReminderDraft]) -> list[Reminder]:
        """Insert all drafts for a group in one transaction."""
        created: list[Reminder] = []
        with self.transaction() as conn:
            now = self._timestamp()
            for draft in drafts:
                event_date = draft.event_date.astimezone(UTC)
                cursor = conn.execute(
                    """
                    INSERT INTO reminders (text, event_date, group_id, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (draft.text, event_date.isoformat(), group_id, now, now),
                )
                created.append(Reminder(
                    id=cursor.lastrowid,
                    text=draft.text,
                    event_date=event_date,
                    group_id=group_id,
                ))
        for reminder in created:
            logger.info("Reminder added: #%d for %s due %s", reminder.id, group_id, reminder.event_date)
        return created

    def add_reminder(self, group_id: str, text: str, event_date: datetime) -> Reminder:
        return self.add_reminders(group_id, [ReminderDraft(text=text, event_date=event_date)])[0]

    def list_reminders(self, group_id: str) -> list[Reminder]:
        """Return the group's reminders in creation order."""
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM reminders WHERE group_id = ? ORDER BY id", (group_id,)
            ).fetchall()
        return [self._row_to_reminder(r) for r in rows]

    def delete_reminder(self, group_id: str, reminder_id: int) -> bool:
        """Hard-delete one reminder of a group. Returns False if it wasn't there."""
        with self.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM reminders WHERE id = ? AND group_id = ?",
                (reminder_id, group_id),
            )
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Reminder #%d deleted from %s", reminder_id, group_id)
        return deleted

    def delete_reminders(self, reminder_ids: Iterable[int]) -> int:
        """Hard-delete a batch of reminders; all or nothing."""
        ids = list(reminder_ids)
        if not ids:
            return 0
        with self.transaction() as conn:
            conn.executemany("DELETE FROM reminders WHERE id = ?", [(i,) for i in ids])
        logger.info("Deleted %d expired reminder(s)", len(ids))
        return len(ids)
