"""Tests for src.core.pinned_summary — message body and refresh cycle."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import GROUP_ID, NOW
from src.core.dates import end_of_local_day, parse_local_date
from src.core.pinned_summary import build_summary, refresh_pinned_summary
from src.core.reminder_buckets import ReminderBuckets
from src.data.models import GroupSettings, Reminder
from src.ports.chat_port import TransportError

UTC = timezone.utc


def _reminder(id: int, event_date: datetime, text: str) -> Reminder:
    return Reminder(id=id, text=text, event_date=event_date, group_id=GROUP_ID)


# ---------------------------------------------------------------------------
# build_summary
# ---------------------------------------------------------------------------


class TestBuildSummary:
    def test_header_uses_group_name(self):
        body = build_summary(GroupSettings(GROUP_ID, group_name="Family"), ReminderBuckets(), NOW)
        assert body.splitlines()[0] == "❇️ *Family Calendar*"

    def test_header_fallback(self):
        body = build_summary(GroupSettings(GROUP_ID), ReminderBuckets(), NOW)
        assert "*Unnamed Calendar*" in body

    def test_only_non_empty_sections(self):
        buckets = ReminderBuckets(
            next_week=[_reminder(1, datetime(2030, 1, 16, 12, 0, tzinfo=UTC), "Dentist")],
        )
        body = build_summary(GroupSettings(GROUP_ID), buckets, NOW)
        assert "*NEXT WEEK REMINDERS*" in body
        assert "*THIS WEEK REMINDERS*" not in body
        assert "*IN 2 WEEKS*" not in body
        assert "• *[Wednesday, 16/01]* Dentist" in body

    def test_sections_in_window_order(self):
        buckets = ReminderBuckets(
            this_week=[_reminder(1, datetime(2030, 1, 10, tzinfo=UTC), "a")],
            next_week=[_reminder(2, datetime(2030, 1, 16, tzinfo=UTC), "b")],
            two_weeks_out=[_reminder(3, datetime(2030, 1, 23, tzinfo=UTC), "c")],
        )
        body = build_summary(GroupSettings(GROUP_ID), buckets, NOW)
        assert body.index("THIS WEEK") < body.index("NEXT WEEK") < body.index("IN 2 WEEKS")

    def test_footer(self):
        body = build_summary(GroupSettings(GROUP_ID), ReminderBuckets(), NOW)
        lines = body.splitlines()
        assert lines[-2] == "ℹ️ _Format: [Day, dd/mm] Notice_"
        assert lines[-1] == "🕓 _Last updated: 10:00:00 09/01/30_"

    def test_empty_notice(self):
        body = build_summary(GroupSettings(GROUP_ID), ReminderBuckets(), NOW)
        assert "_Nothing coming up._" in body

    def test_stored_due_date_renders_as_its_day(self):
        due = end_of_local_day(parse_local_date("13/01/30"))
        buckets = ReminderBuckets(this_week=[_reminder(1, due, "Sunday thing")])
        body = build_summary(GroupSettings(GROUP_ID), buckets, NOW)
        assert "• *[Sunday, 13/01]* Sunday thing" in body

    def test_dates_rendered_in_timezone(self):
        buckets = ReminderBuckets(
            this_week=[_reminder(1, datetime(2030, 1, 9, 23, 0, tzinfo=UTC), "Late")],
        )
        body = build_summary(GroupSettings(GROUP_ID), buckets, NOW, "Asia/Jerusalem")
        assert "• *[Thursday, 10/01]* Late" in body
        assert "12:00:00 09/01/30" in body


# ---------------------------------------------------------------------------
# refresh_pinned_summary
# ---------------------------------------------------------------------------


async def _refresh(fake_chat, db, **kwargs):
    group = db.get_or_create_group(GROUP_ID)
    return await refresh_pinned_summary(fake_chat, db, group, now=NOW, **kwargs)


class TestRefresh:
    @pytest.mark.asyncio
    async def test_first_refresh_sends_and_pins(self, fake_chat, reminder_db):
        reminder_db.get_or_create_group(GROUP_ID)
        reminder_db.add_reminder(GROUP_ID, "Pay rent", datetime(2030, 1, 11, tzinfo=UTC))

        updated = await _refresh(fake_chat, reminder_db)

        assert len(fake_chat.sent) == 1
        summary = fake_chat.sent[0]
        assert "Pay rent" in summary.text
        assert fake_chat.pinned == {summary.message_id}
        assert updated.pin_message_id == summary.message_id
        assert reminder_db.get_group(GROUP_ID).pin_message_id == summary.message_id

    @pytest.mark.asyncio
    async def test_second_refresh_replaces_previous(self, fake_chat, reminder_db):
        reminder_db.get_or_create_group(GROUP_ID)
        reminder_db.add_reminder(GROUP_ID, "Pay rent", datetime(2030, 1, 11, tzinfo=UTC))

        first = await _refresh(fake_chat, reminder_db)
        second = await _refresh(fake_chat, reminder_db)

        assert first.pin_message_id != second.pin_message_id
        assert fake_chat.deleted == [first.pin_message_id]
        assert fake_chat.pinned == {second.pin_message_id}
        assert fake_chat.sent[0].text == fake_chat.sent[1].text

    @pytest.mark.asyncio
    async def test_expired_reminders_are_deleted(self, fake_chat, reminder_db):
        reminder_db.get_or_create_group(GROUP_ID)
        reminder_db.add_reminder(GROUP_ID, "Old news", NOW - timedelta(hours=1))
        reminder_db.add_reminder(GROUP_ID, "Upcoming", NOW + timedelta(days=1))

        await _refresh(fake_chat, reminder_db)

        assert [r.text for r in reminder_db.list_reminders(GROUP_ID)] == ["Upcoming"]
        assert "Old news" not in fake_chat.sent[0].text

    @pytest.mark.asyncio
    async def test_far_reminders_are_kept_but_not_shown(self, fake_chat, reminder_db):
        reminder_db.get_or_create_group(GROUP_ID)
        reminder_db.add_reminder(GROUP_ID, "Far away", NOW + timedelta(weeks=8))

        await _refresh(fake_chat, reminder_db)

        assert len(reminder_db.list_reminders(GROUP_ID)) == 1
        assert "Far away" not in fake_chat.sent[0].text

    @pytest.mark.asyncio
    async def test_previous_pin_unknown_after_restart_is_retired_by_id(self, fake_chat, reminder_db):
        # A fresh chat adapter has no history, only the stored id
        group = reminder_db.get_or_create_group(GROUP_ID)
        reminder_db.save_group(replace(group, pin_message_id="999"))
        fake_chat.pinned.add("999")

        updated = await _refresh(fake_chat, reminder_db)

        assert fake_chat.deleted == ["999"]
        assert fake_chat.pinned == {updated.pin_message_id}
        assert updated.pin_message_id == fake_chat.sent[0].message_id

    @pytest.mark.asyncio
    async def test_previous_pin_beyond_scan_limit_is_still_retired(self, fake_chat, reminder_db):
        first = await _refresh(fake_chat, reminder_db)
        for i in range(3):
            await fake_chat.send_message(GROUP_ID, f"chatter {i}")

        second = await _refresh(fake_chat, reminder_db, scan_limit=2)

        assert fake_chat.deleted == [first.pin_message_id]
        assert fake_chat.pinned == {second.pin_message_id}

    @pytest.mark.asyncio
    async def test_failed_unpin_does_not_block_refresh(self, fake_chat, reminder_db):
        fake_chat.unpin_message = AsyncMock(side_effect=TransportError("message to unpin not found"))

        first = await _refresh(fake_chat, reminder_db)
        second = await _refresh(fake_chat, reminder_db)
        third = await _refresh(fake_chat, reminder_db)

        assert len({first.pin_message_id, second.pin_message_id, third.pin_message_id}) == 3
        assert reminder_db.get_group(GROUP_ID).pin_message_id == third.pin_message_id
        assert fake_chat.deleted == [first.pin_message_id, second.pin_message_id]

    @pytest.mark.asyncio
    async def test_failed_delete_does_not_block_refresh(self, fake_chat, reminder_db):
        fake_chat.delete_message = AsyncMock(side_effect=TransportError("message to delete not found"))

        first = await _refresh(fake_chat, reminder_db)
        second = await _refresh(fake_chat, reminder_db)

        assert second.pin_message_id != first.pin_message_id
        assert reminder_db.get_group(GROUP_ID).pin_message_id == second.pin_message_id
        fake_chat.delete_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_pin_duration_passed_to_chat(self, fake_chat, reminder_db):
        await _refresh(fake_chat, reminder_db, pin_duration=timedelta(hours=5))
        assert fake_chat.pin_durations == [timedelta(hours=5)]
