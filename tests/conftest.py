"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a temp DB and an in-memory chat.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("COMMAND_PREFIX", "!")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("DEBUG_MODE", "false")
os.environ.setdefault("DATABASE_PATH", ":memory:")

from datetime import datetime, timedelta, timezone

import pytest

from src.ports.chat_port import ChatMessage

GROUP_ID = "group-1"

# Wednesday; the week window starts Sunday 2030-01-06 10:00 UTC
NOW = datetime(2030, 1, 9, 10, 0, tzinfo=timezone.utc)


class FakeChat:
    """In-memory ChatPort that records everything the core asks of it."""

    def __init__(self) -> None:
        self.sent: list[ChatMessage] = []
        self.replies: list[str] = []
        self.deleted: list[str] = []
        self.pinned: set[str] = set()
        self.pin_durations: list[timedelta] = []
        self._next_id = 1000

    def _new_message(self, chat_id: str, text: str) -> ChatMessage:
        self._next_id += 1
        message = ChatMessage(
            message_id=str(self._next_id),
            chat_id=chat_id,
            text=text,
            is_group=True,
            sender_id="bot",
            from_me=True,
        )
        self.sent.append(message)
        return message

    async def send_message(self, chat_id: str, text: str) -> ChatMessage:
        return self._new_message(chat_id, text)

    async def reply(self, message: ChatMessage, text: str) -> ChatMessage:
        self.replies.append(text)
        return self._new_message(message.chat_id, text)

    async def delete_message(self, message: ChatMessage, for_everyone: bool = True) -> None:
        self.deleted.append(message.message_id)
        self.pinned.discard(message.message_id)

    async def pin_message(self, message: ChatMessage, duration: timedelta) -> None:
        self.pinned.add(message.message_id)
        self.pin_durations.append(duration)

    async def unpin_message(self, message: ChatMessage) -> None:
        self.pinned.discard(message.message_id)

    async def fetch_own_messages(self, chat_id: str, limit: int = 100) -> list[ChatMessage]:
        alive = [
            m for m in reversed(self.sent)
            if m.chat_id == chat_id and m.message_id not in self.deleted
        ]
        return alive[:limit]

    @property
    def summaries(self) -> list[ChatMessage]:
        return [m for m in self.sent if "Calendar*" in m.text]


def make_message(
    text: str = "",
    *,
    chat_id: str = GROUP_ID,
    is_group: bool = True,
    from_me: bool = False,
    message_id: str = "1",
) -> ChatMessage:
    return ChatMessage(
        message_id=message_id,
        chat_id=chat_id,
        text=text,
        is_group=is_group,
        sender_id="12345",
        from_me=from_me,
        chat_title="Family",
    )


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_reminders.db")


@pytest.fixture
def reminder_db(tmp_db_path):
    """Return a ReminderDB instance backed by a temp file."""
    from src.data.db import ReminderDB
    return ReminderDB(db_path=tmp_db_path, debug=False)


@pytest.fixture
def fake_chat():
    return FakeChat()


@pytest.fixture
def bot_context(fake_chat, reminder_db):
    """BotContext with the full command set and a clock frozen at NOW."""
    from src.bot.commands import build_registry
    from src.core.dispatcher import BotContext

    return BotContext(
        chat=fake_chat,
        db=reminder_db,
        registry=build_registry(),
        prefix="!",
        timezone="UTC",
        pin_duration=timedelta(hours=72),
        scan_limit=100,
        clock=lambda: NOW,
    )
