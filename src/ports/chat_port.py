"""Chat port - abstract interface for the chat transport.

Core modules depend on this protocol, never on a specific messenger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol


class TransportError(Exception):
    """Raised when any chat transport operation fails."""


@dataclass(frozen=True)
class ChatMessage:
    """A message as seen by the core, inbound or sent by the bot."""

    message_id: str
    chat_id: str
    text: str = ""
    is_group: bool = False
    sender_id: str = ""
    from_me: bool = False
    chat_title: str | None = None


class ChatPort(Protocol):
    """Abstract chat interface used by core modules."""

    async def send_message(self, chat_id: str, text: str) -> ChatMessage: ...

    async def reply(self, message: ChatMessage, text: str) -> ChatMessage: ...

    async def delete_message(
        self, message: ChatMessage, for_everyone: bool = True
    ) -> None: ...

    async def pin_message(self, message: ChatMessage, duration: timedelta) -> None: ...

    async def unpin_message(self, message: ChatMessage) -> None: ...

    async def fetch_own_messages(
        self, chat_id: str, limit: int = 100
    ) -> list[ChatMessage]: ...
