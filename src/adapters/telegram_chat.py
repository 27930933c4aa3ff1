"""Telegram chat adapter - implements ChatPort.

Wraps a telegram.Bot instance to satisfy the ChatPort protocol.

Telegram bots cannot read chat history, so the adapter remembers the last
`window` messages it sent per chat; that is the scan window used to find the
previous pinned summary. The window is lost on restart, but unpin and delete
only need the message id. Pins do not expire on Telegram either: when a job
queue is given, an unpin job is scheduled for the pin duration.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import timedelta

from telegram import Bot, Message, ReplyParameters
from telegram.constants import ChatType, ParseMode
from telegram.error import BadRequest, TelegramError
from telegram.ext import ContextTypes, JobQueue

from src.ports.chat_port import ChatMessage, TransportError

logger = logging.getLogger(__name__)

_GROUP_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)


def _unpin_job_name(message: ChatMessage) -> str:
    return f"unpin:{message.chat_id}:{message.message_id}"


class TelegramChat:
    """Telegram implementation of ChatPort."""

    def __init__(
        self,
        bot: Bot,
        job_queue: JobQueue | None = None,
        window: int = 100,
    ) -> None:
        self._bot = bot
        self._job_queue = job_queue
        self._window = window
        self._sent: dict[str, deque[ChatMessage]] = {}

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_chat_message(self, message: Message) -> ChatMessage:
        user = message.from_user
        return ChatMessage(
            message_id=str(message.message_id),
            chat_id=str(message.chat_id),
            text=message.text or "",
            is_group=message.chat.type in _GROUP_TYPES,
            sender_id=str(user.id) if user else "",
            from_me=user is not None and user.id == self._bot.id,
            chat_title=message.chat.title,
        )

    def _remember(self, message: ChatMessage) -> None:
        sent = self._sent.setdefault(message.chat_id, deque(maxlen=self._window))
        sent.append(message)

    def _forget(self, message: ChatMessage) -> None:
        sent = self._sent.get(message.chat_id)
        if sent is None:
            return
        for known in list(sent):
            if known.message_id == message.message_id:
                sent.remove(known)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def _send(self, chat_id: str, text: str, reply_to: str | None = None) -> ChatMessage:
        kwargs = {}
        if reply_to is not None:
            kwargs["reply_parameters"] = ReplyParameters(
                message_id=int(reply_to), allow_sending_without_reply=True,
            )
        try:
            try:
                sent = await self._bot.send_message(
                    chat_id=chat_id, text=text, parse_mode=ParseMode.MARKDOWN, **kwargs,
                )
            except BadRequest as exc:
                if "parse entities" not in str(exc).lower():
                    raise
                logger.warning("Markdown rejected for %s, sending plain text: %s", chat_id, exc)
                sent = await self._bot.send_message(chat_id=chat_id, text=text, **kwargs)
        except TelegramError as exc:
            raise TransportError(f"Couldn't send message to {chat_id}: {exc}") from exc

        message = ChatMessage(
            message_id=str(sent.message_id),
            chat_id=str(chat_id),
            text=text,
            is_group=sent.chat.type in _GROUP_TYPES,
            sender_id=str(self._bot.id),
            from_me=True,
            chat_title=sent.chat.title,
        )
        self._remember(message)
        return message

    async def send_message(self, chat_id: str, text: str) -> ChatMessage:
        return await self._send(chat_id, text)

    async def reply(self, message: ChatMessage, text: str) -> ChatMessage:
        return await self._send(message.chat_id, text, reply_to=message.message_id)

    # ------------------------------------------------------------------
    # Deleting and pinning
    # ------------------------------------------------------------------

    async def delete_message(self, message: ChatMessage, for_everyone: bool = True) -> None:
        # Bot deletions on Telegram always apply to every member
        if not for_everyone:
            logger.debug("Telegram has no delete-for-me; deleting %s for everyone", message.message_id)
        # Forgotten either way; a failed delete usually means it is already gone
        self._forget(message)
        try:
            await self._bot.delete_message(
                chat_id=message.chat_id, message_id=int(message.message_id),
            )
        except TelegramError as exc:
            raise TransportError(f"Couldn't delete message {message.message_id}: {exc}") from exc

    async def pin_message(self, message: ChatMessage, duration: timedelta) -> None:
        try:
            await self._bot.pin_chat_message(
                chat_id=message.chat_id,
                message_id=int(message.message_id),
                disable_notification=True,
            )
        except TelegramError as exc:
            raise TransportError(f"Couldn't pin message {message.message_id}: {exc}") from exc

        if self._job_queue is not None:
            self._job_queue.run_once(
                self._expire_pin, when=duration, data=message, name=_unpin_job_name(message),
            )

    async def unpin_message(self, message: ChatMessage) -> None:
        if self._job_queue is not None:
            for job in self._job_queue.get_jobs_by_name(_unpin_job_name(message)):
                job.schedule_removal()
        try:
            await self._bot.unpin_chat_message(
                chat_id=message.chat_id, message_id=int(message.message_id),
            )
        except TelegramError as exc:
            raise TransportError(f"Couldn't unpin message {message.message_id}: {exc}") from exc

    async def _expire_pin(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        message: ChatMessage = context.job.data
        try:
            await self._bot.unpin_chat_message(
                chat_id=message.chat_id, message_id=int(message.message_id),
            )
            logger.info("Pin on %s in %s expired", message.message_id, message.chat_id)
        except TelegramError as exc:
            logger.warning("Couldn't unpin expired message %s: %s", message.message_id, exc)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def fetch_own_messages(self, chat_id: str, limit: int = 100) -> list[ChatMessage]:
        """Newest first, at most `limit` of the messages this bot sent."""
        sent = self._sent.get(str(chat_id), ())
        return list(reversed(sent))[:limit]
