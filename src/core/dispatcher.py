"""
Pinboard - Command Registry & Dispatch.

A message like "!delreminder 12" is resolved to a registered Command by its
first word, its remaining words are parsed against the command's options,
and the handler runs with an Interaction. Whatever goes wrong in between is
turned into a single error reply; it never escapes dispatch().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable, Iterator

from src.core.arg_parser import CommandOption, OptionType, OptionValue, ParsedArgs, coerce, tokenize
from src.core.dates import utc_now
from src.core.errors import CommandError

if TYPE_CHECKING:
    from src.data.db import ReminderDB
    from src.ports.chat_port import ChatMessage, ChatPort

logger = logging.getLogger(__name__)


Handler = Callable[["Interaction"], Awaitable[None]]


@dataclass(frozen=True)
class Command:
    name: str
    description: str
    handler: Handler
    options: tuple[CommandOption, ...] = ()


class CommandRegistry:
    """Fixed set of commands, looked up by exact lower-case name."""

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        self._commands: dict[str, Command] = {}
        for command in commands:
            self.register(command)

    def register(self, command: Command) -> None:
        name = command.name.lower()
        if name in self._commands:
            raise ValueError(f"Command {name!r} registered twice")
        self._commands[name] = command

    def get(self, name: str) -> Command | None:
        return self._commands.get(name)

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)


@dataclass(frozen=True)
class BotContext:
    """Everything a command needs besides its message and arguments."""

    chat: ChatPort
    db: ReminderDB
    registry: CommandRegistry
    prefix: str = "!"
    timezone: str = "UTC"
    pin_duration: timedelta = timedelta(hours=72)
    scan_limit: int = 100
    clock: Callable[[], datetime] = field(default=utc_now)


class Interaction:
    """One command invocation: the triggering message plus parsed arguments."""

    def __init__(self, message: ChatMessage, options: ParsedArgs, context: BotContext) -> None:
        self.message = message
        self.options = options
        self.context = context

    @property
    def chat(self) -> ChatPort:
        return self.context.chat

    def get(self, name: str) -> OptionValue | None:
        return self.options.get(name)

    def _typed(self, name: str, expected: OptionType):
        option = self.options.get(name)
        if option is None or option.value is None:
            return None
        if option.type is not expected:
            raise TypeError(f"Option {name!r} is {option.type.value}, not {expected.value}")
        return option.value

    def get_str(self, name: str) -> str | None:
        return self._typed(name, OptionType.STRING)

    def get_number(self, name: str) -> int | float | None:
        return self._typed(name, OptionType.NUMBER)

    def get_bool(self, name: str) -> bool:
        """Undeclared or absent booleans read as False."""
        return bool(self._typed(name, OptionType.BOOLEAN))

    def get_date(self, name: str) -> datetime | None:
        return self._typed(name, OptionType.DATE)

    async def reply(self, text: str) -> ChatMessage:
        return await self.context.chat.reply(self.message, text)


def format_error(exc: BaseException) -> str:
    return "🆘 Whoops! I've caught an error:\n```\n" + str(exc) + "\n```"


def command_name(text: str, prefix: str) -> str | None:
    """Return the lower-cased command word of a prefixed message, or None."""
    if not text.startswith(prefix):
        return None
    words = text[len(prefix):].split()
    if not words:
        return None
    return words[0].lower()


async def dispatch(text: str, message: ChatMessage, context: BotContext) -> bool:
    """Run the command named in `text`, if any.

    Returns True when a registered command matched (whether or not it
    succeeded), False when the message was ignored.
    """
    name = command_name(text, context.prefix)
    if name is None:
        return False

    command = context.registry.get(name)
    if command is None:
        logger.debug("Ignoring unknown command %r", name)
        return False

    logger.info("Running %s%s in %s for %s", context.prefix, name, message.chat_id, message.sender_id)
    try:
        tokens = tokenize(text[len(context.prefix):])[1:]
        args = coerce(tokens, command.options, timezone=context.timezone)
        await command.handler(Interaction(message, args, context))
    except CommandError as exc:
        logger.warning("Command %r rejected: %s", name, exc)
        await _report(message, context, exc)
    except Exception as exc:
        logger.exception("Command %r failed", name)
        await _report(message, context, exc)
    return True


async def _report(message: ChatMessage, context: BotContext, exc: Exception) -> None:
    try:
        await context.chat.reply(message, format_error(exc))
    except Exception as reply_exc:
        logger.error("Could not send error reply to %s: %s", message.chat_id, reply_exc)
