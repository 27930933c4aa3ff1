"""
Pinboard - Chat Commands.

The fixed command set of the bot. Handlers only talk to the ChatPort and the
ReminderDB through the Interaction's context, so they run unchanged on any
transport.

Group commands start by deleting the triggering message when it was sent by
the bot's own account or when called with incognito=true.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from src.core.arg_parser import CommandOption, OptionType
from src.core.dates import due_day, end_of_local_day, local_day_name, local_short_date
from src.core.dispatcher import Command, CommandRegistry, Interaction
from src.core.errors import CommandError, NotAGroupError, NotFoundError
from src.core.pinned_summary import group_display_name, refresh_pinned_summary
from src.core.reminder_buckets import classify
from src.data.models import GroupSettings, Reminder

logger = logging.getLogger(__name__)

INCOGNITO = CommandOption(
    name="incognito",
    description="delete your message after",
    type=OptionType.BOOLEAN,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


async def _delete_trigger(interaction: Interaction) -> None:
    """Best effort: remove the command message. Failures are ignored."""
    message = interaction.message
    if not (message.from_me or interaction.get_bool("incognito")):
        return
    try:
        await interaction.chat.delete_message(message, for_everyone=True)
    except Exception as exc:
        logger.debug("Could not delete command message %s: %s", message.message_id, exc)


def _require_group(interaction: Interaction) -> None:
    if not interaction.message.is_group:
        raise NotAGroupError()


async def _refresh(interaction: Interaction, group: GroupSettings) -> None:
    ctx = interaction.context
    await refresh_pinned_summary(
        ctx.chat,
        ctx.db,
        group,
        now=ctx.clock(),
        timezone=ctx.timezone,
        pin_duration=ctx.pin_duration,
        scan_limit=ctx.scan_limit,
    )


# ---------------------------------------------------------------------------
# help
# ---------------------------------------------------------------------------


async def cmd_help(interaction: Interaction) -> None:
    """List all commands, or describe the one named."""
    registry = interaction.context.registry
    prefix = interaction.context.prefix
    wanted = interaction.get_str("command")

    if wanted:
        name = wanted.lower()
        if name.startswith(prefix):
            name = name[len(prefix):]
        command = registry.get(name)
        if command is None:
            raise NotFoundError(f'No command found by the name "{wanted}"')
        lines = [
            f"✳ *command `{prefix}{command.name}`*",
            f"ℹ️ {command.description}",
        ]
        lines.extend(
            f"• `{op.name} ({op.type.value})`{'' if op.required else ' optional'}: _{op.description}_"
            for op in command.options
        )
    else:
        lines = [f"*Showing {len(registry)} available cmd(s):*"]
        for command in registry:
            signature = " | ".join(f"`[{op.signature()}]`" for op in command.options)
            lines.append(f"• {prefix}{command.name} {signature}".rstrip())
        lines.extend(["", f"*Type `{prefix}help [Command Name]` for more info.*"])

    await interaction.reply("\n".join(lines))


# ---------------------------------------------------------------------------
# Group commands
# ---------------------------------------------------------------------------


async def cmd_setgroupname(interaction: Interaction) -> None:
    """Rename the group shown in the pinned summary header."""
    new_name = interaction.get_str("name")
    if not new_name:
        raise CommandError("A group name is required.")

    await _delete_trigger(interaction)
    _require_group(interaction)

    db = interaction.context.db
    group = db.get_or_create_group(interaction.message.chat_id)
    db.save_group(replace(group, group_name=new_name))
    await interaction.reply(f"Successfully set group name to `{new_name}`")


# ---------------------------------------------------------------------------
# Reminder commands
# ---------------------------------------------------------------------------


async def cmd_addreminder(interaction: Interaction) -> None:
    """Store a reminder due at the end of the given day, then refresh."""
    ctx = interaction.context
    date = interaction.get_date("date")
    text = interaction.get_str("text") or "None"
    if date is None:
        raise CommandError("Date not set.")

    due = end_of_local_day(date, ctx.timezone)

    await _delete_trigger(interaction)
    _require_group(interaction)

    now = ctx.clock()
    if due < now:
        raise CommandError("Event date can't be in the past!")
    if classify(due, now, ctx.timezone) is None:
        raise CommandError("Event date can only be a maximum of 2 weeks out!")

    group = ctx.db.get_or_create_group(interaction.message.chat_id)
    ctx.db.add_reminder(group.group_id, text, due)
    await _refresh(interaction, group)


def _list_entry(reminder: Reminder, timezone: str) -> str:
    due = due_day(reminder.event_date, timezone)
    return (
        f"[#{reminder.id}] {local_day_name(due, timezone)}, "
        f"{local_short_date(due, timezone)} {reminder.text}"
    )


async def cmd_listreminders(interaction: Interaction) -> None:
    """Reply with every stored reminder and its id."""
    ctx = interaction.context
    await _delete_trigger(interaction)
    _require_group(interaction)

    group = ctx.db.get_or_create_group(interaction.message.chat_id)
    reminders = ctx.db.list_reminders(group.group_id)

    if reminders:
        entries = "\n".join(_list_entry(r, ctx.timezone) for r in reminders)
    else:
        entries = "No reminders yet."

    await interaction.reply("\n".join([
        f"📝 *{group_display_name(group)} Reminders List*",
        "ℹ _Format: [#Id] Day, dd/mm Notice_",
        "",
        "```\n" + entries + "\n```",
    ]))


async def cmd_delreminder(interaction: Interaction) -> None:
    """Delete one of this group's reminders by id, then refresh."""
    ctx = interaction.context
    await _delete_trigger(interaction)
    _require_group(interaction)

    reminder_id = interaction.get_number("id")
    if reminder_id is None or not float(reminder_id).is_integer():
        raise CommandError("Reminder id must be a whole number.")
    reminder_id = int(reminder_id)

    group = ctx.db.get_or_create_group(interaction.message.chat_id)
    if ctx.db.delete_reminder(group.group_id, reminder_id):
        await interaction.reply(f"Successfully deleted reminder #{reminder_id}")
    else:
        await interaction.reply(f"No reminder #{reminder_id} in this group, nothing deleted.")
    await _refresh(interaction, group)


async def cmd_updatereminders(interaction: Interaction) -> None:
    """Re-post the pinned summary."""
    await _delete_trigger(interaction)
    _require_group(interaction)

    group = interaction.context.db.get_or_create_group(interaction.message.chat_id)
    await _refresh(interaction, group)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


COMMANDS: tuple[Command, ...] = (
    Command(
        name="help",
        description="displays help page",
        handler=cmd_help,
        options=(
            CommandOption("command", "show help for command?", OptionType.STRING),
        ),
    ),
    Command(
        name="setgroupname",
        description="Set the group's name to the specified name.",
        handler=cmd_setgroupname,
        options=(
            CommandOption("name", "The name the group will have", OptionType.STRING, required=True),
            INCOGNITO,
        ),
    ),
    Command(
        name="addreminder",
        description="Add a reminder for important things",
        handler=cmd_addreminder,
        options=(
            CommandOption("text", "important text to notice of", OptionType.STRING, required=True),
            CommandOption("date", "due date in dd/mm/yy", OptionType.DATE, required=True),
            INCOGNITO,
        ),
    ),
    Command(
        name="listreminders",
        description="List reminder id(s)",
        handler=cmd_listreminders,
        options=(INCOGNITO,),
    ),
    Command(
        name="delreminder",
        description="Delete a reminder by its specified id",
        handler=cmd_delreminder,
        options=(
            CommandOption("id", "the reminder id", OptionType.NUMBER, required=True),
            INCOGNITO,
        ),
    ),
    Command(
        name="updatereminders",
        description="Updates the pinned reminders list",
        handler=cmd_updatereminders,
        options=(INCOGNITO,),
    ),
)


def build_registry() -> CommandRegistry:
    return CommandRegistry(COMMANDS)
