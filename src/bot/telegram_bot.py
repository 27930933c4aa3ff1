"""
Pinboard - Telegram Bot.

Wires the transport-agnostic command dispatcher to Telegram: every text
message starting with the command prefix is handed to dispatch(), one update
at a time.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta

from telegram import Update
from telegram.ext import Application, ApplicationBuilder, ContextTypes, MessageHandler, filters

from src.adapters.telegram_chat import TelegramChat
from src.bot.commands import build_registry
from src.config import settings
from src.core.dispatcher import BotContext, CommandRegistry, dispatch
from src.data.db import ReminderDB

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Message handlers
# ---------------------------------------------------------------------------


async def handle_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle a prefixed text message - resolve and run the command."""
    message = update.effective_message
    if message is None or not message.text:
        return

    chat: TelegramChat = context.bot_data["chat"]
    bot_context: BotContext = context.bot_data["context"]
    await dispatch(message.text, chat.to_chat_message(message), bot_context)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log errors raised outside dispatch(); the bot keeps running."""
    logger.error("Unhandled error while processing update %s", update, exc_info=context.error)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    db: ReminderDB | None = None,
    registry: CommandRegistry | None = None,
) -> Application:
    """Build and configure the Telegram Application.

    Args:
        db: Reminder repository. Defaults to the SQLite file in DATABASE_PATH.
        registry: Command set. Defaults to build_registry().
    """
    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .concurrent_updates(False)
        .build()
    )

    if db is None:
        db = ReminderDB(settings.DATABASE_PATH, debug=settings.DEBUG_MODE)
    if registry is None:
        registry = build_registry()

    chat = TelegramChat(app.bot, app.job_queue, window=settings.RECENT_MESSAGE_LIMIT)

    # Store ports in bot_data for handler access
    app.bot_data["chat"] = chat
    app.bot_data["context"] = BotContext(
        chat=chat,
        db=db,
        registry=registry,
        prefix=settings.COMMAND_PREFIX,
        timezone=settings.TIMEZONE,
        pin_duration=timedelta(hours=settings.PIN_DURATION_HOURS),
        scan_limit=settings.RECENT_MESSAGE_LIMIT,
    )

    prefixed = filters.Regex(rf"^{re.escape(settings.COMMAND_PREFIX)}")
    app.add_handler(
        MessageHandler(filters.UpdateType.MESSAGE & filters.TEXT & prefixed, handle_command)
    )
    app.add_error_handler(handle_error)

    logger.info(
        "Telegram bot application built with %d commands (prefix %r, timezone %s)",
        len(registry), settings.COMMAND_PREFIX, settings.TIMEZONE,
    )
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG_MODE else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # httpx logs every Telegram API call at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logger.info("Starting Pinboard bot...")
    app = build_app()
    app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
