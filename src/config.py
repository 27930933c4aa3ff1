"""
Pinboard - Centralized configuration.

Loads all settings from .env and validates required keys.
Only the Telegram wiring and the entry point read the `settings` singleton;
core modules receive the values they need as arguments.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Messages starting with this character are treated as commands
    COMMAND_PREFIX: str = "!"

    # Display timezone for due dates and the "last updated" stamp
    TIMEZONE: str = "UTC"

    # Verbose logging, including the SQL trace
    DEBUG_MODE: bool = False

    # SQLite
    DATABASE_PATH: str = "data/reminders.db"

    # Pinned summary
    PIN_DURATION_HOURS: int = 72
    RECENT_MESSAGE_LIMIT: int = 100

    @field_validator("COMMAND_PREFIX")
    @classmethod
    def check_prefix(cls, v: str) -> str:
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("COMMAND_PREFIX must be a non-empty string without spaces")
        return v

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown TIMEZONE: {v!r}") from exc
        return v

    @field_validator("DEBUG_MODE", mode="before")
    @classmethod
    def parse_debug(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() == "true"

    @field_validator("PIN_DURATION_HOURS", "RECENT_MESSAGE_LIMIT", mode="before")
    @classmethod
    def parse_positive_int(cls, v: str | int) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        COMMAND_PREFIX=os.getenv("COMMAND_PREFIX", "!"),
        TIMEZONE=os.getenv("TIMEZONE", "UTC"),
        DEBUG_MODE=os.getenv("DEBUG_MODE", "false"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/reminders.db"),
        PIN_DURATION_HOURS=os.getenv("PIN_DURATION_HOURS", "72"),
        RECENT_MESSAGE_LIMIT=os.getenv("RECENT_MESSAGE_LIMIT", "100"),
    )


# Singleton - imported by the bot wiring as:
#   from src.config import settings
settings = _load_settings()
