"""Command-level errors.

Every error raised while parsing or running a command derives from
CommandError; its message is shown to the user verbatim by the dispatcher.
"""

from __future__ import annotations


class CommandError(Exception):
    """Base class for failures reported back to the chat."""


class MissingArgumentError(CommandError):
    def __init__(self, option: str) -> None:
        super().__init__(f'Missing required argument "{option}"')
        self.option = option


class InvalidNumberError(CommandError):
    def __init__(self, option: str, raw: str) -> None:
        super().__init__(f'Arg "{option}" is not a number: {raw!r}')
        self.option = option
        self.raw = raw


class InvalidDateError(CommandError):
    """Raised for a date that is malformed or not on the calendar.

    `option` is None when the failure comes from the date utilities
    directly rather than from an argument being coerced.
    """

    def __init__(self, raw: str, option: str | None = None) -> None:
        if option:
            message = f'Invalid date for "{option}": {raw!r} (expected dd/mm/yy)'
        else:
            message = f"Invalid date: {raw!r} (expected dd/mm/yy)"
        super().__init__(message)
        self.option = option
        self.raw = raw


class NotAGroupError(CommandError):
    def __init__(self) -> None:
        super().__init__("Must be in a group to use this command.")


class NotFoundError(CommandError):
    """Raised when a named thing (command, reminder) does not exist."""


class PersistenceError(CommandError):
    """Raised when a database transaction fails and has been rolled back."""
