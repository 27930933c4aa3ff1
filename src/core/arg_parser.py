"""
Pinboard - Argument Parser.

Turns the text after a command name into typed values:

    !addreminder [[Pay the rent]] 01/01/30 true
        -> tokenize()  -> ["Pay the rent", "01/01/30", "true"]
        -> coerce()    -> {"text": STRING "Pay the rent",
                           "date": DATE 2030-01-01T00:00Z,
                           "incognito": BOOLEAN True}

Tokens are matched to options by position, never by name.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence, Union

from src.core.dates import parse_local_date
from src.core.errors import InvalidDateError, InvalidNumberError, MissingArgumentError

# [[multi word argument]] or a plain whitespace-free word
_TOKEN_RE = re.compile(r"\[\[(.*?)\]\]|(\S+)")

# ASCII digits only: no "1_000", no "nan"/"inf", no non-Latin numerals
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


class OptionType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"


@dataclass(frozen=True)
class CommandOption:
    """One positional argument a command accepts."""

    name: str
    description: str
    type: OptionType
    required: bool = False

    def signature(self) -> str:
        marker = "" if self.required else "?"
        return f"{self.name}{marker}:{self.type.value}"


Value = Union[str, int, float, bool, datetime, None]


@dataclass(frozen=True)
class OptionValue:
    """A parsed argument, tagged with the option type that produced it."""

    type: OptionType
    value: Value

    @property
    def is_set(self) -> bool:
        return self.value is not None


ParsedArgs = dict[str, OptionValue]


def tokenize(raw: str) -> list[str]:
    """Split on whitespace, keeping [[...]] spans as one token without brackets."""
    tokens: list[str] = []
    for match in _TOKEN_RE.finditer(raw):
        bracketed, word = match.groups()
        tokens.append(bracketed if bracketed is not None else word)
    return tokens


def _parse_number(option: CommandOption, token: str) -> int | float:
    if _INTEGER_RE.fullmatch(token):
        return int(token)
    if not _DECIMAL_RE.fullmatch(token):
        raise InvalidNumberError(option.name, token)
    number = float(token)
    if not math.isfinite(number):
        raise InvalidNumberError(option.name, token)
    return int(number) if number.is_integer() else number


def _coerce_one(option: CommandOption, token: str | None, timezone: str) -> Value:
    if option.type is OptionType.BOOLEAN:
        return token is not None and token.lower() == "true"

    if token is None:
        return None

    if option.type is OptionType.STRING:
        return token
    if option.type is OptionType.NUMBER:
        return _parse_number(option, token)
    if option.type is OptionType.DATE:
        try:
            return parse_local_date(token, timezone)
        except InvalidDateError:
            raise InvalidDateError(token, option=option.name) from None
    return None


def coerce(
    tokens: Sequence[str],
    schema: Sequence[CommandOption],
    timezone: str = "UTC",
) -> ParsedArgs:
    """Zip tokens onto the schema by position and convert each to its type.

    Raises:
        MissingArgumentError: a required option has no token.
        InvalidNumberError: a NUMBER token does not parse as a finite number.
        InvalidDateError: a DATE token is not a dd/mm/yy calendar date.
    """
    parsed: ParsedArgs = {}
    for index, option in enumerate(schema):
        token = tokens[index] if index < len(tokens) else None
        if option.required and token is None:
            raise MissingArgumentError(option.name)
        parsed[option.name] = OptionValue(option.type, _coerce_one(option, token, timezone))
    return parsed
