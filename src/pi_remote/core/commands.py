"""Classify inbound text into one of the bot's fixed commands."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

COMMAND_START = "/start"
COMMAND_STATUS = "/status"
COMMAND_LOCATION = "/where"
COMMAND_REBOOT = "/reboot"
COMMAND_SHUTDOWN = "/shutdown"
COMMAND_HELP = "/help"
COMMAND_CANCEL = "/cancel"


class CommandKind(str, Enum):
    START = "start"
    STATUS = "status"
    LOCATION = "location"
    REBOOT = "reboot"
    SHUTDOWN = "shutdown"
    HELP = "help"
    CANCEL = "cancel"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    text: str = ""


# Priority order matters: the first matching prefix wins. /cancel is absent on
# purpose; it only exists as callback data on confirmation prompts.
COMMAND_TABLE: tuple[tuple[str, CommandKind], ...] = (
    (COMMAND_START, CommandKind.START),
    (COMMAND_STATUS, CommandKind.STATUS),
    (COMMAND_LOCATION, CommandKind.LOCATION),
    (COMMAND_REBOOT, CommandKind.REBOOT),
    (COMMAND_SHUTDOWN, CommandKind.SHUTDOWN),
    (COMMAND_HELP, CommandKind.HELP),
)


def assert_non_prefixing(tokens: Iterable[str]) -> None:
    """Raise ``ValueError`` if any token would shadow another one."""
    items = list(tokens)
    for index, token in enumerate(items):
        for other_index, other in enumerate(items):
            if index != other_index and other.startswith(token):
                raise ValueError(f"command token {token!r} shadows {other!r}")


assert_non_prefixing([token for token, _ in COMMAND_TABLE] + [COMMAND_CANCEL])


def route(
    text: Optional[str],
    table: tuple[tuple[str, CommandKind], ...] = COMMAND_TABLE,
) -> Command:
    if not text:
        return Command(kind=CommandKind.UNKNOWN, text="")
    for token, kind in table:
        if text.startswith(token):
            return Command(kind=kind, text=text)
    return Command(kind=CommandKind.UNKNOWN, text=text)
