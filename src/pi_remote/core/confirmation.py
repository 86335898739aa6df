"""Confirmation tokens for destructive actions.

The pending action travels as callback data on the prompt's inline buttons;
nothing about an open prompt is stored server side. ``ConfirmationLedger``
only remembers prompts whose action already ran so that a redelivered
callback cannot run it twice.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .commands import COMMAND_CANCEL, COMMAND_REBOOT, COMMAND_SHUTDOWN

MESSAGE_CANCELED = "Canceled"
MESSAGE_REBOOTING = "Rebooting..."
MESSAGE_SHUTTING_DOWN = "Shutting down..."
MESSAGE_ERROR = "Error."
MESSAGE_ALREADY_HANDLED = "Already handled."

CANCEL_TOKEN = COMMAND_CANCEL

DEFAULT_LEDGER_TTL_SECONDS = 600.0
DEFAULT_LEDGER_MAX_ENTRIES = 256


class PendingAction(str, Enum):
    REBOOT = COMMAND_REBOOT
    SHUTDOWN = COMMAND_SHUTDOWN

    @property
    def token(self) -> str:
        return self.value


class DecisionKind(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    INVALID = "invalid"


@dataclass(frozen=True)
class CallbackDecision:
    kind: DecisionKind
    action: Optional[PendingAction] = None
    raw: Optional[str] = None


_TERMINAL_TEXT = {
    PendingAction.REBOOT: MESSAGE_REBOOTING,
    PendingAction.SHUTDOWN: MESSAGE_SHUTTING_DOWN,
}


def decode_callback_token(data: Optional[str]) -> CallbackDecision:
    if not data:
        return CallbackDecision(kind=DecisionKind.INVALID, raw=data)
    if data.startswith(CANCEL_TOKEN):
        return CallbackDecision(kind=DecisionKind.CANCEL, raw=data)
    for action in (PendingAction.REBOOT, PendingAction.SHUTDOWN):
        if data.startswith(action.token):
            return CallbackDecision(kind=DecisionKind.CONFIRM, action=action, raw=data)
    return CallbackDecision(kind=DecisionKind.INVALID, raw=data)


def terminal_text(decision: CallbackDecision) -> str:
    if decision.kind is DecisionKind.CANCEL:
        return MESSAGE_CANCELED
    if decision.kind is DecisionKind.CONFIRM and decision.action is not None:
        return _TERMINAL_TEXT[decision.action]
    return MESSAGE_ERROR


PromptKey = tuple[int, int]


class ConfirmationLedger:
    """Short-lived record of prompts whose action has been executed."""

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_LEDGER_TTL_SECONDS,
        max_entries: int = DEFAULT_LEDGER_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: OrderedDict[PromptKey, float] = OrderedDict()

    def __len__(self) -> int:
        self._expire()
        return len(self._entries)

    def was_actioned(self, chat_id: int, message_id: int) -> bool:
        self._expire()
        return (chat_id, message_id) in self._entries

    def record(self, chat_id: int, message_id: int) -> None:
        self._expire()
        key = (chat_id, message_id)
        self._entries[key] = self._clock()
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def _expire(self) -> None:
        cutoff = self._clock() - self._ttl_seconds
        while self._entries:
            key, recorded_at = next(iter(self._entries.items()))
            if recorded_at > cutoff:
                break
            self._entries.popitem(last=False)
