"""Per-message outbound options and keyboard builders."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

from ...core.commands import (
    COMMAND_HELP,
    COMMAND_LOCATION,
    COMMAND_REBOOT,
    COMMAND_SHUTDOWN,
    COMMAND_STATUS,
)
from ...core.confirmation import CANCEL_TOKEN, PendingAction
from .constants import BUTTON_CANCEL, BUTTON_YES, TELEGRAM_CALLBACK_DATA_LIMIT

KeyboardRows = tuple[tuple[str, ...], ...]
InlineButtonRows = tuple[tuple[tuple[str, str], ...], ...]

COMMAND_KEYBOARD_LAYOUT: KeyboardRows = (
    (COMMAND_STATUS, COMMAND_LOCATION, COMMAND_HELP),
    (COMMAND_REBOOT, COMMAND_SHUTDOWN),
)


@dataclass(frozen=True)
class OutboundOptions:
    """Options attached to a single outbound call.

    ``inline_buttons`` rows hold ``(label, callback_data)`` pairs and win over
    ``keyboard`` since Telegram accepts one ``reply_markup`` per message.
    ``live_period`` only applies to location shares.
    """

    keyboard: Optional[KeyboardRows] = None
    inline_buttons: Optional[InlineButtonRows] = None
    live_period: Optional[int] = None

    def with_live_period(self, seconds: int) -> "OutboundOptions":
        return replace(self, live_period=seconds)

    def with_inline_buttons(self, rows: InlineButtonRows) -> "OutboundOptions":
        return replace(self, inline_buttons=rows)

    def to_params(self, *, include_live_period: bool = False) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.inline_buttons:
            params["reply_markup"] = {
                "inline_keyboard": [
                    [
                        {"text": label, "callback_data": data}
                        for label, data in row
                    ]
                    for row in self.inline_buttons
                ]
            }
        elif self.keyboard:
            params["reply_markup"] = {
                "keyboard": [[{"text": text} for text in row] for row in self.keyboard],
                "resize_keyboard": True,
            }
        if include_live_period and self.live_period is not None:
            params["live_period"] = self.live_period
        return params


def build_command_keyboard(
    layout: KeyboardRows = COMMAND_KEYBOARD_LAYOUT,
) -> OutboundOptions:
    return OutboundOptions(keyboard=tuple(tuple(row) for row in layout))


def build_confirmation_buttons(action: PendingAction) -> InlineButtonRows:
    for data in (action.token, CANCEL_TOKEN):
        if len(data.encode("utf-8")) > TELEGRAM_CALLBACK_DATA_LIMIT:
            raise ValueError(f"callback data too long: {data!r}")
    return (((BUTTON_YES, action.token), (BUTTON_CANCEL, CANCEL_TOKEN)),)
