from __future__ import annotations

import logging
from typing import Optional

from ....core.commands import Command, CommandKind
from ....core.confirmation import PendingAction
from ....core.logging_utils import log_event
from ....core.status import (
    StatusProbe,
    StatusProbeError,
    collect_status,
    format_status,
)
from ..adapter import TelegramApiResult, TelegramBotClient
from ..constants import (
    LOCATION_LIVE_PERIOD_SECONDS,
    MESSAGE_CONFIRM_REBOOT,
    MESSAGE_CONFIRM_SHUTDOWN,
    MESSAGE_HELP,
)
from ..options import OutboundOptions, build_confirmation_buttons

_CONFIRM_PROMPTS = {
    PendingAction.REBOOT: MESSAGE_CONFIRM_REBOOT,
    PendingAction.SHUTDOWN: MESSAGE_CONFIRM_SHUTDOWN,
}


def check_delivery(
    result: TelegramApiResult,
    logger: logging.Logger,
    *,
    method: str,
    chat_id: Optional[int] = None,
) -> bool:
    """Log a negative acknowledgement; never raises and never retries."""
    if result.ok:
        return True
    log_event(
        logger,
        logging.WARNING,
        "telegram.delivery.failed",
        method=method,
        chat_id=chat_id,
        description=result.failure_reason,
        error_code=result.error_code,
    )
    return False


class CommandHandlers:
    """Per-command behavior for text messages from authorized senders."""

    def __init__(
        self,
        bot: TelegramBotClient,
        status_probe: StatusProbe,
        default_options: OutboundOptions,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._bot = bot
        self._status = status_probe
        self._default_options = default_options
        self._logger = logger or logging.getLogger(__name__)

    async def handle(self, command: Command, chat_id: int) -> None:
        check_delivery(
            await self._bot.send_chat_action(chat_id),
            self._logger,
            method="sendChatAction",
            chat_id=chat_id,
        )
        kind = command.kind
        if kind in (CommandKind.START, CommandKind.HELP):
            await self._reply(chat_id, MESSAGE_HELP)
        elif kind is CommandKind.STATUS:
            await self._handle_status(chat_id)
        elif kind is CommandKind.LOCATION:
            await self._handle_location(chat_id)
        elif kind is CommandKind.REBOOT:
            await self._prompt_confirmation(chat_id, PendingAction.REBOOT)
        elif kind is CommandKind.SHUTDOWN:
            await self._prompt_confirmation(chat_id, PendingAction.SHUTDOWN)
        else:
            message = f"No such command: {command.text}"
            log_event(
                self._logger,
                logging.INFO,
                "telegram.command.unknown",
                chat_id=chat_id,
                text=command.text,
            )
            await self._reply(chat_id, message)

    async def _reply(
        self, chat_id: int, text: str, options: Optional[OutboundOptions] = None
    ) -> bool:
        result = await self._bot.send_message(
            chat_id, text, options or self._default_options
        )
        return check_delivery(
            result, self._logger, method="sendMessage", chat_id=chat_id
        )

    async def _handle_status(self, chat_id: int) -> None:
        report = await collect_status(self._status, log=self._logger)
        await self._reply(chat_id, format_status(report))

    async def _handle_location(self, chat_id: int) -> None:
        # Any probe failure still gets a reply naming the step that failed.
        try:
            external_ip = await self._status.external_ip_address()
        except Exception as exc:
            self._log_probe_failure("external_ip_address", exc)
            await self._reply(chat_id, f"Failed to get external ip address: {exc}")
            return
        try:
            location = await self._status.geo_location(external_ip)
        except Exception as exc:
            self._log_probe_failure("geo_location", exc)
            await self._reply(chat_id, f"Failed to get geo location: {exc}")
            return
        result = await self._bot.send_location(
            chat_id,
            location.latitude,
            location.longitude,
            self._default_options.with_live_period(LOCATION_LIVE_PERIOD_SECONDS),
        )
        check_delivery(result, self._logger, method="sendLocation", chat_id=chat_id)

    def _log_probe_failure(self, probe: str, exc: Exception) -> None:
        level = logging.WARNING if isinstance(exc, StatusProbeError) else logging.ERROR
        log_event(self._logger, level, "status.probe.failed", probe=probe, exc=exc)

    async def _prompt_confirmation(self, chat_id: int, action: PendingAction) -> None:
        options = self._default_options.with_inline_buttons(
            build_confirmation_buttons(action)
        )
        await self._reply(chat_id, _CONFIRM_PROMPTS[action], options)
