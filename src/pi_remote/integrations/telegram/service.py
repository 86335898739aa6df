from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ...core.access import AllowList, check_sender
from ...core.commands import route
from ...core.config import BotConfig
from ...core.confirmation import ConfirmationLedger
from ...core.exceptions import PiRemoteError
from ...core.logging_utils import log_event
from ...core.power import PowerControl
from ...core.retry import retry_transient
from ...core.status import StatusProbe
from .adapter import (
    TelegramAPIError,
    TelegramBotClient,
    TelegramCallbackQuery,
    TelegramMessage,
    TelegramUpdate,
    TelegramUpdatePoller,
)
from .handlers import CommandHandlers, ConfirmationFlow
from .options import OutboundOptions, build_command_keyboard


class TelegramBotStartupError(PiRemoteError):
    """The bot could not identify itself or clear its webhook."""


class TelegramBotService:
    """Polls Telegram and dispatches each update, one at a time."""

    def __init__(
        self,
        config: BotConfig,
        *,
        bot: TelegramBotClient,
        status_probe: StatusProbe,
        power: PowerControl,
        logger: Optional[logging.Logger] = None,
        ledger: Optional[ConfirmationLedger] = None,
        poller: Optional[TelegramUpdatePoller] = None,
    ) -> None:
        self._config = config
        self._bot = bot
        self._logger = logger or logging.getLogger(__name__)
        self._allowlist = AllowList(config.available_ids)
        self._keyboard: OutboundOptions = build_command_keyboard()
        self._poller = poller or TelegramUpdatePoller(bot)
        self._commands = CommandHandlers(
            bot, status_probe, self._keyboard, logger=self._logger
        )
        self._confirmations = ConfirmationFlow(
            bot,
            power,
            ledger=ledger,
            default_options=self._keyboard,
            acknowledge=self._poller.acknowledge,
            logger=self._logger,
        )
        self._stopping = asyncio.Event()
        self._bot_username: Optional[str] = None

    @property
    def allowlist(self) -> AllowList:
        return self._allowlist

    @property
    def bot_username(self) -> Optional[str]:
        return self._bot_username

    async def start(self) -> None:
        """Identify the bot and drop any webhook so getUpdates works."""
        try:
            me = await self._get_me()
        except TelegramAPIError as exc:
            raise TelegramBotStartupError(
                f"Failed to get info of the bot: {exc}"
            ) from exc
        username = me.get("username") if isinstance(me, dict) else None
        first_name = me.get("first_name") if isinstance(me, dict) else None
        self._bot_username = username if isinstance(username, str) else None
        log_event(
            self._logger,
            logging.INFO,
            "telegram.bot.launching",
            username=self._bot_username,
            first_name=first_name,
            allowed=len(self._allowlist),
        )
        try:
            await self._delete_webhook()
        except TelegramAPIError as exc:
            raise TelegramBotStartupError(f"Failed to delete webhook: {exc}") from exc

    @retry_transient
    async def _get_me(self) -> object:
        result = await self._bot.get_me()
        result.raise_for_error("getMe")
        return result.result

    @retry_transient
    async def _delete_webhook(self) -> None:
        result = await self._bot.delete_webhook()
        result.raise_for_error("deleteWebhook")

    def stop(self) -> None:
        self._stopping.set()

    async def run_polling(self) -> None:
        await self.start()
        interval = self._config.telegram_monitor_interval
        while not self._stopping.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        log_event(self._logger, logging.INFO, "telegram.bot.stopped")

    async def poll_once(self) -> int:
        """Fetch one batch of updates and process them in arrival order."""
        try:
            updates = await self._poller.poll()
        except TelegramAPIError as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "telegram.poll.failed",
                exc=exc,
            )
            return 0
        for update in updates:
            await self.process_update(update)
        return len(updates)

    async def process_update(self, update: TelegramUpdate) -> None:
        try:
            if update.has_message() and update.message is not None:
                await self._process_message(update.message)
            elif update.has_callback_query() and update.callback is not None:
                await self._process_callback(update.callback)
        except Exception as exc:
            # One bad update must not end the polling loop.
            log_event(
                self._logger,
                logging.ERROR,
                "telegram.update.failed",
                update_id=update.update_id,
                exc=exc,
            )

    async def _process_message(self, message: TelegramMessage) -> None:
        sender = message.sender
        if not check_sender(
            self._allowlist,
            sender.username if sender else None,
            self._logger,
            display_name=sender.first_name if sender else None,
        ):
            return
        if self._config.is_verbose:
            log_event(
                self._logger,
                logging.INFO,
                "telegram.message.received",
                chat_id=message.chat_id,
                text=message.text,
            )
        await self._commands.handle(route(message.text), message.chat_id)

    async def _process_callback(self, query: TelegramCallbackQuery) -> None:
        sender = query.sender
        if not check_sender(
            self._allowlist,
            sender.username if sender else None,
            self._logger,
            display_name=sender.first_name if sender else None,
        ):
            return
        if self._config.is_verbose:
            log_event(
                self._logger,
                logging.INFO,
                "telegram.callback.received",
                chat_id=query.chat_id,
                data=query.data,
            )
        await self._confirmations.handle_callback(query)
