"""Yes/Cancel resolution for reboot and shutdown prompts.

Ordering is strict: answer the callback, then collapse the prompt, then run
the action. The action may take the device (and this process) down, so every
user-facing update has to be finished before it starts.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from ....core.confirmation import (
    MESSAGE_ALREADY_HANDLED,
    CallbackDecision,
    ConfirmationLedger,
    DecisionKind,
    PendingAction,
    decode_callback_token,
    terminal_text,
)
from ....core.logging_utils import log_event
from ....core.power import PowerActionError, PowerControl
from ..adapter import TelegramApiResult, TelegramBotClient, TelegramCallbackQuery
from ..options import OutboundOptions
from .commands import check_delivery


class ConfirmationFlow:
    def __init__(
        self,
        bot: TelegramBotClient,
        power: PowerControl,
        *,
        ledger: Optional[ConfirmationLedger] = None,
        default_options: Optional[OutboundOptions] = None,
        acknowledge: Optional[Callable[[int], Awaitable[TelegramApiResult]]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._bot = bot
        self._power = power
        self._ledger = ledger if ledger is not None else ConfirmationLedger()
        self._default_options = default_options
        self._acknowledge = acknowledge
        self._logger = logger or logging.getLogger(__name__)

    async def handle_callback(self, query: TelegramCallbackQuery) -> bool:
        """Resolve one callback; returns True once the prompt was finalized."""
        decision = decode_callback_token(query.data)
        message = terminal_text(decision)

        if self._is_replay(query, decision):
            log_event(
                self._logger,
                logging.WARNING,
                "confirmation.replay.ignored",
                chat_id=query.chat_id,
                message_id=query.message_id,
                data=query.data,
            )
            check_delivery(
                await self._bot.answer_callback_query(
                    query.callback_id, text=MESSAGE_ALREADY_HANDLED
                ),
                self._logger,
                method="answerCallbackQuery",
                chat_id=query.chat_id,
            )
            return False

        answered = await self._bot.answer_callback_query(
            query.callback_id, text=message
        )
        if not answered.ok:
            log_event(
                self._logger,
                logging.WARNING,
                "confirmation.answer.failed",
                callback_id=query.callback_id,
                chat_id=query.chat_id,
                data=query.data,
                description=answered.failure_reason,
            )
            return False

        if query.chat_id is None or query.message_id is None:
            log_event(
                self._logger,
                logging.WARNING,
                "confirmation.prompt.missing",
                callback_id=query.callback_id,
            )
            return False

        edited = await self._bot.edit_message_text(
            query.chat_id, query.message_id, message
        )
        if not edited.ok:
            log_event(
                self._logger,
                logging.WARNING,
                "confirmation.edit.failed",
                chat_id=query.chat_id,
                message_id=query.message_id,
                description=edited.failure_reason,
            )
            return False

        if decision.kind is DecisionKind.CONFIRM and decision.action is not None:
            self._ledger.record(query.chat_id, query.message_id)
            if self._acknowledge is not None:
                # A redelivery after the device comes back must not act again.
                check_delivery(
                    await self._acknowledge(query.update_id),
                    self._logger,
                    method="getUpdates",
                    chat_id=query.chat_id,
                )
            await self._run_action(decision.action, query.chat_id)
        elif decision.kind is DecisionKind.INVALID:
            log_event(
                self._logger,
                logging.ERROR,
                "confirmation.callback.unprocessable",
                chat_id=query.chat_id,
                data=query.data,
            )
        return True

    def _is_replay(
        self, query: TelegramCallbackQuery, decision: CallbackDecision
    ) -> bool:
        if decision.kind is not DecisionKind.CONFIRM:
            return False
        if query.chat_id is None or query.message_id is None:
            return False
        return self._ledger.was_actioned(query.chat_id, query.message_id)

    async def _run_action(self, action: PendingAction, chat_id: int) -> None:
        log_event(
            self._logger,
            logging.WARNING,
            "confirmation.action.confirmed",
            action=action.name.lower(),
            chat_id=chat_id,
        )
        try:
            if action is PendingAction.REBOOT:
                await self._power.reboot_now()
            else:
                await self._power.shutdown_now()
        except Exception as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "confirmation.action.failed",
                action=action.name.lower(),
                exc=exc,
            )
            if isinstance(exc, PowerActionError):
                diagnostic = exc.output
            else:
                diagnostic = str(exc) or type(exc).__name__
            result = await self._bot.send_message(
                chat_id, diagnostic, self._default_options
            )
            check_delivery(
                result, self._logger, method="sendMessage", chat_id=chat_id
            )
