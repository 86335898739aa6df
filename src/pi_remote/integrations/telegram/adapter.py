"""Minimal Telegram Bot API client and update models.

Every Bot API call resolves to a ``TelegramApiResult``; transport failures are
folded into ``ok=False`` so callers only ever check one acknowledgement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx

from ...core.exceptions import PermanentError, PiRemoteError, TransientError
from ...core.logging_utils import log_event
from .constants import (
    CHAT_ACTION_TYPING,
    TELEGRAM_API_BASE_URL,
    TELEGRAM_REQUEST_TIMEOUT_SECONDS,
)
from .options import OutboundOptions

logger = logging.getLogger(__name__)


class TelegramAPIError(PiRemoteError):
    """Telegram Bot API request error."""


class TelegramTransientError(TelegramAPIError, TransientError):
    """Retryable Telegram failure (network issues, 5xx, rate limits)."""

    recoverable = TransientError.recoverable
    severity = TransientError.severity


class TelegramPermanentError(TelegramAPIError, PermanentError):
    """Non-retryable Telegram failure (bad token, invalid request)."""


@dataclass(frozen=True)
class TelegramApiResult:
    ok: bool
    result: Any = None
    description: Optional[str] = None
    error_code: Optional[int] = None
    transient: bool = False

    @property
    def failure_reason(self) -> str:
        return self.description or "unknown error"

    def raise_for_error(self, method: str) -> None:
        if self.ok:
            return
        message = f"Telegram {method} failed: {self.failure_reason}"
        if self.transient:
            raise TelegramTransientError(message)
        raise TelegramPermanentError(message)


@dataclass(frozen=True)
class TelegramUser:
    id: Optional[int]
    username: Optional[str]
    first_name: str = ""


@dataclass(frozen=True)
class TelegramMessage:
    update_id: int
    message_id: int
    chat_id: int
    sender: Optional[TelegramUser]
    text: Optional[str]


@dataclass(frozen=True)
class TelegramCallbackQuery:
    update_id: int
    callback_id: str
    sender: Optional[TelegramUser]
    data: Optional[str]
    chat_id: Optional[int]
    message_id: Optional[int]


@dataclass(frozen=True)
class TelegramUpdate:
    update_id: int
    message: Optional[TelegramMessage] = None
    callback: Optional[TelegramCallbackQuery] = None

    def has_message(self) -> bool:
        return self.message is not None

    def has_callback_query(self) -> bool:
        return self.message is None and self.callback is not None


def _parse_user(payload: Any) -> Optional[TelegramUser]:
    if not isinstance(payload, dict):
        return None
    user_id = payload.get("id")
    username = payload.get("username")
    first_name = payload.get("first_name")
    return TelegramUser(
        id=user_id if isinstance(user_id, int) else None,
        username=username if isinstance(username, str) and username else None,
        first_name=first_name if isinstance(first_name, str) else "",
    )


def _parse_chat_id(message: dict[str, Any]) -> Optional[int]:
    chat = message.get("chat")
    if not isinstance(chat, dict):
        return None
    chat_id = chat.get("id")
    return chat_id if isinstance(chat_id, int) else None


def _parse_message(update_id: int, payload: Any) -> Optional[TelegramMessage]:
    if not isinstance(payload, dict):
        return None
    message_id = payload.get("message_id")
    chat_id = _parse_chat_id(payload)
    if not isinstance(message_id, int) or chat_id is None:
        return None
    text = payload.get("text")
    return TelegramMessage(
        update_id=update_id,
        message_id=message_id,
        chat_id=chat_id,
        sender=_parse_user(payload.get("from")),
        text=text if isinstance(text, str) else None,
    )


def _parse_callback(update_id: int, payload: Any) -> Optional[TelegramCallbackQuery]:
    if not isinstance(payload, dict):
        return None
    callback_id = payload.get("id")
    if not isinstance(callback_id, str) or not callback_id:
        return None
    data = payload.get("data")
    message = payload.get("message")
    chat_id: Optional[int] = None
    message_id: Optional[int] = None
    if isinstance(message, dict):
        chat_id = _parse_chat_id(message)
        raw_message_id = message.get("message_id")
        message_id = raw_message_id if isinstance(raw_message_id, int) else None
    return TelegramCallbackQuery(
        update_id=update_id,
        callback_id=callback_id,
        sender=_parse_user(payload.get("from")),
        data=data if isinstance(data, str) else None,
        chat_id=chat_id,
        message_id=message_id,
    )


def parse_update(payload: Any) -> Optional[TelegramUpdate]:
    if not isinstance(payload, dict):
        return None
    update_id = payload.get("update_id")
    if not isinstance(update_id, int):
        return None
    message = _parse_message(update_id, payload.get("message"))
    callback = None
    if message is None:
        callback = _parse_callback(update_id, payload.get("callback_query"))
    if message is None and callback is None:
        return None
    return TelegramUpdate(update_id=update_id, message=message, callback=callback)


class TelegramBotClient:
    def __init__(
        self,
        token: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = TELEGRAM_API_BASE_URL,
        timeout_seconds: float = TELEGRAM_REQUEST_TIMEOUT_SECONDS,
        verbose: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._verbose = verbose
        self._logger = logger or logging.getLogger(__name__)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "TelegramBotClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    def _method_url(self, method: str) -> str:
        return f"{self._base_url}/bot{self._token}/{method}"

    async def _request(
        self, method: str, payload: Optional[dict[str, Any]] = None
    ) -> TelegramApiResult:
        if self._verbose:
            log_event(
                self._logger, logging.DEBUG, "telegram.request", method=method
            )
        try:
            response = await self._client.post(
                self._method_url(method), json=payload or {}
            )
        except httpx.HTTPError as exc:
            return TelegramApiResult(
                ok=False,
                description=f"network error: {type(exc).__name__}: {exc}",
                transient=True,
            )

        transient = response.status_code == 429 or response.status_code >= 500
        try:
            body = response.json()
        except ValueError:
            return TelegramApiResult(
                ok=False,
                description=f"non-JSON response (HTTP {response.status_code})",
                error_code=response.status_code,
                transient=transient,
            )
        if not isinstance(body, dict):
            return TelegramApiResult(
                ok=False,
                description=f"unexpected response (HTTP {response.status_code})",
                error_code=response.status_code,
                transient=transient,
            )
        if body.get("ok") is True:
            return TelegramApiResult(ok=True, result=body.get("result"))
        description = body.get("description")
        error_code = body.get("error_code")
        return TelegramApiResult(
            ok=False,
            description=description if isinstance(description, str) else None,
            error_code=error_code if isinstance(error_code, int) else None,
            transient=transient,
        )

    async def get_me(self) -> TelegramApiResult:
        return await self._request("getMe")

    async def delete_webhook(self) -> TelegramApiResult:
        return await self._request("deleteWebhook")

    async def get_updates(
        self,
        *,
        offset: Optional[int] = None,
        timeout: int = 0,
        limit: Optional[int] = None,
        allowed_updates: Sequence[str] = ("message", "callback_query"),
    ) -> TelegramApiResult:
        payload: dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": list(allowed_updates),
        }
        if offset is not None:
            payload["offset"] = offset
        if limit is not None:
            payload["limit"] = limit
        return await self._request("getUpdates", payload)

    async def send_message(
        self,
        chat_id: int,
        text: str,
        options: Optional[OutboundOptions] = None,
    ) -> TelegramApiResult:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if options is not None:
            payload.update(options.to_params())
        return await self._request("sendMessage", payload)

    async def send_location(
        self,
        chat_id: int,
        latitude: float,
        longitude: float,
        options: Optional[OutboundOptions] = None,
    ) -> TelegramApiResult:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "latitude": latitude,
            "longitude": longitude,
        }
        if options is not None:
            payload.update(options.to_params(include_live_period=True))
        return await self._request("sendLocation", payload)

    async def send_chat_action(
        self, chat_id: int, action: str = CHAT_ACTION_TYPING
    ) -> TelegramApiResult:
        return await self._request(
            "sendChatAction", {"chat_id": chat_id, "action": action}
        )

    async def answer_callback_query(
        self, callback_query_id: str, *, text: Optional[str] = None
    ) -> TelegramApiResult:
        payload: dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        return await self._request("answerCallbackQuery", payload)

    async def edit_message_text(
        self, chat_id: int, message_id: int, text: str
    ) -> TelegramApiResult:
        # No reply_markup: Telegram drops the inline keyboard on edit.
        return await self._request(
            "editMessageText",
            {"chat_id": chat_id, "message_id": message_id, "text": text},
        )


class TelegramUpdatePoller:
    """Tracks the getUpdates offset across polls."""

    def __init__(self, bot: TelegramBotClient, *, offset: Optional[int] = None) -> None:
        self._bot = bot
        self._offset = offset

    @property
    def offset(self) -> Optional[int]:
        return self._offset

    async def poll(self, *, timeout: int = 0) -> list[TelegramUpdate]:
        result = await self._bot.get_updates(offset=self._offset, timeout=timeout)
        result.raise_for_error("getUpdates")
        raw_updates = result.result if isinstance(result.result, list) else []
        updates: list[TelegramUpdate] = []
        for raw in raw_updates:
            if isinstance(raw, dict) and isinstance(raw.get("update_id"), int):
                self._offset = next_update_offset(raw["update_id"], self._offset)
            parsed = parse_update(raw)
            if parsed is not None:
                updates.append(parsed)
            else:
                log_event(
                    logger,
                    logging.DEBUG,
                    "telegram.update.ignored",
                    update_id=raw.get("update_id") if isinstance(raw, dict) else None,
                )
        return updates

    async def acknowledge(self, update_id: int) -> TelegramApiResult:
        """Confirm everything up to ``update_id`` with Telegram right away.

        Telegram only forgets an update once getUpdates is called with a
        higher offset. Whatever this call returns is left for the next poll.
        """
        return await self._bot.get_updates(offset=update_id + 1, timeout=0, limit=1)


def next_update_offset(update_id: int, current: Optional[int]) -> int:
    candidate = update_id + 1
    if current is None:
        return candidate
    return max(candidate, current)
