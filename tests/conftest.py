"""Test harness configuration.

This repo uses a `src/` layout; make sure tests import the in-repo code rather
than an older installed `pi_remote`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS = 60


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = str(repo_root / "src")
    if sys.path[:1] != [src_path] and src_path not in sys.path:
        sys.path.insert(0, src_path)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Apply a default per-test timeout to non-integration tests."""
    _ = session, config
    for item in items:
        if item.get_closest_marker("integration") is not None:
            continue
        item.add_marker(pytest.mark.timeout(DEFAULT_NON_INTEGRATION_TIMEOUT_SECONDS))


class FakeTelegramApi:
    """In-memory Bot API served through ``httpx.MockTransport``.

    ``calls`` is shared with the fake power control so tests can assert the
    relative order of Bot API calls and device actions.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[str, str] = {}
        self.transient_failures: dict[str, int] = {}
        self.update_batches: list[list[dict[str, Any]]] = []
        self.me: dict[str, Any] = {
            "id": 42,
            "is_bot": True,
            "username": "pi_bot",
            "first_name": "Pi",
        }
        self.on_request: Optional[Callable[[str], None]] = None
        self._next_message_id = 500

    def handler(self, request):
        import httpx

        method = request.url.path.rsplit("/", 1)[-1]
        payload = (
            json.loads(request.content.decode("utf-8")) if request.content else {}
        )
        self.calls.append((method, payload))
        if self.on_request is not None:
            self.on_request(method)
        if self.transient_failures.get(method, 0) > 0:
            self.transient_failures[method] -= 1
            return httpx.Response(
                502,
                json={"ok": False, "error_code": 502, "description": "Bad Gateway"},
            )
        if method in self.failures:
            return httpx.Response(
                400,
                json={
                    "ok": False,
                    "error_code": 400,
                    "description": self.failures[method],
                },
            )
        result: Any = True
        if method == "getUpdates":
            # Offset-only confirmations carry a limit and leave batches alone.
            if "limit" not in payload and self.update_batches:
                result = self.update_batches.pop(0)
            else:
                result = []
        elif method == "getMe":
            result = self.me
        elif method in ("sendMessage", "sendLocation"):
            self._next_message_id += 1
            result = {
                "message_id": self._next_message_id,
                "chat": {"id": payload.get("chat_id")},
            }
        return httpx.Response(200, json={"ok": True, "result": result})

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def calls_for(self, method: str) -> list[dict[str, Any]]:
        return [payload for name, payload in self.calls if name == method]


class FakeStatusProbe:
    def __init__(self) -> None:
        self.values: dict[str, Any] = {
            "hostname": "raspberrypi",
            "ip_addresses": ["192.168.0.10", "10.0.0.2"],
            "external_ip_address": "203.0.113.7",
            "uptime": "10:00:00 up 3 days",
            "free_spaces": "/dev/root 29G 12G 16G 43% /",
        }
        self.location: Any = None
        self.failing: set[str] = set()

    async def _get(self, name: str) -> Any:
        from pi_remote.core.status import StatusProbeError

        if name in self.failing:
            raise StatusProbeError(f"{name} unavailable")
        return self.values[name]

    async def hostname(self) -> str:
        return await self._get("hostname")

    async def ip_addresses(self) -> list[str]:
        if "ip_addresses" in self.failing:
            return []
        return list(self.values["ip_addresses"])

    async def external_ip_address(self) -> str:
        return await self._get("external_ip_address")

    async def uptime(self) -> str:
        return await self._get("uptime")

    async def free_spaces(self) -> str:
        return await self._get("free_spaces")

    async def geo_location(self, ip: str):
        from pi_remote.core.status import GeoLocation, StatusProbeError

        if "geo_location" in self.failing:
            raise StatusProbeError("geo service down")
        return self.location or GeoLocation(latitude=37.5665, longitude=126.978)


class FakePowerControl:
    def __init__(self, log: list[tuple[str, dict[str, Any]]]) -> None:
        self._log = log
        self.error_output: Optional[str] = None
        self.reboots = 0
        self.shutdowns = 0

    async def reboot_now(self) -> str:
        self.reboots += 1
        return self._finish("reboot")

    async def shutdown_now(self) -> str:
        self.shutdowns += 1
        return self._finish("shutdown")

    def _finish(self, name: str) -> str:
        from pi_remote.core.power import PowerActionError

        self._log.append((f"power.{name}", {}))
        if self.error_output is not None:
            raise PowerActionError(f"{name} failed", output=self.error_output)
        return ""


@pytest.fixture()
def anyio_backend() -> str:
    """The code under test is built on stdlib asyncio only."""
    return "asyncio"


@pytest.fixture()
def telegram_api() -> FakeTelegramApi:
    return FakeTelegramApi()


@pytest.fixture()
def bot(telegram_api: FakeTelegramApi):
    import httpx

    from pi_remote.integrations.telegram.adapter import TelegramBotClient

    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(telegram_api.handler)
    )
    return TelegramBotClient("123:test-token", client=http_client)


@pytest.fixture()
def status_probe() -> FakeStatusProbe:
    return FakeStatusProbe()


@pytest.fixture()
def power(telegram_api: FakeTelegramApi) -> FakePowerControl:
    return FakePowerControl(telegram_api.calls)


@pytest.fixture()
def make_config(tmp_path: Path):
    from pi_remote.core.config import BotConfig

    def _make(**overrides: Any) -> BotConfig:
        raw: dict[str, Any] = {
            "api_token": "123:test-token",
            "available_ids": ["alice", "bob"],
            "telegram_monitor_interval": 1,
        }
        raw.update(overrides)
        return BotConfig.from_raw(raw, root=tmp_path, env={})

    return _make


@pytest.fixture()
def make_service(bot, status_probe, power, make_config):
    from pi_remote.integrations.telegram.service import TelegramBotService

    def _make(**config_overrides: Any) -> TelegramBotService:
        return TelegramBotService(
            make_config(**config_overrides),
            bot=bot,
            status_probe=status_probe,
            power=power,
        )

    return _make


def message_update(
    update_id: int,
    text: Optional[str],
    *,
    username: Optional[str] = "alice",
    chat_id: int = 100,
    message_id: int = 10,
) -> dict[str, Any]:
    sender: dict[str, Any] = {"id": 7, "first_name": "Alice"}
    if username is not None:
        sender["username"] = username
    message: dict[str, Any] = {
        "message_id": message_id,
        "chat": {"id": chat_id},
        "from": sender,
        "date": 0,
    }
    if text is not None:
        message["text"] = text
    return {"update_id": update_id, "message": message}


def callback_update(
    update_id: int,
    data: Optional[str],
    *,
    username: Optional[str] = "alice",
    chat_id: int = 100,
    message_id: int = 501,
    callback_id: str = "cb-1",
) -> dict[str, Any]:
    sender: dict[str, Any] = {"id": 7, "first_name": "Alice"}
    if username is not None:
        sender["username"] = username
    query: dict[str, Any] = {
        "id": callback_id,
        "from": sender,
        "message": {"message_id": message_id, "chat": {"id": chat_id}},
    }
    if data is not None:
        query["data"] = data
    return {"update_id": update_id, "callback_query": query}


@pytest.fixture()
def updates():
    """Builders for raw Telegram update payloads."""

    class _Builders:
        message = staticmethod(message_update)
        callback = staticmethod(callback_update)

    return _Builders
