from __future__ import annotations

from pathlib import Path

import httpx
from typer.testing import CliRunner

from pi_remote.cli import app
from pi_remote.integrations.telegram.adapter import TelegramBotClient
from pi_remote.surfaces.cli.commands import bot as bot_commands

runner = CliRunner()


def _write_config(tmp_path: Path) -> Path:
    path = tmp_path / "pi-remote.yml"
    path.write_text(
        "api_token: '123:abc'\navailable_ids: [alice]\n", encoding="utf-8"
    )
    return path


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("pi-remote ")


def test_run_without_config_exits_with_error(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PI_REMOTE_API_TOKEN", raising=False)
    result = runner.invoke(app, ["run"])
    assert result.exit_code == 1
    assert "Config error" in result.output


def test_health_reports_bot_identity(tmp_path: Path, monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"ok": True, "result": {"username": "pi_bot", "first_name": "Pi"}},
        )

    def _client(token: str, **kwargs) -> TelegramBotClient:
        return TelegramBotClient(
            token, client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )

    monkeypatch.setattr(bot_commands, "TelegramBotClient", _client)
    result = runner.invoke(app, ["health", "--config", str(_write_config(tmp_path))])
    assert result.exit_code == 0
    assert "ok: @pi_bot (Pi)" in result.output


def test_health_reports_rejected_token(tmp_path: Path, monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401, json={"ok": False, "error_code": 401, "description": "Unauthorized"}
        )

    def _client(token: str, **kwargs) -> TelegramBotClient:
        return TelegramBotClient(
            token, client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )

    monkeypatch.setattr(bot_commands, "TelegramBotClient", _client)
    result = runner.invoke(app, ["health", "--config", str(_write_config(tmp_path))])
    assert result.exit_code == 1
    assert "Telegram health check failed" in result.output
