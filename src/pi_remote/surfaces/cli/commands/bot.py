import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import typer

from ....core.config import BotConfig, collect_env_overrides
from ....core.logging_utils import log_event, setup_rotating_logger
from ....core.power import SystemPowerControl
from ....core.status import SystemStatusProbe
from ....integrations.telegram.adapter import TelegramAPIError, TelegramBotClient
from ....integrations.telegram.service import (
    TelegramBotService,
    TelegramBotStartupError,
)

LOGGER_NAME = "pi_remote"


def register_bot_commands(
    app: typer.Typer,
    *,
    require_config: Callable[[Optional[Path]], BotConfig],
    raise_exit: Callable,
) -> None:
    @app.command("run")
    def run(
        config_path: Optional[Path] = typer.Option(
            None, "--config", "-c", help="Path to the YAML/JSON config file"
        ),
    ):
        """Start polling Telegram and serve allow-listed users."""
        config = require_config(config_path)
        logger = setup_rotating_logger(
            LOGGER_NAME, config.log, verbose=config.is_verbose
        )
        env_overrides = collect_env_overrides(config)
        if env_overrides:
            logger.info("Environment overrides active: %s", ", ".join(env_overrides))
        log_event(
            logger,
            logging.INFO,
            "telegram.bot.starting",
            root=str(config.root),
            interval=config.telegram_monitor_interval,
        )

        async def _run() -> None:
            async with TelegramBotClient(
                config.api_token, verbose=config.is_verbose, logger=logger
            ) as bot, SystemStatusProbe() as status_probe:
                service = TelegramBotService(
                    config,
                    bot=bot,
                    status_probe=status_probe,
                    power=SystemPowerControl(),
                    logger=logger,
                )
                await service.run_polling()

        try:
            asyncio.run(_run())
        except TelegramBotStartupError as exc:
            raise_exit(str(exc), cause=exc)
        except KeyboardInterrupt:
            log_event(logger, logging.INFO, "telegram.bot.interrupted")

    @app.command("health")
    def health(
        config_path: Optional[Path] = typer.Option(
            None, "--config", "-c", help="Path to the YAML/JSON config file"
        ),
        timeout: float = typer.Option(5.0, "--timeout", help="Timeout (seconds)"),
    ):
        """Check that the API token is accepted by Telegram."""
        config = require_config(config_path)
        timeout_seconds = max(float(timeout), 0.1)

        async def _run() -> dict:
            async with TelegramBotClient(config.api_token) as client:
                result = await asyncio.wait_for(
                    client.get_me(), timeout=timeout_seconds
                )
                result.raise_for_error("getMe")
                return result.result if isinstance(result.result, dict) else {}

        try:
            me = asyncio.run(_run())
        except TelegramAPIError as exc:
            raise_exit(f"Telegram health check failed: {exc}", cause=exc)
        except asyncio.TimeoutError as exc:
            raise_exit("Telegram health check timed out", cause=exc)
        typer.echo(f"ok: @{me.get('username', '?')} ({me.get('first_name', '')})")
