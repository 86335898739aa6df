from __future__ import annotations

import json
import logging
import re
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

_MAX_LOG_VALUE_CHARS = 500
_BOT_TOKEN_RE = re.compile(r"bot\d+:[A-Za-z0-9_-]+")
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class LogConfig:
    path: Optional[Path] = None
    level: str = "INFO"
    max_bytes: int = 1_000_000
    backup_count: int = 3


def sanitize_log_value(value: Any) -> Any:
    """Make a value safe to embed in a structured log line."""
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        return [sanitize_log_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): sanitize_log_value(item) for key, item in value.items()}
    text = _BOT_TOKEN_RE.sub("bot<redacted>", str(value))
    if len(text) > _MAX_LOG_VALUE_CHARS:
        text = text[:_MAX_LOG_VALUE_CHARS] + "..."
    return text


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc: Optional[BaseException] = None,
    **fields: Any,
) -> None:
    """Emit a single-line JSON event."""
    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {"event": event}
    for key, value in fields.items():
        payload[key] = sanitize_log_value(value)
    if exc is not None:
        payload["error"] = sanitize_log_value(str(exc))
        payload["error_type"] = type(exc).__name__
    try:
        message = json.dumps(payload, ensure_ascii=True, default=str)
    except (TypeError, ValueError):
        message = f"{event} {payload!r}"
    safe_log(logger, level, message)


def safe_log(
    logger: logging.Logger,
    level: int,
    message: str,
    *args: Any,
    exc: Optional[BaseException] = None,
) -> None:
    try:
        if exc is not None:
            message = f"{message}: {exc}"
        logger.log(level, message, *args)
    except Exception:
        # Logging must never take the bot down.
        pass


def setup_rotating_logger(
    name: str, log_config: Optional[LogConfig] = None, *, verbose: bool = False
) -> logging.Logger:
    config = log_config or LogConfig()
    logger = logging.getLogger(name)
    level_name = "DEBUG" if verbose else config.level.upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handler: logging.Handler
    if config.path is not None:
        config.path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            config.path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    return logger
